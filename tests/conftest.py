"""
Pytest configuration and fixtures for the print-space layout engine tests.

Provides the Flask test app, a mock provider with its standard print specs,
editors bound to real sides and small in-memory images.
"""

import shutil
import tempfile
from pathlib import Path

import pytest
from PIL import Image

from printspace import create_app
from printspace.assets import AssetRegistry
from printspace.config import AppConfig
from printspace.editor import SceneEditor
from printspace.mock_provider import MockProvider
from printspace.models import PrintSide
from printspace.utils import image_to_data_url


POSTCARD_SELECTION = {'productType': 'postcard', 'orientation': 'portrait', 'size': '4x6'}
BIFOLD_SELECTION = {'productType': 'greeting-card', 'orientation': 'portrait',
                    'size': '5x7', 'foldFormat': 'bifold'}


@pytest.fixture(scope='session')
def app():
    """Create and configure a test Flask application."""
    work_dir = Path(tempfile.mkdtemp())
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-key',
        'LOG_FILE': str(work_dir / 'logs' / 'test.log'),
        'DRAFT_FOLDER': str(work_dir / 'drafts'),
    })

    yield app

    shutil.rmtree(work_dir, ignore_errors=True)


@pytest.fixture
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture
def config():
    """Built-in defaults, independent of any settings file."""
    return AppConfig(TESTING=True)


@pytest.fixture
def provider(config):
    return MockProvider(config=config)


@pytest.fixture
def postcard_spec(provider):
    return provider.generate_print_spec(POSTCARD_SELECTION)


@pytest.fixture
def bifold_spec(provider):
    return provider.generate_print_spec(BIFOLD_SELECTION)


@pytest.fixture
def front_side(postcard_spec):
    return postcard_spec.side('front')


@pytest.fixture
def small_side():
    """A 50mm square side at screen resolution, cheap to render."""
    return PrintSide.create('front', 'Front', 50, 50, 3, 5, 96)


@pytest.fixture
def assets():
    return AssetRegistry()


@pytest.fixture
def editor(front_side, assets, config):
    return SceneEditor(front_side, assets=assets, config=config)


@pytest.fixture
def make_image_url():
    """Factory for solid-colour PNG data URLs."""
    def _make(width=100, height=100, color=(255, 0, 0)):
        return image_to_data_url(Image.new('RGB', (width, height), color))
    return _make

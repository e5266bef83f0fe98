"""
Print-space layout engine - Flask Application Factory
Derives print specifications from product selections and lays out, fits and
exports photos, text, borders and a scan-code anchor on the print surface
"""

import os
from pathlib import Path
from flask import Flask
from loguru import logger
from dotenv import load_dotenv

from .config import load_config, set_config


def create_app(config_name=None, overrides=None):
    """Flask application factory

    ``config_name`` selects the environment; a dict passed instead is
    treated as configuration overrides.
    """

    # Load environment variables
    load_dotenv()

    if isinstance(config_name, dict):
        overrides = {**config_name, **(overrides or {})}
        config_name = None
    environment = config_name or os.getenv('PRINTSPACE_ENV', 'development')

    app = Flask(__name__)

    # Load configuration
    config = load_config(environment, overrides)
    set_config(config)
    app.config.update(config.model_dump())

    # Configure logging
    setup_logging(app)

    # Ensure working directories exist
    setup_directories(app)

    setup_services(app, config)

    # Register blueprints
    from . import routes
    app.register_blueprint(routes.bp)

    logger.info(f"Print-space engine initialized in {environment} mode")

    return app


def setup_logging(app):
    """Configure loguru logging"""
    log_level = app.config.get('LOG_LEVEL', 'INFO')
    log_file = app.config.get('LOG_FILE', 'logs/printspace.log')

    # Ensure logs directory exists
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_file,
        rotation="1 day",
        retention="30 days",
        level=log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}"
    )


def setup_directories(app):
    """Ensure required directories exist"""
    dirs = [
        app.config.get('DRAFT_FOLDER', 'drafts'),
        Path(app.config.get('LOG_FILE', 'logs/printspace.log')).parent,
    ]

    for dir_path in dirs:
        Path(dir_path).mkdir(parents=True, exist_ok=True)


def setup_services(app, config):
    """Provider, asset registry, option loader and export pipeline shared by the routes"""
    from .assets import AssetRegistry
    from .drafts import DraftStore, FileBlobStore
    from .export import ExportPipeline
    from .mock_provider import MockProvider
    from .options import OptionLoader

    provider = MockProvider(config=config)
    assets = AssetRegistry(max_cached=config.ASSET_CACHE_SIZE)
    app.extensions['printspace'] = {
        'config': config,
        'provider': provider,
        'assets': assets,
        'options': OptionLoader(provider),
        'pipeline': ExportPipeline(assets, config),
        'drafts': DraftStore(FileBlobStore(config.DRAFT_FOLDER), config.DRAFT_ASSET_SIZE_CAP),
    }

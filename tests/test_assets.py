"""
Unit tests for the asset registry and data URL helpers.
"""

import pytest
from PIL import Image
from printspace.assets import AssetRegistry, source_key
from printspace.errors import AssetLoadError
from printspace.utils import (
    decode_data_url, encode_data_url, is_data_url, parse_hex_color, generate_id
)


class TestDataUrls:
    """Test data URL encoding and decoding."""

    def test_round_trip(self):
        """Test that a payload survives encode and decode."""
        url = encode_data_url(b'\x89PNG', 'image/png')

        assert is_data_url(url)
        assert decode_data_url(url) == ('image/png', b'\x89PNG')

    def test_plain_payload(self):
        """Test the text/plain default media type."""
        assert decode_data_url('data:,hello') == ('text/plain', b'hello')

    def test_rejects_other_urls(self):
        """Test that non-data URLs are rejected."""
        with pytest.raises(ValueError):
            decode_data_url('https://example.com/a.png')


class TestHelpers:
    """Test the small utility helpers."""

    @pytest.mark.parametrize('value, expected', [
        ('#ff0000', (255, 0, 0)),
        ('#0f0', (0, 255, 0)),
        ('#zzzzzz', (1, 2, 3)),
        ('red', (1, 2, 3)),
        (None, (1, 2, 3)),
    ])
    def test_parse_hex_color(self, value, expected):
        """Test parsing hex colors with a fallback."""
        assert parse_hex_color(value, (1, 2, 3)) == expected

    def test_generate_id(self):
        """Test that generated ids are prefixed and unique."""
        first, second = generate_id('image'), generate_id('image')

        assert first.startswith('image-')
        assert first != second


class TestAssetRegistry:
    """Test image sources, natural sizes and the decoded image cache."""

    def test_load_data_url(self, assets, make_image_url):
        """Test decoding a data URL and caching the result."""
        url = make_image_url(30, 20)

        image = assets.load(url)

        assert image.size == (30, 20)
        assert image.mode == 'RGBA'
        assert assets.natural_size(url) == (30, 20)
        assert assets.load(url) is image

    def test_load_file(self, assets, tmp_path):
        """Test loading an image from a file path."""
        path = tmp_path / 'photo.png'
        Image.new('RGB', (12, 8), (0, 0, 255)).save(path)

        assert assets.load(str(path)).size == (12, 8)

    def test_custom_loader(self):
        """Test fetching remote sources through an injected loader."""
        registry = AssetRegistry(loader=lambda src: Image.new('RGB', (5, 5)))

        assert registry.load('https://cdn.example.com/a.jpg').size == (5, 5)

    def test_loader_failure_is_wrapped(self):
        """Test that loader failures surface as AssetLoadError."""
        def failing(src):
            raise ConnectionError('offline')

        with pytest.raises(AssetLoadError) as excinfo:
            AssetRegistry(loader=failing).load('https://cdn.example.com/a.jpg')

        assert excinfo.value.details['reason'] == 'offline'

    def test_unknown_source(self, assets):
        """Test that a source no loader handles is rejected."""
        with pytest.raises(AssetLoadError):
            assets.load('remote.jpg')

    def test_corrupt_data_url(self, assets):
        """Test that undecodable image data is rejected."""
        with pytest.raises(AssetLoadError):
            assets.load(encode_data_url(b'not an image'))

    def test_evict_keeps_size(self, assets, make_image_url):
        """Test that eviction drops the image but keeps its size."""
        url = make_image_url(30, 20)
        assets.load(url)

        assets.evict(url)

        assert assets.cached_count == 0
        assert url in assets
        assert assets.natural_size(url) == (30, 20)

    def test_clear(self, assets):
        """Test that clearing forgets registered sources."""
        assets.register('a.jpg', 10, 10)
        assets.clear()

        assert 'a.jpg' not in assets

    def test_cache_is_bounded(self, make_image_url):
        """Test that least recently used images are dropped once the cache is full."""
        registry = AssetRegistry(max_cached=3)
        urls = [make_image_url(10 + n, 10) for n in range(5)]
        for url in urls[:3]:
            registry.load(url)
        first = registry.load(urls[0])

        for url in urls[3:]:
            registry.load(url)

        assert registry.cached_count == 3
        assert registry.load(urls[0]) is first
        assert registry.natural_size(urls[1]) == (11, 10)

    def test_cache_keys_are_digests(self, make_image_url):
        """Test that cache keys are fixed-size digests of the source."""
        registry = AssetRegistry()
        url = make_image_url(300, 300)

        registry.load(url)

        assert list(registry._cache) == [source_key(url)]
        assert len(source_key(url)) == 64

"""
Asset registry for the print-space layout engine.

An explicit registry passed to the scene editor and the export pipeline.
It records natural image sizes supplied by the host and caches decoded
images in a bounded least-recently-used cache (load / evict / clear).
Entries are keyed by a digest of the source so multi-megabyte data URLs
are not held twice. The engine does
not fetch or persist bytes itself; anything that is neither a data URL
nor a local file goes through a caller-supplied loader.
"""

import hashlib
import io
import os
import threading
from collections import OrderedDict
from typing import Callable, Dict, Optional, Tuple

from PIL import Image, UnidentifiedImageError
from loguru import logger

from .errors import AssetLoadError
from .utils import is_data_url, decode_data_url

AssetLoader = Callable[[str], Image.Image]

DEFAULT_CACHE_SIZE = 32


def source_key(src: str) -> str:
    """Stable digest of a source reference."""
    return hashlib.sha256(src.encode('utf-8')).hexdigest()


class AssetRegistry:
    """Natural sizes and decoded images keyed by source reference."""

    def __init__(self, loader: AssetLoader = None, max_cached: int = DEFAULT_CACHE_SIZE):
        self.loader = loader
        self.max_cached = max(1, max_cached)
        self._sizes: Dict[str, Tuple[int, int]] = {}
        self._cache: "OrderedDict[str, Image.Image]" = OrderedDict()
        self._lock = threading.Lock()

    def register(self, src: str, width: int, height: int) -> None:
        """Record the natural pixel size of an asset."""
        with self._lock:
            self._sizes[source_key(src)] = (width, height)

    def natural_size(self, src: str) -> Optional[Tuple[int, int]]:
        with self._lock:
            return self._sizes.get(source_key(src))

    def __contains__(self, src: str) -> bool:
        with self._lock:
            key = source_key(src)
            return key in self._sizes or key in self._cache

    def load(self, src: str) -> Image.Image:
        """Decode an asset, keeping at most ``max_cached`` decoded images."""
        key = source_key(src)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return cached

        image = self._decode(src)
        with self._lock:
            self._cache[key] = image
            self._cache.move_to_end(key)
            self._sizes.setdefault(key, image.size)
            while len(self._cache) > self.max_cached:
                dropped, _ = self._cache.popitem(last=False)
                logger.debug(f"Asset cache full, dropped {dropped[:12]}")
        logger.debug(f"Loaded asset {src[:40]} ({image.size})")
        return image

    def _decode(self, src: str) -> Image.Image:
        if not src:
            raise AssetLoadError('', 'empty source')

        if is_data_url(src):
            try:
                _, data = decode_data_url(src)
                image = Image.open(io.BytesIO(data))
                image.load()
                return image.convert('RGBA')
            except (ValueError, OSError, UnidentifiedImageError) as e:
                raise AssetLoadError(src, str(e)) from e

        if os.path.exists(src):
            try:
                with Image.open(src) as image:
                    return image.convert('RGBA')
            except (OSError, UnidentifiedImageError) as e:
                raise AssetLoadError(src, str(e)) from e

        if self.loader is not None:
            try:
                image = self.loader(src)
            except AssetLoadError:
                raise
            except Exception as e:
                raise AssetLoadError(src, str(e)) from e
            if image is None:
                raise AssetLoadError(src, 'loader returned nothing')
            return image.convert('RGBA')

        raise AssetLoadError(src, 'no loader for this source')

    def evict(self, src: str) -> None:
        """Drop a decoded image from the cache; the natural size is kept."""
        with self._lock:
            self._cache.pop(source_key(src), None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._sizes.clear()

    @property
    def cached_count(self) -> int:
        with self._lock:
            return len(self._cache)

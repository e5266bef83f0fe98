"""
Utility functions for the print-space layout engine
"""

import base64
import io
import re
import uuid
from typing import Optional, Tuple

from PIL import Image

_DATA_URL_RE = re.compile(r'^data:(?P<mime>[\w/+.-]+)?(?P<params>(;[\w-]+=[\w-]+)*)(?P<b64>;base64)?,(?P<data>.*)$',
                          re.DOTALL)


def generate_id(prefix: str = 'item') -> str:
    """Short unique id for a design item"""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def is_data_url(src: str) -> bool:
    return bool(src) and src.startswith('data:')


def decode_data_url(src: str) -> Tuple[str, bytes]:
    """
    Split a ``data:`` URL into its mime type and raw bytes

    Raises ValueError for anything that is not a well-formed data URL.
    """
    match = _DATA_URL_RE.match(src or '')
    if not match:
        raise ValueError("Not a data URL")
    mime = match.group('mime') or 'text/plain'
    payload = match.group('data')
    if match.group('b64'):
        try:
            return mime, base64.b64decode(payload, validate=False)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e
    return mime, payload.encode('utf-8')


def encode_data_url(data: bytes, mime: str = 'image/png') -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def image_to_data_url(image: Image.Image, fmt: str = 'PNG', dpi: Optional[int] = None) -> str:
    """Encode a PIL image as a data URL"""
    buffer = io.BytesIO()
    save_kwargs = {'dpi': (dpi, dpi)} if dpi else {}
    image.save(buffer, format=fmt, **save_kwargs)
    return encode_data_url(buffer.getvalue(), f"image/{fmt.lower()}")


def parse_hex_color(value: str, default: Tuple[int, int, int] = (255, 255, 255)) -> Tuple[int, int, int]:
    """'#RRGGBB' or '#RGB' to an RGB tuple, ``default`` if unparseable"""
    if not value or not value.startswith('#'):
        return default
    digits = value[1:]
    if len(digits) == 3:
        digits = ''.join(c * 2 for c in digits)
    if len(digits) != 6:
        return default
    try:
        return tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return default

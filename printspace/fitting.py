"""
Slot fitting module for the print-space layout engine.

This module handles:
- Contain-fit (scale to fit, no cropping) and cover-fit (scale to fill, crop)
- Centering a fitted element inside a slot rectangle
- Snapping a dragged rectangle to safe-area edges and the canvas center
"""

from typing import List, Optional, Tuple, NamedTuple
from loguru import logger

CONTAIN = 'contain'
COVER = 'cover'
FIT_STRATEGIES = (CONTAIN, COVER)


class Rect:
    """Represents a position and size in print-space pixels."""

    __slots__ = ('x', 'y', 'width', 'height')

    def __init__(self, x: float, y: float, width: float, height: float):
        self.x = x
        self.y = y
        self.width = width
        self.height = height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, other: 'Rect', tolerance: float = 1e-6) -> bool:
        return (other.x >= self.x - tolerance and
                other.y >= self.y - tolerance and
                other.right <= self.right + tolerance and
                other.bottom <= self.bottom + tolerance)

    def intersects(self, other: 'Rect') -> bool:
        return (self.x < other.right and self.right > other.x and
                self.y < other.bottom and self.bottom > other.y)

    def intersection(self, other: 'Rect') -> Optional['Rect']:
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return None
        return Rect(left, top, right - left, bottom - top)

    def inset(self, dx: float, dy: float = None) -> 'Rect':
        dy = dx if dy is None else dy
        return Rect(self.x + dx, self.y + dy, self.width - 2 * dx, self.height - 2 * dy)

    def scaled(self, factor: float) -> 'Rect':
        return Rect(self.x * factor, self.y * factor, self.width * factor, self.height * factor)

    def translated(self, dx: float, dy: float) -> 'Rect':
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def as_box(self) -> Tuple[int, int, int, int]:
        """Integer (left, top, right, bottom) box for PIL."""
        return (int(round(self.x)), int(round(self.y)),
                int(round(self.right)), int(round(self.bottom)))

    def to_dict(self) -> dict:
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}

    def __eq__(self, other) -> bool:
        if not isinstance(other, Rect):
            return NotImplemented
        return (self.x, self.y, self.width, self.height) == (other.x, other.y, other.width, other.height)

    def __repr__(self) -> str:
        return f"Rect({self.x:.2f}, {self.y:.2f}, {self.width:.2f}, {self.height:.2f})"


class FitSize(NamedTuple):
    """Fitted element size. ``renderable`` is False for degenerate input."""
    width: float
    height: float
    renderable: bool = True


DEGENERATE = FitSize(0.0, 0.0, False)


def _is_degenerate(*values: float) -> bool:
    return any(v is None or v <= 0 for v in values)


def contain_fit(image_width: float, image_height: float,
                slot_width: float, slot_height: float) -> FitSize:
    """Scale an image to fit entirely inside a slot, preserving aspect ratio."""
    if _is_degenerate(image_width, image_height, slot_width, slot_height):
        return DEGENERATE

    image_aspect = image_width / image_height
    slot_aspect = slot_width / slot_height

    if image_aspect > slot_aspect:
        # Image is wider than slot - fit to width
        return FitSize(slot_width, slot_width / image_aspect)
    # Image is taller than slot - fit to height
    return FitSize(slot_height * image_aspect, slot_height)


def cover_fit(image_width: float, image_height: float,
              slot_width: float, slot_height: float) -> FitSize:
    """Scale an image to fill a slot on both axes; the overflow gets clipped."""
    if _is_degenerate(image_width, image_height, slot_width, slot_height):
        return DEGENERATE

    image_aspect = image_width / image_height
    slot_aspect = slot_width / slot_height

    if image_aspect > slot_aspect:
        # Image is wider - fit to height, overflow width
        return FitSize(slot_height * image_aspect, slot_height)
    # Image is taller - fit to width, overflow height
    return FitSize(slot_width, slot_width / image_aspect)


def center_in_slot(element_width: float, element_height: float, slot: Rect) -> Tuple[float, float]:
    """Top-left position that centers an element inside a slot."""
    return (slot.x + (slot.width - element_width) / 2,
            slot.y + (slot.height - element_height) / 2)


def fit_into_slot(image_width: float, image_height: float,
                  slot: Rect, strategy: str = CONTAIN) -> Optional[Rect]:
    """
    Fit and center an image inside an absolute slot rectangle.

    Returns None when the geometry is degenerate, meaning the element
    should not be rendered.
    """
    if strategy == COVER:
        size = cover_fit(image_width, image_height, slot.width, slot.height)
    elif strategy == CONTAIN:
        size = contain_fit(image_width, image_height, slot.width, slot.height)
    else:
        raise ValueError(f"Unknown fit strategy: {strategy}")

    if not size.renderable:
        logger.debug(f"Degenerate fit for image {image_width}x{image_height} into {slot}")
        return None

    x, y = center_in_slot(size.width, size.height, slot)
    return Rect(x, y, size.width, size.height)


def snap_rect(rect: Rect,
              safe_rect: Rect,
              canvas_size: Tuple[float, float],
              threshold: float) -> Tuple[Rect, List[Tuple[str, float]]]:
    """
    Snap a dragged rectangle to the safe-area edges/centers and the canvas center.

    The closest candidate on each axis within ``threshold`` wins. Returns the
    snapped rect and the guide lines to show as ``('v', x)`` / ``('h', y)``.
    """
    canvas_w, canvas_h = canvas_size
    guides = []

    candidates_x = [safe_rect.x, safe_rect.right, safe_rect.center_x, canvas_w / 2]
    targets_x = [rect.x, rect.right, rect.center_x]
    best_x = _closest_snap(candidates_x, targets_x, threshold)

    candidates_y = [safe_rect.y, safe_rect.bottom, safe_rect.center_y, canvas_h / 2]
    targets_y = [rect.y, rect.bottom, rect.center_y]
    best_y = _closest_snap(candidates_y, targets_y, threshold)

    dx = dy = 0.0
    if best_x is not None:
        guide, dx = best_x
        guides.append(('v', guide))
    if best_y is not None:
        guide, dy = best_y
        guides.append(('h', guide))

    return rect.translated(dx, dy), guides


def _closest_snap(candidates: List[float], targets: List[float],
                  threshold: float) -> Optional[Tuple[float, float]]:
    best = None
    for candidate in candidates:
        for target in targets:
            delta = candidate - target
            if abs(delta) <= threshold and (best is None or abs(delta) < abs(best[1])):
                best = (candidate, delta)
    return best

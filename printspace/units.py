"""
Unit conversion between physical millimetres, print-space pixels and
on-screen display pixels.

Print-space pixels are the coordinate basis of every design item. The
display transform is a single scalar applied at render time only; item
coordinates are never rewritten for display.
"""

from typing import Tuple, Union

MM_PER_INCH = 25.4
POINTS_PER_INCH = 72.0

DEFAULT_DPI = 300

ZOOM_LEVELS = (0.25, 0.5, 0.75, 1.0, 1.25, 1.5, 2.0, 3.0)
DEFAULT_ZOOM_INDEX = 3

Number = Union[int, float]


def mm_to_px(mm: Number, dpi: Number = DEFAULT_DPI) -> float:
    """Convert millimetres to pixels at the given resolution."""
    return (mm / MM_PER_INCH) * dpi


def px_to_mm(px: Number, dpi: Number = DEFAULT_DPI) -> float:
    """Convert pixels at the given resolution back to millimetres."""
    return (px / dpi) * MM_PER_INCH


def inches_to_px(inches: Number, dpi: Number = DEFAULT_DPI) -> float:
    return inches * dpi


def px_to_points(px: Number, dpi: Number = DEFAULT_DPI) -> float:
    """Size in typographic points of a length given in print pixels."""
    return (px / dpi) * POINTS_PER_INCH


def points_to_px(points: Number, dpi: Number = DEFAULT_DPI) -> float:
    return (points / POINTS_PER_INCH) * dpi


def fit_display_scale(canvas_width: Number,
                      canvas_height: Number,
                      max_width: Number = 800,
                      max_height: Number = 600) -> float:
    """Scale that fits a print canvas into the viewport, never enlarging it."""
    if canvas_width <= 0 or canvas_height <= 0:
        return 1.0
    return min(max_width / canvas_width, max_height / canvas_height, 1.0)


class DisplayTransform:
    """Maps print-space coordinates to display coordinates and back.

    ``print px * scale = screen px``; input events go through the inverse.
    """

    def __init__(self, scale: float, zoom: float = 1.0):
        if scale <= 0 or zoom <= 0:
            raise ValueError(f"Display scale must be positive, got {scale} x {zoom}")
        self.base_scale = scale
        self.zoom = zoom

    @property
    def scale(self) -> float:
        return self.base_scale * self.zoom

    def to_display(self, value: Number) -> float:
        return value * self.scale

    def to_print(self, value: Number) -> float:
        return value / self.scale

    def point_to_display(self, x: Number, y: Number) -> Tuple[float, float]:
        return (x * self.scale, y * self.scale)

    def point_to_print(self, x: Number, y: Number) -> Tuple[float, float]:
        return (x / self.scale, y / self.scale)

    def rect_to_display(self, rect):
        """Scale a :class:`printspace.fitting.Rect` into display space."""
        return rect.scaled(self.scale)

    def with_zoom(self, zoom: float) -> 'DisplayTransform':
        return DisplayTransform(self.base_scale, zoom)

    def __repr__(self) -> str:
        return f"DisplayTransform(scale={self.base_scale:.4f}, zoom={self.zoom})"

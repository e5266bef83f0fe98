"""
Preflight checks run before a placement is finalized.

Errors block finalize; warnings are advisory, since cutting tolerance
varies by provider.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import AppConfig, get_config
from .fitting import Rect
from .layouts import catalog_for, get_layout, resolve_slots, slot_area
from .models import PrintSide, PlacementDesign, TextItem
from .units import mm_to_px, px_to_points

ERROR = 'error'
WARNING = 'warning'

# Average glyph advance as a fraction of the font size
CHAR_WIDTH_FACTOR = 0.6
LINE_HEIGHT_FACTOR = 1.2


@dataclass
class PreflightIssue:
    code: str
    severity: str
    message: str
    item_id: Optional[str] = None

    def to_dict(self) -> Dict:
        return {'code': self.code, 'severity': self.severity,
                'message': self.message, 'itemId': self.item_id}


@dataclass
class PreflightResult:
    side_id: str
    errors: List[PreflightIssue] = field(default_factory=list)
    warnings: List[PreflightIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add(self, code: str, severity: str, message: str, item_id: str = None) -> None:
        issue = PreflightIssue(code, severity, message, item_id)
        (self.errors if severity == ERROR else self.warnings).append(issue)

    def to_dict(self) -> Dict:
        return {
            'sideId': self.side_id,
            'valid': self.valid,
            'errors': [e.to_dict() for e in self.errors],
            'warnings': [w.to_dict() for w in self.warnings],
        }


def estimate_text_box(item: TextItem) -> Rect:
    """Approximate text bounds from the character count and font size."""
    lines = item.text.split('\n') if item.text else ['']
    if item.width is not None:
        width = item.width
    else:
        width = max(len(line) for line in lines) * item.font_size * CHAR_WIDTH_FACTOR
    height = len(lines) * item.font_size * LINE_HEIGHT_FACTOR
    return Rect(item.x, item.y, width, height)


def in_rounded_corner_danger(rect: Rect, safe_rect: Rect, radius: float) -> bool:
    """True if ``rect`` reaches into the area a rounded-corner cut removes."""
    if radius <= 0:
        return False
    r = radius
    corners = [
        (safe_rect.x, safe_rect.y, safe_rect.x + r, safe_rect.y + r),
        (safe_rect.right - r, safe_rect.y, safe_rect.right - r, safe_rect.y + r),
        (safe_rect.x, safe_rect.bottom - r, safe_rect.x + r, safe_rect.bottom - r),
        (safe_rect.right - r, safe_rect.bottom - r, safe_rect.right - r, safe_rect.bottom - r),
    ]
    for square_x, square_y, cx, cy in corners:
        square = Rect(square_x, square_y, r, r)
        if not rect.intersects(square):
            continue
        # Furthest point of the rect's overlap with the corner square from the arc center
        overlap = rect.intersection(square)
        far_x = overlap.x if abs(overlap.x - cx) > abs(overlap.right - cx) else overlap.right
        far_y = overlap.y if abs(overlap.y - cy) > abs(overlap.bottom - cy) else overlap.bottom
        if math.hypot(far_x - cx, far_y - cy) > r:
            return True
    return False


def _image_bounds(design: PlacementDesign, side: PrintSide, config: AppConfig) -> Dict[str, Rect]:
    """Visible bounds of each image; slot-bound images are clipped to their slot."""
    layout = get_layout(design.layout_id or 'single', catalog_for(config))
    slots = resolve_slots(layout, slot_area(side, config.SLOT_AREA))
    bounds = {}
    for image in design.images:
        rect = image.rect
        if image.slot_index is not None and image.slot_index < len(slots):
            rect = rect.intersection(slots[image.slot_index]) or Rect(rect.x, rect.y, 0, 0)
        bounds[image.id] = rect
    return bounds


def run_preflight(design: PlacementDesign,
                  side: PrintSide,
                  corner_radius_mm: float = 0,
                  config: AppConfig = None) -> PreflightResult:
    """Check one placement against its side's trim and safe areas."""
    config = config or get_config()
    result = PreflightResult(side.id)
    if design is None:
        return result

    trim = side.trim_rect
    safe = side.safe_rect
    corner_radius_px = mm_to_px(corner_radius_mm, side.dpi)

    image_bounds = _image_bounds(design, side, config)
    for image in design.images:
        rect = image_bounds[image.id]
        if rect.is_degenerate:
            continue
        if not trim.contains(rect):
            result.add('OUTSIDE_TRIM', WARNING, "Image extends past the trim line.", image.id)
        # Effective resolution at print size
        effective_dpi = min(image.original_width * side.dpi / image.width,
                            image.original_height * side.dpi / image.height)
        if effective_dpi < config.MIN_IMAGE_DPI:
            result.add('LOW_RESOLUTION', WARNING,
                       f"Image prints at {effective_dpi:.0f} DPI, below {config.MIN_IMAGE_DPI:.0f}.",
                       image.id)
        if in_rounded_corner_danger(rect, safe, corner_radius_px):
            result.add('ROUNDED_CORNER_DANGER', WARNING,
                       "Image is too close to the rounded corner cut.", image.id)

    for text in design.texts:
        box = estimate_text_box(text)
        if not safe.contains(box):
            result.add('TEXT_OUTSIDE_SAFE', ERROR, "Text is outside the safe area.", text.id)
        if not trim.contains(box):
            result.add('OUTSIDE_TRIM', WARNING, "Text extends past the trim line.", text.id)
        if px_to_points(text.font_size, side.dpi) < config.MIN_FONT_PT:
            result.add('SMALL_TEXT', WARNING, "Text may be too small for print.", text.id)
        if in_rounded_corner_danger(box, safe, corner_radius_px):
            result.add('ROUNDED_CORNER_DANGER', WARNING,
                       "Text is too close to the rounded corner cut.", text.id)

    if design.qr_code is not None:
        rect = design.qr_code.rect
        if not safe.contains(rect):
            result.add('QR_OUTSIDE_SAFE', WARNING, "Scan code is outside the safe zone.", 'qr-code')
        if not trim.contains(rect):
            result.add('OUTSIDE_TRIM', WARNING, "Scan code extends past the trim line.", 'qr-code')

    return result

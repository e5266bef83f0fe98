"""
Layout template catalog for the print-space layout engine.

This module handles:
- Declarative slot geometries in normalized (0..1) coordinates
- One canonical catalog per gutter fraction so adjacent slots never touch
- Resolving legacy layout ids from older template sets
- Resolving normalized slots against a side's slot area in print pixels
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional

from loguru import logger

from .errors import ConfigurationError
from .fitting import Rect, CONTAIN, COVER, FIT_STRATEGIES

SLOT_SHAPES = ('rect', 'circle', 'polaroid')
DEFAULT_LAYOUT_ID = 'single'
DEFAULT_GUTTER = 0.02

_EPSILON = 1e-9


@dataclass(frozen=True)
class LayoutSlot:
    """A slot rectangle normalized to the slot area."""
    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0
    corner_radius_pct: float = 0.0
    padding_pct: float = 0.0
    shape: str = 'rect'
    fit: Optional[str] = None  # None inherits the layout policy

    def is_within_unit_square(self) -> bool:
        return (self.x >= -_EPSILON and self.y >= -_EPSILON and
                self.width > 0 and self.height > 0 and
                self.x + self.width <= 1 + _EPSILON and
                self.y + self.height <= 1 + _EPSILON)

    def resolve(self, area: Rect) -> Rect:
        """Absolute slot rectangle inside ``area``."""
        return Rect(area.x + self.x * area.width,
                    area.y + self.y * area.height,
                    self.width * area.width,
                    self.height * area.height)

    def to_dict(self) -> Dict:
        data = {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}
        if self.rotation:
            data['rotation'] = self.rotation
        if self.corner_radius_pct:
            data['cornerRadiusPct'] = self.corner_radius_pct
        if self.padding_pct:
            data['paddingPct'] = self.padding_pct
        if self.shape != 'rect':
            data['shape'] = self.shape
        if self.fit is not None:
            data['fit'] = self.fit
        return data


@dataclass(frozen=True)
class CollageLayout:
    id: str
    name: str
    slots: tuple
    fit_strategy: str = COVER
    description: str = ''

    def __post_init__(self):
        if not self.slots:
            raise ConfigurationError(f"Layout {self.id} has no slots")
        if self.fit_strategy not in FIT_STRATEGIES:
            raise ConfigurationError(f"Layout {self.id} has unknown fit strategy {self.fit_strategy}")
        for index, slot in enumerate(self.slots):
            if not slot.is_within_unit_square():
                raise ConfigurationError(
                    f"Slot {index} of layout {self.id} leaves the unit square",
                    details={'slot': slot.to_dict()}
                )
            if slot.shape not in SLOT_SHAPES:
                raise ConfigurationError(f"Slot {index} of layout {self.id} has unknown shape {slot.shape}")

    @property
    def slot_count(self) -> int:
        return len(self.slots)

    def fit_for(self, slot_index: int) -> str:
        """Fit strategy for one slot: the slot's own flag, else the layout policy."""
        slot = self.slots[slot_index]
        return slot.fit or self.fit_strategy

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'fitStrategy': self.fit_strategy,
            'slots': [s.to_dict() for s in self.slots],
        }


def _grid(cols: int, rows: int, g: float) -> List[LayoutSlot]:
    cell_w = (1 - (cols - 1) * g) / cols
    cell_h = (1 - (rows - 1) * g) / rows
    slots = []
    for row in range(rows):
        for col in range(cols):
            slots.append(LayoutSlot(col * (cell_w + g), row * (cell_h + g), cell_w, cell_h))
    return slots


def build_catalog(g: float = DEFAULT_GUTTER) -> Dict[str, CollageLayout]:
    """Build the canonical layout catalog for gutter fraction ``g``."""
    half = (1 - g) / 2
    third = (1 - 2 * g) / 3

    # Hero + 2x2 side thumbnails
    hero_w = 2 / 3 - g / 2
    side_x = hero_w + g
    side_w = 1 - side_x
    side_h = 0.5 - g / 2
    side_cell_w = side_w / 2 - g / 2

    layouts = [
        CollageLayout('single', 'Single Image', (LayoutSlot(0, 0, 1, 1),), CONTAIN,
                      'One image filling the whole slot area'),
        CollageLayout('two-up', '2-Up Side by Side', tuple(_grid(2, 1, g)), COVER,
                      'Two equal columns'),
        CollageLayout('two-up-stacked', '2-Up Stacked', tuple(_grid(1, 2, g)), COVER,
                      'Two equal rows'),
        CollageLayout('three-hero', '3-Up (Hero + 2)', (
            LayoutSlot(0, 0, half, 1),
            LayoutSlot(half + g, 0, half, half),
            LayoutSlot(half + g, half + g, half, half),
        ), COVER, 'One large image with two stacked on the right'),
        CollageLayout('three-top', '3 (1 Top, 2 Bottom)', (
            LayoutSlot(0, 0, 1, half),
            LayoutSlot(0, half + g, half, half),
            LayoutSlot(half + g, half + g, half, half),
        ), COVER),
        CollageLayout('three-bottom', '3 (2 Top, 1 Bottom)', (
            LayoutSlot(0, 0, half, half),
            LayoutSlot(half + g, 0, half, half),
            LayoutSlot(0, half + g, 1, half),
        ), COVER),
        CollageLayout('grid-2x2', '4 Grid', tuple(_grid(2, 2, g)), COVER),
        CollageLayout('four-left', '4 (1 Left, 3 Right)', (
            LayoutSlot(0, 0, half, 1),
            LayoutSlot(half + g, 0, half, third),
            LayoutSlot(half + g, third + g, half, third),
            LayoutSlot(half + g, 2 * (third + g), half, third),
        ), COVER, 'One large image with three small stacked on the right'),
        CollageLayout('five-cross', '5 Cross', (
            LayoutSlot(0.25, 0, 0.5, third),
            LayoutSlot(0, third + g, third, third),
            LayoutSlot(third + g, third + g, third, third),
            LayoutSlot(2 * (third + g), third + g, third, third),
            LayoutSlot(0.25, 2 * (third + g), 0.5, third),
        ), COVER),
        CollageLayout('grid-3x2', '6 Grid', tuple(_grid(3, 2, g)), COVER),
        CollageLayout('grid-3x3', '9 Grid', tuple(_grid(3, 3, g)), COVER),
        CollageLayout('collage', 'Collage (Hero + 4)', (
            LayoutSlot(0, 0, hero_w, 1),
            LayoutSlot(side_x, 0, side_cell_w, side_h),
            LayoutSlot(side_x + side_cell_w + g, 0, side_cell_w, side_h),
            LayoutSlot(side_x, side_h + g, side_cell_w, side_h),
            LayoutSlot(side_x + side_cell_w + g, side_h + g, side_cell_w, side_h),
        ), COVER, 'Hero image with side thumbnails'),
        CollageLayout('filmstrip', 'Filmstrip', tuple(
            LayoutSlot(0.05, y, 0.9, 0.25, corner_radius_pct=0.1) for y in (0.1, 0.375, 0.65)
        ), COVER, 'Three horizontal strips'),
        CollageLayout('polaroid-trio', 'Polaroid Trio', (
            LayoutSlot(0.1, 0.1, 0.25, 0.3, rotation=-5, corner_radius_pct=0.02,
                       padding_pct=0.05, shape='polaroid'),
            LayoutSlot(0.375, 0.15, 0.25, 0.3, rotation=0, corner_radius_pct=0.02,
                       padding_pct=0.05, shape='polaroid'),
            LayoutSlot(0.65, 0.1, 0.25, 0.3, rotation=5, corner_radius_pct=0.02,
                       padding_pct=0.05, shape='polaroid'),
        ), COVER, 'Three tilted polaroid frames'),
        CollageLayout('circle-trio', 'Circle Trio', (
            LayoutSlot(0.2, 0.2, 0.25, 0.25, shape='circle'),
            LayoutSlot(0.5, 0.2, 0.25, 0.25, shape='circle'),
            LayoutSlot(0.35, 0.5, 0.3, 0.3, shape='circle'),
        ), COVER, 'Three circular frames'),
    ]
    return {layout.id: layout for layout in layouts}


# Legacy ids from older template sets
LAYOUT_ALIASES = {
    'two': 'two-up',
    'two-horizontal': 'two-up',
    'two-vertical': 'two-up-stacked',
    'four-grid': 'grid-2x2',
    'six-grid': 'grid-3x2',
    'nine-grid': 'grid-3x3',
    'full_bleed_1': 'single',
    'split_vertical_2': 'two-up',
    'split_horizontal_2': 'two-up-stacked',
    'grid_2x2': 'grid-2x2',
    'grid_3': 'three-hero',
    'filmstrip_3': 'filmstrip',
    'polaroid_trio': 'polaroid-trio',
    'circle_trio': 'circle-trio',
}


@lru_cache(maxsize=8)
def get_catalog(gutter: float = DEFAULT_GUTTER) -> Dict[str, CollageLayout]:
    """Catalog for one gutter fraction, built once per distinct value."""
    logger.debug(f"Building layout catalog with gutter {gutter}")
    return build_catalog(gutter)


def catalog_for(config) -> Dict[str, CollageLayout]:
    """Catalog matching the configured ``LAYOUT_GUTTER``."""
    return get_catalog(float(config.LAYOUT_GUTTER))


LAYOUTS = get_catalog(DEFAULT_GUTTER)


def canonical_id(layout_id: Optional[str]) -> Optional[str]:
    if layout_id is None:
        return None
    return LAYOUT_ALIASES.get(layout_id, layout_id)


def get_layout(layout_id: Optional[str], catalog: Dict[str, CollageLayout] = None) -> CollageLayout:
    """
    Look up a layout by canonical or legacy id.

    Unknown ids fall back to the single full-bleed layout instead of raising.
    """
    catalog = catalog or LAYOUTS
    resolved = canonical_id(layout_id)
    layout = catalog.get(resolved)
    if layout is None:
        logger.warning(f"Unknown layout id '{layout_id}', falling back to '{DEFAULT_LAYOUT_ID}'")
        return catalog[DEFAULT_LAYOUT_ID]
    if resolved != layout_id:
        logger.debug(f"Resolved legacy layout id '{layout_id}' to '{resolved}'")
    return layout


def all_layouts(catalog: Dict[str, CollageLayout] = None) -> List[CollageLayout]:
    return list((catalog or LAYOUTS).values())


def resolve_slots(layout: CollageLayout, area: Rect) -> List[Rect]:
    """Absolute slot rectangles for ``layout`` inside ``area`` (print px)."""
    return [slot.resolve(area) for slot in layout.slots]


def slot_area(side, mode: str = 'safe') -> Rect:
    """The rectangle layouts are resolved against: the safe (default) or trim rect."""
    if mode == 'trim':
        return side.trim_rect
    if mode != 'safe':
        raise ValueError(f"Unknown slot area mode: {mode}")
    return side.safe_rect

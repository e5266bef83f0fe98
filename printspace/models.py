"""
Data model for the print-space layout engine.

Physical geometry (Selection, PrintSpec, PrintSide, FoldLine) and the
per-surface design state (ImageItem, TextItem, QrCodePosition,
PlacementDesign, DesignState). Every design type serializes to plain
camelCase dictionaries so a DesignState can be stored as an opaque blob.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Tuple, Any

from .fitting import Rect
from .units import mm_to_px

PORTRAIT = 'portrait'
LANDSCAPE = 'landscape'
ORIENTATIONS = (PORTRAIT, LANDSCAPE)

TEXT_ALIGNMENTS = ('left', 'center', 'right')
TEXT_DECORATIONS = ('', 'underline', 'line-through')
FONT_STYLES = ('normal', 'bold', 'italic', 'bold italic')
FOLD_TYPES = ('fold', 'score', 'perforate')


@dataclass(frozen=True)
class Selection:
    """User-chosen product configuration. Immutable per spec-generation call."""
    product_type: Optional[str] = None
    orientation: Optional[str] = None
    size: Optional[str] = None
    paper_type: Optional[str] = None
    fold_format: Optional[str] = None
    foil_option: Optional[str] = None
    envelope_option: Optional[str] = None

    _KEYS = {
        'product_type': 'productType',
        'orientation': 'orientation',
        'size': 'size',
        'paper_type': 'paperType',
        'fold_format': 'foldFormat',
        'foil_option': 'foilOption',
        'envelope_option': 'envelopeOption',
    }

    def to_dict(self) -> Dict[str, Any]:
        return {camel: getattr(self, attr) for attr, camel in self._KEYS.items()
                if getattr(self, attr) is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Selection':
        if isinstance(data, Selection):
            return data
        data = data or {}
        kwargs = {}
        for attr, camel in cls._KEYS.items():
            value = data.get(camel, data.get(attr))
            if value is not None:
                kwargs[attr] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class FoldLine:
    """A fold in print-space pixels, relative to the trim box of the unfolded spread."""
    x1: float
    y1: float
    x2: float
    y2: float
    type: str = 'fold'

    def __post_init__(self):
        if self.type not in FOLD_TYPES:
            raise ValueError(f"Unknown fold type {self.type!r}, expected one of {FOLD_TYPES}")

    @property
    def is_vertical(self) -> bool:
        return self.x1 == self.x2

    @property
    def is_horizontal(self) -> bool:
        return self.y1 == self.y2

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FoldLine':
        return cls(data['x1'], data['y1'], data['x2'], data['y2'], data.get('type', 'fold'))


@dataclass(frozen=True)
class PrintSide:
    """One printable surface."""
    id: str
    name: str
    trim_mm: Tuple[float, float]
    bleed_mm: float
    safe_mm: float
    canvas_px: Tuple[float, float]
    dpi: int
    fold_lines: Tuple[FoldLine, ...] = ()

    @classmethod
    def create(cls, side_id: str, name: str, trim_w: float, trim_h: float,
               bleed_mm: float, safe_mm: float, dpi: int,
               fold_lines: Tuple[FoldLine, ...] = ()) -> 'PrintSide':
        # Canvas = trim + bleed on all sides
        canvas = (mm_to_px(trim_w + bleed_mm * 2, dpi), mm_to_px(trim_h + bleed_mm * 2, dpi))
        return cls(side_id, name, (trim_w, trim_h), bleed_mm, safe_mm, canvas, dpi, tuple(fold_lines))

    @property
    def bleed_px(self) -> float:
        return mm_to_px(self.bleed_mm, self.dpi)

    @property
    def safe_px(self) -> float:
        return mm_to_px(self.safe_mm, self.dpi)

    @property
    def trim_px(self) -> Tuple[float, float]:
        return (mm_to_px(self.trim_mm[0], self.dpi), mm_to_px(self.trim_mm[1], self.dpi))

    @property
    def canvas_rect(self) -> Rect:
        return Rect(0, 0, self.canvas_px[0], self.canvas_px[1])

    @property
    def trim_rect(self) -> Rect:
        w, h = self.trim_px
        return Rect(self.bleed_px, self.bleed_px, w, h)

    @property
    def safe_rect(self) -> Rect:
        return self.trim_rect.inset(self.safe_px)

    def check_nesting(self) -> bool:
        """safe ⊆ trim ⊆ bleed box on both axes."""
        if self.safe_mm < 0 or self.bleed_mm < 0:
            return False
        for axis in (0, 1):
            trim = self.trim_mm[axis]
            if not (2 * self.safe_mm <= trim <= trim + 2 * self.bleed_mm):
                return False
        return self.canvas_rect.contains(self.trim_rect) and self.trim_rect.contains(self.safe_rect)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'trimMm': {'w': self.trim_mm[0], 'h': self.trim_mm[1]},
            'bleedMm': self.bleed_mm,
            'safeMm': self.safe_mm,
            'canvasPx': {'w': self.canvas_px[0], 'h': self.canvas_px[1]},
            'dpi': self.dpi,
            'foldLines': [f.to_dict() for f in self.fold_lines],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PrintSide':
        return cls(
            id=data['id'],
            name=data.get('name', data['id']),
            trim_mm=(data['trimMm']['w'], data['trimMm']['h']),
            bleed_mm=data['bleedMm'],
            safe_mm=data['safeMm'],
            canvas_px=(data['canvasPx']['w'], data['canvasPx']['h']),
            dpi=data.get('dpi', 300),
            fold_lines=tuple(FoldLine.from_dict(f) for f in data.get('foldLines', [])),
        )


@dataclass(frozen=True)
class PrintSpec:
    """Physical contract for one product configuration. Never mutated."""
    id: str
    product_type: str
    trim_mm: Tuple[float, float]
    bleed_mm: float
    safe_mm: float
    dpi: int
    sides: Tuple[PrintSide, ...]
    folded: bool
    provider_type: str

    def side(self, side_id: str) -> PrintSide:
        for side in self.sides:
            if side.id == side_id:
                return side
        raise KeyError(side_id)

    @property
    def side_ids(self) -> List[str]:
        return [s.id for s in self.sides]

    def unfolded_trim_mm(self) -> Tuple[float, float]:
        """Trim size of the flat sheet before folding."""
        w, h = self.trim_mm
        if not self.folded or not self.sides or not self.sides[0].fold_lines:
            return (w, h)
        if self.sides[0].fold_lines[0].is_vertical:
            return (w * 2, h)
        return (w, h * 2)

    def unfolded_trim_px(self) -> Tuple[float, float]:
        w, h = self.unfolded_trim_mm()
        return (mm_to_px(w, self.dpi), mm_to_px(h, self.dpi))

    def panel_extents_px(self) -> Tuple[float, ...]:
        """Panel extents along the fold axis, as partitioned by the fold line."""
        if not self.folded or not self.sides or not self.sides[0].fold_lines:
            return (mm_to_px(self.trim_mm[0], self.dpi),)
        fold = self.sides[0].fold_lines[0]
        panel_w, panel_h = self.sides[-1].trim_px
        if fold.is_vertical:
            return (fold.x1, panel_w)
        return (fold.y1, panel_h)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'productType': self.product_type,
            'trimMm': {'w': self.trim_mm[0], 'h': self.trim_mm[1]},
            'bleedMm': self.bleed_mm,
            'safeMm': self.safe_mm,
            'dpi': self.dpi,
            'sides': [s.to_dict() for s in self.sides],
            'folded': self.folded,
            'providerType': self.provider_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PrintSpec':
        return cls(
            id=data['id'],
            product_type=data['productType'],
            trim_mm=(data['trimMm']['w'], data['trimMm']['h']),
            bleed_mm=data['bleedMm'],
            safe_mm=data['safeMm'],
            dpi=data['dpi'],
            sides=tuple(PrintSide.from_dict(s) for s in data['sides']),
            folded=data['folded'],
            provider_type=data.get('providerType', 'mock'),
        )


# Design state

@dataclass
class ImageItem:
    id: str
    src: str
    x: float
    y: float
    width: float
    height: float
    rotation: float
    original_width: float
    original_height: float
    slot_index: Optional[int] = None

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'src': self.src,
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'rotation': self.rotation,
            'originalWidth': self.original_width,
            'originalHeight': self.original_height,
        }
        if self.slot_index is not None:
            data['slotIndex'] = self.slot_index
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImageItem':
        return cls(
            id=data['id'],
            src=data['src'],
            x=data['x'],
            y=data['y'],
            width=data['width'],
            height=data['height'],
            rotation=data.get('rotation', 0),
            original_width=data['originalWidth'],
            original_height=data['originalHeight'],
            slot_index=data.get('slotIndex'),
        )


@dataclass
class TextItem:
    id: str
    text: str
    x: float
    y: float
    font_size: float
    font_family: str
    fill: str
    font_style: str = 'normal'
    rotation: float = 0
    width: Optional[float] = None
    align: Optional[str] = None
    text_decoration: Optional[str] = None

    @property
    def is_bold(self) -> bool:
        return 'bold' in self.font_style

    @property
    def is_italic(self) -> bool:
        return 'italic' in self.font_style

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'text': self.text,
            'x': self.x,
            'y': self.y,
            'fontSize': self.font_size,
            'fontFamily': self.font_family,
            'fill': self.fill,
            'fontStyle': self.font_style,
            'rotation': self.rotation,
        }
        if self.width is not None:
            data['width'] = self.width
        if self.align is not None:
            data['align'] = self.align
        if self.text_decoration is not None:
            data['textDecoration'] = self.text_decoration
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TextItem':
        return cls(
            id=data['id'],
            text=data['text'],
            x=data['x'],
            y=data['y'],
            font_size=data['fontSize'],
            font_family=data['fontFamily'],
            fill=data['fill'],
            font_style=data.get('fontStyle', 'normal'),
            rotation=data.get('rotation', 0),
            width=data.get('width'),
            align=data.get('align'),
            text_decoration=data.get('textDecoration'),
        )


@dataclass
class QrCodePosition:
    """Scan-code anchor rectangle in print-space pixels."""
    x: float
    y: float
    width: float
    height: float

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QrCodePosition':
        return cls(data['x'], data['y'], data['width'], data['height'])


@dataclass
class PlacementDesign:
    """Everything placed on one printable surface, in paint order."""
    images: List[ImageItem] = field(default_factory=list)
    texts: List[TextItem] = field(default_factory=list)
    qr_code: Optional[QrCodePosition] = None
    layout_id: Optional[str] = None
    background: Optional[str] = None

    def find(self, item_id: str):
        for item in self.images:
            if item.id == item_id:
                return item
        for item in self.texts:
            if item.id == item_id:
                return item
        return None

    def list_for(self, item) -> list:
        return self.images if isinstance(item, ImageItem) else self.texts

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'images': [i.to_dict() for i in self.images],
            'texts': [t.to_dict() for t in self.texts],
        }
        if self.qr_code is not None:
            data['qrCode'] = self.qr_code.to_dict()
        if self.layout_id is not None:
            data['layoutId'] = self.layout_id
        if self.background is not None:
            data['background'] = self.background
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlacementDesign':
        data = data or {}
        qr = data.get('qrCode')
        return cls(
            images=[ImageItem.from_dict(i) for i in data.get('images', [])],
            texts=[TextItem.from_dict(t) for t in data.get('texts', [])],
            qr_code=QrCodePosition.from_dict(qr) if qr else None,
            layout_id=data.get('layoutId'),
            background=data.get('background'),
        )


@dataclass
class DesignState:
    """Mapping from placement (front, back, inside-left, ...) to its design."""
    placements: Dict[str, PlacementDesign] = field(default_factory=dict)

    def get(self, placement: str) -> Optional[PlacementDesign]:
        return self.placements.get(placement)

    def open(self, placement: str) -> PlacementDesign:
        """Return the placement's design, creating an empty one on first open."""
        if placement not in self.placements:
            self.placements[placement] = PlacementDesign()
        return self.placements[placement]

    def __contains__(self, placement: str) -> bool:
        return placement in self.placements

    def to_dict(self) -> Dict[str, Any]:
        return {name: design.to_dict() for name, design in self.placements.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DesignState':
        return cls({name: PlacementDesign.from_dict(design) for name, design in (data or {}).items()})

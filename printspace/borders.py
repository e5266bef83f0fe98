"""
Border/frame overlay catalog for the print-space layout engine.

This module handles:
- The static catalog of decorative borders grouped by category
- Rasterizing SVG corner and edge motifs in a chosen ink color
- Painting a border around a side's trim box: corner motifs mirrored into
  all four corners, edge motifs tiled along each side, simple line styles
  drawn as rectangles
- Metallic foil finish for foil-compatible designs

Borders are purely visual: applying one never touches design items and it
is always painted above all content.
"""

import io
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageOps
from loguru import logger

from .config import AppConfig, get_config
from .errors import RenderError
from .fitting import Rect
from .units import mm_to_px
from .utils import parse_hex_color

SVG_NS = 'http://www.w3.org/2000/svg'

FOIL_COLORS = {
    'gold': '#FFD700',
    'silver': '#C0C0C0',
    'rose-gold': '#B76E79',
}


@dataclass(frozen=True)
class CssBorderStyle:
    """A plain line border. Width is in CSS pixels (1/96 inch)."""
    border_style: str  # solid | double | thick-thin
    border_width: float
    corner_radius: float = 0.0

    def to_dict(self) -> Dict:
        data = {'borderStyle': self.border_style, 'borderWidth': self.border_width}
        if self.corner_radius:
            data['cornerRadius'] = self.corner_radius
        return data


@dataclass(frozen=True)
class BorderDesign:
    id: str
    name: str
    category: str
    foil_compatible: bool
    preview_color: str
    description: str
    svg_corner: Optional[str] = None
    svg_edge: Optional[str] = None
    css_style: Optional[CssBorderStyle] = None

    @property
    def anchor(self) -> str:
        if self.svg_corner:
            return 'corner'
        if self.svg_edge:
            return 'edge'
        return 'css'

    def to_dict(self) -> Dict:
        data = {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'anchor': self.anchor,
            'foilCompatible': self.foil_compatible,
            'previewColor': self.preview_color,
            'description': self.description,
        }
        if self.svg_corner:
            data['svgCorner'] = self.svg_corner
        if self.svg_edge:
            data['svgEdge'] = self.svg_edge
        if self.css_style:
            data['cssStyle'] = self.css_style.to_dict()
        return data


SIMPLE_BORDERS = [
    BorderDesign('single-line', 'Single Line', 'simple', True, '#333333',
                 'Clean single line border',
                 css_style=CssBorderStyle('solid', 1)),
    BorderDesign('double-line', 'Double Line', 'simple', True, '#333333',
                 'Classic double line border',
                 css_style=CssBorderStyle('double', 4)),
    BorderDesign('thick-thin', 'Thick & Thin', 'simple', True, '#333333',
                 'Elegant thick and thin lines',
                 css_style=CssBorderStyle('thick-thin', 3)),
]

CLASSIC_BORDERS = [
    BorderDesign('classic-frame', 'Classic Frame', 'classic', True, '#8B7355',
                 'Traditional double-line frame with rounded corners',
                 svg_corner='<svg viewBox="0 0 50 50"><path d="M0,50 L0,10 Q0,0 10,0 L50,0" fill="none" stroke="currentColor" stroke-width="2"/><path d="M5,50 L5,15 Q5,5 15,5 L50,5" fill="none" stroke="currentColor" stroke-width="1"/></svg>'),
    BorderDesign('victorian-simple', 'Victorian Simple', 'classic', True, '#8B7355',
                 'Victorian-inspired corner accents',
                 svg_corner='<svg viewBox="0 0 50 50"><path d="M0,50 L0,5 L5,0 L50,0" fill="none" stroke="currentColor" stroke-width="2"/><circle cx="5" cy="5" r="3" fill="currentColor"/></svg>'),
    BorderDesign('elegant-scroll', 'Elegant Scroll', 'classic', True, '#C9A961',
                 'Graceful scrollwork corners',
                 svg_corner='<svg viewBox="0 0 60 60"><path d="M0,60 C0,30 0,0 30,0 L60,0" fill="none" stroke="currentColor" stroke-width="2"/><path d="M10,50 Q5,40 15,35 Q25,30 20,20 Q15,10 25,5" fill="none" stroke="currentColor" stroke-width="1.5"/></svg>'),
]

ORNATE_BORDERS = [
    BorderDesign('baroque-flourish', 'Baroque Flourish', 'ornate', True, '#D4AF37',
                 'Elaborate baroque-style flourishes',
                 svg_corner='<svg viewBox="0 0 80 80"><path d="M0,80 C0,40 20,20 40,0 L80,0" fill="none" stroke="currentColor" stroke-width="2"/><path d="M5,70 Q10,50 25,45 Q40,40 35,25 Q30,10 45,5" fill="none" stroke="currentColor" stroke-width="1.5"/><path d="M15,60 Q20,45 30,42 Q40,38 38,28" fill="none" stroke="currentColor" stroke-width="1"/></svg>'),
    BorderDesign('royal-crest', 'Royal Crest', 'ornate', True, '#D4AF37',
                 'Regal double frame with accent',
                 svg_corner='<svg viewBox="0 0 70 70"><path d="M0,70 L0,15 C0,5 5,0 15,0 L70,0" fill="none" stroke="currentColor" stroke-width="2"/><path d="M8,55 L8,20 C8,12 12,8 20,8 L55,8" fill="none" stroke="currentColor" stroke-width="1.5"/><circle cx="14" cy="14" r="4" fill="currentColor"/></svg>'),
    BorderDesign('filigree', 'Filigree', 'ornate', True, '#C9A961',
                 'Delicate interlocking filigree pattern',
                 svg_corner='<svg viewBox="0 0 80 80"><path d="M0,80 Q0,40 40,40 Q80,40 80,0" fill="none" stroke="currentColor" stroke-width="1.5"/><path d="M10,70 Q10,50 30,50 Q50,50 50,30 Q50,10 70,10" fill="none" stroke="currentColor" stroke-width="1"/><circle cx="40" cy="40" r="3" fill="currentColor"/></svg>'),
]

FLORAL_BORDERS = [
    BorderDesign('rose-corner', 'Rose Corner', 'floral', True, '#C48793',
                 'Romantic rose corner accents',
                 svg_corner='<svg viewBox="0 0 80 80"><path d="M0,80 L0,0 L80,0" fill="none" stroke="currentColor" stroke-width="1.5"/><circle cx="20" cy="20" r="8" fill="none" stroke="currentColor" stroke-width="1"/><path d="M20,12 Q25,15 20,20 Q15,15 20,12" fill="currentColor"/><path d="M12,20 Q15,25 20,20 Q15,15 12,20" fill="currentColor"/><path d="M20,28 Q15,25 20,20 Q25,25 20,28" fill="currentColor"/><path d="M28,20 Q25,15 20,20 Q25,25 28,20" fill="currentColor"/></svg>'),
    BorderDesign('vine-border', 'Vine Border', 'floral', True, '#6B8E6B',
                 'Flowing vine pattern with leaves',
                 svg_edge='<svg viewBox="0 0 100 20"><path d="M0,10 Q25,0 50,10 Q75,20 100,10" fill="none" stroke="currentColor" stroke-width="1.5"/><ellipse cx="25" cy="5" rx="4" ry="3" fill="currentColor" opacity="0.7"/><ellipse cx="75" cy="15" rx="4" ry="3" fill="currentColor" opacity="0.7"/></svg>'),
    BorderDesign('botanical', 'Botanical', 'floral', True, '#6B8E6B',
                 'Elegant botanical leaf arrangement',
                 svg_corner='<svg viewBox="0 0 80 80"><path d="M0,80 L0,0 L80,0" fill="none" stroke="currentColor" stroke-width="1.5"/><path d="M15,65 Q15,45 25,35 Q35,25 55,15" fill="none" stroke="currentColor" stroke-width="1"/><ellipse cx="20" cy="55" rx="8" ry="5" fill="currentColor" opacity="0.5" transform="rotate(-30 20 55)"/><ellipse cx="30" cy="40" rx="6" ry="4" fill="currentColor" opacity="0.5" transform="rotate(-45 30 40)"/><ellipse cx="45" cy="25" rx="5" ry="3" fill="currentColor" opacity="0.5" transform="rotate(-60 45 25)"/></svg>'),
]

GEOMETRIC_BORDERS = [
    BorderDesign('greek-key', 'Greek Key', 'geometric', True, '#333333',
                 'Classical Greek key meander pattern',
                 svg_edge='<svg viewBox="0 0 40 20"><path d="M0,10 L5,10 L5,5 L15,5 L15,15 L25,15 L25,5 L35,5 L35,10 L40,10" fill="none" stroke="currentColor" stroke-width="2"/></svg>'),
    BorderDesign('diamond-chain', 'Diamond Chain', 'geometric', True, '#333333',
                 'Interlocking diamond pattern',
                 svg_edge='<svg viewBox="0 0 40 20"><path d="M0,10 L10,0 L20,10 L30,0 L40,10" fill="none" stroke="currentColor" stroke-width="1.5"/><path d="M0,10 L10,20 L20,10 L30,20 L40,10" fill="none" stroke="currentColor" stroke-width="1.5"/></svg>'),
    BorderDesign('hexagon-lattice', 'Hexagon Lattice', 'geometric', True, '#555555',
                 'Modern hexagonal corner accent',
                 svg_corner='<svg viewBox="0 0 60 60"><polygon points="30,5 50,15 50,35 30,45 10,35 10,15" fill="none" stroke="currentColor" stroke-width="1.5"/><path d="M0,60 L0,0 L60,0" fill="none" stroke="currentColor" stroke-width="2"/></svg>'),
]

ART_DECO_BORDERS = [
    BorderDesign('deco-fan', 'Deco Fan', 'art-deco', True, '#D4AF37',
                 'Radiating fan motif from the 1920s',
                 svg_corner='<svg viewBox="0 0 60 60"><path d="M0,60 L0,0 L60,0" fill="none" stroke="currentColor" stroke-width="2"/><path d="M5,55 Q5,30 30,30 Q55,30 55,5" fill="none" stroke="currentColor" stroke-width="1.5"/><path d="M10,50 Q10,35 30,35 Q50,35 50,10" fill="none" stroke="currentColor" stroke-width="1"/><path d="M15,45 Q15,38 30,38 Q45,38 45,15" fill="none" stroke="currentColor" stroke-width="0.75"/></svg>'),
    BorderDesign('deco-chevron', 'Deco Chevron', 'art-deco', True, '#333333',
                 'Bold stepped chevron corners',
                 svg_corner='<svg viewBox="0 0 60 60"><path d="M0,60 L0,0 L60,0" fill="none" stroke="currentColor" stroke-width="2"/><path d="M5,55 L5,5 L55,5" fill="none" stroke="currentColor" stroke-width="1.5"/><path d="M15,45 L15,15 L45,15" fill="none" stroke="currentColor" stroke-width="1"/></svg>'),
    BorderDesign('gatsby', 'Gatsby', 'art-deco', True, '#D4AF37',
                 'Glamorous Gatsby-era styling',
                 svg_corner='<svg viewBox="0 0 70 70"><path d="M0,70 L0,0 L70,0" fill="none" stroke="currentColor" stroke-width="2"/><path d="M10,60 L10,10 L60,10" fill="none" stroke="currentColor" stroke-width="1.5"/><rect x="5" y="5" width="10" height="10" fill="currentColor"/><line x1="20" y1="10" x2="60" y2="10" stroke="currentColor" stroke-width="3"/><line x1="10" y1="20" x2="10" y2="60" stroke="currentColor" stroke-width="3"/></svg>'),
]

ALL_BORDER_DESIGNS: List[BorderDesign] = (
    SIMPLE_BORDERS + CLASSIC_BORDERS + ORNATE_BORDERS +
    FLORAL_BORDERS + GEOMETRIC_BORDERS + ART_DECO_BORDERS
)

BORDER_CATEGORIES = [
    {'id': 'simple', 'name': 'Simple', 'icon': '▢'},
    {'id': 'classic', 'name': 'Classic', 'icon': '✦'},
    {'id': 'ornate', 'name': 'Ornate', 'icon': '❧'},
    {'id': 'floral', 'name': 'Floral', 'icon': '❀'},
    {'id': 'geometric', 'name': 'Geometric', 'icon': '◇'},
    {'id': 'art-deco', 'name': 'Art Deco', 'icon': '◆'},
]

_BY_ID = {border.id: border for border in ALL_BORDER_DESIGNS}


def get_border(border_id: str) -> Optional[BorderDesign]:
    return _BY_ID.get(border_id)


def get_borders_by_category(category: str) -> List[BorderDesign]:
    return [b for b in ALL_BORDER_DESIGNS if b.category == category]


# Rasterizing

def viewbox_aspect(svg: str) -> float:
    """Width/height ratio of an SVG's viewBox (1.0 if absent)."""
    match = re.search(r'viewBox="\s*[-\d.]+[\s,]+[-\d.]+[\s,]+([\d.]+)[\s,]+([\d.]+)\s*"', svg)
    if not match or float(match.group(2)) == 0:
        return 1.0
    return float(match.group(1)) / float(match.group(2))


def rasterize_svg(svg: str, width: int, height: int, color: str) -> Image.Image:
    """Render an SVG motif to an RGBA image with ``currentColor`` set to ``color``."""
    try:
        import cairosvg
    except (ImportError, OSError) as e:
        raise RenderError(
            f"SVG rasterizer unavailable: {e}",
            suggestions=["Install cairosvg and the cairo system library"]
        ) from e

    markup = svg.replace('currentColor', color)
    if 'xmlns=' not in markup:
        markup = markup.replace('<svg ', f'<svg xmlns="{SVG_NS}" ', 1)
    try:
        png_bytes = cairosvg.svg2png(bytestring=markup.encode('utf-8'),
                                     output_width=max(1, int(width)),
                                     output_height=max(1, int(height)))
    except (ValueError, OSError) as e:
        raise RenderError(f"Could not rasterize border motif: {e}") from e
    return Image.open(io.BytesIO(png_bytes)).convert('RGBA')


def apply_foil_sheen(layer: Image.Image) -> Image.Image:
    """Diagonal brightness sweep over an RGBA layer to suggest a metallic finish."""
    pixels = np.asarray(layer, dtype=np.float32).copy()
    height, width = pixels.shape[:2]
    if width == 0 or height == 0:
        return layer
    ys, xs = np.mgrid[0:height, 0:width]
    sweep = (xs / max(width - 1, 1) + ys / max(height - 1, 1)) / 2
    # Brightest along the diagonal, darker toward the corners
    factor = 0.8 + 0.4 * (1 - np.abs(2 * sweep - 1))
    pixels[..., :3] = np.clip(pixels[..., :3] * factor[..., None], 0, 255)
    return Image.fromarray(pixels.astype(np.uint8))


def _ink_color(border: BorderDesign, foil: Optional[str]) -> Tuple[str, bool]:
    if not foil or foil == 'none':
        return border.preview_color, False
    if not border.foil_compatible:
        logger.warning(f"Border {border.id} is not foil compatible, ignoring {foil} foil")
        return border.preview_color, False
    if foil not in FOIL_COLORS:
        logger.warning(f"Unknown foil option {foil}, rendering {border.id} without foil")
        return border.preview_color, False
    return FOIL_COLORS[foil], True


def _draw_css_border(layer: Image.Image, style: CssBorderStyle, frame: Rect,
                     color: str, px_per_css: float) -> None:
    draw = ImageDraw.Draw(layer)
    rgb = parse_hex_color(color, (51, 51, 51))
    width = max(1, int(round(style.border_width * px_per_css)))
    radius = int(round(style.corner_radius * px_per_css))

    def outline(rect: Rect, line_width: int) -> None:
        if rect.is_degenerate:
            return
        if radius:
            draw.rounded_rectangle(rect.as_box(), radius=radius, outline=rgb + (255,), width=line_width)
        else:
            draw.rectangle(rect.as_box(), outline=rgb + (255,), width=line_width)

    if style.border_style == 'double':
        line = max(1, width // 3)
        outline(frame, line)
        outline(frame.inset(width - line), line)
    elif style.border_style == 'thick-thin':
        thin = max(1, width // 3)
        outline(frame, width)
        outline(frame.inset(width + 2 * thin), thin)
    else:
        outline(frame, width)


def _paint_corners(layer: Image.Image, svg: str, frame: Rect, size: int, color: str) -> None:
    motif = rasterize_svg(svg, size, size, color)
    left, top = int(round(frame.x)), int(round(frame.y))
    right, bottom = int(round(frame.right)) - size, int(round(frame.bottom)) - size
    # Motifs are drawn for the top-left corner and mirrored into the others
    layer.alpha_composite(motif, (left, top))
    layer.alpha_composite(ImageOps.mirror(motif), (right, top))
    layer.alpha_composite(ImageOps.flip(motif), (left, bottom))
    layer.alpha_composite(ImageOps.flip(ImageOps.mirror(motif)), (right, bottom))


def _tile(layer: Image.Image, tile: Image.Image, origin: Tuple[int, int], length: int, vertical: bool) -> None:
    step = tile.height if vertical else tile.width
    offset = 0
    while offset < length:
        remaining = min(step, length - offset)
        piece = tile
        if remaining < step:
            piece = tile.crop((0, 0, tile.width, remaining) if vertical else (0, 0, remaining, tile.height))
        position = (origin[0], origin[1] + offset) if vertical else (origin[0] + offset, origin[1])
        layer.alpha_composite(piece, position)
        offset += step


def _paint_edges(layer: Image.Image, svg: str, frame: Rect, thickness: int, color: str) -> None:
    tile_length = max(1, int(round(thickness * viewbox_aspect(svg))))
    tile = rasterize_svg(svg, tile_length, thickness, color)
    left, top = int(round(frame.x)), int(round(frame.y))
    width, height = int(round(frame.width)), int(round(frame.height))

    _tile(layer, tile, (left, top), width, vertical=False)
    _tile(layer, ImageOps.flip(tile), (left, top + height - thickness), width, vertical=False)
    side_tile = tile.rotate(90, expand=True)
    _tile(layer, side_tile, (left, top), height, vertical=True)
    _tile(layer, ImageOps.mirror(side_tile), (left + width - thickness, top), height, vertical=True)


def apply_border(canvas: Image.Image,
                 border: BorderDesign,
                 trim_rect: Rect,
                 dpi: int,
                 foil: Optional[str] = None,
                 scale: float = 1.0,
                 config: AppConfig = None) -> Image.Image:
    """
    Paint ``border`` around the trim box of ``canvas``.

    ``trim_rect`` is in print px; ``scale`` is the export pixel ratio. The
    border is inset from the trim line by ``BORDER_INSET_MM`` so it survives
    cutting. Returns the composited RGBA canvas.
    """
    config = config or get_config()
    color, metallic = _ink_color(border, foil)
    frame = trim_rect.scaled(scale).inset(mm_to_px(config.BORDER_INSET_MM, dpi) * scale)
    if frame.is_degenerate:
        logger.debug(f"Border {border.id} skipped, trim box too small")
        return canvas

    if canvas.mode != 'RGBA':
        canvas = canvas.convert('RGBA')
    layer = Image.new('RGBA', canvas.size, (0, 0, 0, 0))

    if border.svg_corner:
        size = int(round(mm_to_px(config.BORDER_CORNER_MM, dpi) * scale))
        size = min(size, int(frame.width // 2), int(frame.height // 2))
        if size > 0:
            _paint_corners(layer, border.svg_corner, frame, size, color)
    elif border.svg_edge:
        thickness = int(round(mm_to_px(config.BORDER_EDGE_MM, dpi) * scale))
        if thickness > 0:
            _paint_edges(layer, border.svg_edge, frame, thickness, color)
    elif border.css_style:
        _draw_css_border(layer, border.css_style, frame, color, dpi / config.SCREEN_DPI * scale)

    if metallic:
        layer = apply_foil_sheen(layer)

    canvas.alpha_composite(layer)
    logger.debug(f"Applied border {border.id} ({'foil ' + foil if metallic else color})")
    return canvas

"""
Export/render pipeline for the print-space layout engine.

This module handles:
- Flattening a placement's design into a full-resolution raster at the
  side's DPI (1 print px = 1 output px, times an optional pixel ratio)
- Clipping slot-bound images to their slot shape
- Substituting the real scan-code image at its anchor at finalize time
- Painting the border overlay last
- Multi-page PDF export, one page per side
- Cancellable background export jobs
"""

import io
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from PIL import Image, ImageDraw, ImageFont
from loguru import logger

from .assets import AssetRegistry
from .borders import BorderDesign, apply_border, get_border
from .config import AppConfig, get_config
from .errors import AssetLoadError, ExportCancelledError, RenderError
from .fitting import Rect
from .layouts import LayoutSlot, catalog_for, get_layout, resolve_slots, slot_area
from .models import DesignState, PrintSide, PrintSpec, PlacementDesign, ImageItem, TextItem, QrCodePosition
from .utils import parse_hex_color, image_to_data_url

# Font file suffixes for the DejaVu family naming scheme
_FONT_SUFFIXES = {
    'normal': '',
    'bold': '-Bold',
    'italic': '-Oblique',
    'bold italic': '-BoldOblique',
}

LINE_SPACING = 1.2


class ScanCodeGenerator(ABC):
    """External collaborator that turns a URL into a scannable code image."""

    @abstractmethod
    def generate(self, url: str, size_px: Tuple[int, int]) -> Image.Image:
        """Return an image of exactly ``size_px`` encoding ``url``."""


@dataclass
class RenderResult:
    image: Image.Image
    side_id: str
    dpi: int
    pixel_ratio: float
    trim_rect: Rect
    bleed_px: float

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    def to_dict(self) -> Dict:
        return {
            'sideId': self.side_id,
            'width': self.image.width,
            'height': self.image.height,
            'dpi': self.dpi,
            'pixelRatio': self.pixel_ratio,
            'trimRect': self.trim_rect.to_dict(),
            'bleedPx': self.bleed_px,
        }


class ExportJob:
    """Handle for a background render."""

    def __init__(self, future: Future, cancel_event: threading.Event, side_id: str):
        self.future = future
        self.cancel_event = cancel_event
        self.side_id = side_id

    def cancel(self) -> None:
        """Request cancellation; a running render stops at its next item."""
        self.cancel_event.set()
        self.future.cancel()
        logger.info(f"Export of {self.side_id} cancelled")

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: float = None) -> RenderResult:
        return self.future.result(timeout=timeout)


def _paste(canvas: Image.Image, image: Image.Image, x: int, y: int) -> None:
    """Alpha-composite ``image`` at (x, y), clipping whatever falls off the canvas."""
    left, top = max(0, x), max(0, y)
    right = min(canvas.width, x + image.width)
    bottom = min(canvas.height, y + image.height)
    if right <= left or bottom <= top:
        return
    piece = image.crop((left - x, top - y, right - x, bottom - y))
    canvas.alpha_composite(piece, (left, top))


def _rotate_about_center(image: Image.Image, rotation: float, x: float, y: float):
    """Rotate clockwise by ``rotation`` degrees, keeping the center fixed."""
    if not rotation:
        return image, int(round(x)), int(round(y))
    cx, cy = x + image.width / 2, y + image.height / 2
    rotated = image.rotate(-rotation, resample=Image.Resampling.BICUBIC, expand=True)
    return rotated, int(round(cx - rotated.width / 2)), int(round(cy - rotated.height / 2))


def _check_cancel(cancel_event: Optional[threading.Event], side_id: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ExportCancelledError(side_id)


class ExportPipeline:
    """Renders placements to print-ready rasters."""

    def __init__(self, assets: AssetRegistry = None, config: AppConfig = None,
                 executor: ThreadPoolExecutor = None):
        self.assets = assets if assets is not None else AssetRegistry()
        self.config = config or get_config()
        self._owns_executor = executor is None
        self._executor = executor
        self._fonts: Dict[Tuple[str, str, int], ImageFont.ImageFont] = {}

    # Fonts

    def _load_font(self, family: str, style: str, size: int):
        key = (family, style, size)
        if key in self._fonts:
            return self._fonts[key]

        suffix = _FONT_SUFFIXES.get(style, '')
        font = None
        for candidate in (f"{family}{suffix}.ttf", f"{family}.ttf",
                          f"{self.config.DEFAULT_FONT_FAMILY}{suffix}.ttf"):
            try:
                font = ImageFont.truetype(candidate, size)
                break
            except OSError:
                continue
        if font is None:
            logger.warning(f"Font {family} ({style}) not found, using the built-in font")
            font = ImageFont.load_default(size=size)

        self._fonts[key] = font
        return font

    # Painting

    def _placeholder(self, size: Tuple[int, int]) -> Image.Image:
        fill = parse_hex_color(self.config.PLACEHOLDER_FILL, (209, 213, 219))
        return Image.new('RGBA', size, fill + (255,))

    def _load_image(self, item: ImageItem, size: Tuple[int, int]) -> Image.Image:
        try:
            source = self.assets.load(item.src)
        except AssetLoadError as e:
            logger.warning(f"Image {item.id} rendered as placeholder: {e.message}")
            return self._placeholder(size)
        return source.resize(size, Image.Resampling.LANCZOS)

    def _slot_mask(self, slot: LayoutSlot, size: Tuple[int, int]) -> Optional[Image.Image]:
        width, height = size
        if slot.shape == 'circle':
            mask = Image.new('L', size, 0)
            ImageDraw.Draw(mask).ellipse((0, 0, width - 1, height - 1), fill=255)
            return mask
        if slot.corner_radius_pct:
            radius = int(round(slot.corner_radius_pct * min(width, height)))
            mask = Image.new('L', size, 0)
            ImageDraw.Draw(mask).rounded_rectangle((0, 0, width - 1, height - 1), radius=radius, fill=255)
            return mask
        return None

    def _render_slot_image(self, item: ImageItem, slot: LayoutSlot, slot_rect: Rect,
                           ratio: float) -> Tuple[Image.Image, float, float]:
        """Image clipped to its slot; returns the tile and its unrotated top-left."""
        box = slot_rect.scaled(ratio)
        tile_size = (max(1, int(round(box.width))), max(1, int(round(box.height))))
        tile = Image.new('RGBA', tile_size, (0, 0, 0, 0))

        inner = Rect(0, 0, tile_size[0], tile_size[1])
        if slot.shape == 'polaroid':
            # White card with a deeper bottom margin
            tile.paste((255, 255, 255, 255), (0, 0) + tile_size)
            pad = slot.padding_pct * tile_size[0]
            inner = Rect(pad, pad, tile_size[0] - 2 * pad, tile_size[1] - 4 * pad)

        image_size = (max(1, int(round(item.width * ratio))), max(1, int(round(item.height * ratio))))
        picture = self._load_image(item, image_size)
        window = Image.new('RGBA', (max(1, int(round(inner.width))), max(1, int(round(inner.height)))))
        window.paste(picture, (int(round(item.x * ratio - box.x - inner.x)),
                               int(round(item.y * ratio - box.y - inner.y))))
        tile.alpha_composite(window, (int(round(inner.x)), int(round(inner.y))))

        mask = self._slot_mask(slot, tile_size)
        if mask is not None:
            clipped = Image.new('RGBA', tile_size, (0, 0, 0, 0))
            clipped.paste(tile, (0, 0), mask)
            tile = clipped
        return tile, box.x, box.y

    def _draw_images(self, canvas: Image.Image, design: PlacementDesign, side: PrintSide,
                     ratio: float, cancel_event) -> None:
        layout = get_layout(design.layout_id or 'single', catalog_for(self.config))
        slot_rects = resolve_slots(layout, slot_area(side, self.config.SLOT_AREA))

        for item in design.images:
            _check_cancel(cancel_event, side.id)
            if item.rect.is_degenerate:
                logger.debug(f"Skipping degenerate image {item.id}")
                continue

            if item.slot_index is not None and item.slot_index < len(slot_rects):
                tile, x, y = self._render_slot_image(item, layout.slots[item.slot_index],
                                                     slot_rects[item.slot_index], ratio)
            else:
                size = (max(1, int(round(item.width * ratio))), max(1, int(round(item.height * ratio))))
                tile, x, y = self._load_image(item, size), item.x * ratio, item.y * ratio

            tile, px, py = _rotate_about_center(tile, item.rotation, x, y)
            _paste(canvas, tile, px, py)

    def _render_text(self, item: TextItem, ratio: float) -> Optional[Image.Image]:
        font_size = max(1, int(round(item.font_size * ratio)))
        font = self._load_font(item.font_family, item.font_style, font_size)
        lines = item.text.split('\n') if item.text else []
        if not lines:
            return None

        measure = ImageDraw.Draw(Image.new('L', (1, 1)))
        widths = [measure.textlength(line, font=font) for line in lines]
        line_height = font_size * LINE_SPACING
        box_width = item.width * ratio if item.width else max(widths)
        box_size = (max(1, int(round(box_width))), max(1, int(round(line_height * len(lines)))))

        layer = Image.new('RGBA', box_size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        fill = parse_hex_color(item.fill, (0, 0, 0)) + (255,)
        stroke = max(1, font_size // 15)

        for index, (line, line_width) in enumerate(zip(lines, widths)):
            if item.align == 'center':
                lx = (box_size[0] - line_width) / 2
            elif item.align == 'right':
                lx = box_size[0] - line_width
            else:
                lx = 0
            ly = index * line_height
            draw.text((lx, ly), line, font=font, fill=fill)
            if item.text_decoration == 'underline':
                uy = ly + font_size * 1.05
                draw.line((lx, uy, lx + line_width, uy), fill=fill, width=stroke)
            elif item.text_decoration == 'line-through':
                sy = ly + font_size * 0.6
                draw.line((lx, sy, lx + line_width, sy), fill=fill, width=stroke)
        return layer

    def _draw_texts(self, canvas: Image.Image, design: PlacementDesign, side: PrintSide,
                    ratio: float, cancel_event) -> None:
        for item in design.texts:
            _check_cancel(cancel_event, side.id)
            if item.font_size <= 0:
                continue
            layer = self._render_text(item, ratio)
            if layer is None:
                continue
            layer, px, py = _rotate_about_center(layer, item.rotation, item.x * ratio, item.y * ratio)
            _paste(canvas, layer, px, py)

    def _anchor_box(self, position: QrCodePosition, ratio: float) -> Tuple[int, int, int, int]:
        x, y = int(round(position.x * ratio)), int(round(position.y * ratio))
        return x, y, max(1, int(round(position.width * ratio))), max(1, int(round(position.height * ratio)))

    def _draw_scan_code(self, canvas: Image.Image, position: QrCodePosition,
                        scan_code_image: Optional[Image.Image], ratio: float) -> None:
        x, y, w, h = self._anchor_box(position, ratio)
        if scan_code_image is not None:
            code = scan_code_image.convert('RGBA').resize((w, h), Image.Resampling.NEAREST)
            _paste(canvas, code, x, y)
            return
        placeholder = self._placeholder((w, h))
        ImageDraw.Draw(placeholder).rectangle((0, 0, w - 1, h - 1), outline=(107, 114, 128, 255),
                                              width=max(1, w // 50))
        _paste(canvas, placeholder, x, y)

    # Public API

    def render_placement(self,
                         design: PlacementDesign,
                         side: PrintSide,
                         scan_code_image: Image.Image = None,
                         border: Union[BorderDesign, str, None] = None,
                         foil: str = None,
                         pixel_ratio: float = 1.0,
                         cancel_event: threading.Event = None) -> RenderResult:
        """
        Render one placement at print resolution.

        Paint order: background, images, texts, scan code, border.
        Missing assets render as placeholder fills; degenerate items are
        skipped.
        """
        if pixel_ratio <= 0 or pixel_ratio > self.config.EXPORT_MAX_PIXEL_RATIO:
            raise RenderError(
                f"Pixel ratio {pixel_ratio} out of range",
                details={'max': self.config.EXPORT_MAX_PIXEL_RATIO},
                suggestions=[f"Use a ratio between 0 and {self.config.EXPORT_MAX_PIXEL_RATIO}"]
            )
        _check_cancel(cancel_event, side.id)

        size = (max(1, int(round(side.canvas_px[0] * pixel_ratio))),
                max(1, int(round(side.canvas_px[1] * pixel_ratio))))
        background = parse_hex_color(design.background or self.config.BACKGROUND_DEFAULT)
        canvas = Image.new('RGBA', size, background + (255,))
        logger.info(f"Rendering {side.id} at {size[0]}x{size[1]} ({side.dpi} DPI x{pixel_ratio})")

        self._draw_images(canvas, design, side, pixel_ratio, cancel_event)
        self._draw_texts(canvas, design, side, pixel_ratio, cancel_event)

        if design.qr_code is not None:
            _check_cancel(cancel_event, side.id)
            self._draw_scan_code(canvas, design.qr_code, scan_code_image, pixel_ratio)

        if isinstance(border, str):
            border_id = border
            border = get_border(border_id)
            if border is None:
                logger.warning(f"Unknown border {border_id}, skipping")
        if border is not None:
            _check_cancel(cancel_event, side.id)
            canvas = apply_border(canvas, border, side.trim_rect, side.dpi, foil, pixel_ratio, self.config)

        return RenderResult(
            image=canvas,
            side_id=side.id,
            dpi=side.dpi,
            pixel_ratio=pixel_ratio,
            trim_rect=side.trim_rect.scaled(pixel_ratio),
            bleed_px=side.bleed_px * pixel_ratio,
        )

    def finalize(self,
                 design: PlacementDesign,
                 side: PrintSide,
                 target_url: str,
                 generator: ScanCodeGenerator,
                 **render_kwargs) -> RenderResult:
        """Render with the real scan code, generated at the anchor's exact pixel size."""
        scan_code_image = None
        if design.qr_code is not None:
            ratio = render_kwargs.get('pixel_ratio', 1.0)
            _, _, w, h = self._anchor_box(design.qr_code, ratio)
            scan_code_image = generator.generate(target_url, (w, h))
        else:
            logger.warning(f"Finalizing {side.id} without a scan-code anchor")
        return self.render_placement(design, side, scan_code_image=scan_code_image, **render_kwargs)

    def composite_scan_code(self,
                            raster: Image.Image,
                            scan_code_image: Image.Image,
                            position: QrCodePosition,
                            pixel_ratio: float = 1.0) -> Image.Image:
        """Swap the anchor area of an already-rendered raster for the real scan code."""
        result = raster.convert('RGBA') if raster.mode != 'RGBA' else raster.copy()
        self._draw_scan_code(result, position, scan_code_image, pixel_ratio)
        return result

    def export_pdf(self,
                   print_spec: PrintSpec,
                   state: DesignState,
                   include_bleed: bool = True,
                   border: Union[BorderDesign, str, None] = None,
                   foil: str = None,
                   pixel_ratio: float = 1.0,
                   cancel_event: threading.Event = None) -> bytes:
        """
        Render every side of ``print_spec`` into one PDF, a page per side.

        Pages follow the print spec's side order. A side with no design still gets
        a page painted with the default background. Without bleed each page
        is cropped to the trim box, so its physical size is the trim size.
        """
        if not print_spec.sides:
            raise RenderError(f"Print spec {print_spec.id} has no sides to export")

        pages = []
        for side in print_spec.sides:
            design = state.get(side.id) or PlacementDesign()
            result = self.render_placement(design, side, border=border, foil=foil,
                                           pixel_ratio=pixel_ratio, cancel_event=cancel_event)
            page = result.image if include_bleed else result.image.crop(result.trim_rect.as_box())
            pages.append(page.convert('RGB'))

        logger.info(f"Exported {print_spec.id} as a {len(pages)} page PDF"
                    f" ({'with' if include_bleed else 'without'} bleed)")
        return to_pdf_bytes(pages, print_spec.dpi * pixel_ratio)

    def submit(self, design: PlacementDesign, side: PrintSide, **render_kwargs) -> ExportJob:
        """Render in the background; the returned job can be cancelled."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.config.EXPORT_WORKERS,
                                                thread_name_prefix='export')
        cancel_event = threading.Event()
        future = self._executor.submit(self.render_placement, design, side,
                                       cancel_event=cancel_event, **render_kwargs)
        return ExportJob(future, cancel_event, side.id)

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None


def to_png_bytes(image: Image.Image, dpi: int = None) -> bytes:
    buffer = io.BytesIO()
    save_kwargs = {'dpi': (dpi, dpi)} if dpi else {}
    image.save(buffer, format='PNG', **save_kwargs)
    return buffer.getvalue()


def to_data_url(image: Image.Image, dpi: int = None) -> str:
    return image_to_data_url(image, 'PNG', dpi)


def to_pdf_bytes(pages, resolution: float) -> bytes:
    """Multi-page PDF; ``resolution`` px per inch sets each page's physical size."""
    buffer = io.BytesIO()
    first, rest = pages[0], list(pages[1:])
    first.save(buffer, format='PDF', save_all=True, append_images=rest, resolution=resolution)
    return buffer.getvalue()

"""
Scene editor for the print-space layout engine.

This module handles:
- The closed set of mutation commands on one placement's design
  (add, move, resize, rotate, delete, reorder, set layout, swap into slot)
- Slot binding and re-fit when the active layout changes
- Atomic application with undo/redo
- A design session holding one editor per printable side
"""

import copy
from collections import deque
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple, Union

from loguru import logger

from .assets import AssetRegistry
from .config import AppConfig, get_config
from .errors import (
    EditorError, ItemNotFoundError, InvalidOperationError, SlotIndexError
)
from .fitting import Rect, CONTAIN, contain_fit, center_in_slot, fit_into_slot, snap_rect
from .layouts import CollageLayout, catalog_for, get_layout, resolve_slots, slot_area, DEFAULT_LAYOUT_ID
from .preflight import run_preflight
from .models import (
    PrintSide, PrintSpec, ImageItem, TextItem, QrCodePosition, PlacementDesign, DesignState,
    TEXT_ALIGNMENTS, TEXT_DECORATIONS, FONT_STYLES
)
from .units import (
    DisplayTransform, fit_display_scale, inches_to_px, points_to_px, ZOOM_LEVELS, DEFAULT_ZOOM_INDEX
)
from .utils import generate_id

QR_CODE_ID = 'qr-code'
DELETE_KEYS = ('Delete', 'Backspace')
REORDER_DIRECTIONS = ('front', 'back', 'forward', 'backward')

CONTEXT_ACTIONS = {
    'delete': None,
    'bring-to-front': 'front',
    'send-to-back': 'back',
    'bring-forward': 'forward',
    'send-backward': 'backward',
}

DEFAULT_TEXT = 'Your text here'
DEFAULT_TEXT_PT = 24

# camelCase keys accepted from the host UI
_TEXT_KEYS = {
    'text': 'text',
    'x': 'x',
    'y': 'y',
    'fontSize': 'font_size',
    'fontFamily': 'font_family',
    'fill': 'fill',
    'fontStyle': 'font_style',
    'rotation': 'rotation',
    'width': 'width',
    'align': 'align',
    'textDecoration': 'text_decoration',
}
_TEXT_FIELDS = set(_TEXT_KEYS.values())

Item = Union[ImageItem, TextItem]


def _restore(target: PlacementDesign, snapshot: PlacementDesign) -> None:
    """Copy a snapshot back into ``target`` in place, keeping its identity."""
    target.images = snapshot.images
    target.texts = snapshot.texts
    target.qr_code = snapshot.qr_code
    target.layout_id = snapshot.layout_id
    target.background = snapshot.background


def normalize_text_props(props: Dict[str, Any]) -> Dict[str, Any]:
    """Map camelCase or snake_case text properties to TextItem fields."""
    normalized = {}
    for key, value in props.items():
        field_name = _TEXT_KEYS.get(key, key)
        if field_name not in _TEXT_FIELDS:
            raise InvalidOperationError(
                f"Unknown text property: {key}",
                details={'property': key},
                suggestions=[f"Use one of: {', '.join(sorted(_TEXT_KEYS))}"]
            )
        normalized[field_name] = value
    return normalized


def _validate_text_props(props: Dict[str, Any]) -> None:
    if 'font_size' in props and (props['font_size'] is None or props['font_size'] <= 0):
        raise InvalidOperationError(f"Font size must be positive, got {props['font_size']}")
    if props.get('width') is not None and props['width'] <= 0:
        raise InvalidOperationError(f"Text box width must be positive, got {props['width']}")
    if props.get('align') is not None and props['align'] not in TEXT_ALIGNMENTS:
        raise InvalidOperationError(f"Unknown text alignment: {props['align']}")
    if props.get('text_decoration') is not None and props['text_decoration'] not in TEXT_DECORATIONS:
        raise InvalidOperationError(f"Unknown text decoration: {props['text_decoration']}")
    if 'font_style' in props and props['font_style'] not in FONT_STYLES:
        raise InvalidOperationError(f"Unknown font style: {props['font_style']}")


def _font_style(bold: bool, italic: bool) -> str:
    if bold and italic:
        return 'bold italic'
    if bold:
        return 'bold'
    if italic:
        return 'italic'
    return 'normal'


class SceneEditor:
    """Owns one placement's design and applies every mutation to it."""

    def __init__(self,
                 side: PrintSide,
                 design: PlacementDesign = None,
                 assets: AssetRegistry = None,
                 config: AppConfig = None,
                 placement: str = None):
        self.side = side
        self.placement = placement or side.id
        self.design = design if design is not None else PlacementDesign()
        self.assets = assets if assets is not None else AssetRegistry()
        self.config = config or get_config()
        self.catalog = catalog_for(self.config)

        # UI-local state, never serialized
        self.selected_id: Optional[str] = None
        self.guides: List[Tuple[str, float]] = []
        self.zoom_index = DEFAULT_ZOOM_INDEX

        self._undo = deque(maxlen=max(1, self.config.UNDO_LIMIT))
        self._redo: List[PlacementDesign] = []

    # Mutation plumbing

    @contextmanager
    def _mutation(self, label: str):
        snapshot = copy.deepcopy(self.design)
        try:
            yield
        except Exception:
            _restore(self.design, snapshot)
            logger.debug(f"[{self.placement}] {label} failed, design restored")
            raise
        self._undo.append(snapshot)
        self._redo.clear()
        logger.debug(f"[{self.placement}] {label}")

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(copy.deepcopy(self.design))
        _restore(self.design, self._undo.pop())
        self._drop_stale_selection()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(copy.deepcopy(self.design))
        _restore(self.design, self._redo.pop())
        self._drop_stale_selection()
        return True

    def _drop_stale_selection(self) -> None:
        if self.selected_id and not self._exists(self.selected_id):
            self.selected_id = None

    # Lookup

    def _exists(self, item_id: str) -> bool:
        if item_id == QR_CODE_ID:
            return self.design.qr_code is not None
        return self.design.find(item_id) is not None

    def get_item(self, item_id: str) -> Union[Item, QrCodePosition]:
        if item_id == QR_CODE_ID and self.design.qr_code is not None:
            return self.design.qr_code
        item = self.design.find(item_id)
        if item is None:
            raise ItemNotFoundError(item_id, self.placement)
        return item

    def _get_image(self, item_id: str) -> ImageItem:
        item = self.get_item(item_id)
        if not isinstance(item, ImageItem):
            raise InvalidOperationError(f"Item {item_id} is not an image")
        return item

    def _get_text(self, item_id: str) -> TextItem:
        item = self.get_item(item_id)
        if not isinstance(item, TextItem):
            raise InvalidOperationError(f"Item {item_id} is not a text item")
        return item

    # Layout and slots

    @property
    def layout(self) -> CollageLayout:
        return get_layout(self.design.layout_id or DEFAULT_LAYOUT_ID, self.catalog)

    def slot_rects(self, layout: CollageLayout = None) -> List[Rect]:
        """Absolute slot rectangles of ``layout`` (default: active) in print px."""
        return resolve_slots(layout or self.layout, slot_area(self.side, self.config.SLOT_AREA))

    def _check_slot(self, slot_index: int, layout: CollageLayout) -> None:
        if slot_index is None or not 0 <= slot_index < layout.slot_count:
            raise SlotIndexError(slot_index, layout.id, layout.slot_count)

    def _fit_to_slot(self, image: ImageItem, slot_index: int, layout: CollageLayout = None) -> None:
        layout = layout or self.layout
        slot_rect = self.slot_rects(layout)[slot_index]
        placed = fit_into_slot(image.original_width, image.original_height,
                               slot_rect, layout.fit_for(slot_index))
        if placed is None:
            # Degenerate: keep it bound but render nothing
            image.x, image.y = slot_rect.center_x, slot_rect.center_y
            image.width = image.height = 0
        else:
            image.x, image.y = placed.x, placed.y
            image.width, image.height = placed.width, placed.height
        image.rotation = layout.slots[slot_index].rotation
        image.slot_index = slot_index

    def _release(self, image: ImageItem, slot_rect: Rect) -> None:
        """Unbind an image, contain-fitting it where its slot was so nothing overflows."""
        placed = fit_into_slot(image.original_width, image.original_height, slot_rect, CONTAIN)
        if placed is not None:
            image.x, image.y = placed.x, placed.y
            image.width, image.height = placed.width, placed.height
        image.rotation = 0
        image.slot_index = None

    def set_layout(self, layout_id: str) -> CollageLayout:
        """
        Switch the active layout and re-fit every slot-bound image.

        Unknown ids fall back to the single layout. Images bound to a slot the
        new layout does not have keep their binding and geometry, so switching
        back restores them. Unbound items are untouched.
        """
        layout = get_layout(layout_id, self.catalog)
        with self._mutation(f"set_layout {layout.id}"):
            self.design.layout_id = layout.id
            for image in self.design.images:
                if image.slot_index is None:
                    continue
                if image.slot_index < layout.slot_count:
                    self._fit_to_slot(image, image.slot_index, layout)
                else:
                    logger.debug(f"Image {image.id} slot {image.slot_index} not in {layout.id}, left as is")
        logger.info(f"[{self.placement}] Layout set to {layout.id}")
        return layout

    def swap_into_slot(self, item_id: str, slot_index: int) -> ImageItem:
        """Bind an image to a slot; any occupant moves to the image's previous slot or is freed."""
        layout = self.layout
        self._check_slot(slot_index, layout)
        image = self._get_image(item_id)
        with self._mutation(f"swap {item_id} into slot {slot_index}"):
            previous = image.slot_index
            occupant = next((i for i in self.design.images
                             if i is not image and i.slot_index == slot_index), None)
            self._fit_to_slot(image, slot_index, layout)
            if occupant is not None:
                if previous is not None and previous < layout.slot_count:
                    self._fit_to_slot(occupant, previous, layout)
                else:
                    self._release(occupant, self.slot_rects(layout)[slot_index])
        return image

    def fill_slots(self) -> int:
        """Bind unbound images to empty slots in order. Returns how many were bound."""
        layout = self.layout
        occupied = {i.slot_index for i in self.design.images if i.slot_index is not None}
        free_slots = [s for s in range(layout.slot_count) if s not in occupied]
        unbound = [i for i in self.design.images if i.slot_index is None]
        pairs = list(zip(unbound, free_slots))
        if not pairs:
            return 0
        with self._mutation(f"fill {len(pairs)} slots"):
            for image, slot_index in pairs:
                self._fit_to_slot(image, slot_index, layout)
        return len(pairs)

    # Images

    def add_image(self, src: str,
                  natural_size: Tuple[float, float] = None,
                  target_slot: int = None,
                  item_id: str = None) -> ImageItem:
        """
        Add an image, either bound to a slot of the active layout or free.

        Bound images are fitted per the layout policy and centered in the
        slot; free images are contain-fitted to a fraction of the safe area
        and centered in it.
        """
        if natural_size is None:
            natural_size = self.assets.natural_size(src)
        if natural_size is None:
            natural_size = self.assets.load(src).size
        width, height = natural_size
        if width is None or height is None or width <= 0 or height <= 0:
            raise InvalidOperationError(
                f"Image natural size must be positive, got {width}x{height}",
                details={'src': src[:80]}
            )
        if target_slot is not None:
            self._check_slot(target_slot, self.layout)

        self.assets.register(src, width, height)
        image = ImageItem(
            id=item_id or generate_id('image'),
            src=src,
            x=0, y=0, width=0, height=0,
            rotation=0,
            original_width=width,
            original_height=height,
        )

        with self._mutation(f"add_image {image.id}"):
            if target_slot is not None:
                self._fit_to_slot(image, target_slot)
            else:
                safe = self.side.safe_rect
                fraction = self.config.FREE_IMAGE_FRACTION
                size = contain_fit(width, height, safe.width * fraction, safe.height * fraction)
                image.width, image.height = size.width, size.height
                image.x, image.y = center_in_slot(size.width, size.height, safe)
            self.design.images.append(image)
        return image

    # Free transforms

    def move_item(self, item_id: str, dx: float, dy: float, snap: bool = False,
                  threshold: float = None) -> Union[Item, QrCodePosition]:
        """Translate an item. Slot binding is not re-validated."""
        item = self.get_item(item_id)
        with self._mutation(f"move {item_id}"):
            item.x += dx
            item.y += dy
            self.guides = []
            if snap and not isinstance(item, TextItem):
                rect = Rect(item.x, item.y, item.width, item.height)
                snapped, self.guides = snap_rect(
                    rect, self.side.safe_rect, self.side.canvas_px,
                    self.config.SNAP_THRESHOLD_PX if threshold is None else threshold
                )
                item.x, item.y = snapped.x, snapped.y
        return item

    def resize_item(self, item_id: str, width: float, height: float = None) -> Union[Item, QrCodePosition]:
        """
        Set an item's size. Text items take ``width`` as their box width;
        their height follows from the font size.
        """
        item = self.get_item(item_id)
        if width is None or width <= 0 or (height is not None and height <= 0):
            raise InvalidOperationError(
                f"Size must be positive, got {width}x{height}",
                details={'item_id': item_id}
            )
        if height is None and not isinstance(item, TextItem):
            raise InvalidOperationError(f"Height is required to resize {item_id}")

        with self._mutation(f"resize {item_id}"):
            item.width = width
            if not isinstance(item, TextItem):
                item.height = height
        return item

    def rotate_item(self, item_id: str, degrees: float) -> Item:
        """Set an item's absolute rotation in degrees, applied about its center."""
        if item_id == QR_CODE_ID:
            raise InvalidOperationError("The scan-code anchor cannot be rotated")
        item = self.get_item(item_id)
        with self._mutation(f"rotate {item_id}"):
            item.rotation = degrees % 360
        return item

    # Text

    def add_text(self, text: str = DEFAULT_TEXT, item_id: str = None, **props) -> TextItem:
        props = normalize_text_props(props)
        _validate_text_props(props)
        safe = self.side.safe_rect
        font_size = props.pop('font_size', points_to_px(DEFAULT_TEXT_PT, self.side.dpi))

        item = TextItem(
            id=item_id or generate_id('text'),
            text=text,
            x=props.pop('x', safe.x),
            y=props.pop('y', safe.center_y - font_size / 2),
            font_size=font_size,
            font_family=props.pop('font_family', self.config.DEFAULT_FONT_FAMILY),
            fill=props.pop('fill', '#000000'),
            font_style=props.pop('font_style', 'normal'),
            rotation=props.pop('rotation', 0),
            width=props.pop('width', safe.width),
            align=props.pop('align', 'center'),
            text_decoration=props.pop('text_decoration', None),
        )
        with self._mutation(f"add_text {item.id}"):
            self.design.texts.append(item)
        return item

    def edit_text(self, item_id: str, **patch) -> TextItem:
        item = self._get_text(item_id)
        patch = normalize_text_props(patch)
        _validate_text_props(patch)
        with self._mutation(f"edit_text {item_id}"):
            for key, value in patch.items():
                setattr(item, key, value)
        return item

    def toggle_bold(self, item_id: str) -> TextItem:
        item = self._get_text(item_id)
        return self.edit_text(item_id, font_style=_font_style(not item.is_bold, item.is_italic))

    def toggle_italic(self, item_id: str) -> TextItem:
        item = self._get_text(item_id)
        return self.edit_text(item_id, font_style=_font_style(item.is_bold, not item.is_italic))

    def toggle_underline(self, item_id: str) -> TextItem:
        item = self._get_text(item_id)
        decoration = '' if item.text_decoration == 'underline' else 'underline'
        return self.edit_text(item_id, text_decoration=decoration)

    # Deletion: explicit action, keyboard and context menu share this path

    def delete_item(self, item_id: str) -> None:
        if item_id == QR_CODE_ID and self.design.qr_code is not None:
            with self._mutation("delete qr-code"):
                self.design.qr_code = None
        else:
            item = self.get_item(item_id)
            with self._mutation(f"delete {item_id}"):
                self.design.list_for(item).remove(item)
        if self.selected_id == item_id:
            self.selected_id = None

    def handle_key(self, key: str) -> bool:
        """Keyboard shortcut handling. Returns whether the key was consumed."""
        if key in DELETE_KEYS and self.selected_id:
            self.delete_item(self.selected_id)
            return True
        return False

    def context_menu(self, action: str, item_id: str) -> None:
        if action not in CONTEXT_ACTIONS:
            raise InvalidOperationError(
                f"Unknown context menu action: {action}",
                suggestions=[f"Use one of: {', '.join(CONTEXT_ACTIONS)}"]
            )
        direction = CONTEXT_ACTIONS[action]
        if direction is None:
            self.delete_item(item_id)
        else:
            self.reorder(item_id, direction)

    # Paint order

    def reorder(self, item_id: str, direction: str) -> int:
        """Move an item within its list. Returns the new index."""
        if direction not in REORDER_DIRECTIONS:
            raise InvalidOperationError(f"Unknown reorder direction: {direction}")
        item = self.get_item(item_id)
        if isinstance(item, QrCodePosition):
            raise InvalidOperationError("The scan-code anchor is always painted above content")

        items = self.design.list_for(item)
        index = items.index(item)
        if direction == 'front':
            target = len(items) - 1
        elif direction == 'back':
            target = 0
        elif direction == 'forward':
            target = min(index + 1, len(items) - 1)
        else:
            target = max(index - 1, 0)

        if target != index:
            with self._mutation(f"reorder {item_id} {direction}"):
                items.insert(target, items.pop(index))
        return target

    # Scan-code anchor

    def set_qr_code(self, x: float, y: float, width: float, height: float) -> QrCodePosition:
        if width <= 0 or height <= 0:
            raise InvalidOperationError(f"Scan-code anchor size must be positive, got {width}x{height}")
        position = QrCodePosition(x, y, width, height)
        if not self.side.safe_rect.contains(position.rect):
            logger.warning(f"[{self.placement}] Scan-code anchor {position.rect} is outside the safe zone")
        with self._mutation("set qr-code"):
            self.design.qr_code = position
        return position

    def place_default_qr_code(self) -> QrCodePosition:
        """Anchor sized to the target print size, in the safe area's bottom-right corner."""
        size = inches_to_px(self.config.QR_TARGET_INCHES, self.side.dpi)
        safe = self.side.safe_rect
        return self.set_qr_code(safe.right - size, safe.bottom - size, size, size)

    def clear_qr_code(self) -> None:
        if self.design.qr_code is not None:
            self.delete_item(QR_CODE_ID)

    # UI-local state

    def select(self, item_id: Optional[str]) -> None:
        if item_id is not None and not self._exists(item_id):
            raise ItemNotFoundError(item_id, self.placement)
        self.selected_id = item_id

    @property
    def zoom(self) -> float:
        return ZOOM_LEVELS[self.zoom_index]

    def zoom_in(self) -> float:
        self.zoom_index = min(self.zoom_index + 1, len(ZOOM_LEVELS) - 1)
        return self.zoom

    def zoom_out(self) -> float:
        self.zoom_index = max(self.zoom_index - 1, 0)
        return self.zoom

    def reset_zoom(self) -> float:
        self.zoom_index = DEFAULT_ZOOM_INDEX
        return self.zoom

    def display_transform(self, max_width: float = None, max_height: float = None,
                          zoom: float = None) -> DisplayTransform:
        """Fit scale for the viewport times ``zoom`` (default: the current zoom step)."""
        scale = fit_display_scale(
            self.side.canvas_px[0], self.side.canvas_px[1],
            max_width or self.config.MAX_DISPLAY_WIDTH,
            max_height or self.config.MAX_DISPLAY_HEIGHT,
        )
        return DisplayTransform(scale, self.zoom if zoom is None else zoom)

    def to_dict(self) -> Dict[str, Any]:
        return self.design.to_dict()


class DesignSession:
    """All placements of one product: an editor per side plus the active side."""

    def __init__(self,
                 print_spec: PrintSpec,
                 state: DesignState = None,
                 assets: AssetRegistry = None,
                 config: AppConfig = None):
        self.print_spec = print_spec
        self.state = state if state is not None else DesignState()
        self.assets = assets if assets is not None else AssetRegistry()
        self.config = config or get_config()
        self._editors: Dict[str, SceneEditor] = {}
        self.active_side = print_spec.sides[0].id if print_spec.sides else None

    def editor(self, side_id: str = None) -> SceneEditor:
        """Editor for a side (default: the active one), opening its design on first use."""
        side_id = side_id or self.active_side
        if side_id not in self._editors:
            try:
                side = self.print_spec.side(side_id)
            except KeyError:
                raise EditorError(
                    f"Side {side_id} does not exist in print spec {self.print_spec.id}",
                    details={'side_id': side_id, 'sides': self.print_spec.side_ids}
                )
            self._editors[side_id] = SceneEditor(side, self.state.open(side_id),
                                                 self.assets, self.config)
        return self._editors[side_id]

    def set_active_side(self, side_id: str) -> SceneEditor:
        editor = self.editor(side_id)
        self.active_side = side_id
        return editor

    def preflight(self) -> Dict[str, Any]:
        """Preflight results per side that has a design."""
        return {
            side.id: run_preflight(self.state.get(side.id), side, config=self.config)
            for side in self.print_spec.sides
            if side.id in self.state
        }

    @property
    def can_finalize(self) -> bool:
        return all(result.valid for result in self.preflight().values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'printSpecId': self.print_spec.id,
            'activeSide': self.active_side,
            'design': self.state.to_dict(),
        }

    @classmethod
    def from_dict(cls, print_spec: PrintSpec, data: Dict[str, Any],
                  assets: AssetRegistry = None, config: AppConfig = None) -> 'DesignSession':
        session = cls(print_spec, DesignState.from_dict(data.get('design')), assets, config)
        active = data.get('activeSide')
        if active in print_spec.side_ids:
            session.active_side = active
        return session

"""
Reference product provider with a hardcoded greeting card / postcard / print
catalog, usable for tests and local development without a vendor API.

The catalog can be swapped for one loaded from YAML via
``PRODUCT_CATALOG_FILE``; geometry derivation and pricing rules stay the same.
"""

from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from .config import AppConfig, get_config, load_product_catalog, parse_product_catalog
from .errors import SelectionError, SizeNotFoundError
from .models import Selection, PrintSpec, PrintSide, FoldLine, PORTRAIT, LANDSCAPE
from .provider import ProductProvider, ProductOption, ValidationResult, PartialSelection
from .units import mm_to_px

# Product types that can be folded into multi-panel cards
CARD_LIKE_TYPES = ('greeting-card', 'invitation')
BIFOLD = 'bifold'
FLAT = 'flat'

# Any foil other than "none" costs the same flat surcharge
FOIL_SURCHARGE = 2.00

MOCK_CATALOG: Dict[str, Any] = {
    'product_types': [
        {
            'id': 'greeting-card', 'label': 'Greeting Card', 'category': 'cards',
            'base_price': 3.99, 'foldable': True, 'double_sided': True,
            'sizes': [
                {'id': '5x7', 'label': '5" × 7"', 'metadata': {'mm': {'w': 127, 'h': 178}}},
                {'id': 'a5', 'label': 'A5 (148mm × 210mm)', 'metadata': {'mm': {'w': 148, 'h': 210}}},
                {'id': '4x6', 'label': '4" × 6"', 'metadata': {'mm': {'w': 102, 'h': 152}}},
            ],
        },
        {
            'id': 'postcard', 'label': 'Postcard', 'category': 'cards',
            'base_price': 2.49, 'foldable': False, 'double_sided': True,
            'sizes': [
                {'id': '4x6', 'label': '4" × 6"', 'metadata': {'mm': {'w': 102, 'h': 152}}},
                {'id': '5x7', 'label': '5" × 7"', 'metadata': {'mm': {'w': 127, 'h': 178}}},
            ],
        },
        {
            'id': 'print', 'label': 'Art Print', 'category': 'prints',
            'base_price': 12.99, 'foldable': False, 'double_sided': False,
            'sizes': [
                {'id': '8x10', 'label': '8" × 10"', 'metadata': {'mm': {'w': 203, 'h': 254}}},
                {'id': '11x14', 'label': '11" × 14"', 'metadata': {'mm': {'w': 279, 'h': 356}}},
            ],
        },
    ],
    'papers': [
        {'id': 'matte', 'label': 'Matte', 'metadata': {'finish': 'non-reflective'}},
        {'id': 'glossy', 'label': 'Glossy', 'price': 0.50, 'metadata': {'finish': 'shiny'}},
        {'id': 'premium', 'label': 'Premium Matte', 'price': 1.00,
         'metadata': {'finish': 'high-quality-matte', 'weight': 'heavy'}},
    ],
    'folds': [
        {'id': 'flat', 'label': 'Flat (Single Panel)', 'metadata': {'panels': 1}},
        {'id': 'bifold', 'label': 'Bifold (Folded Card)', 'price': 0.50,
         'metadata': {'panels': 4, 'foldCount': 1}},
    ],
    'foils': [
        {'id': 'none', 'label': 'No Foil'},
        {'id': 'gold', 'label': 'Gold Foil', 'price': 2.00, 'metadata': {'color': '#FFD700'}},
        {'id': 'silver', 'label': 'Silver Foil', 'price': 2.00, 'metadata': {'color': '#C0C0C0'}},
        {'id': 'rose-gold', 'label': 'Rose Gold Foil', 'price': 2.50, 'metadata': {'color': '#B76E79'}},
    ],
    'envelopes': [
        {'id': 'white', 'label': 'White Envelope', 'metadata': {'color': '#FFFFFF'}},
        {'id': 'kraft', 'label': 'Kraft Envelope', 'price': 0.25, 'metadata': {'color': '#D2B48C'}},
        {'id': 'black', 'label': 'Black Envelope', 'price': 0.50, 'metadata': {'color': '#000000'}},
    ],
}


def _to_option(entry) -> ProductOption:
    return ProductOption(
        id=entry.id,
        label=entry.label,
        value=entry.value or entry.id,
        price=entry.price,
        disabled=entry.disabled,
        metadata=dict(entry.metadata),
    )


class MockProvider(ProductProvider):
    """Hardcoded catalog provider; no external calls."""

    type = 'mock'
    name = 'Mock Provider (Testing)'

    def __init__(self, catalog: Dict[str, Any] = None, config: AppConfig = None):
        self.config = config or get_config()
        if catalog is None:
            if self.config.PRODUCT_CATALOG_FILE:
                catalog = load_product_catalog(self.config.PRODUCT_CATALOG_FILE)
            else:
                catalog = parse_product_catalog(MOCK_CATALOG)
        elif 'product_types' in catalog and isinstance(catalog['product_types'], list):
            catalog = parse_product_catalog(catalog)
        self.catalog = catalog
        self.dpi = self.config.DEFAULT_DPI
        self.bleed_mm = self.config.DEFAULT_BLEED_MM
        self.safe_mm = self.config.DEFAULT_SAFE_MM

    # Product options

    def _product(self, product_type: str):
        return self.catalog['product_types'].get(product_type)

    def _is_card_like(self, product_type: str) -> bool:
        product = self._product(product_type)
        if product is not None:
            return product.foldable
        return product_type in CARD_LIKE_TYPES

    def get_product_types(self) -> List[ProductOption]:
        return [
            ProductOption(id=p.id, label=p.label, value=p.id, metadata={'category': p.category})
            for p in self.catalog['product_types'].values()
        ]

    def get_orientations(self, product_type: str) -> List[ProductOption]:
        return [
            ProductOption(id=PORTRAIT, label='Portrait', value=PORTRAIT),
            ProductOption(id=LANDSCAPE, label='Landscape', value=LANDSCAPE),
        ]

    def get_sizes(self, product_type: str, orientation: str = None) -> List[ProductOption]:
        product = self._product(product_type)
        if product is None:
            return []
        return [_to_option(size) for size in product.sizes]

    def get_paper_types(self, product_type: str) -> List[ProductOption]:
        return [_to_option(o) for o in self.catalog['papers']]

    def get_fold_formats(self, product_type: str) -> List[ProductOption]:
        if not self._is_card_like(product_type):
            return []
        return [_to_option(o) for o in self.catalog['folds']]

    def get_foil_options(self, product_type: str) -> List[ProductOption]:
        if not self._is_card_like(product_type):
            return []
        return [_to_option(o) for o in self.catalog['foils']]

    def get_envelope_options(self, product_type: str) -> List[ProductOption]:
        if not self._is_card_like(product_type):
            return []
        return [_to_option(o) for o in self.catalog['envelopes']]

    # Print spec generation

    def generate_print_spec(self, selection: PartialSelection) -> PrintSpec:
        selection = Selection.from_dict(selection)
        validation = self.validate_selection(selection)
        if not validation.valid:
            raise SelectionError(validation.errors, validation.warnings)

        sizes = self.get_sizes(selection.product_type, selection.orientation)
        size_option = next((s for s in sizes if s.value == selection.size), None)
        if size_option is None or not size_option.metadata.get('mm'):
            raise SizeNotFoundError(selection.size, selection.product_type,
                                    available=[s.value for s in sizes])

        trim_mm = self._oriented_trim(size_option.metadata['mm'], selection.orientation)
        folded = selection.fold_format == BIFOLD
        sides = self._generate_sides(selection, trim_mm, folded)

        spec = PrintSpec(
            id=f"mock-{selection.product_type}-{selection.size}-{selection.orientation}-"
               f"{selection.fold_format or FLAT}",
            product_type=selection.product_type,
            trim_mm=trim_mm,
            bleed_mm=self.bleed_mm,
            safe_mm=self.safe_mm,
            dpi=self.dpi,
            sides=tuple(sides),
            folded=folded,
            provider_type=self.type,
        )
        logger.info(f"Generated print spec {spec.id} with sides {spec.side_ids}")
        return spec

    @staticmethod
    def _oriented_trim(mm: Dict[str, float], orientation: str) -> Tuple[float, float]:
        w, h = mm['w'], mm['h']
        if orientation == LANDSCAPE:
            return (max(w, h), min(w, h))
        return (min(w, h), max(w, h))

    def _side(self, side_id: str, name: str, trim_mm: Tuple[float, float],
              fold_lines: Tuple[FoldLine, ...] = ()) -> PrintSide:
        return PrintSide.create(side_id, name, trim_mm[0], trim_mm[1],
                                self.bleed_mm, self.safe_mm, self.dpi, fold_lines)

    def _generate_sides(self, selection: Selection, trim_mm: Tuple[float, float],
                        folded: bool) -> List[PrintSide]:
        panel_w, panel_h = trim_mm
        panel_w_px = mm_to_px(panel_w, self.dpi)
        panel_h_px = mm_to_px(panel_h, self.dpi)

        if folded and self._is_card_like(selection.product_type):
            if selection.orientation == PORTRAIT:
                # Two panels side by side, one vertical fold between them
                fold = FoldLine(panel_w_px, 0, panel_w_px, panel_h_px, 'fold')
                placements = [('front', 'Front'), ('back', 'Back'),
                              ('inside-left', 'Inside Left'), ('inside-right', 'Inside Right')]
            else:
                # Two panels stacked, one horizontal fold between them
                fold = FoldLine(0, panel_h_px, panel_w_px, panel_h_px, 'fold')
                placements = [('front', 'Front'), ('back', 'Back'),
                              ('inside-top', 'Inside Top'), ('inside-bottom', 'Inside Bottom')]
            logger.debug(f"Bifold {selection.orientation} fold line at {fold}")
            return [self._side(side_id, name, trim_mm, (fold,)) for side_id, name in placements]

        if folded:
            logger.warning(f"Fold format {selection.fold_format} ignored for {selection.product_type}")

        sides = [self._side('front', 'Front', trim_mm)]
        product = self._product(selection.product_type)
        if product is None or product.double_sided:
            sides.append(self._side('back', 'Back', trim_mm))
        return sides

    # Pricing

    def _option_price(self, axis: str, option_id: Optional[str]) -> float:
        if not option_id:
            return 0.0
        for option in self.catalog[axis]:
            if option.id == option_id:
                return option.price or 0.0
        return 0.0

    def get_price(self, selection: PartialSelection) -> Optional[float]:
        selection = Selection.from_dict(selection)
        if not selection.product_type or not selection.size:
            return None

        product = self._product(selection.product_type)
        base_price = product.base_price if product is not None else 0.0

        add_ons = 0.0
        add_ons += self._option_price('papers', selection.paper_type)
        add_ons += self._option_price('folds', selection.fold_format)
        if selection.foil_option and selection.foil_option != 'none':
            add_ons += FOIL_SURCHARGE
        add_ons += self._option_price('envelopes', selection.envelope_option)

        return round(base_price + add_ons, 2)

    # Validation

    def validate_selection(self, selection: PartialSelection) -> ValidationResult:
        selection = Selection.from_dict(selection)
        errors = []
        warnings = []

        if not selection.product_type:
            errors.append('Product type is required')
        if not selection.orientation:
            errors.append('Orientation is required')
        elif selection.product_type and selection.orientation not in [
                o.value for o in self.get_orientations(selection.product_type)]:
            errors.append(f"Unknown orientation: {selection.orientation}")
        if not selection.size:
            errors.append('Size is required')

        if selection.foil_option and selection.foil_option != 'none' and not selection.paper_type:
            warnings.append('Foil works best on premium paper')

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

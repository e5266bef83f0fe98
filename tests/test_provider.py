"""
Unit tests for the mock product provider and print spec derivation.
"""

import pytest
import yaml
from printspace.config import AppConfig, parse_product_catalog
from printspace.errors import SelectionError, SizeNotFoundError, ConfigurationError
from printspace.mock_provider import MockProvider, MOCK_CATALOG
from printspace.models import FoldLine, PrintSpec, Selection
from printspace.units import mm_to_px

BIFOLD = {'productType': 'greeting-card', 'orientation': 'portrait', 'size': '5x7', 'foldFormat': 'bifold'}


class TestProductOptions:
    """Test option lists offered by the mock provider."""

    def test_product_types(self, provider):
        """Test the product type list and its order."""
        ids = [option.id for option in provider.get_product_types()]

        assert ids == ['greeting-card', 'postcard', 'print']

    def test_orientations(self, provider):
        """Test orientations for a product."""
        ids = [option.value for option in provider.get_orientations('postcard')]

        assert ids == ['portrait', 'landscape']

    def test_sizes_carry_mm(self, provider):
        """Test that size options carry their physical mm dimensions."""
        sizes = provider.get_sizes('greeting-card', 'portrait')

        assert [s.id for s in sizes] == ['5x7', 'a5', '4x6']
        assert sizes[0].metadata['mm'] == {'w': 127, 'h': 178}

    def test_unknown_product_has_no_sizes(self, provider):
        """Test that an unknown product offers no sizes."""
        assert provider.get_sizes('mug', 'portrait') == []

    def test_card_only_options(self, provider):
        """Test that fold, foil and envelope options exist only for cards."""
        assert [f.id for f in provider.get_fold_formats('greeting-card')] == ['flat', 'bifold']
        assert provider.get_fold_formats('postcard') == []
        assert provider.get_foil_options('print') == []
        assert len(provider.get_envelope_options('greeting-card')) == 3

    def test_option_to_dict_omits_defaults(self, provider):
        """Test that a zero surcharge is left out of the option dict."""
        matte, glossy = provider.get_paper_types('postcard')[:2]

        assert 'price' not in matte.to_dict()
        assert glossy.to_dict()['price'] == 0.50


class TestPrintSpecGeneration:
    """Test deriving print specs from selections."""

    def test_portrait_bifold(self, bifold_spec):
        """Test the four placements and vertical fold of a portrait bifold."""
        assert bifold_spec.side_ids == ['front', 'back', 'inside-left', 'inside-right']
        assert bifold_spec.folded
        assert bifold_spec.trim_mm == (127, 178)
        assert bifold_spec.id == 'mock-greeting-card-5x7-portrait-bifold'

        fold = bifold_spec.side('inside-left').fold_lines[0]
        assert fold.is_vertical
        assert fold.x1 == pytest.approx(mm_to_px(127, 300))
        assert fold.y2 == pytest.approx(mm_to_px(178, 300))

    def test_landscape_bifold(self, provider):
        """Test the swapped trim and horizontal fold of a landscape bifold."""
        spec = provider.generate_print_spec({
            'productType': 'greeting-card', 'orientation': 'landscape',
            'size': '5x7', 'foldFormat': 'bifold',
        })

        assert spec.side_ids == ['front', 'back', 'inside-top', 'inside-bottom']
        assert spec.trim_mm == (178, 127)
        fold = spec.sides[0].fold_lines[0]
        assert fold.is_horizontal
        assert fold.y1 == pytest.approx(mm_to_px(127, 300))

    @pytest.mark.parametrize('orientation, axis', [('portrait', 0), ('landscape', 1)])
    def test_fold_partitions_unfolded_trim(self, provider, orientation, axis):
        """Test that fold panels add up to the unfolded trim."""
        spec = provider.generate_print_spec({
            'productType': 'greeting-card', 'orientation': orientation,
            'size': 'a5', 'foldFormat': 'bifold',
        })

        panels = spec.panel_extents_px()

        assert len(panels) == 2
        assert sum(panels) == pytest.approx(spec.unfolded_trim_px()[axis])

    def test_flat_postcard_is_double_sided(self, postcard_spec):
        """Test that a postcard has a front and a back with no folds."""
        assert postcard_spec.side_ids == ['front', 'back']
        assert not postcard_spec.folded
        assert postcard_spec.sides[0].fold_lines == ()

    def test_print_is_single_sided(self, provider):
        """Test that a print has only a front."""
        spec = provider.generate_print_spec({'productType': 'print', 'orientation': 'portrait', 'size': '8x10'})

        assert spec.side_ids == ['front']

    def test_fold_ignored_for_non_card(self, provider):
        """Test that a fold format is ignored for non-card products."""
        spec = provider.generate_print_spec({
            'productType': 'postcard', 'orientation': 'portrait', 'size': '4x6', 'foldFormat': 'bifold',
        })

        assert spec.side_ids == ['front', 'back']

    def test_side_geometry_nests(self, bifold_spec, postcard_spec):
        """Test that safe, trim and canvas rects nest on every side."""
        for side in bifold_spec.sides + postcard_spec.sides:
            assert side.check_nesting()
            assert side.canvas_px[0] == pytest.approx(mm_to_px(side.trim_mm[0] + 2 * side.bleed_mm, side.dpi))

    def test_missing_size_raises(self, provider):
        """Test that an unknown size lists the available sizes."""
        with pytest.raises(SizeNotFoundError) as excinfo:
            provider.generate_print_spec({'productType': 'greeting-card', 'orientation': 'portrait', 'size': '9x9'})

        assert excinfo.value.details['available_sizes'] == ['5x7', 'a5', '4x6']

    def test_incomplete_selection_raises(self, provider):
        """Test that an incomplete selection cannot produce a spec."""
        with pytest.raises(SelectionError) as excinfo:
            provider.generate_print_spec({'productType': 'postcard', 'orientation': 'portrait'})

        assert excinfo.value.errors == ['Size is required']

    def test_spec_round_trip(self, bifold_spec):
        """Test print spec serialization."""
        assert PrintSpec.from_dict(bifold_spec.to_dict()) == bifold_spec

    def test_unknown_orientation_raises(self, provider):
        """Test that an orientation the provider does not offer is rejected."""
        with pytest.raises(SelectionError) as excinfo:
            provider.generate_print_spec({**BIFOLD, 'orientation': 'square'})

        assert excinfo.value.errors == ['Unknown orientation: square']

    def test_unknown_fold_type(self):
        """Test that fold lines accept only known fold types."""
        with pytest.raises(ValueError):
            FoldLine(0, 0, 0, 100, 'tear')
        assert FoldLine(0, 0, 0, 100, 'score').type == 'score'


class TestPricing:
    """Test price calculation."""

    def test_base_price(self, provider):
        """Test the base price of a product size."""
        assert provider.get_price({'productType': 'postcard', 'size': '4x6'}) == 2.49

    def test_add_ons(self, provider):
        """Test that paper, fold, foil and envelope surcharges add up."""
        price = provider.get_price({
            'productType': 'greeting-card', 'size': '5x7', 'paperType': 'glossy',
            'foldFormat': 'bifold', 'foilOption': 'gold', 'envelopeOption': 'kraft',
        })

        assert price == 7.24

    def test_foil_surcharge_is_flat(self, provider):
        """Test that every foil color costs the same."""
        base = {'productType': 'greeting-card', 'size': '5x7'}

        gold = provider.get_price({**base, 'foilOption': 'gold'})
        rose_gold = provider.get_price({**base, 'foilOption': 'rose-gold'})

        assert gold == rose_gold == 5.99

    def test_no_price_without_size(self, provider):
        """Test that no price is quoted before a size is chosen."""
        assert provider.get_price({'productType': 'postcard'}) is None
        assert provider.get_price(Selection()) is None


class TestValidation:
    """Test selection validation."""

    def test_empty_selection(self, provider):
        """Test the errors reported for an empty selection."""
        result = provider.validate_selection({})

        assert not result.valid
        assert result.errors == ['Product type is required', 'Orientation is required', 'Size is required']

    def test_foil_warning_is_not_blocking(self, provider):
        """Test that a foil warning leaves the selection valid."""
        result = provider.validate_selection({
            'productType': 'greeting-card', 'orientation': 'portrait', 'size': '5x7', 'foilOption': 'gold',
        })

        assert result.valid
        assert result.warnings == ['Foil works best on premium paper']


class TestCatalogLoading:
    """Test loading product catalogs from data and YAML."""

    def test_rejects_empty_catalog(self):
        """Test that a catalog without products is rejected."""
        with pytest.raises(ConfigurationError):
            parse_product_catalog({})

    def test_rejects_size_without_mm(self):
        """Test that sizes need mm dimensions."""
        data = {'product_types': [{'id': 'mug', 'label': 'Mug', 'sizes': [{'id': '11oz', 'label': '11oz'}]}]}

        with pytest.raises(ConfigurationError):
            parse_product_catalog(data)

    def test_custom_catalog(self, config):
        """Test a provider built from a custom catalog."""
        data = {
            'product_types': [{
                'id': 'poster', 'label': 'Poster', 'base_price': 20.0, 'double_sided': False,
                'sizes': [{'id': 'a3', 'label': 'A3', 'metadata': {'mm': {'w': 297, 'h': 420}}}],
            }],
        }
        provider = MockProvider(catalog=data, config=config)

        spec = provider.generate_print_spec({'productType': 'poster', 'orientation': 'landscape', 'size': 'a3'})

        assert spec.trim_mm == (420, 297)
        assert spec.side_ids == ['front']
        assert provider.get_paper_types('poster') == []

    def test_catalog_from_yaml(self, tmp_path):
        """Test loading the catalog from a YAML file."""
        path = tmp_path / 'products.yaml'
        path.write_text(yaml.safe_dump(MOCK_CATALOG), encoding='utf-8')

        provider = MockProvider(config=AppConfig(PRODUCT_CATALOG_FILE=str(path)))

        assert len(provider.get_product_types()) == 3
        assert provider.get_price({'productType': 'print', 'size': '8x10'}) == 12.99

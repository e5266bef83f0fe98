"""
Unit tests for the error types.

Tests the base error payload, the context carried by the specific
error types and their place in the hierarchy.
"""

import pytest
from printspace.errors import (
    PrintSpaceError, ConfigurationError, SelectionError, SpecGenerationError,
    SizeNotFoundError, EditorError, ItemNotFoundError, InvalidOperationError,
    SlotIndexError, RenderError, AssetLoadError, ExportCancelledError, DraftError
)


class TestPrintSpaceError:
    """Test the base PrintSpaceError class."""

    def test_basic_error_creation(self):
        """Test creating a basic error with message only."""
        error = PrintSpaceError("Test error message")

        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details == {}
        assert error.suggestions == []

    def test_error_with_details_and_suggestions(self):
        """Test creating an error with details and suggestions."""
        details = {'side_id': 'front'}
        suggestions = ['Try this', 'Or try that']

        error = PrintSpaceError("Test error", details=details, suggestions=suggestions)

        assert error.details == details
        assert error.suggestions == suggestions

    def test_error_to_dict(self):
        """Test converting error to dictionary."""
        error = PrintSpaceError("Test", details={'key': 'value'}, suggestions=['suggestion'])

        result = error.to_dict()

        assert result['error_type'] == 'PrintSpaceError'
        assert result['message'] == 'Test'
        assert result['details'] == {'key': 'value'}
        assert result['suggestions'] == ['suggestion']


class TestSpecificErrorTypes:
    """Test specific error type implementations."""

    def test_selection_error_lists_missing_axes(self):
        """Test SelectionError carries errors and warnings."""
        error = SelectionError(['Size is required'], ['Foil works best on premium paper'])

        assert error.errors == ['Size is required']
        assert error.warnings == ['Foil works best on premium paper']
        assert error.details['errors'] == ['Size is required']
        assert len(error.suggestions) > 0

    def test_size_not_found_error(self):
        """Test SizeNotFoundError creation and content."""
        error = SizeNotFoundError('9x9', 'postcard', available=['4x6', '5x7'])

        assert '9x9' in error.message
        assert error.details['product_type'] == 'postcard'
        assert error.details['available_sizes'] == ['4x6', '5x7']
        assert isinstance(error, SpecGenerationError)

    def test_item_not_found_error(self):
        """Test ItemNotFoundError creation and content."""
        error = ItemNotFoundError('text-1', 'front')

        assert error.details == {'item_id': 'text-1', 'placement': 'front'}
        assert error.to_dict()['error_type'] == 'ItemNotFoundError'

    def test_slot_index_error_suggests_valid_range(self):
        """Test SlotIndexError suggests the valid index range."""
        error = SlotIndexError(4, 'two-up', 2)

        assert error.details['slot_count'] == 2
        assert "between 0 and 1" in error.suggestions[0]

    def test_asset_load_error_truncates_long_sources(self):
        """Test AssetLoadError shortens long data URLs."""
        src = 'data:image/png;base64,' + 'A' * 500
        error = AssetLoadError(src, 'truncated file')

        assert len(error.details['src']) == 80
        assert error.details['src'].endswith('...')
        assert error.details['reason'] == 'truncated file'

    def test_export_cancelled_error(self):
        """Test ExportCancelledError names the side."""
        error = ExportCancelledError('back')

        assert error.details['side_id'] == 'back'


class TestErrorHierarchy:
    """Test the error class hierarchy."""

    @pytest.mark.parametrize('error_class, parent', [
        (ConfigurationError, PrintSpaceError),
        (SelectionError, PrintSpaceError),
        (SizeNotFoundError, SpecGenerationError),
        (ItemNotFoundError, EditorError),
        (InvalidOperationError, EditorError),
        (SlotIndexError, EditorError),
        (AssetLoadError, RenderError),
        (ExportCancelledError, RenderError),
        (DraftError, PrintSpaceError),
    ])
    def test_subclassing(self, error_class, parent):
        """Test that each error derives from its parent."""
        assert issubclass(error_class, parent)
        assert issubclass(error_class, PrintSpaceError)

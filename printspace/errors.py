"""
Error types for the print-space layout engine.

Provides specific exception types for the different failure modes
(selection, spec generation, editing, rendering) with enough context
for the host UI to tell the user what to fix.
"""

from typing import Dict, List, Any, Optional


class PrintSpaceError(Exception):
    """Base exception for all print-space engine errors."""

    def __init__(self, message: str, details: Dict[str, Any] = None, suggestions: List[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'details': self.details,
            'suggestions': self.suggestions
        }


class ConfigurationError(PrintSpaceError):
    """Raised when configuration or a static catalog definition is invalid."""
    pass


class SelectionError(PrintSpaceError):
    """Raised when a product selection is missing required axes."""

    def __init__(self, errors: List[str], warnings: List[str] = None):
        super().__init__(
            "Product selection is incomplete",
            details={
                'errors': list(errors),
                'warnings': list(warnings or [])
            },
            suggestions=[
                "Choose a product type, orientation and size before continuing"
            ]
        )
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class SpecGenerationError(PrintSpaceError):
    """Raised when a print specification cannot be derived."""
    pass


class SizeNotFoundError(SpecGenerationError):
    """Raised when the selected size is absent from the provider's size list."""

    def __init__(self, size: str, product_type: str, available: List[str] = None):
        super().__init__(
            f'Size "{size}" not found for {product_type}',
            details={
                'size': size,
                'product_type': product_type,
                'available_sizes': list(available or [])
            },
            suggestions=[
                "Pick one of the available sizes for this product",
                "Refresh the size list after changing product type or orientation"
            ]
        )


class EditorError(PrintSpaceError):
    """Raised when a scene editor operation cannot be applied."""
    pass


class ItemNotFoundError(EditorError):
    """Raised when an operation references an item id that does not exist."""

    def __init__(self, item_id: str, placement: Optional[str] = None):
        super().__init__(
            f"Item not found: {item_id}",
            details={'item_id': item_id, 'placement': placement}
        )


class InvalidOperationError(EditorError):
    """Raised when operation arguments are invalid (bad size, unknown property, ...)."""
    pass


class SlotIndexError(EditorError):
    """Raised when a slot index does not exist in the active layout."""

    def __init__(self, slot_index: int, layout_id: str, slot_count: int):
        super().__init__(
            f"Slot {slot_index} does not exist in layout {layout_id}",
            details={
                'slot_index': slot_index,
                'layout_id': layout_id,
                'slot_count': slot_count
            },
            suggestions=[f"Use a slot index between 0 and {slot_count - 1}"]
        )


class RenderError(PrintSpaceError):
    """Raised when rendering a placement fails."""
    pass


class AssetLoadError(RenderError):
    """Raised when an image asset cannot be loaded or decoded."""

    def __init__(self, src: str, reason: str = None):
        short_src = src if len(src) <= 80 else src[:77] + '...'
        super().__init__(
            f"Could not load image asset: {short_src}",
            details={'src': short_src, 'reason': reason},
            suggestions=[
                "Check that the image URL or data reference is still valid",
                "Re-upload the image if it was removed"
            ]
        )


class ExportCancelledError(RenderError):
    """Raised inside a render when its export job was cancelled."""

    def __init__(self, side_id: str = None):
        super().__init__(
            "Export was cancelled",
            details={'side_id': side_id}
        )


class DraftError(PrintSpaceError):
    """Raised when a stored draft cannot be decoded."""
    pass

"""
Product provider contract.

Abstracts product options (sizes, papers, folds, ...) and print spec
generation away from any specific fulfillment vendor. The engine only
ever talks to this interface; vendor-backed implementations live outside
the package, the reference implementation is MockProvider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .models import Selection, PrintSpec

PartialSelection = Union[Selection, Dict[str, Any]]


@dataclass
class ProductOption:
    """A single choosable value for one selection axis."""
    id: str
    label: str
    value: str
    price: Optional[float] = None
    disabled: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {'id': self.id, 'label': self.label, 'value': self.value}
        if self.price is not None:
            data['price'] = self.price
        if self.disabled:
            data['disabled'] = True
        if self.metadata:
            data['metadata'] = dict(self.metadata)
        return data


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'valid': self.valid, 'errors': list(self.errors), 'warnings': list(self.warnings)}


class ProductProvider(ABC):
    """Capability surface every fulfillment provider implements."""

    #: Provider identifier, recorded on generated specs
    type: str = 'abstract'
    #: Display name
    name: str = 'Abstract Provider'

    @abstractmethod
    def get_product_types(self) -> List[ProductOption]:
        """Available product types (greeting-card, postcard, ...)."""

    @abstractmethod
    def get_orientations(self, product_type: str) -> List[ProductOption]:
        """Available orientations for a product type."""

    @abstractmethod
    def get_sizes(self, product_type: str, orientation: str) -> List[ProductOption]:
        """Sizes for a product type and orientation; metadata carries ``mm: {w, h}``."""

    @abstractmethod
    def get_paper_types(self, product_type: str) -> List[ProductOption]:
        pass

    @abstractmethod
    def get_fold_formats(self, product_type: str) -> List[ProductOption]:
        pass

    @abstractmethod
    def get_foil_options(self, product_type: str) -> List[ProductOption]:
        pass

    @abstractmethod
    def get_envelope_options(self, product_type: str) -> List[ProductOption]:
        pass

    @abstractmethod
    def generate_print_spec(self, selection: Selection) -> PrintSpec:
        """
        Derive the print specification for a complete selection.

        Raises SelectionError when required axes are missing and
        SizeNotFoundError when the size is not offered; never returns a
        partially populated spec.
        """

    @abstractmethod
    def get_price(self, selection: PartialSelection) -> Optional[float]:
        """Price for a partial or complete selection, or None if unavailable."""

    @abstractmethod
    def validate_selection(self, selection: PartialSelection) -> ValidationResult:
        """Required-axis errors and non-blocking cross-option warnings."""

"""
Option loading with request sequencing.

Provider queries depend on earlier selection axes (orientation -> sizes ->
papers/folds/foils/envelopes -> price). Each request carries a token; a
response whose token was superseded by a newer request is discarded on
arrival instead of being applied.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from .models import Selection
from .provider import ProductProvider, ProductOption, ValidationResult, PartialSelection


@dataclass(frozen=True)
class RequestToken:
    scope: str
    sequence: int


class RequestTracker:
    """Issues monotonically increasing tokens per scope."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sequence = 0
        self._current: Dict[str, int] = {}

    def issue(self, scope: str = 'options') -> RequestToken:
        with self._lock:
            self._sequence += 1
            self._current[scope] = self._sequence
            return RequestToken(scope, self._sequence)

    def is_current(self, token: RequestToken) -> bool:
        with self._lock:
            return self._current.get(token.scope) == token.sequence

    def invalidate(self, scope: str = 'options') -> None:
        """Make every outstanding token for ``scope`` stale."""
        with self._lock:
            self._current.pop(scope, None)


@dataclass
class OptionSnapshot:
    """All option lists and derived values for one selection."""
    selection: Selection
    orientations: List[ProductOption] = field(default_factory=list)
    sizes: List[ProductOption] = field(default_factory=list)
    papers: List[ProductOption] = field(default_factory=list)
    folds: List[ProductOption] = field(default_factory=list)
    foils: List[ProductOption] = field(default_factory=list)
    envelopes: List[ProductOption] = field(default_factory=list)
    price: Optional[float] = None
    validation: Optional[ValidationResult] = None
    token: Optional[RequestToken] = None

    def to_dict(self) -> Dict:
        return {
            'selection': self.selection.to_dict(),
            'orientations': [o.to_dict() for o in self.orientations],
            'sizes': [o.to_dict() for o in self.sizes],
            'papers': [o.to_dict() for o in self.papers],
            'folds': [o.to_dict() for o in self.folds],
            'foils': [o.to_dict() for o in self.foils],
            'envelopes': [o.to_dict() for o in self.envelopes],
            'price': self.price,
            'validation': self.validation.to_dict() if self.validation else None,
        }


class OptionLoader:
    """Loads option snapshots from a provider, applying only the newest one."""

    SCOPE = 'options'

    def __init__(self, provider: ProductProvider, executor: ThreadPoolExecutor = None):
        self.provider = provider
        self.tracker = RequestTracker()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix='options')
        self._lock = threading.Lock()
        self.current: Optional[OptionSnapshot] = None

    def load(self, selection: PartialSelection, token: RequestToken = None) -> OptionSnapshot:
        """Query the provider synchronously, in dependency order."""
        selection = Selection.from_dict(selection)
        snapshot = OptionSnapshot(selection=selection, token=token)
        product_type = selection.product_type

        if product_type:
            snapshot.orientations = self.provider.get_orientations(product_type)
            if selection.orientation:
                snapshot.sizes = self.provider.get_sizes(product_type, selection.orientation)
            snapshot.papers = self.provider.get_paper_types(product_type)
            snapshot.folds = self.provider.get_fold_formats(product_type)
            snapshot.foils = self.provider.get_foil_options(product_type)
            snapshot.envelopes = self.provider.get_envelope_options(product_type)

        snapshot.price = self.provider.get_price(selection)
        snapshot.validation = self.provider.validate_selection(selection)
        return snapshot

    def request(self, selection: PartialSelection) -> Future:
        """
        Load options in the background.

        The returned future resolves to the snapshot; it is applied to
        ``current`` only if no newer request was issued meanwhile.
        """
        token = self.tracker.issue(self.SCOPE)
        logger.debug(f"Option request {token.sequence} issued")

        def _run() -> OptionSnapshot:
            snapshot = self.load(selection, token)
            self.accept(snapshot)
            return snapshot

        return self._executor.submit(_run)

    def accept(self, snapshot: OptionSnapshot) -> bool:
        """Apply a snapshot if its token is still current. Returns whether it was applied."""
        with self._lock:
            if snapshot.token is not None and not self.tracker.is_current(snapshot.token):
                logger.warning(f"Discarding stale option response {snapshot.token.sequence}")
                return False
            self.current = snapshot
            return True

    def invalidate(self) -> None:
        """Discard any in-flight response, e.g. when the product type changes."""
        self.tracker.invalidate(self.SCOPE)

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

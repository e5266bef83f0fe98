"""
Unit tests for option loading and stale-response handling.
"""

import pytest
from printspace.options import OptionLoader, RequestTracker


@pytest.fixture
def loader(provider):
    loader = OptionLoader(provider)
    yield loader
    loader.shutdown()


class TestRequestTracker:
    """Test request tokens used to spot stale responses."""

    def test_newer_token_supersedes(self):
        """Test that issuing a token makes the previous one stale."""
        tracker = RequestTracker()
        first = tracker.issue()
        second = tracker.issue()

        assert not tracker.is_current(first)
        assert tracker.is_current(second)

    def test_scopes_are_independent(self):
        """Test that tokens in different scopes do not interfere."""
        tracker = RequestTracker()
        options = tracker.issue('options')
        price = tracker.issue('price')

        assert tracker.is_current(options)
        assert tracker.is_current(price)

    def test_invalidate(self):
        """Test that invalidation makes the outstanding token stale."""
        tracker = RequestTracker()
        token = tracker.issue()
        tracker.invalidate()

        assert not tracker.is_current(token)


class TestOptionLoader:
    """Test dependency-ordered option loading."""

    def test_sizes_wait_for_orientation(self, loader):
        """Test that sizes are not loaded before an orientation is chosen."""
        snapshot = loader.load({'productType': 'greeting-card'})

        assert snapshot.sizes == []
        assert len(snapshot.orientations) == 2
        assert len(snapshot.folds) == 2
        assert snapshot.price is None
        assert not snapshot.validation.valid

    def test_complete_selection(self, loader):
        """Test the snapshot for a complete selection."""
        snapshot = loader.load({'productType': 'postcard', 'orientation': 'portrait', 'size': '4x6'})

        assert [s.id for s in snapshot.sizes] == ['4x6', '5x7']
        assert snapshot.folds == []
        assert snapshot.price == 2.49
        assert snapshot.validation.valid

    def test_no_product_type(self, loader):
        """Test the snapshot for an empty selection."""
        snapshot = loader.load({})

        assert snapshot.orientations == []
        assert snapshot.to_dict()['price'] is None

    def test_stale_response_is_discarded(self, loader):
        """Test that a response to an older request is not accepted."""
        selection = {'productType': 'postcard', 'orientation': 'portrait'}
        old_token = loader.tracker.issue(loader.SCOPE)
        new_token = loader.tracker.issue(loader.SCOPE)

        newer = loader.load(selection, new_token)
        assert loader.accept(newer)

        older = loader.load(selection, old_token)
        assert not loader.accept(older)
        assert loader.current is newer

    def test_invalidate_drops_in_flight(self, loader):
        """Test that invalidation drops a response still in flight."""
        token = loader.tracker.issue(loader.SCOPE)
        loader.invalidate()

        assert not loader.accept(loader.load({'productType': 'postcard'}, token))
        assert loader.current is None

    def test_background_request(self, loader):
        """Test loading options on the worker pool."""
        future = loader.request({'productType': 'print', 'orientation': 'portrait'})

        snapshot = future.result(timeout=10)

        assert [s.id for s in snapshot.sizes] == ['8x10', '11x14']
        assert loader.current is snapshot

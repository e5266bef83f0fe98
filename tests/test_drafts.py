"""
Unit tests for draft persistence.
"""

import json

import pytest
from printspace.drafts import (
    DraftStore, Draft, PersistedAsset, InMemoryBlobStore, FileBlobStore, DRAFT_VERSION
)
from printspace.errors import DraftError
from printspace.models import DesignState, Selection


def make_asset(asset_id, length=40):
    return PersistedAsset(asset_id, f'{asset_id}.png', 'image/png', 10, 10,
                          'data:image/png;base64,' + 'A' * length)


@pytest.fixture
def draft(editor):
    editor.add_text('Saved text')
    editor.add_image('photo.jpg', (4000, 3000))
    return Draft(
        selection=Selection.from_dict({'productType': 'postcard', 'orientation': 'portrait', 'size': '4x6'}),
        design=DesignState({'front': editor.design}),
        print_spec_id='mock-postcard-4x6-portrait-flat',
        active_side='front',
    )


class TestDraftStore:
    """Test saving and loading drafts."""

    def test_round_trip(self, draft):
        """Test that a saved draft loads back unchanged."""
        store = DraftStore(InMemoryBlobStore())

        store.save('card', draft)
        loaded = store.load('card')

        assert loaded.selection == draft.selection
        assert loaded.design.to_dict() == draft.design.to_dict()
        assert loaded.active_side == 'front'
        assert loaded.version == DRAFT_VERSION
        assert loaded.updated_at > 0

    def test_missing_key(self):
        """Test that an unknown key loads nothing."""
        assert DraftStore(InMemoryBlobStore()).load('nothing') is None

    def test_asset_cap_skips_what_does_not_fit(self, draft):
        """Test that assets over the cap are skipped and the draft is flagged."""
        store = DraftStore(InMemoryBlobStore(), asset_size_cap=100)
        draft.assets = [make_asset('first'), make_asset('second'), make_asset('small', 0)]

        stored = store.save('card', draft)

        assert [a.id for a in stored.assets] == ['first', 'small']
        assert stored.assets_partial
        assert store.load('card').assets_partial

    def test_no_cap_keeps_everything(self, draft):
        """Test that all assets are kept without a cap."""
        store = DraftStore(InMemoryBlobStore())
        draft.assets = [make_asset('a', 1000), make_asset('b', 1000)]

        stored = store.save('card', draft)

        assert len(stored.assets) == 2
        assert not stored.assets_partial

    def test_corrupt_payload(self):
        """Test that an unreadable draft raises DraftError."""
        blobs = InMemoryBlobStore()
        blobs.put('card', b'{not json')

        with pytest.raises(DraftError):
            DraftStore(blobs).load('card')

    def test_newer_version_rejected(self, draft):
        """Test that drafts from a newer format version are rejected."""
        blobs = InMemoryBlobStore()
        data = draft.to_dict()
        data['version'] = DRAFT_VERSION + 1
        blobs.put('card', json.dumps(data).encode('utf-8'))

        with pytest.raises(DraftError):
            DraftStore(blobs).load('card')

    def test_delete(self, draft):
        """Test listing and deleting drafts."""
        store = DraftStore(InMemoryBlobStore())
        store.save('card', draft)

        assert store.keys() == ['card']
        assert store.delete('card')
        assert not store.delete('card')


class TestFileBlobStore:
    """Test the file-backed blob store."""

    def test_save_and_load(self, tmp_path, draft):
        """Test that drafts are written as JSON files."""
        store = DraftStore(FileBlobStore(tmp_path / 'drafts'))

        store.save('card-1', draft)

        assert (tmp_path / 'drafts' / 'card-1.draft.json').exists()
        assert store.keys() == ['card-1']
        assert store.load('card-1').print_spec_id == draft.print_spec_id

    def test_keys_are_sanitized(self, tmp_path):
        """Test that keys cannot escape the draft folder."""
        blobs = FileBlobStore(tmp_path)

        blobs.put('../escape', b'{}')

        assert (tmp_path / '.._escape.draft.json').exists()
        assert not (tmp_path.parent / 'escape.draft.json').exists()

    def test_missing_and_delete(self, tmp_path):
        """Test reading and deleting missing blobs."""
        blobs = FileBlobStore(tmp_path)

        assert blobs.get('nope') is None
        assert not blobs.delete('nope')
        blobs.put('yes', b'1')
        assert blobs.delete('yes')

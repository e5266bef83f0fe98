"""
Draft persistence for in-progress designs.

The engine emits a serializable draft (selection, design state, inline
assets) as an opaque blob and has no opinion on where it is stored. The
asset size cap is a caller-supplied value: assets beyond it are left out
and the draft is flagged ``assets_partial``.
"""

import json
import re
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from .errors import DraftError
from .models import Selection, DesignState

DRAFT_VERSION = 1


class BlobStore(ABC):
    """Key/value store for opaque byte blobs."""

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        pass


class InMemoryBlobStore(BlobStore):

    def __init__(self):
        self._data: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, key: str, data: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(data)

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


class FileBlobStore(BlobStore):
    """One file per key inside ``directory``."""

    SUFFIX = '.draft.json'

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        safe_key = re.sub(r'[^\w.-]', '_', key)
        return self.directory / f"{safe_key}{self.SUFFIX}"

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix('.tmp')
        tmp_path.write_bytes(data)
        tmp_path.replace(path)

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        path.unlink()
        return True

    def keys(self) -> List[str]:
        return sorted(p.name[:-len(self.SUFFIX)] for p in self.directory.glob(f"*{self.SUFFIX}"))


@dataclass
class PersistedAsset:
    """An image embedded in a draft as a data URL."""
    id: str
    name: str
    mime_type: str
    width: int
    height: int
    data_url: str

    @property
    def bytes_approx(self) -> int:
        return len(self.data_url)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'mimeType': self.mime_type,
            'width': self.width,
            'height': self.height,
            'dataUrl': self.data_url,
            'bytesApprox': self.bytes_approx,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'PersistedAsset':
        return cls(data['id'], data.get('name', data['id']), data.get('mimeType', 'image/png'),
                   data['width'], data['height'], data['dataUrl'])


@dataclass
class Draft:
    selection: Selection
    design: DesignState
    print_spec_id: Optional[str] = None
    active_side: Optional[str] = None
    assets: List[PersistedAsset] = field(default_factory=list)
    assets_partial: bool = False
    updated_at: float = 0.0
    version: int = DRAFT_VERSION

    def to_dict(self) -> Dict:
        return {
            'version': self.version,
            'selection': self.selection.to_dict(),
            'printSpecId': self.print_spec_id,
            'activeSideId': self.active_side,
            'design': self.design.to_dict(),
            'persistedAssets': [a.to_dict() for a in self.assets],
            'assetsPartial': self.assets_partial,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Draft':
        return cls(
            selection=Selection.from_dict(data.get('selection')),
            design=DesignState.from_dict(data.get('design')),
            print_spec_id=data.get('printSpecId'),
            active_side=data.get('activeSideId'),
            assets=[PersistedAsset.from_dict(a) for a in data.get('persistedAssets', [])],
            assets_partial=data.get('assetsPartial', False),
            updated_at=data.get('updatedAt', 0.0),
            version=data.get('version', DRAFT_VERSION),
        )


class DraftStore:
    """Saves and restores drafts through a BlobStore."""

    def __init__(self, store: BlobStore, asset_size_cap: Optional[int] = None):
        self.store = store
        self.asset_size_cap = asset_size_cap

    def _apply_cap(self, assets: List[PersistedAsset]):
        if self.asset_size_cap is None:
            return list(assets), False
        kept = []
        total = 0
        partial = False
        for asset in assets:
            if total + asset.bytes_approx > self.asset_size_cap:
                partial = True
                logger.warning(f"Draft asset {asset.id} ({asset.bytes_approx} bytes) exceeds the size cap, skipped")
                continue
            kept.append(asset)
            total += asset.bytes_approx
        return kept, partial

    def save(self, key: str, draft: Draft) -> Draft:
        """Persist a draft; returns what was actually stored."""
        assets, partial = self._apply_cap(draft.assets)
        stored = Draft(
            selection=draft.selection,
            design=draft.design,
            print_spec_id=draft.print_spec_id,
            active_side=draft.active_side,
            assets=assets,
            assets_partial=draft.assets_partial or partial,
            updated_at=time.time(),
            version=DRAFT_VERSION,
        )
        payload = json.dumps(stored.to_dict(), ensure_ascii=False).encode('utf-8')
        self.store.put(key, payload)
        logger.info(f"Draft saved: {key} ({len(payload)} bytes, {len(assets)} assets)")
        return stored

    def load(self, key: str) -> Optional[Draft]:
        payload = self.store.get(key)
        if payload is None:
            return None
        try:
            data = json.loads(payload.decode('utf-8'))
            draft = Draft.from_dict(data)
        except (ValueError, KeyError, TypeError) as e:
            raise DraftError(
                f"Draft {key} could not be decoded: {e}",
                details={'key': key},
                suggestions=["Discard the draft and start over"]
            ) from e
        if draft.version > DRAFT_VERSION:
            raise DraftError(f"Draft {key} has unsupported version {draft.version}",
                             details={'key': key, 'version': draft.version})
        logger.debug(f"Draft loaded: {key}")
        return draft

    def delete(self, key: str) -> bool:
        return self.store.delete(key)

    def keys(self) -> List[str]:
        return self.store.keys()

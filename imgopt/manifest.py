"""
Manifest - Persistent record of originals and their generated variants.
"""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from .errors import ManifestCorrupt
from .variant import ManifestEntry

logger = logging.getLogger(__name__)


class Manifest:
    """
    In-memory table of originals and their variants, persisted as JSON.

    All access goes through a single lock scoped to the whole manifest,
    and entries are only ever replaced whole, so a reader never sees a
    half-updated entry.

    Attributes:
        generated_at: ISO timestamp of the last generation run
    """

    def __init__(
        self,
        generated_at: Optional[str] = None,
        images: Optional[Dict[str, ManifestEntry]] = None
    ):
        self.generated_at = generated_at or datetime.now().isoformat()
        self._images: Dict[str, ManifestEntry] = dict(images or {})
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._images

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths)

    @property
    def paths(self) -> List[str]:
        """Original paths, sorted."""
        with self._lock:
            return sorted(self._images)

    @property
    def images(self) -> Dict[str, ManifestEntry]:
        """Snapshot copy of the path -> entry mapping."""
        with self._lock:
            return dict(self._images)

    @property
    def total_variants(self) -> int:
        with self._lock:
            return sum(len(e.variants) for e in self._images.values())

    @property
    def total_bytes(self) -> int:
        with self._lock:
            return sum(e.total_bytes for e in self._images.values())

    def get_entry(self, path: str) -> Optional[ManifestEntry]:
        with self._lock:
            return self._images.get(path)

    def upsert_entry(self, path: str, entry: ManifestEntry) -> None:
        """Insert or replace the entry for an original. Variant lists are never merged."""
        with self._lock:
            self._images[path] = entry

    def remove_entry(self, path: str) -> Optional[ManifestEntry]:
        with self._lock:
            return self._images.pop(path, None)

    def clear(self) -> None:
        with self._lock:
            self._images.clear()

    def touch(self) -> None:
        """Stamp the generation time to now."""
        with self._lock:
            self.generated_at = datetime.now().isoformat()

    def replace_with(self, other: 'Manifest') -> None:
        """Adopt another manifest's contents (used when loading from disk)."""
        generated_at, images = other.generated_at, other.images
        with self._lock:
            self.generated_at = generated_at
            self._images = images

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        with self._lock:
            return {
                'generatedAt': self.generated_at,
                'images': {
                    path: self._images[path].to_dict()
                    for path in sorted(self._images)
                },
            }

    @classmethod
    def from_dict(cls, data: dict) -> 'Manifest':
        """
        Create from dictionary.

        Raises:
            ManifestCorrupt: if required fields are missing or malformed
        """
        try:
            images = {
                path: ManifestEntry.from_dict(entry)
                for path, entry in data['images'].items()
            }
            return cls(generated_at=data.get('generatedAt'), images=images)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ManifestCorrupt(f"Malformed manifest: {e}") from e

    def save(self, filepath: Union[str, Path]) -> None:
        """Save manifest to JSON file via a temp file and rename."""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.to_dict()

        fd, tmp_path = tempfile.mkstemp(prefix='.manifest.', suffix='.tmp', dir=path.parent)
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.debug(f"Manifest saved: {path} ({len(data['images'])} images)")

    @classmethod
    def load(cls, filepath: Union[str, Path]) -> Optional['Manifest']:
        """
        Load manifest from JSON file.

        Returns:
            The manifest, or None if the file is absent or corrupt
        """
        path = Path(filepath)
        if not path.is_file():
            return None

        try:
            with open(path, 'r') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ManifestCorrupt("Manifest root is not an object")
            return cls.from_dict(data)
        except (OSError, json.JSONDecodeError, ManifestCorrupt) as e:
            logger.warning(f"Could not load manifest {path}: {e}")
            return None

"""
StalenessDetector - Decides whether an original needs regeneration.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .manifest import Manifest


@dataclass(frozen=True)
class Staleness:
    """Result of a staleness check, with the reason for logging."""
    is_stale: bool
    reason: str

    def __bool__(self) -> bool:
        return self.is_stale


FRESH = Staleness(False, 'fresh')


class StalenessDetector:
    """
    Compares manifest entries against the files on disk.

    Only the first variant's modification time is compared with the
    source; a forced rebuild recovers from corruption of later variants.
    """

    def __init__(
        self,
        manifest: Manifest,
        input_root: Path,
        output_root: Path,
        logger: Optional[logging.Logger] = None
    ):
        self.manifest = manifest
        self.input_root = Path(input_root)
        self.output_root = Path(output_root)
        self.logger = logger or logging.getLogger(__name__)

    def check(self, relative_path: str) -> Staleness:
        """Return the staleness of one original."""
        entry = self.manifest.get_entry(relative_path)

        if entry is None:
            return Staleness(True, 'no-entry')
        if not entry.variants:
            return Staleness(True, 'no-variants')

        for variant in entry.variants:
            if not (self.output_root / variant.path).is_file():
                self.logger.debug(f"Missing variant: {variant.path}")
                return Staleness(True, 'missing-variant')

        try:
            source_mtime = (self.input_root / relative_path).stat().st_mtime
            output_mtime = (self.output_root / entry.variants[0].path).stat().st_mtime
        except OSError:
            return Staleness(True, 'stat-failed')

        if source_mtime > output_mtime:
            self.logger.debug(f"Source modified: {relative_path}")
            return Staleness(True, 'source-modified')

        return FRESH

    def needs_processing(self, relative_path: str) -> bool:
        return self.check(relative_path).is_stale

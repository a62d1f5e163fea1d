"""
Pipeline - Owns the manifest and coordinates batch, debounced and on-the-fly work.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from .codec import PillowCodec
from .config import OptimizerConfig
from .debouncer import DEBOUNCE_SECONDS, ChangeDebouncer
from .errors import ConfigError, InputDirectoryMissing
from .files import ensure_dir, find_images, remove_tree
from .generation_progress import GenerationProgress
from .generation_stats import GenerationStats
from .generator import ImageResult, VariantGenerator
from .manifest import Manifest
from .paths import output_filename, scaled_height
from .resolver import OnTheFlyResolver, Resolution
from .responsive import OptimizedImage
from .staleness import StalenessDetector
from .variant import ManifestEntry, Variant


class Pipeline:
    """
    State and operations of one running optimizer.

    Create one per process at startup and close() it at shutdown. All
    entry points (batch, file-change, request) share its manifest.
    """

    def __init__(
        self,
        config: OptimizerConfig,
        codec: Optional[PillowCodec] = None,
        timer_factory=threading.Timer,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize pipeline.

        Args:
            config: Optimizer configuration
            codec: Codec to use (default: PillowCodec)
            timer_factory: Timer constructor for the change debouncer
            debounce_seconds: Quiet period before changed files are processed
            logger: Optional logger instance

        Raises:
            ConfigError: if the configuration is invalid
        """
        errors = config.validate()
        if errors:
            raise ConfigError(errors)

        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        if config.verbose:
            self.logger.setLevel(logging.DEBUG)

        self.codec = codec or PillowCodec(logger=self.logger)
        self.manifest = Manifest()

        self._batch_guard = threading.Lock()
        self._path_locks: Dict[str, threading.Lock] = {}
        self._path_locks_guard = threading.Lock()

        self.generator = VariantGenerator(
            config, self.manifest, self.codec,
            path_lock=self.path_lock, logger=self.logger
        )
        self.detector = StalenessDetector(
            self.manifest, config.input_path, config.output_path, logger=self.logger
        )
        self.resolver = OnTheFlyResolver(
            config, self.codec, path_lock=self.path_lock, logger=self.logger
        )
        self.debouncer = ChangeDebouncer(
            self.process_image, self.persist,
            delay=debounce_seconds, timer_factory=timer_factory, logger=self.logger
        )

    @property
    def is_processing(self) -> bool:
        return self._batch_guard.locked()

    @contextmanager
    def path_lock(self, relative_path: str) -> Iterator[None]:
        """Serialize writes to one original's outputs and manifest entry."""
        with self._path_locks_guard:
            lock = self._path_locks.setdefault(relative_path, threading.Lock())
        with lock:
            yield

    def load_manifest(self) -> bool:
        """
        Load the persisted manifest for incremental processing.

        Returns:
            True if a manifest was loaded; False means a cold start
        """
        loaded = Manifest.load(self.config.manifest_path)
        if loaded is None:
            return False
        self.manifest.replace_with(loaded)
        self.logger.debug(f"Loaded existing manifest with {len(self.manifest)} images")
        return True

    def persist(self) -> bool:
        """
        Stamp and save the manifest if manifest generation is enabled.

        Returns:
            True if the manifest was written
        """
        if not self.config.generate_manifest:
            return False
        self.manifest.touch()
        self.manifest.save(self.config.manifest_path)
        self.logger.info(f"Manifest written to {self.config.output}/manifest.json")
        return True

    def discover(self) -> List[str]:
        """
        List every supported original under the input root.

        Raises:
            InputDirectoryMissing: if the input root does not exist
        """
        input_path = self.config.input_path
        if not input_path.is_dir():
            raise InputDirectoryMissing(f"Input directory does not exist: {self.config.input}")
        return find_images(input_path)

    def process_image(self, relative_path: str) -> ImageResult:
        """Regenerate all variants of one original."""
        return self.generator.process_image(relative_path)

    def process_all(
        self,
        force_all: bool = False,
        progress: Optional[GenerationProgress] = None
    ) -> Optional[GenerationStats]:
        """
        Process every stale original (or every original when forced).

        At most one call runs at a time; a concurrent call returns None
        immediately without doing anything.

        Args:
            force_all: Regenerate every original regardless of staleness
            progress: Optional progress tracker

        Returns:
            GenerationStats, or None if another run was already in progress

        Raises:
            InputDirectoryMissing: if the input root does not exist
        """
        if not self._batch_guard.acquire(blocking=False):
            self.logger.info("Already processing, skipping...")
            return None

        try:
            return self._process_all(force_all, progress)
        finally:
            self._batch_guard.release()

    def _process_all(
        self,
        force_all: bool,
        progress: Optional[GenerationProgress]
    ) -> GenerationStats:
        start_time = time.time()
        image_files = self.discover()
        stats = GenerationStats(discovered=len(image_files), start_time=start_time)

        if not image_files:
            self.logger.info(f"No images found in {self.config.input}")
            return stats

        ensure_dir(self.config.output_path)

        if force_all:
            files_to_process = image_files
            self.logger.info(f"Force processing {len(image_files)} images...")
        else:
            files_to_process = []
            for relative_path in image_files:
                staleness = self.detector.check(relative_path)
                if staleness:
                    self.logger.debug(f"Stale ({staleness.reason}): {relative_path}")
                    files_to_process.append(relative_path)

            stats.cached = len(image_files) - len(files_to_process)
            if not files_to_process:
                self.logger.info(f"All {len(image_files)} images are up to date")
                return stats

            self.logger.info(
                f"Processing {len(files_to_process)}/{len(image_files)} images "
                f"({stats.cached} cached)..."
            )

        stats.total_to_process = len(files_to_process)
        for relative_path in files_to_process:
            result = self.process_image(relative_path)
            stats.record(result)
            if progress:
                progress.on_image_processed(result)
                progress.on_progress_update(stats)

        self.persist()

        self.logger.info(
            f"Completed in {stats.elapsed_seconds:.2f}s: {stats.variants_generated} generated, "
            f"{stats.variants_skipped} skipped, {stats.variants_failed} failed, "
            f"{stats.errors} errors"
        )
        return stats

    def on_file_change(
        self,
        event_kind: str,
        relative_path: str,
        absolute_path: Optional[str] = None
    ) -> bool:
        """Feed a file-change notification from a watcher into the debouncer."""
        if not self.config.watch:
            return False
        return self.debouncer.notify(event_kind, relative_path, absolute_path)

    def resolve(self, relative_path: str, query=None, cancel_event=None) -> Resolution:
        """Serve a request under the public path."""
        return self.resolver.resolve(relative_path, query, cancel_event=cancel_event)

    def startup(self) -> Optional[GenerationStats]:
        """Load the cached manifest, then run an incremental pass."""
        self.logger.info("Image optimizer initialized")
        self.logger.info(f"   Input:   {self.config.input}")
        self.logger.info(f"   Output:  {self.config.output}")
        self.logger.info(f"   Formats: {', '.join(self.config.formats)}")
        self.logger.info(f"   Sizes:   {', '.join(str(s) for s in self.config.sizes)}w")

        if self.load_manifest():
            self.logger.info("Loaded cached manifest, checking for changes...")
        return self.process_all(force_all=False)

    def clean(self) -> bool:
        """Delete the output tree and clear the in-memory manifest."""
        self.logger.info(f"Cleaning {self.config.output_path}...")
        removed = remove_tree(self.config.output_path)
        self.manifest.clear()
        self.logger.info("Output directory cleaned")
        return removed

    def regenerate_manifest(self) -> bool:
        """Re-stamp and write the manifest without encoding any image."""
        self.logger.info("Regenerating manifest...")
        written = self.persist()
        if written:
            self.logger.info("Manifest regenerated")
        return written

    def image(self, relative_path: str) -> OptimizedImage:
        """
        Responsive view of an original.

        Uses the manifest entry when there is one; otherwise probes the
        original and lists the variants the current configuration would
        produce.

        Raises:
            SourceUnreadable: if there is no entry and the original cannot be read
        """
        entry = self.manifest.get_entry(relative_path)
        if entry is None:
            entry = self.expected_entry(relative_path)
        return OptimizedImage(
            entry=entry,
            public_path=self.config.public_path,
            default_format=self.config.default_format.value,
        )

    def expected_entry(self, relative_path: str) -> ManifestEntry:
        """Entry the current configuration would generate for an original."""
        width, height = self.codec.probe(self.config.input_path / relative_path)
        variants = [
            Variant(
                format=image_format.value,
                size=size,
                path=output_filename(relative_path, size, image_format),
                width=size,
                height=scaled_height(size, width, height),
            )
            for size in self.config.sizes if size <= width
            for image_format in self.config.image_formats
        ]
        return ManifestEntry(original=relative_path, width=width, height=height, variants=variants)

    def close(self) -> None:
        self.debouncer.close()

"""
VariantGenerator - Produces every configured variant of one original.
"""

import contextlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, ContextManager, List, Optional

from .codec import PillowCodec
from .config import OptimizerConfig
from .errors import EncodeFailed, SourceUnreadable, UnsupportedSource
from .files import copy_file, file_exists, write_atomic
from .manifest import Manifest
from .paths import output_filename, scaled_height
from .variant import ManifestEntry, Variant

GENERATED = 'generated'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass(frozen=True)
class VariantOutcome:
    """What happened to one (width, format) pair."""
    width: int
    format: str
    path: str
    status: str
    bytes: int = 0
    error: Optional[str] = None


@dataclass
class ImageResult:
    """
    Result of processing one original.

    Attributes:
        relative_path: Original path relative to the input root
        entry: Manifest entry written for the original (None if unreadable)
        outcomes: Per-variant outcomes in configured order
        error: Set when the original could not be processed at all
        unsupported: The codec cannot decode this kind of original (not counted as an error)
    """
    relative_path: str
    entry: Optional[ManifestEntry] = None
    outcomes: List[VariantOutcome] = field(default_factory=list)
    error: Optional[str] = None
    unsupported: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def generated(self) -> List[VariantOutcome]:
        return [o for o in self.outcomes if o.status == GENERATED]

    @property
    def skipped(self) -> List[VariantOutcome]:
        return [o for o in self.outcomes if o.status == SKIPPED]

    @property
    def failed(self) -> List[VariantOutcome]:
        return [o for o in self.outcomes if o.status == FAILED]


class VariantGenerator:
    """
    Generates the size x format variants for a single original and
    replaces its manifest entry.
    """

    def __init__(
        self,
        config: OptimizerConfig,
        manifest: Manifest,
        codec: Optional[PillowCodec] = None,
        path_lock: Optional[Callable[[str], ContextManager]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize generator.

        Args:
            config: Active configuration
            manifest: Manifest to update
            codec: Codec used to probe and encode (default: PillowCodec)
            path_lock: Callable returning a per-original lock context
            logger: Optional logger instance
        """
        self.config = config
        self.manifest = manifest
        self.logger = logger or logging.getLogger(__name__)
        self.codec = codec or PillowCodec(logger=self.logger)
        self.path_lock = path_lock or (lambda path: contextlib.nullcontext())

    def process_image(self, relative_path: str) -> ImageResult:
        """
        Generate all variants of one original.

        Never raises for per-image problems; they are reported in the result.
        """
        with self.path_lock(relative_path):
            try:
                return self._process(relative_path)
            except Exception as e:
                self.logger.exception(f"Failed to process {relative_path}: {e}")
                return ImageResult(relative_path, error=str(e))

    def _process(self, relative_path: str) -> ImageResult:
        input_path = self.config.input_path / relative_path
        output_root = self.config.output_path

        try:
            original_width, original_height = self.codec.probe(input_path)
        except UnsupportedSource as e:
            self.logger.warning(f"Skipping {relative_path}: {e}")
            return ImageResult(relative_path, error=str(e), unsupported=True)
        except SourceUnreadable as e:
            self.logger.error(f"Could not read metadata for {relative_path}: {e}")
            return ImageResult(relative_path, error=str(e))

        variants: List[Variant] = []
        outcomes: List[VariantOutcome] = []

        for target_width in self.config.sizes:
            if target_width > original_width:
                self.logger.debug(
                    f"Skipping {target_width}w for {relative_path} (original is {original_width}w)"
                )
                continue

            target_height = scaled_height(target_width, original_width, original_height)

            for image_format in self.config.image_formats:
                variant_path = output_filename(relative_path, target_width, image_format)
                outcome = self._generate_variant(
                    input_path, output_root / variant_path, variant_path,
                    target_width, target_height, image_format
                )
                outcomes.append(outcome)
                if outcome.status != FAILED:
                    variants.append(Variant(
                        format=image_format.value,
                        size=target_width,
                        path=variant_path,
                        width=target_width,
                        height=target_height,
                        bytes=outcome.bytes,
                    ))

        if self.config.keep_original:
            copy_file(input_path, output_root / relative_path)

        entry = ManifestEntry(
            original=relative_path,
            width=original_width,
            height=original_height,
            variants=variants,
        )
        self.manifest.upsert_entry(relative_path, entry)

        if outcomes and len(variants) == 0:
            self.logger.error(f"All variants failed for {relative_path}")
        self.logger.info(f"Processed: {relative_path} → {len(variants)} variants")

        return ImageResult(relative_path, entry=entry, outcomes=outcomes)

    def _generate_variant(
        self,
        input_path: Path,
        output_path: Path,
        variant_path: str,
        width: int,
        height: int,
        image_format
    ) -> VariantOutcome:
        """Encode and write a single variant, or keep an existing one."""
        fmt = image_format.value

        if self.config.skip_existing and file_exists(output_path):
            self.logger.debug(f"Skipping existing: {variant_path}")
            return VariantOutcome(width, fmt, variant_path, SKIPPED, bytes=output_path.stat().st_size)

        try:
            data = self.codec.transform(input_path, width, height, image_format, self.config.quality)
            write_atomic(output_path, data)
        except (EncodeFailed, SourceUnreadable, OSError) as e:
            self.logger.error(f"Failed to generate {variant_path}: {e}")
            return VariantOutcome(width, fmt, variant_path, FAILED, error=str(e))

        self.logger.debug(f"Generated: {variant_path} ({len(data) / 1024:.1f}KB)")
        return VariantOutcome(width, fmt, variant_path, GENERATED, bytes=len(data))

"""
GenerationStats - Statistics for a generation run.
"""

import time
from dataclasses import dataclass, field
from typing import List


@dataclass
class GenerationStats:
    """
    Statistics for a generation run.

    Attributes:
        discovered: Originals found in the input tree
        total_to_process: Originals selected for processing
        processed: Originals processed without a fatal error
        cached: Originals skipped because they were up to date
        errors: Originals that could not be processed at all
        unsupported: Originals the codec cannot decode (e.g. SVG), not errors
        variants_generated: Variants encoded and written
        variants_skipped: Variants kept because their file already existed
        variants_failed: Variants that failed to encode or write
        bytes_generated: Total bytes of variants written
        start_time: Start timestamp
        error_details: List of error messages
    """
    discovered: int = 0
    total_to_process: int = 0
    processed: int = 0
    cached: int = 0
    errors: int = 0
    unsupported: int = 0
    variants_generated: int = 0
    variants_skipped: int = 0
    variants_failed: int = 0
    bytes_generated: int = 0
    start_time: float = field(default_factory=time.time)
    error_details: List[str] = field(default_factory=list)

    def record(self, result) -> None:
        """Fold one ImageResult into the totals."""
        if result.unsupported:
            self.unsupported += 1
            return
        if result.error:
            self.errors += 1
            self.error_details.append(f"{result.relative_path}: {result.error}")
        else:
            self.processed += 1

        for outcome in result.outcomes:
            if outcome.status == 'generated':
                self.variants_generated += 1
                self.bytes_generated += outcome.bytes
            elif outcome.status == 'skipped':
                self.variants_skipped += 1
            else:
                self.variants_failed += 1
                self.error_details.append(
                    f"{result.relative_path} [{outcome.width}w {outcome.format}]: {outcome.error}"
                )

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return time.time() - self.start_time

    @property
    def rate_per_second(self) -> float:
        """Processing rate in originals per second."""
        if self.elapsed_seconds > 0:
            return self.processed / self.elapsed_seconds
        return 0.0

    @property
    def rate_per_minute(self) -> float:
        """Processing rate in originals per minute."""
        return self.rate_per_second * 60

    @property
    def completed_count(self) -> int:
        """Total completed (processed + errors + unsupported)."""
        return self.processed + self.errors + self.unsupported

    @property
    def remaining_count(self) -> int:
        """Remaining to process."""
        return self.total_to_process - self.completed_count

"""
GenerationProgress - Tracks and displays generation progress.
"""

import logging
from typing import Optional

from .generation_stats import GenerationStats


class GenerationProgress:
    """
    Tracks and displays generation progress with optional per-file output.
    """

    def __init__(
        self,
        show_files: bool = False,
        log_interval: int = 100,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize progress tracker.

        Args:
            show_files: If True, print each original as it's processed
            log_interval: Log summary progress every N originals (when not show_files)
            logger: Optional logger instance
        """
        self.show_files = show_files
        self.log_interval = log_interval
        self.logger = logger or logging.getLogger(__name__)
        self.last_logged = 0

    def on_image_processed(self, result) -> None:
        """
        Called when an original has been processed.

        Args:
            result: The ImageResult for the original
        """
        if not self.show_files:
            return

        if result.unsupported:
            print(f"  [SKIP] {result.relative_path} -> {result.error}")
            return

        if result.error:
            print(f"  [ERROR] {result.relative_path} -> {result.error}")
            return

        for outcome in result.outcomes:
            label = f"{outcome.path}"
            if outcome.status == 'generated':
                print(f"  [OK] {label} ({self._format_bytes(outcome.bytes)})")
            elif outcome.status == 'skipped':
                print(f"  [SKIP] {label} -> already exists")
            else:
                print(f"  [ERROR] {label} -> {outcome.error or 'failed'}")

    def on_progress_update(self, stats: GenerationStats) -> None:
        """
        Called after each original to report overall progress.

        Args:
            stats: Current generation statistics
        """
        total_done = stats.completed_count

        if not self.show_files and total_done - self.last_logged >= self.log_interval:
            self.last_logged = total_done
            self.logger.info(
                f"Progress: {stats.processed} processed, {stats.errors} errors "
                f"({stats.rate_per_minute:.1f}/min, {stats.remaining_count} left)"
            )

    @staticmethod
    def _format_bytes(bytes_val: Optional[int]) -> str:
        """Format bytes as human-readable string."""
        if bytes_val is None:
            return "unknown"
        for unit in ['B', 'KB', 'MB', 'GB']:
            if bytes_val < 1024:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024
        return f"{bytes_val:.1f} TB"

    def __call__(self, stats: GenerationStats) -> None:
        """Allow use as callback for stats updates."""
        self.on_progress_update(stats)

"""
GenerationProgress - Tracks and displays optimization progress.
"""

import logging
from typing import Optional

from .generation_stats import GenerationStats
from .image_record import DerivativeAction, SourceImage


def format_bytes(bytes_val: Optional[float]) -> str:
    """Format bytes as human-readable string."""
    if bytes_val is None:
        return "unknown"
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_val < 1024:
            return f"{bytes_val:.1f} {unit}"
        bytes_val /= 1024
    return f"{bytes_val:.1f} TB"


class GenerationProgress:
    """
    Tracks and displays progress with optional per-image output.
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
            show_files: If True, print each image as it's processed
            log_interval: Log summary progress every N images (when not show_files)
            logger: Optional logger instance
        """
        self.show_files = show_files
        self.log_interval = log_interval
        self.logger = logger or logging.getLogger(__name__)
        self.last_logged = 0

    def on_image_processed(self, result) -> None:
        """
        Called when an image has been processed.

        Args:
            result: The ImageResult for the image
        """
        if not self.show_files:
            return

        image = result.image
        if result.vanished:
            return
        if result.error is not None:
            print(f"  [ERROR] {image.key} -> {result.error}")
            return

        generated = result.count(DerivativeAction.GENERATED) + result.count(DerivativeAction.COPIED)
        reused = result.count(DerivativeAction.REUSED)
        size_str = format_bytes(result.total_bytes)
        if generated == 0:
            print(f"  [REUSED] {image.key} -> {reused} derivatives ({size_str})")
        else:
            print(f"  [OK] {image.key} -> {generated} generated, {reused} reused ({size_str})")

    def on_dry_run(self, image: SourceImage, status: str) -> None:
        """Called for each image in dry-run mode."""
        if self.show_files:
            print(f"  [DRY RUN] {image.key} -> {status}")

    def on_progress_update(self, stats: GenerationStats) -> None:
        """
        Called after each image to report overall progress.

        Args:
            stats: Current generation statistics
        """
        total_done = stats.completed_count

        if not self.show_files and total_done - self.last_logged >= self.log_interval:
            self.last_logged = total_done

            eta_minutes = stats.estimated_remaining_seconds / 60

            self.logger.info(
                f"Progress: {total_done}/{stats.total_images} images, "
                f"{stats.generated + stats.copied} derivatives generated, "
                f"{stats.reused} reused, {stats.errors} errors "
                f"(~{eta_minutes:.0f}m remaining)"
            )

    def __call__(self, stats: GenerationStats) -> None:
        """Allow use as callback for stats updates."""
        self.on_progress_update(stats)

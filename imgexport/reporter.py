"""
Reporter - Generates human-readable reports of optimization runs.
"""

import logging
import sys
from collections import Counter
from typing import List, Optional, TextIO, Tuple

from .generation_progress import format_bytes
from .image_record import Origin, SourceImage
from .pipeline import PipelineResult


class Reporter:
    """
    Generates human-readable reports of pipeline results.
    """

    def __init__(
        self,
        output: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize reporter.

        Args:
            output: Output stream (default: stdout)
            logger: Optional logger instance
        """
        self.output = output or sys.stdout
        self.logger = logger or logging.getLogger(__name__)

    def _print(self, text: str = "") -> None:
        """Print to output stream."""
        print(text, file=self.output)

    def _format_duration(self, seconds: float) -> str:
        """Format duration as human-readable string."""
        if seconds < 60:
            return f"{seconds:.1f} seconds"
        elif seconds < 3600:
            return f"{seconds / 60:.1f} minutes"
        else:
            return f"{seconds / 3600:.1f} hours"

    def report_run(self, result: PipelineResult) -> None:
        """Summary of a completed run."""
        self._print("=" * 70)
        self._print("IMAGE OPTIMIZATION SUMMARY")
        self._print("=" * 70)
        self._print()

        if result.run is None:
            self._print("No generation was performed.")
            self._print()
            return

        stats = result.run.stats
        self._print("Images:")
        self._print(f"  Source Images:        {stats.total_images:,}")
        self._print(f"  Processed:            {stats.images_processed:,}")
        self._print(f"  Failed:               {stats.errors:,}")
        if stats.images_vanished:
            self._print(f"  Vanished:             {stats.images_vanished:,}")
        self._print()

        self._print("Derivatives:")
        self._print(f"  Generated:            {stats.generated:,}")
        self._print(f"  Copied:               {stats.copied:,}")
        self._print(f"  Reused:               {stats.reused:,}")
        self._print(f"  Skipped (upscale):    {stats.skipped:,}")
        self._print(f"  Total Size:           {format_bytes(stats.bytes_total)}")
        self._print(f"  Deleted (unused):     {len(result.deleted):,}")
        self._print(f"  Exported:             {result.exported:,}")
        self._print(f"  Time:                 {self._format_duration(stats.elapsed_seconds)}")
        self._print()

        if not result.complete:
            self._print("WARNING: Generation was stopped before all images finished.")
            self._print("   Fingerprints were not saved and no files were deleted.")
            self._print()

        if stats.error_details:
            self._print("Errors:")
            self._print("-" * 70)
            for detail in stats.error_details:
                self._print(f"  {detail}")
            self._print("-" * 70)
            self._print()

    def report_plan(self, plan: List[Tuple[SourceImage, str]], show_files: bool = False) -> None:
        """Report of which images a run would regenerate."""
        self._print("=" * 70)
        self._print("IMAGE OPTIMIZATION PLAN")
        self._print("=" * 70)
        self._print()

        by_origin = Counter(image.origin for image, _ in plan)
        by_status = Counter(status for _, status in plan)

        self._print("Sources:")
        self._print("-" * 50)
        self._print(f"{'Origin':<25} {'Images':>15}")
        self._print("-" * 50)
        for origin in Origin:
            self._print(f"{origin.value:<25} {by_origin.get(origin, 0):>15,}")
        self._print("-" * 50)
        self._print(f"{'TOTAL':<25} {len(plan):>15,}")
        self._print()

        self._print("Work Summary:")
        self._print(f"  New:                  {by_status.get('new', 0):,}")
        self._print(f"  Changed:              {by_status.get('changed', 0):,}")
        self._print(f"  Unchanged:            {by_status.get('unchanged', 0):,}")
        self._print()

        if show_files:
            for image, status in plan:
                if status != 'unchanged':
                    self._print(f"  [{status}] {image.origin.value}: {image.key}")
            self._print()

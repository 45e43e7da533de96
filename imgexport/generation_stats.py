"""
GenerationStats - Statistics for an optimization run.
"""

import time
from dataclasses import dataclass, field
from typing import List

from .image_record import DerivativeAction


@dataclass
class GenerationStats:
    """
    Statistics for an optimization run.

    Attributes:
        total_images: Source images handed to the distributor
        images_processed: Images processed without error
        images_vanished: Images deleted before they could be read
        generated: Derivatives encoded
        copied: Derivatives copied from a native-resolution output
        reused: Derivatives reused from a previous run
        skipped: Widths skipped above the upscale ceiling
        errors: Images that failed
        bytes_total: Total bytes of derivatives produced or reused
        start_time: Start timestamp
        error_details: List of error messages
    """
    total_images: int = 0
    images_processed: int = 0
    images_vanished: int = 0
    generated: int = 0
    copied: int = 0
    reused: int = 0
    skipped: int = 0
    errors: int = 0
    bytes_total: int = 0
    start_time: float = field(default_factory=time.time)
    error_details: List[str] = field(default_factory=list)

    def add_result(self, result) -> None:
        """Fold one ImageResult into the totals."""
        if result.vanished:
            self.images_vanished += 1
            return

        if result.error is not None:
            self.errors += 1
            self.error_details.append(f"{result.image.full_path}: {result.error}")
        else:
            self.images_processed += 1

        self.generated += result.count(DerivativeAction.GENERATED)
        self.copied += result.count(DerivativeAction.COPIED)
        self.reused += result.count(DerivativeAction.REUSED)
        self.skipped += len(result.skipped_widths)
        self.bytes_total += result.total_bytes

    @property
    def derivatives_total(self) -> int:
        """Derivatives produced or reused."""
        return self.generated + self.copied + self.reused

    @property
    def completed_count(self) -> int:
        """Images finished (processed, failed or vanished)."""
        return self.images_processed + self.errors + self.images_vanished

    @property
    def remaining_count(self) -> int:
        return self.total_images - self.completed_count

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return time.time() - self.start_time

    @property
    def rate_per_second(self) -> float:
        """Images completed per second."""
        if self.elapsed_seconds > 0:
            return self.completed_count / self.elapsed_seconds
        return 0.0

    @property
    def estimated_remaining_seconds(self) -> float:
        if self.rate_per_second > 0:
            return self.remaining_count / self.rate_per_second
        return 0.0

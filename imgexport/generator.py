"""
Generator - Distributes source images over a worker pool and merges the results.
"""

import logging
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .config import OptimizerConfig
from .generation_progress import GenerationProgress
from .generation_stats import GenerationStats
from .hash_store import FingerprintStore
from .image_record import SourceImage
from .planner import DerivativePlanner, ImageResult


@dataclass
class ImageJob:
    """
    Unit of work for one image.

    Only the image's own stored fingerprint travels with the job; workers
    never see the whole store.
    """
    image: SourceImage
    config: OptimizerConfig
    stored_fingerprint: Optional[str]


def optimize_image(job: ImageJob) -> ImageResult:
    """Process one image. Top-level so it can be pickled for worker processes."""
    planner = DerivativePlanner(job.config, logger=logging.getLogger(__name__))
    return planner.process(job.image, job.stored_fingerprint)


@dataclass
class RunResult:
    """
    Merged outcome of a run.

    Attributes:
        paths: Every derivative produced or reused (plus protected paths of failed images)
        fingerprints: Fingerprint map to persist
        stats: Aggregated statistics
        failed: Results of images that failed
    """
    paths: Set[str] = field(default_factory=set)
    fingerprints: Dict[str, str] = field(default_factory=dict)
    stats: GenerationStats = field(default_factory=GenerationStats)
    failed: List[ImageResult] = field(default_factory=list)

    def add(self, result: ImageResult) -> None:
        """Merge one image's result: union of paths, sum of stats, map update."""
        self.paths.update(os.path.abspath(p) for p in result.paths)
        if result.fingerprint is not None:
            self.fingerprints[result.image.key] = result.fingerprint
        if result.error is not None:
            self.failed.append(result)
        self.stats.add_result(result)


class Generator:
    """
    Runs the derivative planner for every source image.

    Images are independent, so they are spread across a process pool of
    min(workers, number of images) processes. With a single worker the
    images are processed inline.
    """

    def __init__(
        self,
        config: OptimizerConfig,
        dry_run: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize generator.

        Args:
            config: Resolved optimizer configuration
            dry_run: If True, only report which images would be regenerated
            logger: Optional logger instance
        """
        self.config = config
        self.dry_run = dry_run
        self.logger = logger or logging.getLogger(__name__)
        self._stop_requested = False

    def stop(self) -> None:
        """Request the generator to stop submitting further images."""
        self._stop_requested = True

    def worker_count(self, image_count: int) -> int:
        available = self.config.workers or os.cpu_count() or 1
        return max(1, min(available, image_count))

    def run(
        self,
        images: List[SourceImage],
        store: FingerprintStore,
        progress: Optional[GenerationProgress] = None
    ) -> RunResult:
        """
        Produce or reuse the derivatives of all images.

        Args:
            images: Source images
            store: Fingerprints from the previous run (read-only here)
            progress: Optional progress tracker

        Returns:
            RunResult merged from all workers
        """
        run_result = RunResult(stats=GenerationStats(total_images=len(images)))

        if self._stop_requested:
            self.logger.info("Stop was requested before generation started")
            return run_result

        if not images:
            self.logger.info("No images to optimize")
            return run_result

        widths = self.config.widths
        workers = self.worker_count(len(images))
        self.logger.info(f"Using sizes: {', '.join(str(w) for w in widths)}")
        self.logger.info(
            f"Start optimization of {len(images)} images with {len(widths)} sizes "
            f"resulting in {len(images) * len(widths)} optimized images "
            f"({workers} worker{'s' if workers != 1 else ''})"
        )

        jobs = [ImageJob(image, self.config, store.get(image.key)) for image in images]

        if workers == 1:
            for job in jobs:
                if self._stop_requested:
                    self.logger.info("Stop requested, halting generation")
                    break
                self._collect(run_result, optimize_image(job), progress)
        else:
            with ProcessPoolExecutor(max_workers=workers) as executor:
                futures = [executor.submit(optimize_image, job) for job in jobs]
                for future in as_completed(futures):
                    self._collect(run_result, future.result(), progress)
                    if self._stop_requested:
                        self.logger.info("Stop requested, cancelling pending images")
                        for pending in futures:
                            pending.cancel()
                        break

        stats = run_result.stats
        self.logger.info(
            f"Optimization complete: {stats.generated} generated, {stats.copied} copied, "
            f"{stats.reused} reused, {stats.skipped} skipped, {stats.errors} errors "
            f"({stats.elapsed_seconds:.1f}s)"
        )

        return run_result

    def plan(
        self,
        images: List[SourceImage],
        store: FingerprintStore,
        progress: Optional[GenerationProgress] = None
    ) -> List[Tuple[SourceImage, str]]:
        """
        Report, without writing anything, whether each image would be regenerated.

        Returns:
            List of (image, status) with status new, changed or unchanged
        """
        planner = DerivativePlanner(self.config, logger=self.logger)
        statuses = []

        for image in images:
            try:
                status, _ = planner.status(image, store.get(image.key))
            except FileNotFoundError:
                self.logger.debug(f"Source vanished before planning: {image.full_path}")
                continue
            except OSError as e:
                self.logger.error(f"Cannot read {image.full_path}: {e}")
                continue

            statuses.append((image, status))
            if progress:
                progress.on_dry_run(image, status)

        return statuses

    def _collect(
        self,
        run_result: RunResult,
        result: ImageResult,
        progress: Optional[GenerationProgress]
    ) -> None:
        run_result.add(result)

        if result.error is not None:
            self.logger.error(f"Error processing {result.image.full_path}: {result.error}")

        if progress:
            progress.on_image_processed(result)
            progress.on_progress_update(run_result.stats)

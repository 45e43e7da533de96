"""
Pipeline - One optimization run from download to cleanup.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .config import OptimizerConfig
from .generation_progress import GenerationProgress
from .generator import Generator, RunResult
from .hash_store import FingerprintStore
from .image_record import SourceImage
from .reconciler import Reconciler
from .remote_images import RemoteImageDownloader, load_remote_urls
from .scanner import Scanner


@dataclass
class PipelineResult:
    """
    Outcome of a pipeline run.

    Attributes:
        images: Source images found
        run: Merged generation result (None in dry-run mode)
        plan: (image, status) pairs in dry-run mode
        deleted: Orphaned derivatives removed
        exported: Number of derivatives copied to the export folder
        complete: False if generation was stopped before all images finished
    """
    images: List[SourceImage] = field(default_factory=list)
    run: Optional[RunResult] = None
    plan: List[Tuple[SourceImage, str]] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    exported: int = 0
    complete: bool = True


def export_derivatives(
    paths: Iterable[str],
    public_root: str,
    export_root: str,
    logger: Optional[logging.Logger] = None
) -> int:
    """
    Copy derivatives under public_root to the same relative path in export_root.

    Returns:
        Number of files copied
    """
    logger = logger or logging.getLogger(__name__)
    public_root = os.path.abspath(public_root)
    copied = 0

    for path in sorted(paths):
        path = os.path.abspath(path)
        if os.path.commonpath([path, public_root]) != public_root:
            continue
        if not os.path.exists(path):
            continue

        destination = os.path.join(export_root, os.path.relpath(path, public_root))
        os.makedirs(os.path.dirname(destination), exist_ok=True)
        shutil.copyfile(path, destination)
        copied += 1

    logger.debug(f"Copied {copied} optimized images to {export_root}")
    return copied


class Pipeline:
    """
    Runs the whole optimization: download remote images, enumerate sources,
    generate derivatives, persist fingerprints, delete orphans and copy the
    results into the export folder.
    """

    def __init__(
        self,
        config: OptimizerConfig,
        downloader: Optional[RemoteImageDownloader] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize pipeline.

        Args:
            config: Resolved optimizer configuration
            downloader: Optional remote image downloader
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.downloader = downloader
        self.generator: Optional[Generator] = None

    def remote_filenames(self, download: bool = True) -> List[str]:
        """
        Download remote images (if any are listed) and return their filenames.

        Without download, the files already in the remote folder are used.
        """
        urls = load_remote_urls(self.config.remote_images_list_path, self.logger)
        if not urls:
            return []

        folder = self.config.remote_images_folder
        if download:
            downloader = self.downloader or RemoteImageDownloader(folder, logger=self.logger)
            downloader.download_all(urls)

        if not os.path.isdir(folder):
            return []
        return sorted(
            name for name in os.listdir(folder)
            if os.path.isfile(os.path.join(folder, name))
        )

    def scan(self, include_remote: bool = True, download: bool = False) -> List[SourceImage]:
        """Enumerate all supported source images."""
        remote = self.remote_filenames(download=download) if include_remote else []
        return Scanner(self.config, self.logger).collect(remote)

    def run(
        self,
        dry_run: bool = False,
        include_remote: bool = True,
        export_copy: bool = True,
        progress: Optional[GenerationProgress] = None
    ) -> PipelineResult:
        """
        Execute one optimization run.

        Args:
            dry_run: Report which images would be regenerated, write nothing
            include_remote: Download and optimize remote images
            export_copy: Copy derivatives into the export folder
            progress: Optional progress tracker

        Returns:
            PipelineResult
        """
        self.logger.info("---- Begin with optimization... ----")

        images = self.scan(include_remote=include_remote, download=include_remote and not dry_run)
        store = FingerprintStore.load(self.config.hash_file_path, self.logger)
        self.generator = Generator(self.config, dry_run=dry_run, logger=self.logger)
        result = PipelineResult(images=images)

        if dry_run:
            result.plan = self.generator.plan(images, store, progress)
            return result

        run_result = self.generator.run(images, store, progress)
        result.run = run_result

        if run_result.stats.remaining_count > 0:
            self.logger.warning(
                "Generation did not finish; leaving the fingerprint store and "
                "optimized image folders unchanged"
            )
            result.complete = False
            return result

        FingerprintStore(run_result.fingerprints).save(self.config.hash_file_path)

        result.deleted = Reconciler(self.config, self.logger).reconcile(run_result.paths)

        if export_copy:
            self.logger.info("Copy optimized images to build folder...")
            result.exported = export_derivatives(
                run_result.paths,
                self.config.public_folder_path,
                self.config.export_folder_path,
                self.logger,
            )

        self.logger.info("---- Done ----")
        return result

"""
Reconciler - Removes derivatives that were not produced or reused in the current run.
"""

import logging
import os
from typing import Iterable, List, Optional, Set

from .config import OptimizerConfig

DERIVATIVE_EXTENSIONS = {'.PNG', '.GIF', '.JPG', '.JPEG', '.AVIF', '.WEBP'}


def find_output_folders(root: str, folder_name: str) -> List[str]:
    """Every directory named folder_name anywhere under root."""
    results = []
    if not os.path.isdir(root):
        return results
    for dirpath, dirnames, _ in os.walk(root):
        dirnames.sort()
        for dirname in dirnames:
            if dirname == folder_name:
                results.append(os.path.join(dirpath, dirname))
    return results


def find_image_files(folder: str) -> List[str]:
    """Image files under folder, recursively. A missing folder yields nothing."""
    results = []
    if not os.path.isdir(folder):
        return results
    for dirpath, dirnames, filenames in os.walk(folder):
        dirnames.sort()
        for filename in sorted(filenames):
            if os.path.splitext(filename)[1].upper() in DERIVATIVE_EXTENSIONS:
                results.append(os.path.join(dirpath, filename))
    return results


class Reconciler:
    """
    Deletes orphaned derivatives from the output folders.

    Must only be called once generation has finished for every image,
    otherwise a file written late by a worker could be taken for an orphan.
    """

    def __init__(
        self,
        config: OptimizerConfig,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def output_folders(self) -> List[str]:
        """Output subfolders under the image root plus the top-level public one."""
        name = self.config.export_folder_name
        folders = find_output_folders(self.config.image_folder_path, name)
        public_folder = os.path.join(self.config.public_folder_path, name)
        if os.path.abspath(public_folder) not in {os.path.abspath(f) for f in folders}:
            folders.append(public_folder)
        return folders

    def find_orphans(self, keep_paths: Iterable[str]) -> List[str]:
        """Derivative files on disk that are not in keep_paths."""
        keep: Set[str] = {os.path.abspath(p) for p in keep_paths}
        orphans = []
        for folder in self.output_folders():
            for path in find_image_files(folder):
                if os.path.abspath(path) not in keep:
                    orphans.append(path)
        return orphans

    def reconcile(self, keep_paths: Iterable[str], dry_run: bool = False) -> List[str]:
        """
        Delete every derivative not in keep_paths.

        Args:
            keep_paths: Derivatives produced or reused in this run
            dry_run: If True, only report what would be deleted

        Returns:
            List of deleted (or, in dry-run mode, deletable) paths
        """
        orphans = self.find_orphans(keep_paths)

        if dry_run:
            for path in orphans:
                self.logger.info(f"[DRY RUN] Would delete unused image: {path}")
            return orphans

        deleted = []
        for path in orphans:
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
            self.logger.debug(f"Deleted unused image: {path}")
            deleted.append(path)

        if deleted:
            self.logger.info(
                f"Deleted {len(deleted)} unused image{'s' if len(deleted) != 1 else ''} "
                f"from the optimized images folders"
            )

        return deleted

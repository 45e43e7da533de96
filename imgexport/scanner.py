"""
Scanner - Enumerates source images from the configured roots.
"""

import logging
import os
from typing import Iterable, List, Optional

from .config import OptimizerConfig
from .image_record import Origin, SourceImage, is_supported_image


class SourceEnumerationError(RuntimeError):
    """Raised when a source root exists but cannot be listed."""


class Scanner:
    """
    Walks source directories and produces SourceImage descriptors.

    Three categories are collected: local images under the image folder,
    framework-static images from the build's media folder, and remote
    images previously downloaded into the remote images folder.
    """

    def __init__(
        self,
        config: OptimizerConfig,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize scanner.

        Args:
            config: Resolved optimizer configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def enumerate(
        root: str,
        base: str,
        output_folder_name: str,
        origin: Origin = Origin.LOCAL
    ) -> List[SourceImage]:
        """
        List every regular file under root, recursively.

        Files inside any directory named output_folder_name are skipped, so
        previously generated derivatives are never picked up as sources.
        Extension filtering is left to the caller.

        Args:
            root: Directory to walk
            base: Base path the subdirectory is computed against
            output_folder_name: Reserved derivative folder name
            origin: Origin category of the images found

        Returns:
            List of SourceImage, empty if root does not exist

        Raises:
            SourceEnumerationError: If root exists but cannot be read
        """
        if not os.path.isdir(root):
            return []

        def on_error(error: OSError) -> None:
            if error.filename and os.path.abspath(error.filename) == os.path.abspath(root):
                raise SourceEnumerationError(f"Cannot list source folder {root}: {error}") from error

        images = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames[:] = sorted(d for d in dirnames if d != output_folder_name)

            rel = os.path.relpath(dirpath, base)
            subdirectory = '' if rel == os.curdir else rel.replace(os.sep, '/')

            for filename in sorted(filenames):
                if os.path.isfile(os.path.join(dirpath, filename)):
                    images.append(SourceImage(
                        base_path=base,
                        subdirectory=subdirectory,
                        filename=filename,
                        origin=origin,
                    ))

        return images

    def collect(self, remote_filenames: Iterable[str] = ()) -> List[SourceImage]:
        """
        Collect all supported source images for a run.

        Args:
            remote_filenames: Filenames of downloaded remote images

        Returns:
            Supported images from all three categories
        """
        config = self.config
        name = config.export_folder_name
        candidates: List[SourceImage] = []

        if config.image_folder_in_public:
            candidates.extend(self.enumerate(
                config.image_folder_path, config.image_folder_path, name, Origin.LOCAL
            ))
        else:
            self.logger.debug(
                f"{config.image_folder_path} is outside {config.public_folder_path}, "
                f"only static images are optimized"
            )

        if os.path.isdir(config.static_image_folder_path):
            candidates.extend(self.enumerate(
                config.static_image_folder_path, config.static_image_folder_path, name,
                Origin.FRAMEWORK_STATIC
            ))
        else:
            self.logger.warning(
                f"Static image folder {config.static_image_folder_path} not found. "
                f"Run the framework build before optimizing images."
            )

        remote_folder = config.remote_images_folder
        for filename in remote_filenames:
            candidates.append(SourceImage(
                base_path=remote_folder,
                subdirectory='',
                filename=filename,
                origin=Origin.REMOTE,
            ))

        images = [image for image in candidates if is_supported_image(image.filename)]

        remote_count = sum(1 for image in images if image.origin == Origin.REMOTE)
        self.logger.info(
            f"Found {len(images) - remote_count} supported images in "
            f"{config.image_folder_path}, static folder and subdirectories "
            f"and {remote_count} remote image{'s' if remote_count != 1 else ''}"
        )

        return images

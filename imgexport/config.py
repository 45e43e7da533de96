"""
OptimizerConfig - Resolved configuration for an optimization run.
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional

DEFAULT_CONFIG_FILENAME = 'image-export.json'
HASH_FILENAME = 'next-image-export-optimizer-hashes.json'
REMOTE_IMAGES_FILENAME = 'remote_images.json'
REMOTE_IMAGES_FOLDER = 'remoteImagesForOptimization'

DEFAULT_DEVICE_SIZES = [640, 750, 828, 1080, 1200, 1920, 2048, 3840]
DEFAULT_IMAGE_SIZES = [16, 32, 48, 64, 96, 128, 256, 384]
BLUR_SIZE = 10

# Fields holding paths that are resolved against project_dir
PATH_FIELDS = (
    'image_folder_path',
    'static_image_folder_path',
    'public_folder_path',
    'export_folder_path',
)


class ConfigError(ValueError):
    """Raised when a configuration file cannot be used."""


@dataclass
class OptimizerConfig:
    """
    Configuration for an optimization run.

    Every component receives this object explicitly; nothing reads
    configuration from the process environment.

    Attributes:
        project_dir: Project root, relative paths are resolved against it
        image_folder_path: Root of local source images
        static_image_folder_path: Framework build folder with static media
        public_folder_path: Public asset root
        export_folder_path: Static export output folder
        device_sizes: Device breakpoint widths
        image_sizes: Intermediate image widths
        quality: Global encoder quality (0-100)
        quality_overrides: Per-format quality, e.g. {'avif': 50}
        store_pictures_in_webp: Emit webp for png/jpeg/gif sources
        generate_blur_images: Also generate the blur placeholder width
        export_folder_name: Reserved name of the derivative subfolder
        workers: Worker process count (None = CPU count)
    """
    project_dir: str = '.'
    image_folder_path: str = 'public/images'
    static_image_folder_path: str = '.next/static/media'
    public_folder_path: str = 'public'
    export_folder_path: str = 'out'
    device_sizes: List[int] = field(default_factory=lambda: list(DEFAULT_DEVICE_SIZES))
    image_sizes: List[int] = field(default_factory=lambda: list(DEFAULT_IMAGE_SIZES))
    quality: int = 75
    quality_overrides: Dict[str, int] = field(default_factory=dict)
    store_pictures_in_webp: bool = True
    generate_blur_images: bool = False
    export_folder_name: str = 'nextImageExportOptimizer'
    workers: Optional[int] = None

    @property
    def blur_sizes(self) -> List[int]:
        """Blur placeholder widths, empty unless blur images are enabled."""
        return [BLUR_SIZE] if self.generate_blur_images else []

    @property
    def widths(self) -> List[int]:
        """Deduplicated union of blur, image and device widths (first occurrence wins)."""
        seen = set()
        result = []
        for width in [*self.blur_sizes, *self.image_sizes, *self.device_sizes]:
            if width not in seen:
                seen.add(width)
                result.append(width)
        return result

    @property
    def hash_file_path(self) -> str:
        """Location of the fingerprint store."""
        return os.path.join(self.image_folder_path, HASH_FILENAME)

    @property
    def remote_images_folder(self) -> str:
        """Folder that receives downloaded remote images."""
        return os.path.join(self.project_dir, REMOTE_IMAGES_FOLDER)

    @property
    def remote_images_list_path(self) -> str:
        """JSON file listing remote image URLs."""
        return os.path.join(self.project_dir, REMOTE_IMAGES_FILENAME)

    @property
    def image_folder_in_public(self) -> bool:
        """True if the local image folder lies inside the public folder."""
        image_root = os.path.abspath(self.image_folder_path)
        public_root = os.path.abspath(self.public_folder_path)
        return os.path.commonpath([image_root, public_root]) == public_root

    def resolve_paths(self) -> 'OptimizerConfig':
        """Resolve relative path fields against project_dir, in place."""
        for name in PATH_FIELDS:
            value = getattr(self, name)
            if not os.path.isabs(value):
                setattr(self, name, os.path.normpath(os.path.join(self.project_dir, value)))
        return self

    def validate(self) -> List[str]:
        """
        Validate configuration values.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not isinstance(self.quality, int) or not 0 <= self.quality <= 100:
            errors.append(f"quality must be an integer between 0 and 100 (got {self.quality!r})")

        for fmt, value in self.quality_overrides.items():
            if not isinstance(value, int) or not 0 <= value <= 100:
                errors.append(f"quality override for {fmt} must be between 0 and 100 (got {value!r})")

        for name in ('device_sizes', 'image_sizes'):
            for width in getattr(self, name):
                if not isinstance(width, int) or isinstance(width, bool) or width <= 0:
                    errors.append(f"{name} must contain positive integers (got {width!r})")

        if not self.widths:
            errors.append("No target widths configured")

        if not self.export_folder_name:
            errors.append("export_folder_name must not be empty")
        elif '/' in self.export_folder_name or '\\' in self.export_folder_name:
            errors.append(f"export_folder_name must be a plain folder name (got {self.export_folder_name!r})")

        if self.workers is not None and self.workers < 1:
            errors.append(f"workers must be at least 1 (got {self.workers})")

        return errors

    @classmethod
    def from_dict(cls, data: dict, logger: Optional[logging.Logger] = None) -> 'OptimizerConfig':
        """Create from dictionary, ignoring unknown keys."""
        logger = logger or logging.getLogger(__name__)
        known = {f.name for f in fields(cls)}

        values = {}
        for key, value in data.items():
            if key in known:
                values[key] = value
            else:
                logger.warning(f"Ignoring unknown configuration key: {key}")

        image_folder = values.get('image_folder_path')
        if isinstance(image_folder, str) and image_folder.startswith('/'):
            values['image_folder_path'] = image_folder[1:]

        return cls(**values)

    @classmethod
    def load(
        cls,
        filepath: Optional[str] = None,
        project_dir: str = '.',
        logger: Optional[logging.Logger] = None
    ) -> 'OptimizerConfig':
        """
        Load configuration from a JSON file.

        A missing file is not an error: defaults are used and a warning
        is logged. Paths in the result are resolved against project_dir.

        Args:
            filepath: Config file (default: image-export.json in project_dir)
            project_dir: Project root directory
            logger: Optional logger instance

        Returns:
            Resolved OptimizerConfig

        Raises:
            ConfigError: If the file exists but is not a JSON object
        """
        logger = logger or logging.getLogger(__name__)
        path = filepath or os.path.join(project_dir, DEFAULT_CONFIG_FILENAME)

        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.warning(f"Could not find {path}, using default values")
            data = {}
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a JSON object")

        data = dict(data)
        data['project_dir'] = project_dir
        return cls.from_dict(data, logger).resolve_paths()

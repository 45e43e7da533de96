"""
DerivativePlanner - Decides, per width, how each derivative of an image is obtained.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .codec import ImageCodec, output_token
from .config import OptimizerConfig
from .fingerprint import compute_fingerprint
from .image_record import DerivativeAction, DerivativeInfo, Origin, SourceImage
from .placement import destination_for

STATUS_NEW = 'new'
STATUS_CHANGED = 'changed'
STATUS_UNCHANGED = 'unchanged'


@dataclass
class ImageResult:
    """
    Outcome of processing one source image.

    Attributes:
        image: The source image
        fingerprint: Fingerprint to store for the image (None if unknown)
        derivatives: Derivatives produced or reused, ascending by width
        skipped_widths: Widths above the upscale ceiling
        kept_paths: Existing derivatives of a failed image, protected from cleanup
        error: Error message if processing failed
        vanished: True if the source disappeared before it could be read
    """
    image: SourceImage
    fingerprint: Optional[str] = None
    derivatives: List[DerivativeInfo] = field(default_factory=list)
    skipped_widths: List[int] = field(default_factory=list)
    kept_paths: List[str] = field(default_factory=list)
    error: Optional[str] = None
    vanished: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and not self.vanished

    @property
    def paths(self) -> List[str]:
        """Every derivative path that must survive cleanup."""
        return [d.path for d in self.derivatives] + self.kept_paths

    @property
    def total_bytes(self) -> int:
        return sum(d.size for d in self.derivatives)

    def count(self, action: DerivativeAction) -> int:
        return sum(1 for d in self.derivatives if d.action == action)


def upscale_ceiling(widths: List[int], meta_width: int) -> Optional[int]:
    """Smallest configured width >= meta_width, or None if every width is smaller."""
    candidates = [w for w in widths if w >= meta_width]
    return min(candidates) if candidates else None


class DerivativePlanner:
    """
    Produces the derivatives of a single image.

    Widths are handled in ascending order. For each one the planner reuses
    a valid derivative already on disk, copies the native-resolution output
    produced earlier in the same pass, or encodes a new file.
    """

    def __init__(
        self,
        config: OptimizerConfig,
        codec: Optional[ImageCodec] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.codec = codec or ImageCodec(
            quality=config.quality,
            quality_overrides=config.quality_overrides,
            logger=self.logger,
        )
        self.widths = config.widths

    def token_for(self, image: SourceImage) -> str:
        return output_token(image.filename, self.config.store_pictures_in_webp)

    def destination(self, image: SourceImage, width: int) -> str:
        """Destination path of the derivative of image at width."""
        return destination_for(
            image,
            width,
            self.token_for(image),
            self.config.public_folder_path,
            self.config.export_folder_name,
        )

    def fingerprint(self, image: SourceImage, data: bytes) -> str:
        return compute_fingerprint(
            data, self.widths, self.config.quality, image.subdirectory, image.filename
        )

    def status(self, image: SourceImage, stored_fingerprint: Optional[str]) -> Tuple[str, str]:
        """
        Whether an image would be regenerated, without touching any output.

        Returns:
            Tuple of (status, fingerprint) where status is new, changed or unchanged
        """
        fingerprint = self.fingerprint(image, image.read_bytes())
        if stored_fingerprint is None:
            return STATUS_NEW, fingerprint
        if stored_fingerprint != fingerprint:
            return STATUS_CHANGED, fingerprint
        return STATUS_UNCHANGED, fingerprint

    def process(self, image: SourceImage, stored_fingerprint: Optional[str]) -> ImageResult:
        """
        Produce or reuse every derivative of one image.

        Read and codec failures are reported in the result, never raised,
        so one bad image cannot abort the batch.

        Args:
            image: Source image
            stored_fingerprint: Fingerprint from the previous run, if any

        Returns:
            ImageResult for the image
        """
        result = ImageResult(image=image)

        try:
            data = image.read_bytes()
        except FileNotFoundError:
            self.logger.debug(f"Source vanished before processing: {image.full_path}")
            result.vanished = True
            return result
        except OSError as e:
            return self._failed(result, e, stored_fingerprint)

        fingerprint = self.fingerprint(image, data)
        changed = stored_fingerprint != fingerprint
        had_entry = stored_fingerprint is not None

        try:
            self._process_widths(image, data, changed, had_entry, result)
        except Exception as e:
            return self._failed(result, e, stored_fingerprint)

        result.fingerprint = fingerprint
        return result

    def _process_widths(
        self,
        image: SourceImage,
        data: bytes,
        changed: bool,
        had_entry: bool,
        result: ImageResult
    ) -> None:
        token = self.token_for(image)
        decoded = None
        ceiling = None
        native_output: Optional[DerivativeInfo] = None

        if image.origin == Origin.FRAMEWORK_STATIC:
            ceiling = upscale_ceiling(self.widths, self.codec.header_width(data))

        for width in sorted(self.widths):
            if ceiling is not None and width > ceiling:
                result.skipped_widths.append(width)
                continue

            destination = self.destination(image, width)

            if not changed and had_entry and os.path.exists(destination):
                result.derivatives.append(DerivativeInfo(
                    width=width,
                    path=destination,
                    size=os.path.getsize(destination),
                    action=DerivativeAction.REUSED,
                ))
                continue

            if decoded is None:
                decoded = self.codec.open(data)

            if native_output is not None:
                os.makedirs(os.path.dirname(destination), exist_ok=True)
                shutil.copyfile(native_output.path, destination)
                result.derivatives.append(DerivativeInfo(
                    width=width,
                    path=destination,
                    size=native_output.size,
                    action=DerivativeAction.COPIED,
                ))
                continue

            size, resized = self.codec.render(decoded, width, token, destination)
            info = DerivativeInfo(
                width=width,
                path=destination,
                size=size,
                action=DerivativeAction.GENERATED,
            )
            result.derivatives.append(info)

            if not resized:
                native_output = info

    def _failed(
        self,
        result: ImageResult,
        error: Exception,
        stored_fingerprint: Optional[str]
    ) -> ImageResult:
        """Mark result failed, keeping the image's existing derivatives and fingerprint."""
        result.error = f"{type(error).__name__}: {error}"
        result.kept_paths = self._existing_destinations(result.image)
        result.fingerprint = stored_fingerprint
        return result

    def _existing_destinations(self, image: SourceImage) -> List[str]:
        """Destinations of image that exist on disk (used when processing failed)."""
        existing = []
        for width in sorted(self.widths):
            destination = self.destination(image, width)
            if os.path.exists(destination):
                existing.append(destination)
        return existing

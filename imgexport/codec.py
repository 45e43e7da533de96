"""
ImageCodec - Decodes, resizes and encodes derivatives using Pillow.
"""

import io
import logging
import os
from typing import Dict, List, Optional, Tuple

from PIL import ExifTags, Image, ImageOps, ImageSequence

from .image_record import file_extension

AVIF_QUALITY_OFFSET = 15

# Output tokens that can carry more than one frame
ANIMATED_FORMATS = {'GIF', 'WEBP'}

# EXIF orientation value -> transpose that undoes it
ORIENTATION_TRANSPOSE = {
    2: Image.Transpose.FLIP_LEFT_RIGHT,
    3: Image.Transpose.ROTATE_180,
    4: Image.Transpose.FLIP_TOP_BOTTOM,
    5: Image.Transpose.TRANSPOSE,
    6: Image.Transpose.ROTATE_270,
    7: Image.Transpose.TRANSVERSE,
    8: Image.Transpose.ROTATE_90,
}

# Orientations that swap width and height
SWAPPED_ORIENTATIONS = {5, 6, 7, 8}


def avif_supported() -> bool:
    """True if this Pillow build can save AVIF."""
    Image.init()
    return 'AVIF' in Image.SAVE


def exif_orientation(img: Image.Image) -> int:
    """EXIF orientation tag of img, 1 if absent or invalid."""
    orientation = img.getexif().get(ExifTags.Base.Orientation, 1)
    return orientation if orientation in ORIENTATION_TRANSPOSE else 1


def is_animated(img: Image.Image) -> bool:
    return getattr(img, 'is_animated', False)


def output_token(filename: str, store_pictures_in_webp: bool) -> str:
    """
    Format token used in the derivative filename.

    AVIF sources keep their token even when the encoder falls back to webp.
    """
    ext = file_extension(filename)
    if ext == 'AVIF':
        return 'AVIF'
    if store_pictures_in_webp:
        return 'WEBP'
    return ext


class ImageCodec:
    """
    Thin wrapper over Pillow for derivative generation.

    Decoding applies the embedded EXIF orientation. Resizing only ever
    shrinks; a requested width at or above the native width keeps the
    image at its native resolution.
    """

    PIL_FORMATS = {
        'WEBP': 'WEBP',
        'AVIF': 'AVIF',
        'PNG': 'PNG',
        'JPG': 'JPEG',
        'JPEG': 'JPEG',
        'GIF': 'GIF',
    }

    def __init__(
        self,
        quality: int = 75,
        quality_overrides: Optional[Dict[str, int]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize codec.

        Args:
            quality: Global encoder quality (0-100)
            quality_overrides: Per-format quality, keyed by lower-case format
            logger: Optional logger instance
        """
        self.quality = quality
        self.quality_overrides = {k.lower(): v for k, v in (quality_overrides or {}).items()}
        self.logger = logger or logging.getLogger(__name__)
        self._avif = avif_supported()

    def encoding_for(self, token: str) -> Tuple[str, Optional[int]]:
        """
        Pillow format and quality for an output token.

        Returns:
            Tuple of (pil_format, quality); quality is None for formats
            that do not take one
        """
        token = token.upper()

        if token == 'AVIF':
            if self._avif:
                if 'avif' in self.quality_overrides:
                    return 'AVIF', self.quality_overrides['avif']
                return 'AVIF', max(self.quality - AVIF_QUALITY_OFFSET, 0)
            return 'WEBP', self.quality_overrides.get('webp', self.quality)

        pil_format = self.PIL_FORMATS.get(token)
        if pil_format is None:
            raise ValueError(f"Unsupported output format: {token}")

        if pil_format in ('PNG', 'GIF'):
            return pil_format, None
        return pil_format, self.quality_overrides.get(pil_format.lower(), self.quality)

    def header_width(self, data: bytes) -> int:
        """
        Displayed width of an image, read from its header without decoding.

        Accounts for EXIF orientation, so a portrait photo stored
        sideways reports its upright width.
        """
        with Image.open(io.BytesIO(data)) as img:
            if exif_orientation(img) in SWAPPED_ORIENTATIONS:
                return img.height
            return img.width

    def open(self, data: bytes) -> Image.Image:
        """
        Decode image bytes and apply EXIF orientation.

        MPO files (camera JPEGs with embedded previews) are reduced to their
        primary image. Other multi-frame images are returned undecoded so
        every frame can be rendered; their orientation is applied per frame
        in render().
        """
        img = Image.open(io.BytesIO(data))
        if img.format == 'MPO':
            img.seek(0)
        elif is_animated(img):
            return img
        img.load()
        return ImageOps.exif_transpose(img)

    def render(
        self,
        img: Image.Image,
        width: int,
        token: str,
        destination: str
    ) -> Tuple[int, bool]:
        """
        Resize (if needed), encode and write one derivative.

        Args:
            img: Decoded source image from open()
            width: Target width
            token: Output format token
            destination: File to write

        Returns:
            Tuple of (bytes_written, resized)
        """
        pil_format, quality = self.encoding_for(token)
        animated = is_animated(img)
        orientation = exif_orientation(img) if animated else 1
        native_width = img.height if orientation in SWAPPED_ORIENTATIONS else img.width
        resize = native_width > width

        save_kwargs = {}
        if quality is not None:
            save_kwargs['quality'] = quality
        if pil_format in ('JPEG', 'PNG'):
            save_kwargs['optimize'] = True

        os.makedirs(os.path.dirname(destination), exist_ok=True)

        if animated and pil_format in ANIMATED_FORMATS:
            if 'duration' in img.info:
                save_kwargs['duration'] = img.info['duration']
            frames = self._resize_frames(
                img, width if resize else None, pil_format, ORIENTATION_TRANSPOSE.get(orientation)
            )
            frames[0].save(
                destination,
                format=pil_format,
                save_all=True,
                append_images=frames[1:],
                loop=img.info.get('loop', 0),
                **save_kwargs
            )
        else:
            out = img
            if orientation != 1:
                out = out.transpose(ORIENTATION_TRANSPOSE[orientation])
            if resize:
                out = self._resize(out, width)
            out = self._convert_color_mode(out, pil_format)
            out.save(destination, format=pil_format, **save_kwargs)

        return os.path.getsize(destination), resize

    def _resize_frames(
        self,
        img: Image.Image,
        width: Optional[int],
        pil_format: str,
        transpose: Optional[Image.Transpose] = None
    ) -> List[Image.Image]:
        frames = []
        for frame in ImageSequence.Iterator(img):
            frame = frame.convert('RGBA')
            if transpose is not None:
                frame = frame.transpose(transpose)
            if width is not None:
                frame = self._resize(frame, width)
            frames.append(self._convert_color_mode(frame, pil_format))
        return frames

    @staticmethod
    def _resize(img: Image.Image, width: int) -> Image.Image:
        """Resize to width, keeping the aspect ratio."""
        height = max(1, round(img.height * width / img.width))
        return img.resize((width, height), Image.Resampling.LANCZOS)

    def _convert_color_mode(self, img: Image.Image, pil_format: str) -> Image.Image:
        """Convert image to a color mode the output format can store."""
        if pil_format == 'JPEG':
            if img.mode in ('RGBA', 'LA'):
                background = Image.new('RGB', img.size, (255, 255, 255))
                if img.mode == 'LA':
                    img = img.convert('RGBA')
                background.paste(img, mask=img.split()[-1])
                return background
            elif img.mode == 'P':
                img = img.convert('RGBA')
                background = Image.new('RGB', img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[-1])
                return background
            elif img.mode != 'RGB':
                return img.convert('RGB')
            return img

        if pil_format in ('WEBP', 'AVIF'):
            if img.mode in ('P', 'LA', 'PA') or (img.mode == 'L' and 'transparency' in img.info):
                return img.convert('RGBA')
            if img.mode not in ('RGB', 'RGBA'):
                return img.convert('RGB')
            return img

        if pil_format == 'PNG' and img.mode == 'CMYK':
            return img.convert('RGB')

        return img

"""
Placement of derivatives on disk.
"""

import os

from .image_record import Origin, SourceImage


def placement_root(origin: Origin, base_path: str, public_root: str) -> str:
    """
    Root directory for derivatives of an image.

    Local images keep their derivatives beside them. Framework-static and
    remote images are relocated to the public root.
    """
    if origin == Origin.LOCAL:
        return base_path
    return public_root


def resolve_destination(
    origin: Origin,
    base_path: str,
    subdirectory: str,
    filename: str,
    width: int,
    fmt: str,
    public_root: str,
    output_folder_name: str
) -> str:
    """
    Destination path of one derivative.

    Layout: {root}/{subdirectory}/{output_folder_name}/{stem}-opt-{width}.{FMT}
    """
    stem = os.path.splitext(filename)[0]
    return os.path.join(
        placement_root(origin, base_path, public_root),
        subdirectory,
        output_folder_name,
        f"{stem}-opt-{width}.{fmt.upper()}",
    )


def destination_for(
    image: SourceImage,
    width: int,
    fmt: str,
    public_root: str,
    output_folder_name: str
) -> str:
    """resolve_destination for a SourceImage."""
    return resolve_destination(
        image.origin,
        image.base_path,
        image.subdirectory,
        image.filename,
        width,
        fmt,
        public_root,
        output_folder_name,
    )

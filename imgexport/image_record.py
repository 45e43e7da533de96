"""
SourceImage - Descriptor for a single source image and its derivatives.
"""

import os
from dataclasses import dataclass, asdict
from enum import Enum

SUPPORTED_EXTENSIONS = {'PNG', 'JPG', 'JPEG', 'WEBP', 'AVIF', 'GIF'}


class Origin(str, Enum):
    """Where a source image came from. Decides where its derivatives are placed."""
    LOCAL = 'local'
    FRAMEWORK_STATIC = 'static'
    REMOTE = 'remote'


def file_extension(filename: str) -> str:
    """Upper-cased extension without the dot, or '' if there is none."""
    parts = filename.rsplit('.', 1)
    if len(parts) == 1:
        return ''
    return parts[1].upper()


def is_supported_image(filename: str) -> bool:
    """True if the filename has a supported image extension (case-insensitive)."""
    return file_extension(filename) in SUPPORTED_EXTENSIONS


@dataclass(frozen=True)
class SourceImage:
    """
    A source image discovered by the scanner.

    Attributes:
        base_path: Root directory the image was found under
        subdirectory: Containing directory relative to base_path ('' at top level)
        filename: Base filename
        origin: Origin category
    """
    base_path: str
    subdirectory: str
    filename: str
    origin: Origin = Origin.LOCAL

    @property
    def full_path(self) -> str:
        """Path of the source file on disk."""
        return os.path.join(self.base_path, self.subdirectory, self.filename)

    @property
    def key(self) -> str:
        """Fingerprint store key."""
        return f"{self.subdirectory}/{self.filename}"

    @property
    def stem(self) -> str:
        """Filename without extension."""
        return os.path.splitext(self.filename)[0]

    @property
    def extension(self) -> str:
        return file_extension(self.filename)

    def read_bytes(self) -> bytes:
        """Read the raw source bytes."""
        with open(self.full_path, 'rb') as f:
            return f.read()

    def to_dict(self) -> dict:
        data = asdict(self)
        data['origin'] = self.origin.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'SourceImage':
        return cls(
            base_path=data['base_path'],
            subdirectory=data['subdirectory'],
            filename=data['filename'],
            origin=Origin(data.get('origin', Origin.LOCAL.value)),
        )


class DerivativeAction(str, Enum):
    """How a derivative came to exist in this run."""
    GENERATED = 'generated'
    COPIED = 'copied'
    REUSED = 'reused'


@dataclass(frozen=True)
class DerivativeInfo:
    """
    A single derivative produced or reused in this run.

    Attributes:
        width: Target width
        path: Destination path
        size: Size in bytes
        action: Generated, copied or reused
    """
    width: int
    path: str
    size: int
    action: DerivativeAction

    def to_dict(self) -> dict:
        data = asdict(self)
        data['action'] = self.action.value
        return data

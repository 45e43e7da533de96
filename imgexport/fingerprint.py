"""
Content fingerprints for change detection.
"""

import hashlib
import json
from typing import Sequence

FINGERPRINT_LENGTH = 24


def compute_fingerprint(
    data: bytes,
    widths: Sequence[int],
    quality: int,
    subdirectory: str,
    filename: str
) -> str:
    """
    Compute the fingerprint of an image and its generation parameters.

    Any change to the bytes, the width list (contents or order), the
    quality or the image location yields a different fingerprint.

    Args:
        data: Raw image bytes
        widths: Target widths, in configured order
        quality: Encoder quality
        subdirectory: Subdirectory relative to the image's base path
        filename: Image filename

    Returns:
        Hex digest string
    """
    params = json.dumps([list(widths), quality, subdirectory, filename])

    h = hashlib.sha256()
    h.update(len(data).to_bytes(8, 'big'))
    h.update(data)
    h.update(params.encode('utf-8'))
    return h.hexdigest()[:FINGERPRINT_LENGTH]

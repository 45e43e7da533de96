"""
FingerprintStore - Persisted map of image key to last-seen fingerprint.
"""

import json
import logging
import os
import tempfile
from typing import Dict, Iterator, Optional


class FingerprintStore:
    """
    Mapping of "{subdirectory}/{filename}" to fingerprint.

    Loaded once at the start of a run and saved once at the end. The file
    is replaced atomically, so an interrupted run leaves the previous
    store intact.
    """

    def __init__(self, fingerprints: Optional[Dict[str, str]] = None):
        self.fingerprints: Dict[str, str] = dict(fingerprints or {})

    def get(self, key: str) -> Optional[str]:
        return self.fingerprints.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self.fingerprints

    def __len__(self) -> int:
        return len(self.fingerprints)

    def __iter__(self) -> Iterator[str]:
        return iter(self.fingerprints)

    def to_dict(self) -> Dict[str, str]:
        return dict(self.fingerprints)

    @classmethod
    def load(cls, filepath: str, logger: Optional[logging.Logger] = None) -> 'FingerprintStore':
        """
        Load a store from JSON.

        A missing file gives an empty store. So does a corrupt one, which
        forces regeneration of every image rather than trusting bad data.
        """
        logger = logger or logging.getLogger(__name__)

        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug(f"No fingerprint store at {filepath}, starting empty")
            return cls()
        except (OSError, ValueError) as e:
            logger.warning(f"Fingerprint store {filepath} is unreadable ({e}), regenerating all images")
            return cls()

        if not isinstance(data, dict):
            logger.warning(f"Fingerprint store {filepath} is not a mapping, regenerating all images")
            return cls()

        return cls({
            str(key): value
            for key, value in data.items()
            if isinstance(value, str)
        })

    def save(self, filepath: str) -> None:
        """Write the whole store to filepath, replacing any previous file atomically."""
        directory = os.path.dirname(os.path.abspath(filepath))
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.hashes-', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(self.fingerprints, f, indent=4, sort_keys=True)
            os.replace(tmp_path, filepath)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

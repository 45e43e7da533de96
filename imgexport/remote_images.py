"""
Remote images - Downloads remote image URLs so they can be optimized like local files.
"""

import hashlib
import json
import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import urllib3

from .image_record import is_supported_image

MAX_CONCURRENT_DOWNLOADS = 20

# Leaves room for the "-opt-{width}.{FMT}" suffix of derivatives within NAME_MAX
MAX_FILENAME_BYTES = 200

PROTOCOL_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.\-]*://')
UNSAFE_CHARS_RE = re.compile(r'[/\\:*?"<>|#%\x00-\x1f\x7f]')

CONTENT_TYPE_EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/jpg': '.jpg',
    'image/png': '.png',
    'image/webp': '.webp',
    'image/avif': '.avif',
    'image/gif': '.gif',
}


def url_to_filename(url: str) -> str:
    """
    Filesystem-safe filename for a remote URL.

    Strips the protocol, replaces path separators, reserved characters and
    control characters with '_' and trims surrounding whitespace. Names
    longer than MAX_FILENAME_BYTES are truncated and suffixed with a hash of
    the URL, keeping the extension.
    """
    name = PROTOCOL_RE.sub('', url.strip())
    name = UNSAFE_CHARS_RE.sub('_', name).strip()
    if len(name.encode('utf-8')) <= MAX_FILENAME_BYTES:
        return name

    stem, ext = os.path.splitext(name)
    if len(ext) > 6:
        ext = ''
    digest = hashlib.sha256(url.strip().encode('utf-8')).hexdigest()[:16]
    room = MAX_FILENAME_BYTES - len(digest) - 1 - len(ext.encode('utf-8'))
    head = stem.encode('utf-8')[:room].decode('utf-8', 'ignore')
    return f"{head}_{digest}{ext}"


def load_remote_urls(filepath: str, logger: Optional[logging.Logger] = None) -> List[str]:
    """
    Read the list of remote image URLs.

    The file holds a JSON array of URL strings. A missing file means no
    remote images.
    """
    logger = logger or logging.getLogger(__name__)
    try:
        with open(filepath, 'r') as f:
            data = json.load(f)
    except FileNotFoundError:
        return []

    if not isinstance(data, list) or not all(isinstance(u, str) for u in data):
        raise ValueError(f"{filepath} must contain a JSON array of URLs")

    urls = list(dict.fromkeys(u.strip() for u in data if u.strip()))
    logger.debug(f"Loaded {len(urls)} remote image URLs from {filepath}")
    return urls


class RemoteImageDownloader:
    """
    Downloads remote images into a local folder using urllib3.

    The folder is emptied first, since remote images may have changed
    since the previous run. A failed download is logged and skipped.
    """

    def __init__(
        self,
        folder: str,
        http: Optional[urllib3.PoolManager] = None,
        timeout: float = 30.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize downloader.

        Args:
            folder: Destination folder for downloaded images
            http: Optional urllib3 PoolManager
            timeout: Per-request timeout in seconds
            logger: Optional logger instance
        """
        self.folder = folder
        self.http = http or urllib3.PoolManager(maxsize=MAX_CONCURRENT_DOWNLOADS)
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def prepare_folder(self) -> None:
        """Create the folder, or remove any files left from a previous run."""
        if not os.path.isdir(self.folder):
            os.makedirs(self.folder, exist_ok=True)
            self.logger.info(f"Created remote image folder: {self.folder}")
            return

        for entry in os.listdir(self.folder):
            path = os.path.join(self.folder, entry)
            if os.path.isfile(path):
                os.remove(path)

    def download_all(self, urls: List[str]) -> List[str]:
        """
        Download every URL.

        Args:
            urls: Remote image URLs

        Returns:
            Filenames (within folder) of the images downloaded
        """
        if not urls:
            return []

        self.prepare_folder()
        self.logger.info(f"Downloading {len(urls)} remote image{'s' if len(urls) != 1 else ''}...")

        workers = min(len(urls), MAX_CONCURRENT_DOWNLOADS)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            filenames = list(executor.map(self.download, urls))

        return [name for name in filenames if name is not None]

    def download(self, url: str) -> Optional[str]:
        """Download one URL. Returns the filename written, or None on failure."""
        filename = url_to_filename(url)
        # redirects are followed, failures are never retried
        retries = urllib3.Retry(total=None, connect=0, read=0, status=0, other=0, redirect=5)

        try:
            response = self.http.request('GET', url, timeout=self.timeout, retries=retries)
        except urllib3.exceptions.HTTPError as e:
            self.logger.error(f"Failed to download {url}: {e}")
            return None

        if response.status >= 400:
            self.logger.error(f"Failed to download {url}: HTTP {response.status}")
            return None

        if not is_supported_image(filename):
            content_type = (response.headers.get('Content-Type') or '').split(';')[0].strip().lower()
            extension = CONTENT_TYPE_EXTENSIONS.get(content_type)
            if extension is None:
                self.logger.warning(f"Skipping {url}: unsupported content type {content_type or 'unknown'}")
                return None
            filename += extension

        try:
            with open(os.path.join(self.folder, filename), 'wb') as f:
                f.write(response.data)
        except OSError as e:
            self.logger.error(f"Failed to save {url} as {filename}: {e}")
            return None

        self.logger.debug(f"Downloaded {url} -> {filename}")
        return filename

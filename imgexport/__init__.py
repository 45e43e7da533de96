"""
Image export optimization for statically exported sites.

Single-pass operation:
    1. Download remote images and enumerate local and static source images
    2. Generate resized derivatives at every configured width, reusing
       derivatives whose source and settings are unchanged
    3. Persist fingerprints, delete unused derivatives and copy the
       results into the export folder
"""

__version__ = "1.0.0"

from .config import OptimizerConfig
from .image_record import Origin, SourceImage, DerivativeInfo, DerivativeAction
from .fingerprint import compute_fingerprint
from .hash_store import FingerprintStore
from .placement import resolve_destination
from .codec import ImageCodec
from .scanner import Scanner, SourceEnumerationError
from .planner import DerivativePlanner, ImageResult
from .generation_stats import GenerationStats
from .generation_progress import GenerationProgress
from .generator import Generator, RunResult
from .reconciler import Reconciler
from .remote_images import RemoteImageDownloader, url_to_filename
from .pipeline import Pipeline, PipelineResult
from .reporter import Reporter

__all__ = [
    "OptimizerConfig",
    "Origin",
    "SourceImage",
    "DerivativeInfo",
    "DerivativeAction",
    "compute_fingerprint",
    "FingerprintStore",
    "resolve_destination",
    "ImageCodec",
    "Scanner",
    "SourceEnumerationError",
    "DerivativePlanner",
    "ImageResult",
    "GenerationStats",
    "GenerationProgress",
    "Generator",
    "RunResult",
    "Reconciler",
    "RemoteImageDownloader",
    "url_to_filename",
    "Pipeline",
    "PipelineResult",
    "Reporter",
]

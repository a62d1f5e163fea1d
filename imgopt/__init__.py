"""
Responsive image variant pipeline.

Generates resized/reformatted variants of source images, tracks them in a
manifest for incremental rebuilds, and serves missing variants on the fly.
"""

__version__ = "1.0.0"

from .errors import (
    ImageOptimizerError, ConfigError, InputDirectoryMissing, SourceUnreadable,
    EncodeFailed, ManifestCorrupt, TransformFailed, UnsupportedSource,
)
from .image_format import ImageFormat
from .config import OptimizerConfig
from .codec import PillowCodec, ImageSize
from .variant import Variant, ManifestEntry
from .manifest import Manifest
from .staleness import Staleness, StalenessDetector
from .generation_stats import GenerationStats
from .generation_progress import GenerationProgress
from .generator import VariantGenerator, ImageResult, VariantOutcome
from .debouncer import DebounceTimer, ChangeDebouncer
from .resolver import OnTheFlyResolver, Resolution
from .responsive import OptimizedImage, get_srcset, get_optimal_src, get_picture_sources
from .pipeline import Pipeline

__all__ = [
    "ImageOptimizerError",
    "ConfigError",
    "InputDirectoryMissing",
    "SourceUnreadable",
    "EncodeFailed",
    "ManifestCorrupt",
    "TransformFailed",
    "UnsupportedSource",
    "ImageFormat",
    "OptimizerConfig",
    "PillowCodec",
    "ImageSize",
    "Variant",
    "ManifestEntry",
    "Manifest",
    "Staleness",
    "StalenessDetector",
    "GenerationStats",
    "GenerationProgress",
    "VariantGenerator",
    "ImageResult",
    "VariantOutcome",
    "DebounceTimer",
    "ChangeDebouncer",
    "OnTheFlyResolver",
    "Resolution",
    "OptimizedImage",
    "get_srcset",
    "get_optimal_src",
    "get_picture_sources",
    "Pipeline",
]

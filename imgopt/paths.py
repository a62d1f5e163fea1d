"""
Paths - Mapping between original paths, variant filenames and public URLs.

Everything here is pure string manipulation; nothing touches the disk.
"""

import posixpath
import re
from typing import Optional, Tuple

SUPPORTED_EXTENSIONS = frozenset({
    '.jpg', '.jpeg', '.png', '.gif', '.webp', '.avif', '.tiff', '.svg',
})

# Tried in order when looking for the original behind a variant request.
ORIGINAL_CANDIDATE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.webp', '.avif')

# Pattern to match variant filenames: stem-640w.webp
# Captures: (stem, width, format)
VARIANT_PATTERN = re.compile(r'^(.+)-(\d+)w\.(webp|avif|jpeg|jpg|png)$', re.IGNORECASE)

_REPEATED_SLASHES = re.compile(r'/+')


def split_stem(path: str) -> Tuple[str, str]:
    """
    Split a relative path into (stem, extension).

    Only the last component is considered, so 'a.b/c' has no extension.
    A path without an extension keeps its full basename as the stem.
    """
    dirname, basename = posixpath.split(path)
    dot = basename.rfind('.')
    if dot <= 0:
        return path, ''
    stem = basename[:dot]
    ext = basename[dot:]
    return (posixpath.join(dirname, stem) if dirname else stem), ext


def output_filename(original_path: str, width: int, format) -> str:
    """Return the variant path for an original: 'a/b.jpg' -> 'a/b-640w.webp'."""
    fmt = getattr(format, 'value', format)
    stem, _ = split_stem(original_path)
    return f"{stem}-{width}w.{fmt}"


def is_supported_image(filename: str) -> bool:
    """Check the extension against the supported input formats."""
    _, ext = split_stem(filename)
    return ext.lower() in SUPPORTED_EXTENSIONS


def parse_variant_filename(path: str) -> Optional[Tuple[str, int, str]]:
    """
    Parse a variant filename.

    Returns:
        Tuple of (base_path, width, format) or None if not a variant name
    """
    match = VARIANT_PATTERN.match(path)
    if not match:
        return None
    base, width, fmt = match.groups()
    return base, int(width), fmt.lower()


def scaled_height(width: int, original_width: int, original_height: int) -> int:
    """Height preserving the original aspect ratio, halves rounded up."""
    return int(width * original_height / original_width + 0.5)


def normalize_url(path: str) -> str:
    return _REPEATED_SLASHES.sub('/', path)


def build_optimize_url(
    image_path: str,
    width: Optional[int] = None,
    format: Optional[str] = None,
    quality: Optional[int] = None,
    public_path: str = '/optimized'
) -> str:
    """
    Build the URL for on-the-fly optimization.

    Example:
        build_optimize_url('hero.jpg', width=640, format='webp')
        -> '/optimized/hero.jpg?w=640&format=webp'
    """
    params = []
    if width is not None:
        params.append(f"w={width}")
    if format is not None:
        params.append(f"format={getattr(format, 'value', format)}")
    if quality is not None:
        params.append(f"q={quality}")

    base = normalize_url(f"{public_path}/{image_path}")
    return f"{base}?{'&'.join(params)}" if params else base


def build_variant_url(
    base_name: str,
    width: int,
    format='webp',
    public_path: str = '/optimized'
) -> str:
    """
    Build the URL for a pre-processed variant.

    Example:
        build_variant_url('hero', 640, 'webp') -> '/optimized/hero-640w.webp'
    """
    fmt = getattr(format, 'value', format)
    return normalize_url(f"{public_path}/{base_name}-{width}w.{fmt}")


def is_safe_relative_path(path: str) -> bool:
    """Reject empty, absolute and parent-escaping paths."""
    if not path or path.startswith('/') or '\\' in path:
        return False
    return '..' not in path.split('/')

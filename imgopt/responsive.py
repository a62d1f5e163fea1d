"""
Responsive image helpers built on manifest entries.

OptimizedImage is what templates work with: given an original it answers
"which URL for this width", "what srcset" and "which <picture> sources".
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .manifest import Manifest
from .paths import normalize_url
from .variant import ManifestEntry


@dataclass(frozen=True)
class OptimizedImage:
    """
    Public view of one original and its variants.

    Attributes:
        entry: Manifest entry for the original
        public_path: URL prefix variants are served under
        default_format: Format used when none is requested
    """
    entry: ManifestEntry
    public_path: str = '/optimized'
    default_format: str = 'webp'

    @property
    def width(self) -> int:
        return self.entry.width

    @property
    def height(self) -> int:
        return self.entry.height

    @property
    def sizes(self) -> List[int]:
        return self.entry.sizes

    @property
    def formats(self) -> List[str]:
        return self.entry.formats

    @property
    def original(self) -> str:
        return self.entry.original

    def url(self, path: str) -> str:
        return normalize_url(f"{self.public_path}/{path}")

    def src(self, size: Optional[int] = None, format: Optional[str] = None) -> str:
        """
        URL for a given width.

        Picks the exact width, else the next larger one, else the largest.
        Without a size the largest variant is returned. Falls back to the
        original when no variant of the format exists.
        """
        matching = self.entry.variants_for(format or self.default_format)
        if not matching:
            return self.url(self.entry.original)
        if size is None:
            return self.url(matching[-1].path)

        for variant in matching:
            if variant.width >= size:
                return self.url(variant.path)
        return self.url(matching[-1].path)

    def srcset(self, format: Optional[str] = None) -> str:
        return ', '.join(
            f"{self.url(v.path)} {v.width}w"
            for v in self.entry.variants_for(format or self.default_format)
        )

    def sources(self) -> List[Dict[str, str]]:
        """Sources for a <picture> element, one per format."""
        return [
            {'srcset': self.srcset(fmt), 'type': f"image/{fmt}"}
            for fmt in self.entry.formats
        ]


def get_srcset(manifest: Manifest, image_path: str, format: str = 'webp') -> str:
    """Srcset of output-relative paths for one original, or '' if unknown."""
    entry = manifest.get_entry(image_path)
    if entry is None:
        return ''
    return ', '.join(f"{v.path} {v.width}w" for v in entry.variants_for(format))


def get_optimal_src(
    manifest: Manifest,
    image_path: str,
    target_width: int,
    format: str = 'webp'
) -> Optional[str]:
    """Smallest variant at least target_width wide, else the largest one."""
    entry = manifest.get_entry(image_path)
    if entry is None:
        return None

    variants = entry.variants_for(format)
    for variant in variants:
        if variant.width >= target_width:
            return variant.path
    return variants[-1].path if variants else None


def get_picture_sources(manifest: Manifest, image_path: str) -> List[Dict[str, str]]:
    entry = manifest.get_entry(image_path)
    if entry is None:
        return []
    return [
        {'srcset': get_srcset(manifest, image_path, fmt), 'type': f"image/{fmt}"}
        for fmt in entry.formats
    ]

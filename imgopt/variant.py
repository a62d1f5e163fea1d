"""
Variant / ManifestEntry - Records for one original and its generated variants.
"""

from dataclasses import dataclass, field, asdict
from typing import List, Optional


@dataclass(frozen=True)
class Variant:
    """
    One generated rendition of an original.

    Attributes:
        format: Output format name (webp, avif, jpeg, png)
        size: Configured target width this variant was generated for
        path: Output path relative to the output root
        width: Actual width in pixels
        height: Actual height in pixels
        bytes: File size in bytes (informational)
    """
    format: str
    size: int
    path: str
    width: int
    height: int
    bytes: int = 0

    @property
    def identity(self) -> tuple:
        return (self.format, self.width)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'Variant':
        return cls(
            format=data['format'],
            size=int(data.get('size', data['width'])),
            path=data['path'],
            width=int(data['width']),
            height=int(data['height']),
            bytes=int(data.get('bytes', 0)),
        )


@dataclass(frozen=True)
class ManifestEntry:
    """
    Manifest record for a single original image.

    Entries are replaced whole, never edited in place.

    Attributes:
        original: Original path relative to the input root
        width: Intrinsic width of the original
        height: Intrinsic height of the original
        variants: Variants in configured width, then format, order
    """
    original: str
    width: int
    height: int
    variants: List[Variant] = field(default_factory=list)

    @property
    def sizes(self) -> List[int]:
        """Distinct variant widths, ascending."""
        return sorted({v.width for v in self.variants})

    @property
    def formats(self) -> List[str]:
        """Distinct variant formats, in first-seen order."""
        seen = []
        for variant in self.variants:
            if variant.format not in seen:
                seen.append(variant.format)
        return seen

    @property
    def total_bytes(self) -> int:
        return sum(v.bytes for v in self.variants)

    def variants_for(self, format: str) -> List[Variant]:
        """Variants of one format, narrowest first."""
        return sorted((v for v in self.variants if v.format == format), key=lambda v: v.width)

    def get_variant(self, width: int, format: str) -> Optional[Variant]:
        for variant in self.variants:
            if variant.width == width and variant.format == format:
                return variant
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'original': self.original,
            'width': self.width,
            'height': self.height,
            'variants': [v.to_dict() for v in self.variants],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ManifestEntry':
        """Create from dictionary."""
        return cls(
            original=data['original'],
            width=int(data['width']),
            height=int(data['height']),
            variants=[Variant.from_dict(v) for v in data.get('variants', [])],
        )

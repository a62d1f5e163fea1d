"""
ImageFormat - Output formats and their encoder parameters.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class WebpParams:
    quality: int

    def save_kwargs(self) -> dict:
        return {'quality': self.quality}


@dataclass(frozen=True)
class AvifParams:
    quality: int

    def save_kwargs(self) -> dict:
        return {'quality': self.quality}


@dataclass(frozen=True)
class JpegParams:
    """JPEG always uses the optimizing, progressive encoder."""
    quality: int
    optimize: bool = True
    progressive: bool = True

    def save_kwargs(self) -> dict:
        return {
            'quality': self.quality,
            'optimize': self.optimize,
            'progressive': self.progressive,
        }


@dataclass(frozen=True)
class PngParams:
    """PNG is lossless; quality maps to maximum compression effort."""
    compress_level: int = 9
    optimize: bool = True

    def save_kwargs(self) -> dict:
        return {'compress_level': self.compress_level, 'optimize': self.optimize}


class ImageFormat(Enum):
    """Closed set of formats variants can be encoded to."""

    WEBP = 'webp'
    AVIF = 'avif'
    JPEG = 'jpeg'
    PNG = 'png'

    @classmethod
    def parse(cls, value: str) -> 'ImageFormat':
        """
        Parse a format name, accepting 'jpg' as an alias for 'jpeg'.

        Raises:
            ValueError: if the name is not a supported output format
        """
        name = (value or '').strip().lower()
        if name == 'jpg':
            name = 'jpeg'
        return cls(name)

    @classmethod
    def try_parse(cls, value: Optional[str]) -> Optional['ImageFormat']:
        try:
            return cls.parse(value)
        except ValueError:
            return None

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"

    @property
    def pil_format(self) -> str:
        return _PIL_FORMATS[self]

    @property
    def supports_alpha(self) -> bool:
        return self is not ImageFormat.JPEG

    def encode_params(self, quality: int):
        """Return the encoder parameter object for this format."""
        return _ENCODERS[self](quality)


_PIL_FORMATS = {
    ImageFormat.WEBP: 'WEBP',
    ImageFormat.AVIF: 'AVIF',
    ImageFormat.JPEG: 'JPEG',
    ImageFormat.PNG: 'PNG',
}

_ENCODERS = {
    ImageFormat.WEBP: lambda quality: WebpParams(quality=quality),
    ImageFormat.AVIF: lambda quality: AvifParams(quality=quality),
    ImageFormat.JPEG: lambda quality: JpegParams(quality=quality),
    ImageFormat.PNG: lambda quality: PngParams(),
}

# Checked at import time so an unhandled member fails immediately.
assert set(_ENCODERS) == set(ImageFormat), "every ImageFormat needs an encoder"
assert set(_PIL_FORMATS) == set(ImageFormat), "every ImageFormat needs a PIL name"

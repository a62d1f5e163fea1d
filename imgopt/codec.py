"""
PillowCodec - Probes and transforms images using Pillow.
"""

import io
import logging
from pathlib import Path
from typing import NamedTuple, Optional, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import EncodeFailed, SourceUnreadable, UnsupportedSource
from .image_format import ImageFormat


# Discovered as originals but not decodable by Pillow.
VECTOR_EXTENSIONS = frozenset({'.svg'})


class ImageSize(NamedTuple):
    width: int
    height: int


class PillowCodec:
    """
    Resize-and-encode primitive used by the pipeline.

    Resizing always uses cover semantics: the image is scaled and
    center-cropped to the exact target aspect ratio, never letterboxed,
    and never enlarged beyond the source dimensions.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def probe(self, path: Union[str, Path]) -> ImageSize:
        """
        Read intrinsic dimensions without decoding pixel data.

        Raises:
            UnsupportedSource: if the file is a vector image
            SourceUnreadable: if the file is missing or not a readable image
        """
        self._check_decodable(path)

        try:
            with Image.open(path) as img:
                width, height = img.size
        except FileNotFoundError as e:
            raise SourceUnreadable(f"Source not found: {path}") from e
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise SourceUnreadable(f"Could not read metadata for {path}: {e}") from e

        if not width or not height:
            raise SourceUnreadable(f"Could not read dimensions for {path}")
        return ImageSize(width, height)

    def transform(
        self,
        path: Union[str, Path],
        width: int,
        height: int,
        format: ImageFormat,
        quality: int
    ) -> bytes:
        """
        Cover-resize an image and encode it.

        Args:
            path: Source image path
            width: Target width
            height: Target height
            format: Output format
            quality: Quality 1-100 (ignored for PNG)

        Returns:
            Encoded image bytes

        Raises:
            UnsupportedSource: if the source is a vector image
            SourceUnreadable: if the source cannot be opened
            EncodeFailed: if resizing or encoding fails
        """
        self._check_decodable(path)

        try:
            img = Image.open(path)
        except FileNotFoundError as e:
            raise SourceUnreadable(f"Source not found: {path}") from e
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise SourceUnreadable(f"Could not open {path}: {e}") from e

        try:
            with img:
                img.load()
                img = self._convert_color_mode(img, format)

                # withoutEnlargement: never scale past the source
                if width > img.width or height > img.height:
                    width, height = img.width, img.height

                if (width, height) != img.size:
                    img = ImageOps.fit(img, (width, height), method=Image.Resampling.LANCZOS)

                output = io.BytesIO()
                params = format.encode_params(quality)
                img.save(output, format=format.pil_format, **params.save_kwargs())
                return output.getvalue()
        except (OSError, ValueError, KeyError, Image.DecompressionBombError) as e:
            self.logger.error(f"Error encoding {path} as {format.value}: {e}")
            raise EncodeFailed(f"Failed to encode {path} as {format.value}: {e}") from e

    def _convert_color_mode(self, img: Image.Image, format: ImageFormat) -> Image.Image:
        """Convert image to a color mode the output format can store."""
        if img.mode == 'P':
            img = img.convert('RGBA')
        if not format.supports_alpha:
            if img.mode in ('RGBA', 'LA'):
                if img.mode == 'LA':
                    img = img.convert('RGBA')
                background = Image.new('RGB', img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[-1])
                return background
            if img.mode != 'RGB':
                return img.convert('RGB')
            return img
        if img.mode not in ('RGB', 'RGBA'):
            return img.convert('RGBA' if 'A' in img.getbands() else 'RGB')
        return img

    @staticmethod
    def _check_decodable(path: Union[str, Path]) -> None:
        if Path(path).suffix.lower() in VECTOR_EXTENSIONS:
            raise UnsupportedSource(f"Unsupported by codec (vector image): {path}")

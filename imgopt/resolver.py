"""
OnTheFlyResolver - Serves variant requests, generating missing ones on demand.

Two addressing schemes share the public path:

    {public}/hero-640w.webp          pre-built variant; generated and cached to disk if missing
    {public}/hero.jpg?w=800&format=avif&q=70
                                     generated for every request, never written to disk
"""

import contextlib
import logging
import mimetypes
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, ContextManager, Mapping, Optional

from .codec import PillowCodec
from .config import OptimizerConfig
from .errors import EncodeFailed, SourceUnreadable, TransformFailed
from .files import write_atomic
from .image_format import ImageFormat
from .paths import (
    ORIGINAL_CANDIDATE_EXTENSIONS, is_safe_relative_path, is_supported_image,
    parse_variant_filename, scaled_height,
)

mimetypes.add_type('image/webp', '.webp')
mimetypes.add_type('image/avif', '.avif')

SERVED_CACHED = 'served-cached'
SERVED_GENERATED = 'served-generated'
SERVED_ORIGINAL = 'served-original'
NOT_FOUND = 'not-found'
BAD_REQUEST = 'bad-request'
FAILED = 'failed'
CANCELLED = 'cancelled'

CACHE_IMMUTABLE = 'public, max-age=31536000, immutable'
CACHE_ONE_DAY = 'public, max-age=86400'

HTTP_STATUS = {
    SERVED_CACHED: 200,
    SERVED_GENERATED: 200,
    SERVED_ORIGINAL: 200,
    NOT_FOUND: 404,
    BAD_REQUEST: 400,
    FAILED: 500,
    CANCELLED: 499,
}


@dataclass
class Resolution:
    """
    Outcome of resolving one request.

    Exactly one of body / file_path is set for served statuses.

    Attributes:
        status: One of the SERVED_*, NOT_FOUND, BAD_REQUEST, FAILED, CANCELLED constants
        content_type: MIME type of the payload
        body: Generated image bytes
        file_path: Existing file to stream
        cache_control: Cache-Control header value
        message: Human-readable reason for non-served statuses
    """
    status: str
    content_type: str = 'text/plain; charset=utf-8'
    body: Optional[bytes] = None
    file_path: Optional[Path] = None
    cache_control: Optional[str] = None
    message: str = ''

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self.status]

    @property
    def served(self) -> bool:
        return self.status in (SERVED_CACHED, SERVED_GENERATED, SERVED_ORIGINAL)

    @property
    def optimized_on_the_fly(self) -> bool:
        """True when the payload was generated for this request."""
        return self.status == SERVED_GENERATED


def _error(status: str, message: str) -> Resolution:
    return Resolution(status=status, message=message)


def _serve_file(status: str, path: Path, cache_control: str) -> Resolution:
    mime, _ = mimetypes.guess_type(path.name)
    return Resolution(
        status=status,
        content_type=mime or 'application/octet-stream',
        file_path=path,
        cache_control=cache_control,
    )


class OnTheFlyResolver:
    """
    Resolves requests under the public path to files or freshly encoded bytes.
    """

    def __init__(
        self,
        config: OptimizerConfig,
        codec: Optional[PillowCodec] = None,
        path_lock: Optional[Callable[[str], ContextManager]] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.codec = codec or PillowCodec(logger=self.logger)
        self.path_lock = path_lock or (lambda path: contextlib.nullcontext())

    def resolve(
        self,
        relative_path: str,
        query: Optional[Mapping[str, str]] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> Resolution:
        """
        Resolve a request path (relative to the public path).

        Args:
            relative_path: Path after the public prefix, e.g. 'gallery/hero-640w.webp'
            query: Query parameters (w, format, q)
            cancel_event: Set by the caller to abandon the request; checked
                after encoding and before anything is written

        Returns:
            Resolution describing what to send back
        """
        relative_path = (relative_path or '').lstrip('/')
        query = query or {}

        if not is_safe_relative_path(relative_path) or not is_supported_image(relative_path):
            return _error(NOT_FOUND, "Not found")

        variant = parse_variant_filename(relative_path)
        if variant:
            return self._resolve_variant(relative_path, *variant, cancel_event=cancel_event)

        return self._resolve_query(relative_path, query, cancel_event=cancel_event)

    def find_original(self, base_path: str) -> Optional[str]:
        """Find the original behind a variant base name by trying known extensions."""
        for ext in ORIGINAL_CANDIDATE_EXTENSIONS:
            candidate = f"{base_path}{ext}"
            if (self.config.input_path / candidate).is_file():
                return candidate
        return None

    def _resolve_variant(
        self,
        relative_path: str,
        base_path: str,
        width: int,
        format_name: str,
        cancel_event: Optional[threading.Event] = None
    ) -> Resolution:
        output_path = self.config.output_path / relative_path
        if output_path.is_file():
            return _serve_file(SERVED_CACHED, output_path, CACHE_IMMUTABLE)

        if width <= 0:
            return _error(BAD_REQUEST, f"Invalid width: {width}")

        image_format = ImageFormat.parse(format_name)
        original = self.find_original(base_path)
        if original is None:
            return _error(NOT_FOUND, "Source image not found")

        with self.path_lock(original):
            try:
                data = self.transform(original, width, image_format, self.config.quality)
            except TransformFailed as e:
                self.logger.error(f"On-the-fly optimization failed for {original}: {e}")
                return _error(FAILED, "Failed to process image")

            if cancel_event is not None and cancel_event.is_set():
                self.logger.debug(f"Request for {relative_path} cancelled, not caching")
                return _error(CANCELLED, "Request cancelled")

            try:
                write_atomic(output_path, data)
                self.logger.info(f"Cached on-the-fly variant: {relative_path}")
            except OSError as e:
                self.logger.error(f"Could not cache {relative_path}: {e}")

        return Resolution(
            status=SERVED_GENERATED,
            content_type=image_format.content_type,
            body=data,
            cache_control=CACHE_IMMUTABLE,
        )

    def _resolve_query(
        self,
        relative_path: str,
        query: Mapping[str, str],
        cancel_event: Optional[threading.Event] = None
    ) -> Resolution:
        width_param = query.get('w')
        format_param = query.get('format')
        quality_param = query.get('q')

        if not width_param and not format_param and not quality_param:
            output_path = self.config.output_path / relative_path
            if output_path.is_file():
                return _serve_file(SERVED_CACHED, output_path, CACHE_IMMUTABLE)

            input_path = self.config.input_path / relative_path
            if input_path.is_file():
                return _serve_file(SERVED_ORIGINAL, input_path, CACHE_ONE_DAY)

            return _error(NOT_FOUND, "Not found")

        width = None
        if width_param:
            try:
                width = int(width_param)
            except ValueError:
                return _error(BAD_REQUEST, f"Invalid width: {width_param!r}")
            if width <= 0:
                return _error(BAD_REQUEST, f"Invalid width: {width_param!r}")

        image_format = self.config.default_format
        if format_param:
            image_format = ImageFormat.try_parse(format_param)
            if image_format is None:
                return _error(BAD_REQUEST, f"Unsupported format: {format_param!r}")

        quality = self.config.quality
        if quality_param:
            try:
                quality = int(quality_param)
            except ValueError:
                return _error(BAD_REQUEST, f"Invalid quality: {quality_param!r}")
            if not 1 <= quality <= 100:
                return _error(BAD_REQUEST, f"Quality must be between 1 and 100: {quality_param!r}")

        if not (self.config.input_path / relative_path).is_file():
            return _error(NOT_FOUND, "Not found")

        try:
            data = self.transform(relative_path, width, image_format, quality)
        except TransformFailed as e:
            self.logger.error(f"On-the-fly optimization failed for {relative_path}: {e}")
            return _error(FAILED, "Failed to process image")

        if cancel_event is not None and cancel_event.is_set():
            return _error(CANCELLED, "Request cancelled")

        return Resolution(
            status=SERVED_GENERATED,
            content_type=image_format.content_type,
            body=data,
            cache_control=CACHE_ONE_DAY,
        )

    def transform(
        self,
        original: str,
        width: Optional[int],
        image_format: ImageFormat,
        quality: int
    ) -> bytes:
        """
        Encode an original at the requested width (default: its own width).

        Raises:
            TransformFailed: if the original cannot be read or encoded
        """
        input_path = self.config.input_path / original
        try:
            original_width, original_height = self.codec.probe(input_path)
            target_width = width or original_width
            target_height = scaled_height(target_width, original_width, original_height)
            return self.codec.transform(input_path, target_width, target_height, image_format, quality)
        except (SourceUnreadable, EncodeFailed) as e:
            raise TransformFailed(str(e)) from e

"""
OptimizerConfig - Configuration for the variant pipeline.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import ConfigError
from .image_format import ImageFormat

DEFAULT_OUTPUT = 'static/optimized'
DEFAULT_PUBLIC_PATH = '/optimized'
DEFAULT_FORMATS = ['webp']
DEFAULT_SIZES = [320, 640, 1280]
DEFAULT_QUALITY = 80
MANIFEST_FILENAME = 'manifest.json'


def str2bool(value, raise_exc=False):
    """converts diverse string values into boolean True or False"""
    true_set = {'yes', 'true', 't', 'y', '1', 'on'}
    false_set = {'no', 'false', 'f', 'n', '0', 'off'}

    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        value = value.strip().lower()
        if value in true_set:
            return True
        if value in false_set:
            return False

    if raise_exc:
        raise ValueError('Expected "%s"' % '", "'.join(sorted(true_set | false_set)))
    return None


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


@dataclass
class OptimizerConfig:
    """
    Configuration for the variant pipeline.

    Attributes:
        input: Directory containing source images (relative to root)
        output: Output directory for variants (relative to root)
        public_path: Public URL prefix the variants are served under
        formats: Formats to generate
        sizes: Widths to generate, in order
        quality: Compression quality 1-100
        watch: Whether file-change notifications should trigger regeneration
        generate_manifest: Persist manifest.json after generation
        keep_original: Copy the untouched original into the output tree
        skip_existing: Do not re-encode variants whose file already exists
        verbose: Enable debug logging
        root: Directory input and output are resolved against (default: cwd)
    """
    input: str
    output: str = DEFAULT_OUTPUT
    public_path: str = DEFAULT_PUBLIC_PATH
    formats: List[str] = field(default_factory=lambda: list(DEFAULT_FORMATS))
    sizes: List[int] = field(default_factory=lambda: list(DEFAULT_SIZES))
    quality: int = DEFAULT_QUALITY
    watch: bool = True
    generate_manifest: bool = True
    keep_original: bool = False
    skip_existing: bool = True
    verbose: bool = False
    root: Optional[str] = None

    @classmethod
    def from_env(cls, environ=None) -> 'OptimizerConfig':
        """
        Build a configuration from IMGOPT_* environment variables.

        Raises:
            ConfigError: if a variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        errors = []

        config = cls(input=env.get('IMGOPT_INPUT', ''))
        if env.get('IMGOPT_OUTPUT'):
            config.output = env['IMGOPT_OUTPUT']
        if env.get('IMGOPT_PUBLIC_PATH'):
            config.public_path = env['IMGOPT_PUBLIC_PATH']
        if env.get('IMGOPT_FORMATS'):
            config.formats = _split_list(env['IMGOPT_FORMATS'])
        if env.get('IMGOPT_SIZES'):
            try:
                config.sizes = [int(size) for size in _split_list(env['IMGOPT_SIZES'])]
            except ValueError:
                errors.append(f"IMGOPT_SIZES must be comma-separated integers, got {env['IMGOPT_SIZES']!r}")
        if env.get('IMGOPT_QUALITY'):
            try:
                config.quality = int(env['IMGOPT_QUALITY'])
            except ValueError:
                errors.append(f"IMGOPT_QUALITY must be an integer, got {env['IMGOPT_QUALITY']!r}")
        if env.get('IMGOPT_ROOT'):
            config.root = env['IMGOPT_ROOT']

        for attr in ('watch', 'generate_manifest', 'keep_original', 'skip_existing', 'verbose'):
            name = f"IMGOPT_{attr.upper()}"
            raw = env.get(name)
            if raw is None:
                continue
            value = str2bool(raw)
            if value is None:
                errors.append(f"{name} must be a boolean, got {raw!r}")
            else:
                setattr(config, attr, value)

        if errors:
            raise ConfigError(errors)
        return config

    def validate(self) -> List[str]:
        """Return a list of configuration errors (empty if valid)."""
        errors = []

        if not self.input:
            errors.append("Input directory is required (IMGOPT_INPUT or --input)")
        if not self.output:
            errors.append("Output directory is required")
        if not isinstance(self.quality, int) or not 1 <= self.quality <= 100:
            errors.append(f"Quality must be between 1 and 100, got {self.quality!r}")
        if not self.formats:
            errors.append("At least one output format is required")
        for fmt in self.formats:
            if ImageFormat.try_parse(fmt) is None:
                errors.append(f"Unsupported format: {fmt!r}")
        if not self.sizes:
            errors.append("At least one size is required")
        for size in self.sizes:
            if not isinstance(size, int) or size <= 0:
                errors.append(f"Sizes must be positive integers, got {size!r}")
        if not self.public_path.startswith('/'):
            errors.append(f"Public path must start with '/', got {self.public_path!r}")

        return errors

    @property
    def root_path(self) -> Path:
        return Path(self.root) if self.root else Path.cwd()

    @property
    def input_path(self) -> Path:
        return self.root_path / self.input

    @property
    def output_path(self) -> Path:
        return self.root_path / self.output

    @property
    def manifest_path(self) -> Path:
        return self.output_path / MANIFEST_FILENAME

    @property
    def image_formats(self) -> List[ImageFormat]:
        return [ImageFormat.parse(fmt) for fmt in self.formats]

    @property
    def default_format(self) -> ImageFormat:
        formats = self.image_formats
        return formats[0] if formats else ImageFormat.WEBP

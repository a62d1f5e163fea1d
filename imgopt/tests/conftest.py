"""
Pytest fixtures for imgopt tests.
"""

import pytest
from datetime import datetime


class FakeTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, delay, function):
        self.delay = delay
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


@pytest.fixture
def timer_factory():
    """Fixture providing a timer factory that records every timer it creates."""
    timers = []

    def factory(delay, function):
        timer = FakeTimer(delay, function)
        timers.append(timer)
        return timer

    factory.timers = timers
    return factory


@pytest.fixture
def write_image():
    """Fixture providing a helper that writes a real image file."""
    from PIL import Image

    def _write(path, size=(800, 400), color='red', mode='RGB', format=None):
        path.parent.mkdir(parents=True, exist_ok=True)
        img = Image.new(mode, size, color=color)
        img.save(path, format=format)
        return path

    return _write


@pytest.fixture
def input_dir(tmp_path):
    path = tmp_path / 'input'
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / 'output'


@pytest.fixture
def config(tmp_path, input_dir):
    """Fixture providing a configuration rooted in a temp directory."""
    from imgopt.config import OptimizerConfig

    return OptimizerConfig(
        input='input',
        output='output',
        root=str(tmp_path),
        formats=['webp'],
        sizes=[320, 640],
        quality=80,
    )


@pytest.fixture
def mock_codec():
    """Fixture providing a codec that reports 1000x500 and encodes to fixed bytes."""
    from unittest.mock import MagicMock
    from imgopt.codec import PillowCodec, ImageSize

    codec = MagicMock(spec=PillowCodec)
    codec.probe.return_value = ImageSize(1000, 500)
    codec.transform.return_value = b'encoded image data'
    return codec


@pytest.fixture
def touch_original(input_dir):
    """Fixture providing a helper that creates a placeholder original file."""

    def _touch(relative_path, data=b'original bytes'):
        path = input_dir / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    return _touch


@pytest.fixture
def pipeline(config, mock_codec, timer_factory, logger):
    """Fixture providing a pipeline with a mocked codec and manual timers."""
    from imgopt.pipeline import Pipeline

    p = Pipeline(config, codec=mock_codec, timer_factory=timer_factory, logger=logger)
    yield p
    p.close()


@pytest.fixture
def sample_entry():
    """Fixture providing a manifest entry with webp and avif variants."""
    from imgopt.variant import ManifestEntry, Variant

    return ManifestEntry(
        original='gallery/hero.jpg',
        width=1000,
        height=500,
        variants=[
            Variant('webp', 320, 'gallery/hero-320w.webp', 320, 160, 1000),
            Variant('avif', 320, 'gallery/hero-320w.avif', 320, 160, 800),
            Variant('webp', 640, 'gallery/hero-640w.webp', 640, 320, 3000),
            Variant('avif', 640, 'gallery/hero-640w.avif', 640, 320, 2500),
        ],
    )


@pytest.fixture
def sample_manifest(sample_entry):
    """Fixture providing a manifest with one entry."""
    from imgopt.manifest import Manifest

    manifest = Manifest(generated_at=datetime(2026, 1, 1).isoformat())
    manifest.upsert_entry(sample_entry.original, sample_entry)
    return manifest


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')

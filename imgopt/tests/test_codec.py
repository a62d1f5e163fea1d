"""Tests for PillowCodec (uses real Pillow encoding)."""

import io

import pytest
from PIL import Image, features

from imgopt.codec import ImageSize, PillowCodec
from imgopt.errors import SourceUnreadable, UnsupportedSource
from imgopt.image_format import ImageFormat


@pytest.fixture
def codec(logger):
    return PillowCodec(logger=logger)


def decode(data):
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


class TestProbe:
    """Tests for PillowCodec.probe."""

    def test_probe(self, codec, tmp_path, write_image):
        """Test intrinsic dimensions are returned."""
        path = write_image(tmp_path / 'a.jpg', size=(800, 400))
        assert codec.probe(path) == ImageSize(800, 400)

    def test_probe_missing(self, codec, tmp_path):
        """Test a missing file raises SourceUnreadable."""
        with pytest.raises(SourceUnreadable):
            codec.probe(tmp_path / 'missing.jpg')

    def test_probe_not_an_image(self, codec, tmp_path):
        """Test garbage data raises SourceUnreadable."""
        path = tmp_path / 'broken.jpg'
        path.write_bytes(b'not an image')
        with pytest.raises(SourceUnreadable):
            codec.probe(path)


class TestTransform:
    """Tests for PillowCodec.transform."""

    def test_webp(self, codec, tmp_path, write_image):
        """Test resizing to WebP."""
        path = write_image(tmp_path / 'a.jpg', size=(800, 400))

        data = codec.transform(path, 320, 160, ImageFormat.WEBP, 80)
        img = decode(data)

        assert img.format == 'WEBP'
        assert img.size == (320, 160)

    def test_cover_crops_to_exact_size(self, codec, tmp_path, write_image):
        """Test a different aspect ratio is cropped, not letterboxed."""
        path = write_image(tmp_path / 'a.png', size=(400, 200))

        img = decode(codec.transform(path, 100, 100, ImageFormat.PNG, 80))

        assert img.size == (100, 100)

    def test_no_enlargement(self, codec, tmp_path, write_image):
        """Test a target larger than the source keeps the source size."""
        path = write_image(tmp_path / 'small.png', size=(200, 100))

        img = decode(codec.transform(path, 400, 200, ImageFormat.PNG, 80))

        assert img.size == (200, 100)

    def test_jpeg_flattens_alpha(self, codec, tmp_path, write_image):
        """Test RGBA sources are flattened for JPEG."""
        path = write_image(tmp_path / 'logo.png', size=(64, 64), color=(0, 0, 0, 0), mode='RGBA')

        img = decode(codec.transform(path, 32, 32, ImageFormat.JPEG, 80))

        assert img.format == 'JPEG'
        assert img.mode == 'RGB'
        # transparent pixels become white
        assert img.getpixel((16, 16))[0] > 240

    def test_png_keeps_alpha(self, codec, tmp_path, write_image):
        """Test alpha survives PNG encoding."""
        path = write_image(tmp_path / 'logo.png', size=(64, 64), color=(255, 0, 0, 128), mode='RGBA')

        img = decode(codec.transform(path, 32, 32, ImageFormat.PNG, 80))

        assert img.mode == 'RGBA'

    def test_palette_source(self, codec, tmp_path, write_image):
        """Test palette images (e.g. GIF) are converted."""
        path = write_image(tmp_path / 'anim.gif', size=(100, 50), mode='P', color=1)

        img = decode(codec.transform(path, 50, 25, ImageFormat.WEBP, 80))

        assert img.size == (50, 25)

    @pytest.mark.skipif(not features.check('avif'), reason='Pillow built without AVIF')
    def test_avif(self, codec, tmp_path, write_image):
        """Test AVIF encoding."""
        path = write_image(tmp_path / 'a.jpg', size=(400, 200))

        data = codec.transform(path, 200, 100, ImageFormat.AVIF, 60)

        assert decode(data).size == (200, 100)

    def test_unreadable_source(self, codec, tmp_path):
        """Test a corrupt source raises SourceUnreadable."""
        path = tmp_path / 'broken.png'
        path.write_bytes(b'\x89PNG but not really')

        with pytest.raises(SourceUnreadable):
            codec.transform(path, 100, 100, ImageFormat.WEBP, 80)


class TestUndecodableSources:
    """Tests for sources Pillow refuses to decode."""

    @pytest.fixture
    def pixel_limit(self, monkeypatch):
        """Lower Pillow's decompression bomb limit so a small image exceeds it."""
        monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 30000)

    def test_probe_oversized(self, codec, tmp_path, write_image, pixel_limit):
        """Test an image over twice the pixel limit is unreadable, not a crash."""
        path = write_image(tmp_path / 'panorama.jpg', size=(400, 200))

        with pytest.raises(SourceUnreadable):
            codec.probe(path)

    def test_transform_oversized(self, codec, tmp_path, write_image, pixel_limit):
        """Test transform maps the decompression bomb error too."""
        path = write_image(tmp_path / 'panorama.jpg', size=(400, 200))

        with pytest.raises(SourceUnreadable):
            codec.transform(path, 100, 50, ImageFormat.WEBP, 80)

    def test_svg_unsupported(self, codec, tmp_path):
        """Test vector originals raise UnsupportedSource."""
        path = tmp_path / 'logo.svg'
        path.write_text('<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"/>')

        with pytest.raises(UnsupportedSource):
            codec.probe(path)
        with pytest.raises(UnsupportedSource):
            codec.transform(path, 10, 10, ImageFormat.PNG, 80)

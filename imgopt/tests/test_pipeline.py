"""Tests for Pipeline."""

import json
import threading

import pytest

from imgopt.codec import PillowCodec
from imgopt.config import OptimizerConfig
from imgopt.errors import ConfigError, InputDirectoryMissing, SourceUnreadable
from imgopt.pipeline import Pipeline


class TestPipelineInit:
    """Tests for pipeline construction."""

    def test_invalid_config_raises(self, tmp_path):
        """Test an invalid configuration is rejected with every error."""
        config = OptimizerConfig(input='', quality=0, root=str(tmp_path))

        with pytest.raises(ConfigError) as exc_info:
            Pipeline(config)

        assert len(exc_info.value.errors) == 2

    def test_default_codec(self, config):
        """Test a Pillow codec is used by default."""
        pipeline = Pipeline(config)
        assert isinstance(pipeline.codec, PillowCodec)
        pipeline.close()


class TestProcessAll:
    """Tests for batch processing."""

    def test_cold_start(self, pipeline, touch_original, output_dir):
        """Test every original is processed and the manifest written."""
        touch_original('a.jpg')
        touch_original('nested/b.png')

        stats = pipeline.process_all()

        assert stats.discovered == 2
        assert stats.processed == 2
        assert stats.variants_generated == 4
        data = json.loads((output_dir / 'manifest.json').read_text())
        assert sorted(data['images']) == ['a.jpg', 'nested/b.png']

    def test_second_run_is_idle(self, pipeline, mock_codec, touch_original, output_dir):
        """Test an unchanged tree is not re-encoded nor the manifest rewritten."""
        touch_original('a.jpg')
        pipeline.process_all()
        manifest_text = (output_dir / 'manifest.json').read_text()
        mock_codec.reset_mock()

        stats = pipeline.process_all()

        assert stats.cached == 1
        assert stats.total_to_process == 0
        mock_codec.transform.assert_not_called()
        assert (output_dir / 'manifest.json').read_text() == manifest_text

    def test_deleted_variant_is_regenerated(self, pipeline, mock_codec, touch_original, output_dir):
        """Test deleting one variant makes its original stale."""
        touch_original('a.jpg')
        pipeline.process_all()
        (output_dir / 'a-640w.webp').unlink()
        mock_codec.reset_mock()

        stats = pipeline.process_all()

        assert stats.total_to_process == 1
        assert stats.variants_generated == 1
        assert stats.variants_skipped == 1
        assert (output_dir / 'a-640w.webp').is_file()

    def test_force_all(self, pipeline, touch_original):
        """Test force processes originals that are up to date."""
        touch_original('a.jpg')
        pipeline.process_all()

        stats = pipeline.process_all(force_all=True)

        assert stats.total_to_process == 1
        assert stats.variants_skipped == 2

    def test_new_original_only(self, pipeline, mock_codec, touch_original):
        """Test only the new original is processed on an incremental run."""
        touch_original('a.jpg')
        pipeline.process_all()
        touch_original('b.jpg')
        mock_codec.reset_mock()

        stats = pipeline.process_all()

        assert stats.cached == 1
        assert stats.processed == 1
        paths = {call.args[0].name for call in mock_codec.transform.call_args_list}
        assert paths == {'b.jpg'}

    def test_empty_input(self, pipeline, output_dir):
        """Test an empty input tree does nothing."""
        stats = pipeline.process_all()

        assert stats.discovered == 0
        assert not (output_dir / 'manifest.json').exists()

    def test_ignores_unsupported_files(self, pipeline, touch_original):
        """Test non-image files are not discovered."""
        touch_original('a.jpg')
        touch_original('notes.txt')

        assert pipeline.discover() == ['a.jpg']

    def test_missing_input_raises(self, config, mock_codec, logger):
        """Test a missing input directory aborts the run."""
        config.input = 'does-not-exist'
        pipeline = Pipeline(config, codec=mock_codec, logger=logger)

        with pytest.raises(InputDirectoryMissing):
            pipeline.process_all()

        assert pipeline.is_processing is False
        with pytest.raises(InputDirectoryMissing):
            pipeline.process_all()

    def test_single_flight(self, pipeline, mock_codec, touch_original):
        """Test a run started while another is active returns None."""
        touch_original('a.jpg')
        entered = threading.Event()
        release = threading.Event()

        def slow_transform(*args):
            entered.set()
            release.wait(5)
            return b'data'

        mock_codec.transform.side_effect = slow_transform
        results = []
        worker = threading.Thread(target=lambda: results.append(pipeline.process_all()))
        worker.start()
        try:
            assert entered.wait(5)
            assert pipeline.is_processing is True
            assert pipeline.process_all() is None
        finally:
            release.set()
            worker.join(5)

        assert results[0].processed == 1
        assert pipeline.is_processing is False

    def test_error_counted(self, pipeline, mock_codec, touch_original, output_dir):
        """Test an unreadable original is counted and the rest still persist."""
        touch_original('a.jpg')
        touch_original('b.jpg')
        mock_codec.probe.side_effect = [SourceUnreadable('bad header'), mock_codec.probe.return_value]

        stats = pipeline.process_all()

        assert stats.errors == 1
        assert stats.processed == 1
        assert stats.error_details == ['a.jpg: bad header']
        data = json.loads((output_dir / 'manifest.json').read_text())
        assert list(data['images']) == ['b.jpg']

    def test_no_manifest_when_disabled(self, config, mock_codec, touch_original, output_dir, logger):
        """Test manifest.json is not written when disabled."""
        config.generate_manifest = False
        pipeline = Pipeline(config, codec=mock_codec, logger=logger)
        touch_original('a.jpg')

        pipeline.process_all()

        assert (output_dir / 'a-320w.webp').is_file()
        assert not (output_dir / 'manifest.json').exists()

    def test_progress_callbacks(self, pipeline, mocker, touch_original):
        """Test progress receives each result and the running stats."""
        progress = mocker.MagicMock()
        touch_original('a.jpg')

        pipeline.process_all(progress=progress)

        progress.on_image_processed.assert_called_once()
        progress.on_progress_update.assert_called_once()


class TestManifestLifecycle:
    """Tests for loading, regenerating and cleaning."""

    def test_load_manifest_cold_start(self, pipeline):
        """Test load_manifest reports a cold start."""
        assert pipeline.load_manifest() is False

    def test_startup_reuses_persisted_manifest(self, config, touch_original, timer_factory, logger, mocker):
        """Test a new pipeline picks up where the previous one left off."""
        touch_original('a.jpg')
        codec = mocker.MagicMock(spec=PillowCodec)
        codec.probe.return_value = (1000, 500)
        codec.transform.return_value = b'data'
        Pipeline(config, codec=codec, logger=logger).process_all()

        codec.reset_mock()
        restarted = Pipeline(config, codec=codec, timer_factory=timer_factory, logger=logger)
        stats = restarted.startup()

        assert 'a.jpg' in restarted.manifest
        assert stats.cached == 1
        codec.transform.assert_not_called()

    def test_corrupt_manifest_is_cold_start(self, pipeline, touch_original, output_dir):
        """Test a corrupt manifest is treated as absent."""
        output_dir.mkdir()
        (output_dir / 'manifest.json').write_text('not json')
        touch_original('a.jpg')

        assert pipeline.load_manifest() is False
        assert pipeline.startup().processed == 1

    def test_regenerate_manifest(self, pipeline, output_dir):
        """Test the manifest can be rewritten without encoding."""
        assert pipeline.regenerate_manifest() is True
        data = json.loads((output_dir / 'manifest.json').read_text())
        assert data['images'] == {}

    def test_regenerate_manifest_disabled(self, pipeline, output_dir):
        """Test nothing is written when manifest generation is off."""
        pipeline.config.generate_manifest = False
        assert pipeline.regenerate_manifest() is False
        assert not output_dir.exists()

    def test_clean(self, pipeline, touch_original, output_dir):
        """Test clean removes the output tree and empties the manifest."""
        touch_original('a.jpg')
        pipeline.process_all()

        assert pipeline.clean() is True

        assert not output_dir.exists()
        assert len(pipeline.manifest) == 0
        assert pipeline.clean() is False


class TestFileChanges:
    """Tests for debounced file-change handling."""

    def test_change_regenerates_after_quiet_period(self, pipeline, timer_factory, touch_original, output_dir):
        """Test a burst of changes is handled by one regeneration."""
        touch_original('a.jpg')

        for _ in range(3):
            assert pipeline.on_file_change('change', 'a.jpg') is True

        assert not (output_dir / 'a-320w.webp').exists()
        timer_factory.timers[-1].fire()

        assert (output_dir / 'a-320w.webp').is_file()
        assert 'a.jpg' in pipeline.manifest
        assert (output_dir / 'manifest.json').is_file()

    def test_watch_disabled(self, pipeline, timer_factory):
        """Test notifications are ignored when watching is off."""
        pipeline.config.watch = False
        assert pipeline.on_file_change('add', 'a.jpg') is False
        assert timer_factory.timers == []


class TestResponsiveView:
    """Tests for Pipeline.image."""

    def test_image_from_manifest(self, pipeline, touch_original):
        """Test a processed original is described by its entry."""
        touch_original('gallery/hero.jpg')
        pipeline.process_all()

        image = pipeline.image('gallery/hero.jpg')

        assert image.srcset() == (
            '/optimized/gallery/hero-320w.webp 320w, /optimized/gallery/hero-640w.webp 640w'
        )

    def test_image_without_entry(self, pipeline, mock_codec, touch_original):
        """Test an unprocessed original lists the variants it would get."""
        mock_codec.probe.return_value = (500, 250)
        touch_original('hero.jpg')

        image = pipeline.image('hero.jpg')

        assert image.width == 500
        assert image.sizes == [320]
        assert image.src() == '/optimized/hero-320w.webp'
        mock_codec.transform.assert_not_called()

    def test_image_unreadable(self, pipeline, mock_codec):
        """Test an unknown, unreadable original raises."""
        mock_codec.probe.side_effect = SourceUnreadable('missing')
        with pytest.raises(SourceUnreadable):
            pipeline.image('nope.jpg')


class TestEndToEnd:
    """Tests with the real Pillow codec."""

    def test_idempotent_batch(self, config, write_image, input_dir, output_dir, mocker, logger):
        """Test a second run over an unchanged tree encodes nothing."""
        config.formats = ['webp', 'png']
        write_image(input_dir / 'photos/landscape.jpg', size=(800, 400))
        write_image(input_dir / 'small.png', size=(400, 300))
        pipeline = Pipeline(config, logger=logger)

        first = pipeline.process_all()
        spy = mocker.spy(pipeline.codec, 'transform')
        second = pipeline.process_all()

        assert first.variants_generated == 6
        assert second.cached == 2
        assert spy.call_count == 0

        data = json.loads((output_dir / 'manifest.json').read_text())
        landscape = data['images']['photos/landscape.jpg']
        assert [(v['format'], v['width'], v['height']) for v in landscape['variants']] == [
            ('webp', 320, 160), ('png', 320, 160), ('webp', 640, 320), ('png', 640, 320),
        ]
        for variant in landscape['variants']:
            assert (output_dir / variant['path']).stat().st_size == variant['bytes']

    def test_oversized_original_does_not_abort_batch(self, config, write_image, input_dir, output_dir, monkeypatch, logger):
        """Test an image over Pillow's pixel limit is skipped and the batch continues."""
        from PIL import Image

        monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 30000)
        write_image(input_dir / 'a_big.jpg', size=(400, 200))
        write_image(input_dir / 'b_small.jpg', size=(320, 80))
        pipeline = Pipeline(config, logger=logger)

        stats = pipeline.process_all()

        assert stats.errors == 1
        assert stats.processed == 1
        assert stats.error_details[0].startswith('a_big.jpg: ')
        data = json.loads((output_dir / 'manifest.json').read_text())
        assert list(data['images']) == ['b_small.jpg']
        assert (output_dir / 'b_small-320w.webp').is_file()

    def test_svg_counted_as_unsupported(self, config, write_image, input_dir, logger):
        """Test vector originals are skipped without counting as errors."""
        write_image(input_dir / 'photo.jpg', size=(400, 200))
        (input_dir / 'logo.svg').write_text('<svg xmlns="http://www.w3.org/2000/svg"/>')
        pipeline = Pipeline(config, logger=logger)

        stats = pipeline.process_all()

        assert stats.discovered == 2
        assert stats.unsupported == 1
        assert stats.errors == 0
        assert stats.processed == 1
        assert 'logo.svg' not in pipeline.manifest

import unittest
import os
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import cv2
import ffmpeg
import numpy as np

from clipsync.catalog import JsonCatalogStore, ROOT_FOLDER_KEY
from clipsync.config import Settings, load_settings, resolve_root_folder
from clipsync.errors import ConfigurationError
from clipsync.thumbnails import FfmpegThumbnailGenerator, build_thumbnail_generator


class TestThumbnails(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.thumb_dir = os.path.join(self.test_dir, "thumbs")
        self.video = os.path.join(self.test_dir, "clip.mp4")
        with open(self.video, "wb") as f:
            f.write(b"0" * 100)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def _mock_frame(self, mock_ffmpeg, width=1280, height=720):
        """Makes the mocked ffmpeg run() write a real frame to the requested output."""
        output = mock_ffmpeg.input.return_value.output

        def write_frame(*args, **kwargs):
            frame_path = output.call_args[0][0]
            cv2.imwrite(frame_path, np.zeros((height, width, 3), dtype=np.uint8))

        output.return_value.overwrite_output.return_value.run.side_effect = write_frame
        return output

    @patch('clipsync.thumbnails.ffmpeg')
    def test_generate_thumbnail(self, mock_ffmpeg):
        mock_ffmpeg.Error = ffmpeg.Error
        mock_ffmpeg.probe.return_value = {'format': {'duration': '20.0'}, 'streams': []}
        self._mock_frame(mock_ffmpeg)

        generator = FfmpegThumbnailGenerator(self.thumb_dir)
        result = generator.generate(self.video, 7)

        self.assertEqual(result, str(Path(self.thumb_dir) / "7.jpg"))
        image = cv2.imread(result)
        self.assertEqual(image.shape, (180, 320, 3))

        # Frame grabbed 10% into the video
        args, kwargs = mock_ffmpeg.input.call_args
        self.assertEqual(args[0], self.video)
        self.assertAlmostEqual(kwargs['ss'], 2.0)

    @patch('clipsync.thumbnails.ffmpeg')
    def test_unknown_duration_uses_one_second(self, mock_ffmpeg):
        mock_ffmpeg.Error = ffmpeg.Error
        mock_ffmpeg.probe.return_value = {'format': {}, 'streams': [{'codec_type': 'audio'}]}
        self._mock_frame(mock_ffmpeg, width=100, height=50)

        result = FfmpegThumbnailGenerator(self.thumb_dir).generate(self.video, 1)

        self.assertEqual(mock_ffmpeg.input.call_args[1]['ss'], 1.0)
        # Small frames are not upscaled
        self.assertEqual(cv2.imread(result).shape, (50, 100, 3))

    @patch('clipsync.thumbnails.ffmpeg')
    def test_ffmpeg_error_returns_none(self, mock_ffmpeg):
        mock_ffmpeg.Error = ffmpeg.Error
        mock_ffmpeg.probe.side_effect = ffmpeg.Error('ffprobe', b'', b'Invalid data found')

        with self.assertLogs('clipsync.thumbnails', level='ERROR') as logs:
            result = FfmpegThumbnailGenerator(self.thumb_dir).generate(self.video, 3)

        self.assertIsNone(result)
        self.assertIn("Invalid data found", logs.output[0])

    @patch('clipsync.thumbnails.ffmpeg')
    def test_missing_binary_returns_none(self, mock_ffmpeg):
        mock_ffmpeg.Error = ffmpeg.Error
        mock_ffmpeg.probe.side_effect = FileNotFoundError(2, "No such file", "ffprobe")

        with self.assertLogs('clipsync.thumbnails', level='ERROR') as logs:
            result = FfmpegThumbnailGenerator(self.thumb_dir).generate(self.video, 3)

        self.assertIsNone(result)
        self.assertIn("FFmpeg/ffprobe not found", logs.output[0])

    @patch('clipsync.thumbnails.ffmpeg')
    def test_missing_video_returns_none(self, mock_ffmpeg):
        result = FfmpegThumbnailGenerator(self.thumb_dir).generate(os.path.join(self.test_dir, "gone.mp4"), 3)

        self.assertIsNone(result)
        mock_ffmpeg.probe.assert_not_called()

    @patch('clipsync.thumbnails.ffmpeg')
    def test_unusable_thumbnail_dir_returns_none(self, mock_ffmpeg):
        mock_ffmpeg.Error = ffmpeg.Error
        mock_ffmpeg.probe.return_value = {'format': {'duration': '20.0'}, 'streams': []}
        blocker = os.path.join(self.test_dir, "not_a_dir")
        with open(blocker, "w") as f:
            f.write("x")

        generator = FfmpegThumbnailGenerator(os.path.join(blocker, "thumbs"))
        with self.assertLogs('clipsync.thumbnails', level='ERROR'):
            result = generator.generate(self.video, 3)

        self.assertIsNone(result)
        mock_ffmpeg.input.assert_not_called()

    def test_delete_thumbnail(self):
        generator = FfmpegThumbnailGenerator(self.thumb_dir)
        os.makedirs(self.thumb_dir)
        path = generator.thumbnail_path(5)
        path.write_bytes(b"jpeg")

        self.assertTrue(generator.delete_thumbnail(str(path)))
        self.assertFalse(path.exists())
        # Already gone
        self.assertFalse(generator.delete_thumbnail(str(path)))
        self.assertFalse(generator.delete_thumbnail(""))

    @patch('clipsync.thumbnails.os.remove', side_effect=PermissionError(13, "Permission denied"))
    def test_delete_thumbnail_failure_is_logged(self, mock_remove):
        generator = FfmpegThumbnailGenerator(self.thumb_dir)

        with self.assertLogs('clipsync.thumbnails', level='WARNING') as logs:
            self.assertFalse(generator.delete_thumbnail(os.path.join(self.thumb_dir, "5.jpg")))

        self.assertIn("Permission denied", logs.output[0])

    def test_binary_folder_sets_commands(self):
        generator = build_thumbnail_generator(self.thumb_dir, binary_folder=self.test_dir)

        self.assertEqual(generator.ffmpeg_cmd, os.path.join(self.test_dir, "ffmpeg"))
        self.assertEqual(generator.ffprobe_cmd, os.path.join(self.test_dir, "ffprobe"))

    def test_missing_binary_folder_falls_back_to_path(self):
        with self.assertLogs('clipsync.thumbnails', level='WARNING'):
            generator = build_thumbnail_generator(self.thumb_dir, binary_folder=os.path.join(self.test_dir, "nope"))

        self.assertEqual(generator.ffmpeg_cmd, "ffmpeg")
        self.assertIsNone(generator.binary_folder)


class TestConfig(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.store = JsonCatalogStore(os.path.join(self.test_dir, "catalog.json"))

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_load_settings_from_env_file(self):
        env_file = os.path.join(self.test_dir, ".env")
        with open(env_file, "w") as f:
            f.write("CLIPSYNC_ROOT_FOLDER=/videos\nCLIPSYNC_CATALOG_PATH=/data/catalog.json\n")

        with patch.dict(os.environ, {}, clear=True):
            settings = load_settings(env_file)

        self.assertEqual(settings.root_folder, "/videos")
        self.assertEqual(settings.catalog_path, "/data/catalog.json")
        self.assertEqual(settings.thumbnail_dir, "thumbnails")
        self.assertIsNone(settings.ffmpeg_binary_folder)

    def test_explicit_root_wins(self):
        self.store.set_setting(ROOT_FOLDER_KEY, "/saved")
        settings = Settings(root_folder="/env")
        self.assertEqual(resolve_root_folder("/explicit", self.store, settings), "/explicit")

    def test_saved_root_before_environment(self):
        self.store.set_setting(ROOT_FOLDER_KEY, "/saved")
        self.assertEqual(resolve_root_folder(None, self.store, Settings(root_folder="/env")), "/saved")

    def test_environment_root_fallback(self):
        self.assertEqual(resolve_root_folder("  ", self.store, Settings(root_folder="/env")), "/env")

    def test_unconfigured_root_raises(self):
        with self.assertRaises(ConfigurationError):
            resolve_root_folder(None, self.store, Settings())


if __name__ == '__main__':
    unittest.main()

"""Tests for the command-line entry point."""

import pytest
from moviepy import VideoFileClip


SUBCOMMANDS = [
    "rotate", "crop", "speed", "trim", "split", "merge",
    "extract-video", "extract-audio", "overlay-image", "overlay-text",
    "overlay-sound", "generate-images", "images-to-video",
]


class TestMainDispatcher:
    def test_no_subcommand_shows_help(self, capsys):
        from clipedit.main import main

        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code != 0

    @pytest.mark.parametrize("command", SUBCOMMANDS)
    def test_subcommand_registered(self, command):
        """Each subcommand parses (and fails on its missing required args)."""
        from clipedit.main import main

        with pytest.raises(SystemExit) as exc_info:
            main([command])
        assert exc_info.value.code == 2

    def test_invalid_subcommand_errors(self, capsys):
        from clipedit.main import main

        with pytest.raises(SystemExit) as exc_info:
            main(["nonexistent"])
        assert exc_info.value.code != 0

    def test_handlers_cover_operations(self):
        from clipedit.main import HANDLERS
        from clipedit.operations import OPERATIONS

        assert set(HANDLERS) == set(OPERATIONS) == set(SUBCOMMANDS)


class TestExitCodes:
    def test_bad_crop_rect_is_parameter_error(self, tmp_path, capsys):
        from clipedit.main import main

        with pytest.raises(SystemExit) as exc_info:
            main([
                "crop", "--input", str(tmp_path / "in.mp4"),
                "--output", str(tmp_path / "out.mp4"), "--crop-rect", "1 2 3",
            ])
        assert exc_info.value.code == 2
        assert "Parameter error" in capsys.readouterr().out

    def test_missing_input_is_load_error(self, tmp_path, capsys):
        from clipedit.main import main

        with pytest.raises(SystemExit) as exc_info:
            main([
                "rotate", "--input", str(tmp_path / "missing.mp4"),
                "--output", str(tmp_path / "out.mp4"), "--angle", "90",
            ])
        assert exc_info.value.code == 3
        assert "Load error" in capsys.readouterr().out

    def test_empty_merge_dir_is_filesystem_error(self, tmp_path):
        from clipedit.main import main

        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(SystemExit) as exc_info:
            main(["merge", "--input", str(empty), "--output", str(tmp_path / "out.mp4")])
        assert exc_info.value.code == 6

    def test_generate_images_without_times_or_stride(self, source_video, tmp_path):
        from clipedit.main import main

        with pytest.raises(SystemExit) as exc_info:
            main(["generate-images", "--input", str(source_video), "--output", str(tmp_path / "f")])
        assert exc_info.value.code == 2

    def test_bad_settings_file(self, source_video, tmp_path):
        from clipedit.main import main

        settings = tmp_path / "settings.yaml"
        settings.write_text("frame_rate: fast\n")
        with pytest.raises(SystemExit) as exc_info:
            main([
                "rotate", "--input", str(source_video), "--output", str(tmp_path / "o.mp4"),
                "--angle", "90", "--settings", str(settings),
            ])
        assert exc_info.value.code == 2

    def test_malformed_settings_yaml(self, source_video, tmp_path, capsys):
        from clipedit.main import main

        settings = tmp_path / "settings.yaml"
        settings.write_text("frame_rate: [30\n")
        with pytest.raises(SystemExit) as exc_info:
            main([
                "rotate", "--input", str(source_video), "--output", str(tmp_path / "o.mp4"),
                "--angle", "90", "--settings", str(settings),
            ])
        assert exc_info.value.code == 2
        assert "Parameter error" in capsys.readouterr().out


class TestEndToEnd:
    def test_rotate(self, source_video, tmp_path):
        from clipedit.main import main

        out = tmp_path / "rotated.mp4"
        main(["rotate", "--input", str(source_video), "--output", str(out), "--angle", "90", "--quiet"])
        with VideoFileClip(str(out)) as clip:
            assert tuple(clip.size) == (240, 320)

    def test_split(self, source_video, tmp_path):
        from clipedit.main import main

        out_dir = tmp_path / "parts"
        main(["split", "--input", str(source_video), "--output", str(out_dir), "--duration", "1"])
        assert sorted(p.name for p in out_dir.iterdir()) == ["00000.mp4", "00001.mp4", "00002.mp4"]

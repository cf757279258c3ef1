"""Shared test fixtures for clipedit tests.

Media fixtures are generated with the ffmpeg binary bundled by
imageio-ffmpeg. Pure timeline tests use fake probes instead, so they run
without touching ffmpeg.
"""

import subprocess
from pathlib import Path

import pytest
import imageio_ffmpeg
from PIL import Image

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


def _ffmpeg(*args):
    subprocess.run([_FFMPEG, "-y", *args], check=True, capture_output=True)


@pytest.fixture
def source_video(tmp_path):
    """A 2.5-second test video (320x240, 10fps) with a mono audio track."""
    out = tmp_path / "source.mp4"
    _ffmpeg(
        "-f", "lavfi", "-i", "color=c=blue:s=320x240:d=2.5:r=10",
        "-f", "lavfi", "-i", "sine=frequency=440:sample_rate=44100",
        "-shortest",
        "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
        "-c:a", "aac", "-b:a", "32k",
        str(out),
    )
    return out


@pytest.fixture
def sound_file(tmp_path):
    """A 4-second sine tone, longer than source_video."""
    out = tmp_path / "tone.wav"
    _ffmpeg(
        "-f", "lavfi", "-i", "sine=frequency=220:sample_rate=44100:duration=4",
        str(out),
    )
    return out


@pytest.fixture
def images_dir(tmp_path):
    """Folder with two images of different sizes plus files to be ignored."""
    folder = tmp_path / "stills"
    folder.mkdir()
    Image.new("RGB", (64, 48), (255, 0, 0)).save(folder / "a.png")
    Image.new("RGB", (32, 32), (0, 255, 0)).save(folder / "b.JPG")
    (folder / "notes.txt").write_text("not an image")
    return folder


# ── Fake probes ──────────────────────────────────────────────────


def fake_infos(duration=10.0, size=(1920, 1080), rotation=0, video=True, audio=True):
    """Probe output shaped like moviepy's ffmpeg_parse_infos()."""
    streams = []
    if video:
        streams.append({
            "stream_type": "video", "stream_number": 0,
            "size": list(size), "fps": 30.0,
        })
    if audio:
        streams.append({"stream_type": "audio", "stream_number": 1, "fps": 44100})
    return {
        "duration": duration,
        "video_found": video,
        "audio_found": audio,
        "video_rotation": rotation,
        "inputs": [{"streams": streams, "input_number": 0}],
    }


@pytest.fixture
def make_source():
    """Factory: a loaded MediaSource backed by fake probe output."""
    from clipedit.media import MediaSource

    def _make(path="clip.mp4", **infos):
        data = fake_infos(**infos)
        return MediaSource(path, probe=lambda _: data).load()

    return _make


@pytest.fixture
def probe_by_name():
    """Factory: a probe answering from a {file name: infos kwargs} table."""

    def _make(table):
        return lambda path: fake_infos(**table[Path(path).name])

    return _make

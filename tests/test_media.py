"""Tests for MediaSource loading and track access."""

import pytest

from clipedit.errors import LoadError
from clipedit.geometry import AffineTransform, Size
from clipedit.media import MediaSource, MediaType

from conftest import fake_infos


class TestMediaSourceLoad:
    def test_fields_unset_before_load(self):
        source = MediaSource("clip.mp4", probe=lambda _: fake_infos())
        assert not source.loaded
        assert source.duration == 0
        assert source.natural_size == Size(0, 0)
        assert source.preferred_transform.is_identity
        assert source.tracks_of(MediaType.VIDEO) == ()

    def test_populates_from_first_video_track(self, make_source):
        source = make_source(duration=4.5, size=(640, 480))
        assert source.loaded
        assert source.duration == 4.5
        assert source.natural_size == Size(640, 480)
        assert len(source.tracks_of(MediaType.VIDEO)) == 1
        assert len(source.tracks_of(MediaType.AUDIO)) == 1

    def test_audio_only(self, make_source):
        source = make_source(video=False)
        assert source.natural_size == Size(0, 0)
        assert source.first_track(MediaType.VIDEO) is None
        assert source.first_track(MediaType.AUDIO) is not None

    def test_load_twice_probes_once(self):
        calls = []

        def probe(path):
            calls.append(path)
            return fake_infos()

        source = MediaSource("clip.mp4", probe=probe)
        source.load()
        source.load()
        assert calls == ["clip.mp4"]

    def test_probe_failure_is_load_error(self):
        def probe(path):
            raise FileNotFoundError(path)

        with pytest.raises(LoadError, match="clip.mp4"):
            MediaSource("clip.mp4", probe=probe).load()

    def test_missing_duration_is_load_error(self):
        infos = fake_infos()
        infos["duration"] = None
        with pytest.raises(LoadError, match="No duration"):
            MediaSource("clip.mp4", probe=lambda _: infos).load()

    def test_missing_file_with_real_probe(self, tmp_path):
        with pytest.raises(LoadError):
            MediaSource(tmp_path / "missing.mp4").load()

    def test_real_file(self, source_video):
        source = MediaSource(source_video).load()
        assert source.natural_size == Size(320, 240)
        assert 2.4 < float(source.duration) < 2.7
        assert source.first_track(MediaType.AUDIO) is not None


class TestDisplayTransform:
    def test_rotation_metadata_becomes_transform(self, make_source):
        source = make_source(size=(1920, 1080), rotation=90)
        assert source.preferred_transform == AffineTransform(0, 1, -1, 0, 1080, 0)
        assert source.orientation_info.is_portrait
        assert source.first_track(MediaType.VIDEO).rotation == 90

    def test_negative_rotation_normalised(self, make_source):
        source = make_source(rotation=-90)
        assert source.first_track(MediaType.VIDEO).rotation == 270

    def test_landscape(self, make_source):
        source = make_source(rotation=0)
        assert not source.orientation_info.is_portrait
        assert source.preferred_transform.is_identity

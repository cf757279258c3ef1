"""Per-track audio volume envelopes.

An AudioMix is a list of AudioMixParameters, one per composition audio
track that needs a non-unity volume. Each holds time-disjoint VolumeRamps;
between and after ramps the volume holds, before the first ramp it is 1.
"""

from dataclasses import dataclass, field
from fractions import Fraction

import numpy as np

from .errors import CompositionError
from .timebase import ZERO, TimeRange


@dataclass(frozen=True)
class VolumeRamp:
    time_range: TimeRange
    start_volume: float
    end_volume: float


@dataclass
class AudioMixParameters:
    track_id: int
    ramps: list[VolumeRamp] = field(default_factory=list)

    def __post_init__(self):
        self.ramps = sorted(self.ramps, key=lambda r: r.time_range.start)
        for prev, nxt in zip(self.ramps, self.ramps[1:]):
            if prev.time_range.overlaps(nxt.time_range):
                raise CompositionError(
                    f"Track {self.track_id}: volume ramps {prev.time_range} "
                    f"and {nxt.time_range} overlap"
                )

    def volume_at(self, t):
        return volume_at(self.ramps, t)


@dataclass
class AudioMix:
    parameters: list[AudioMixParameters] = field(default_factory=list)

    def for_track(self, track_id: int) -> AudioMixParameters | None:
        for params in self.parameters:
            if params.track_id == track_id:
                return params
        return None


def fade_in_out_mix(track_id: int, track_range: TimeRange, main_duration) -> AudioMix:
    """Fade a track in over its first half and out over its second half.

    The envelope spans the track's own range, cut to [0, main_duration)
    when the track runs longer than the main content.
    """
    main_duration = Fraction(main_duration)
    span = track_range
    if track_range.duration > main_duration:
        span = TimeRange(ZERO, main_duration)

    fade_in, fade_out = span.split_by_mid_time()
    params = AudioMixParameters(
        track_id,
        [VolumeRamp(fade_in, 0.0, 1.0), VolumeRamp(fade_out, 1.0, 0.0)],
    )
    return AudioMix([params])


def volume_at(ramps: list[VolumeRamp], t):
    """Volume at time(s) *t* in seconds; scalar in, scalar out.

    Accepts a numpy array of times as moviepy hands audio frames over in
    blocks.
    """
    times = np.asarray(t, dtype=float)
    volume = np.ones_like(times)
    for ramp in ramps:
        start = float(ramp.time_range.start)
        end = float(ramp.time_range.end)
        length = end - start
        if length > 0:
            frac = np.clip((times - start) / length, 0.0, 1.0)
            inside = ramp.start_volume + frac * (ramp.end_volume - ramp.start_volume)
            volume = np.where(times >= start, inside, volume)
        else:
            volume = np.where(times >= start, ramp.end_volume, volume)
    if volume.ndim == 0:
        return float(volume)
    return volume


def apply_gain(samples: np.ndarray, times, ramps: list[VolumeRamp]) -> np.ndarray:
    """Scale an audio block (n_samples, n_channels) by the envelope at *times*."""
    gain = np.asarray(volume_at(ramps, times), dtype=float)
    if samples.ndim == 2 and gain.ndim == 1:
        gain = gain[:, np.newaxis]
    return samples * gain

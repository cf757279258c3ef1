"""Render settings — named constants and the YAML settings loader.

Every operation renders at a fixed output frame rate and fades overlays
over a fixed window. Both are exposed here as constants and can be
overridden per invocation from a YAML settings file:

  frame_rate: 30          # output fps for every render instruction
  fade_duration: 1.0      # overlay fade-in / fade-out window (seconds)
  quality: high           # x264 preset/crf pair, see QUALITY_PRESETS
  codec: libx264
  audio_codec: aac
  preset: medium          # overrides the quality preset's x264 preset
  crf: 20                 # overrides the quality preset's crf
  pixel_format: yuv420p
  audio_fps: 44100
  workers: 4              # split: max concurrent segment exports
"""

from pathlib import Path

import yaml

from .errors import ParameterError


# ── Timeline constants ────────────────────────────────────────────

TIMESCALE = 600                  # ticks per second for parsed user times
FRAME_RATE = 30                  # output fps, not derived from the source
FADE_DURATION = 1.0              # overlay fade window in seconds
TEXT_BASE_FONT_SIZE = 18         # overlay-text default font size
TEXT_SCALE_FACTOR = 0.05         # font grows by this fraction of render width

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg"}


# ── Export defaults ───────────────────────────────────────────────

QUALITY_PRESETS = {
    "highest": {"preset": "slow", "crf": 17},
    "high": {"preset": "medium", "crf": 20},
    "medium": {"preset": "medium", "crf": 23},
    "fast": {"preset": "veryfast", "crf": 26},
}

DEFAULT_SETTINGS = {
    "frame_rate": FRAME_RATE,
    "fade_duration": FADE_DURATION,
    "codec": "libx264",
    "audio_codec": "aac",
    "preset": "medium",
    "crf": 20,
    "pixel_format": "yuv420p",
    "audio_fps": 44100,
    "workers": None,
}

_NUMERIC_KEYS = {"frame_rate", "fade_duration", "crf", "audio_fps", "workers"}
_STRING_KEYS = {"codec", "audio_codec", "preset", "pixel_format"}


def default_settings() -> dict:
    """Return a fresh copy of the default settings dict."""
    return dict(DEFAULT_SETTINGS)


def resolve_settings(overrides: dict | None = None) -> dict:
    """Merge *overrides* into the defaults and validate the result.

    A 'quality' key expands to its preset/crf pair first; explicit
    'preset' or 'crf' keys in the same dict still win over it.

    Raises:
        ParameterError: Unknown key, unknown quality, or bad value.
    """
    settings = default_settings()
    if not overrides:
        return settings

    overrides = dict(overrides)
    quality = overrides.pop("quality", None)
    if quality is not None:
        if quality not in QUALITY_PRESETS:
            raise ParameterError(
                f"Settings: unknown quality '{quality}'. "
                f"Valid: {sorted(QUALITY_PRESETS)}"
            )
        settings.update(QUALITY_PRESETS[quality])

    for key, value in overrides.items():
        if key not in DEFAULT_SETTINGS:
            raise ParameterError(
                f"Settings: unknown key '{key}'. Valid: {sorted(DEFAULT_SETTINGS)}"
            )
        if key in _STRING_KEYS and not isinstance(value, str):
            raise ParameterError(f"Settings: '{key}' must be a string, got {value!r}")
        if key in _NUMERIC_KEYS and value is not None:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ParameterError(f"Settings: '{key}' must be a number, got {value!r}")
            if value <= 0 and key != "crf":
                raise ParameterError(f"Settings: '{key}' must be > 0, got {value}")
        settings[key] = value

    if settings["workers"] is not None:
        settings["workers"] = int(settings["workers"])
    return settings


def load_settings(settings_path: str | Path) -> dict:
    """Load and validate a YAML settings file.

    An empty file yields the defaults.

    Raises:
        ParameterError: The file is not valid YAML, not a mapping, or
            holds invalid keys.
        FileNotFoundError: Missing settings file.
    """
    with open(settings_path) as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ParameterError(f"Settings file {settings_path}: invalid YAML: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ParameterError(
            f"Settings file {settings_path}: expected a mapping, got {type(raw).__name__}"
        )
    return resolve_settings(raw)

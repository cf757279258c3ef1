"""Frame sampler — still images from a source at chosen times.

Frames come out display-oriented (as a player would show them) and are
written as <seconds>.jpg, e.g. 1.5.jpg. A time that cannot be decoded is
reported and skipped; the remaining times are still sampled.
"""

from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path

from moviepy import VideoFileClip
from PIL import Image

from .errors import LoadError
from .export import ensure_directory


@dataclass
class SampleResult:
    time: Fraction
    path: Path | None = None
    error: str | None = None


def sample_filename(t) -> str:
    return f"{float(t)}.jpg"


class FrameSampler:
    """Writes JPEG snapshots of one source file."""

    def __init__(self, source_path: str | Path, quality: int = 90):
        self.source_path = str(source_path)
        self.quality = quality

    def sample(self, times, output_dir: str | Path) -> list[SampleResult]:
        """Write one JPEG per time in *times* into *output_dir*.

        Returns:
            One SampleResult per requested time, in request order.

        Raises:
            LoadError: The source has no decodable video.
            FilesystemError: The output directory cannot be created.
        """
        out_dir = ensure_directory(output_dir)
        try:
            clip = VideoFileClip(self.source_path, audio=False)
        except (OSError, KeyError) as exc:
            raise LoadError(f"Cannot decode video from {self.source_path}: {exc}") from exc

        results = []
        try:
            for t in times:
                path = out_dir / sample_filename(t)
                try:
                    if not 0 <= t < clip.duration:
                        raise ValueError(f"outside [0, {clip.duration:.3f}s)")
                    frame = clip.get_frame(float(t))
                    Image.fromarray(frame[:, :, :3]).save(path, quality=self.quality)
                except (OSError, ValueError) as exc:
                    print(f"  SKIP   {path.name} — {exc}")
                    results.append(SampleResult(Fraction(t), error=str(exc)))
                    continue
                print(f"  FRAME  {path.name}")
                results.append(SampleResult(Fraction(t), path=path))
        finally:
            clip.close()
        return results

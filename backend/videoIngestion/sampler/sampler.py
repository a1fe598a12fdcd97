import json
import logging
import os
import subprocess
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np
from moviepy import VideoFileClip

from ..errors import CorruptMedia, NoFramesExtracted
from ..utils import ensure_dir, parse_ratio, quality_label, to_float, to_int, verify_file_written

logger = logging.getLogger(__name__)

DEFAULT_MIN_FILE_SIZE = 1024
DEFAULT_FRAME_WIDTH = 640


@dataclass
class VideoMetadata:
    duration: float
    width: int
    height: int
    codec: str
    frame_rate: float
    bitrate: int
    container_format: str

    @property
    def quality(self) -> str:
        return quality_label(self.height)

    def as_record(self) -> dict:
        """Shape stored on the video record's ``metadata`` field."""
        return {
            "width": self.width,
            "height": self.height,
            "codec": self.codec,
            "fps": round(self.frame_rate),
            "bitrate": self.bitrate,
            "format": self.container_format,
            "quality": self.quality,
        }

    def as_dict(self) -> dict:
        return asdict(self)


class FrameSampler:
    """
    Pulls a handful of still images out of an uploaded clip and reports its
    technical metadata.

    Args:
        ffprobe_binary (str): ffprobe executable used by ``probe``.
        min_file_size (int): Uploads smaller than this (bytes) are rejected
            before any decoder runs.
        frame_width (int): Width of the written stills; height keeps aspect.
        jpeg_quality (int): OpenCV JPEG quality for the stills.
    """

    def __init__(
        self,
        ffprobe_binary: str = "ffprobe",
        min_file_size: int = DEFAULT_MIN_FILE_SIZE,
        frame_width: int = DEFAULT_FRAME_WIDTH,
        jpeg_quality: int = 90,
        probe_timeout: float = 60.0,
    ):
        self.ffprobe_binary = ffprobe_binary
        self.min_file_size = min_file_size
        self.frame_width = frame_width
        self.jpeg_quality = jpeg_quality
        self.probe_timeout = probe_timeout


    def check_source(self, source_path) -> int:
        p = Path(source_path)
        if not p.is_file():
            raise CorruptMedia(f"Source file not found: {p}")
        size = p.stat().st_size
        if size < self.min_file_size:
            raise CorruptMedia(
                f"Source file is too small to be a video ({size} bytes < {self.min_file_size})"
            )
        return size


    def probe(self, source_path) -> VideoMetadata:
        self.check_source(source_path)

        command = [
            self.ffprobe_binary,
            "-v", "error",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(source_path),
        ]
        try:
            res = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.probe_timeout,
            )
        except FileNotFoundError as e:
            raise RuntimeError(f"ffprobe not found (FFPROBE_BINARY={self.ffprobe_binary})") from e
        except subprocess.TimeoutExpired as e:
            raise CorruptMedia(f"ffprobe timed out after {self.probe_timeout}s") from e

        if res.returncode != 0:
            raise CorruptMedia((res.stderr or "ffprobe failed").strip())

        try:
            data = json.loads(res.stdout or "{}")
        except json.JSONDecodeError as e:
            raise CorruptMedia(f"ffprobe returned unparseable output: {e}") from e

        return self.parse_probe(data)


    @staticmethod
    def parse_probe(data: dict) -> VideoMetadata:
        streams = data.get("streams") or []
        fmt = data.get("format") or {}

        video_stream = next(
            (s for s in streams if isinstance(s, dict) and s.get("codec_type") == "video"),
            None,
        )
        if video_stream is None:
            raise CorruptMedia("No video stream found in container")

        fps = (
            parse_ratio(video_stream.get("avg_frame_rate"))
            or parse_ratio(video_stream.get("r_frame_rate"))
            or 0.0
        )
        duration = to_float(fmt.get("duration")) or to_float(video_stream.get("duration"))
        bitrate = to_int(video_stream.get("bit_rate")) or to_int(fmt.get("bit_rate"))

        return VideoMetadata(
            duration=duration,
            width=to_int(video_stream.get("width")),
            height=to_int(video_stream.get("height")),
            codec=video_stream.get("codec_name") or "unknown",
            frame_rate=round(fps, 3),
            bitrate=bitrate,
            container_format=fmt.get("format_name") or "unknown",
        )


    @staticmethod
    def capture_points(duration: float, count: int) -> List[float]:
        """
        Evenly spaced interior timestamps, e.g. 3 frames of a 4s clip land
        at 1s, 2s and 3s. Never lands exactly on the first or last frame.
        """
        if count <= 0 or duration <= 0:
            return []
        points = np.linspace(0.0, duration, num=count + 2)[1:-1]
        return [round(float(t), 3) for t in points]


    def _resize(self, frame: np.ndarray) -> np.ndarray:
        h, w = frame.shape[:2]
        if not self.frame_width or w <= self.frame_width:
            return frame
        new_h = max(1, int(round(h * self.frame_width / w)))
        return cv2.resize(frame, (self.frame_width, new_h), interpolation=cv2.INTER_AREA)


    def sample(self, source_path, output_dir, frame_count: int = 3, duration: Optional[float] = None) -> List[str]:
        self.check_source(source_path)
        out = ensure_dir(output_dir)

        frames: List[str] = []
        try:
            clip = VideoFileClip(str(source_path), audio=False)
        except (OSError, ValueError, KeyError, IndexError) as e:
            raise CorruptMedia(f"Could not open video: {e}") from e

        with clip:
            clip_duration = duration if duration and duration > 0 else (clip.duration or 0.0)
            if clip.duration:
                clip_duration = min(clip_duration, clip.duration)
            points = self.capture_points(clip_duration, frame_count)
            logger.debug("Sampling %s at %s", source_path, points)

            for i, t in enumerate(points, start=1):
                try:
                    rgb = clip.get_frame(t)
                except (OSError, ValueError, IndexError) as e:
                    logger.warning("Could not decode frame at %.3fs of %s: %s", t, source_path, e)
                    continue
                if rgb is None or rgb.size == 0:
                    continue

                bgr = cv2.cvtColor(np.asarray(rgb, dtype=np.uint8), cv2.COLOR_RGB2BGR)
                frame_path = os.path.join(str(out), f"frame-{i}.jpg")
                cv2.imwrite(frame_path, self._resize(bgr), [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
                if verify_file_written(frame_path):
                    frames.append(frame_path)

        if not frames:
            raise NoFramesExtracted(f"Decoder produced no frames for {source_path}")
        return frames

"""
Raster decoding and encoding.

Turns uploaded images, or a single frame of an uploaded video, into RGBA
raster buffers (uint8 numpy arrays of shape (height, width, 4)), and writes
graded buffers back out as still images.

Video frames are decoded through an FFmpeg subprocess pipe, so OpenCV is not
needed. Only one frame is read per call; there is no frame-sequence pipeline.
"""

import logging
import mimetypes
import os
import subprocess
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image

from constants import DEFAULT_IMAGE_QUALITY, EXPORT_FORMATS, VIDEO_EXTENSIONS

logger = logging.getLogger(__name__)

# Pillow format names for each export format
_PIL_FORMATS = {
    "png": "PNG",
    "jpg": "JPEG",
    "webp": "WEBP",
}


def validate_raster(buffer: np.ndarray) -> None:
    """
    Check that `buffer` is an RGBA raster buffer.

    Raises:
        ValueError: if the buffer is not a uint8 array of shape (h, w, 4)
                    with non-zero width and height
    """
    if not isinstance(buffer, np.ndarray):
        raise ValueError(f"Raster buffer must be a numpy array, got {type(buffer).__name__}")
    if buffer.dtype != np.uint8:
        raise ValueError(f"Raster buffer must be uint8, got {buffer.dtype}")
    if buffer.ndim != 3 or buffer.shape[2] != 4:
        raise ValueError(f"Raster buffer must have shape (height, width, 4), got {buffer.shape}")
    if buffer.shape[0] == 0 or buffer.shape[1] == 0:
        raise ValueError(f"Raster buffer is empty: {buffer.shape}")


def to_rgba(array: np.ndarray) -> np.ndarray:
    """
    Convert an RGB or RGBA uint8 array to an RGBA raster buffer.

    RGB input gets an opaque alpha channel. RGBA input is returned as-is.
    """
    array = np.asarray(array)
    if array.ndim == 3 and array.shape[2] == 3 and array.dtype == np.uint8:
        alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
        array = np.concatenate([array, alpha], axis=2)
    validate_raster(array)
    return array


def is_video(path: Union[str, Path]) -> bool:
    """Guess whether a file is a video from its MIME type or extension."""
    mime, _ = mimetypes.guess_type(str(path))
    if mime is not None:
        return mime.startswith("video/")
    return Path(path).suffix.lower() in VIDEO_EXTENSIONS


def load_image(path: Union[str, Path]) -> np.ndarray:
    """Decode an image file into an RGBA raster buffer."""
    with Image.open(path) as img:
        rgba = img.convert("RGBA")
        buffer = np.array(rgba, dtype=np.uint8)
    logger.debug(f"Loaded image {path} ({buffer.shape[1]}x{buffer.shape[0]})")
    return buffer


def get_video_info(path: str) -> Tuple[int, int, float, int]:
    """
    Get video metadata using ffprobe.

    Args:
        path: Path to video file

    Returns:
        Tuple of (width, height, fps, frame_count)
    """
    cmd = [
        "ffprobe", "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", "stream=width,height,r_frame_rate,nb_frames",
        "-of", "csv=p=0",
        path
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        parts = result.stdout.strip().split(',')
        width = int(parts[0])
        height = int(parts[1])
        # Frame rate comes as a ratio, e.g. "30000/1001" or "30"
        fps_parts = parts[2].split('/')
        fps = float(fps_parts[0]) / float(fps_parts[1]) if len(fps_parts) == 2 else float(fps_parts[0])
        # nb_frames may be N/A for some containers
        try:
            frame_count = int(parts[3]) if len(parts) > 3 and parts[3] != 'N/A' else 0
        except (ValueError, IndexError):
            frame_count = 0
        return width, height, fps, frame_count
    except subprocess.CalledProcessError as e:
        logger.error(f"ffprobe failed for {path}: {e.stderr}")
        raise RuntimeError(f"Failed to probe video: {path}")
    except (ValueError, IndexError, ZeroDivisionError):
        raise RuntimeError(f"Unexpected ffprobe output for {path}: {result.stdout!r}")
    except FileNotFoundError:
        raise RuntimeError("ffprobe not found. Install FFmpeg to read video frames.")


class FFmpegFrameReader:
    """
    Context manager that decodes frames from a video via an FFmpeg pipe.

    Seeks to `start_time` before decoding and yields raw RGB24 frames as
    numpy arrays.
    """

    def __init__(self, path: str, start_time: float = 0.0, max_frames: Optional[int] = 1):
        self.path = path
        self.start_time = max(0.0, start_time)
        self.max_frames = max_frames
        self.process: Optional[subprocess.Popen] = None
        self.width = 0
        self.height = 0
        self.fps = 0.0
        self._frame_size = 0

    def __enter__(self) -> 'FFmpegFrameReader':
        self.width, self.height, self.fps, _ = get_video_info(self.path)
        self._frame_size = self.width * self.height * 3

        cmd = ["ffmpeg", "-v", "error"]
        # Input seeking (-ss before -i) jumps to the nearest keyframe and decodes forward
        if self.start_time > 0:
            cmd.extend(["-ss", f"{self.start_time:.3f}"])
        cmd.extend(["-i", self.path])
        if self.max_frames is not None:
            cmd.extend(["-frames:v", str(self.max_frames)])
        cmd.extend([
            "-f", "rawvideo",
            "-pix_fmt", "rgb24",
            "-"
        ])
        self.process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            bufsize=self._frame_size * 2
        )
        return self

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Read the next frame.

        Returns:
            Tuple of (success, frame) where frame is an RGB numpy array or None
        """
        if self.process is None or self.process.stdout is None:
            return False, None

        raw = self.process.stdout.read(self._frame_size)
        if len(raw) != self._frame_size:
            return False, None

        frame = np.frombuffer(raw, dtype=np.uint8).reshape(self.height, self.width, 3)
        return True, frame

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.process:
            try:
                if self.process.stdout:
                    self.process.stdout.close()
                if self.process.stderr:
                    self.process.stderr.close()
                self.process.terminate()
                self.process.wait(timeout=5)
            except Exception as e:
                logger.warning(f"Error closing FFmpeg reader for {self.path}: {e}")
                self.process.kill()
        return False


def read_video_frame(path: str, timestamp: float = 0.0) -> np.ndarray:
    """
    Decode the video frame at `timestamp` seconds into an RGBA raster buffer.

    Raises:
        RuntimeError: if the video cannot be probed or no frame is decoded
    """
    with FFmpegFrameReader(str(path), start_time=timestamp) as reader:
        ok, frame = reader.read()
    if not ok or frame is None:
        raise RuntimeError(f"No frame decoded from {path} at {timestamp:.2f}s")
    logger.debug(f"Decoded frame at {timestamp:.2f}s from {path} ({reader.width}x{reader.height})")
    return to_rgba(frame.copy())


def load_raster(path: Union[str, Path], timestamp: float = 0.0) -> np.ndarray:
    """Decode an image, or one frame of a video, into an RGBA raster buffer."""
    if not os.path.exists(path):
        raise ValueError(f"Input file not found: {path}")
    if is_video(path):
        return read_video_frame(str(path), timestamp)
    return load_image(path)


def save_graded_image(
    buffer: np.ndarray,
    path: Union[str, Path],
    fmt: Optional[str] = None,
    quality: int = DEFAULT_IMAGE_QUALITY,
) -> str:
    """
    Write an RGBA raster buffer to disk.

    Args:
        buffer: RGBA uint8 raster buffer
        path: Output file path; the extension is added when missing
        fmt: 'png', 'jpg' or 'webp' (default: from extension, else png)
        quality: 1-100, used by lossy formats

    Returns:
        Path to the written file
    """
    validate_raster(buffer)
    path = Path(path)

    if fmt is None:
        suffix = path.suffix.lower().lstrip('.')
        fmt = "jpg" if suffix == "jpeg" else (suffix or "png")
    fmt = fmt.lower()
    if fmt == "jpeg":
        fmt = "jpg"
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format: {fmt}. Use one of {', '.join(EXPORT_FORMATS)}")
    if not path.suffix:
        path = path.with_suffix(f".{fmt}")

    image = Image.fromarray(buffer)
    if fmt == "jpg":
        # JPEG has no alpha channel
        image = image.convert("RGB")

    save_kwargs = {}
    if fmt in ("jpg", "webp"):
        save_kwargs["quality"] = int(quality)
    image.save(path, format=_PIL_FORMATS[fmt], **save_kwargs)

    logger.info(f"Saved graded image to {path}")
    return str(path)

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable, Dict, Optional

from modules.config import AppConfig, get_config

# rgb ndarray -> composited PIL image
FrameHandler = Callable[[Any], Any]


class VideoBackend(ABC):
	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def start(self) -> None: ...

	@abstractmethod
	def stop(self) -> None: ...

	@abstractmethod
	def get_status(self) -> Dict[str, Any]: ...

	@abstractmethod
	def set_frame_handler(self, handler: Optional[FrameHandler]) -> None:
		"""
		Install the per-frame handler (None publishes the mirrored camera frame as-is).
		"""
		...

	@abstractmethod
	def get_latest_jpeg(self) -> tuple[Optional[bytes], Optional[float]]: ...

	@abstractmethod
	async def mjpeg_stream(self, fps: float) -> AsyncIterator[bytes]: ...

	@abstractmethod
	async def snapshot_jpeg(self) -> Optional[bytes]: ...


def get_video_backend(cfg: Optional[AppConfig] = None, *, backend_override: Optional[str] = None) -> VideoBackend:
	cfg = cfg or get_config()
	backend = (backend_override or cfg.video.backend or "opencv").strip().lower()
	if backend not in ("opencv", "cv2", "webcam"):
		raise ValueError(f"unknown video backend: {backend!r}")

	from modules.video_backends.opencv_backend import OpenCVCameraBackend

	return OpenCVCameraBackend(
		camera_index=int(cfg.video.camera_index),
		size=(int(cfg.video.width), int(cfg.video.height)),
		fps=int(cfg.video.fps),
		jpeg_quality=int(cfg.video.jpeg_quality),
	)


async def mjpeg_from_latest(get_latest_jpeg_fn, fps: float) -> AsyncIterator[bytes]:
	"""
	Reusable MJPEG generator for backends that expose get_latest_jpeg().
	Yields full multipart chunks including boundary and headers.
	"""
	boundary = b"frame"
	last_t = None
	last_sent_mono = 0.0
	try:
		max_fps = float(fps)
	except Exception:
		max_fps = 15.0
	if not (max_fps > 0.0):
		max_fps = 15.0
	min_interval = 1.0 / max_fps

	while True:
		jpeg, t = get_latest_jpeg_fn()
		if jpeg is None or t is None:
			await asyncio.sleep(0.05)
			continue
		if last_t is not None and t == last_t:
			await asyncio.sleep(0.01)
			continue
		now_mono = time.monotonic()
		elapsed = now_mono - last_sent_mono
		if elapsed < min_interval:
			await asyncio.sleep(min_interval - elapsed)
			continue
		last_t = t
		last_sent_mono = time.monotonic()
		yield b"--" + boundary + b"\r\n"
		yield b"Content-Type: image/jpeg\r\n"
		yield b"Content-Length: " + str(len(jpeg)).encode("ascii") + b"\r\n\r\n"
		yield jpeg + b"\r\n"

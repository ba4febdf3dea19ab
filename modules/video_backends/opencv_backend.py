from __future__ import annotations

import logging
import threading
import time
from io import BytesIO
from typing import Any, AsyncIterator, Dict, Optional, Tuple

from modules.video_backend import FrameHandler, VideoBackend, mjpeg_from_latest

logger = logging.getLogger(__name__)


class OpenCVCameraBackend(VideoBackend):
	"""
	Webcam backend built on OpenCV `VideoCapture`.

	A capture thread reads frames, runs the installed frame handler (pose inference
	+ compositing) and keeps the latest JPEG for MJPEG/snapshot consumers.

	Notes:
	- `opencv-python` is imported lazily so the server starts without a camera stack.
	- JPEG encoding uses Pillow (`PIL`).
	- Handler errors never stop the loop; the raw mirrored frame is published instead.
	"""

	def __init__(
		self,
		camera_index: int = 0,
		size: Tuple[int, int] = (480, 640),
		fps: int = 15,
		jpeg_quality: int = 80,
		label: str = "opencv",
	) -> None:
		self._lock = threading.Lock()
		self._label = str(label or "opencv")
		self._camera_index = int(camera_index)
		self._size = (int(size[0]), int(size[1]))
		self._fps = int(fps) if int(fps) > 0 else 15
		self._jpeg_quality = int(jpeg_quality)

		self._running = False
		self._last_error: Optional[str] = None
		self._handler: Optional[FrameHandler] = None

		self._latest_jpeg: Optional[bytes] = None
		self._latest_t_host: Optional[float] = None
		self._frames = 0
		self._handler_errors = 0

		self._thread: Optional[threading.Thread] = None

	def name(self) -> str:
		return self._label

	def set_frame_handler(self, handler: Optional[FrameHandler]) -> None:
		with self._lock:
			self._handler = handler

	def get_status(self) -> Dict[str, Any]:
		with self._lock:
			return {
				"label": self._label,
				"camera_index": self._camera_index,
				"running": bool(self._running),
				"has_frame": self._latest_jpeg is not None,
				"t_last_frame": self._latest_t_host,
				"size": [int(self._size[0]), int(self._size[1])],
				"fps": int(self._fps),
				"frames": int(self._frames),
				"handler_errors": int(self._handler_errors),
				"error": self._last_error,
			}

	def get_latest_jpeg(self) -> tuple[Optional[bytes], Optional[float]]:
		with self._lock:
			return self._latest_jpeg, self._latest_t_host

	def start(self) -> None:
		with self._lock:
			if self._running:
				return
			self._running = True
			self._last_error = None

		t = threading.Thread(target=self._run_loop, name=f"{self._label}-capture", daemon=True)
		self._thread = t
		t.start()

	def stop(self) -> None:
		with self._lock:
			self._running = False
		t = self._thread
		if t and t.is_alive():
			t.join(timeout=2.0)
		self._thread = None

	def _fail(self, msg: str) -> None:
		logger.error("[%s] %s", self._label, msg)
		with self._lock:
			self._last_error = msg
			self._running = False

	def _is_running(self) -> bool:
		with self._lock:
			return bool(self._running)

	def _encode(self, image) -> bytes:
		buf = BytesIO()
		image.save(buf, format="JPEG", quality=self._jpeg_quality, optimize=True)
		return buf.getvalue()

	def process_rgb(self, rgb) -> bytes:
		"""
		Run one captured RGB frame through the handler and return the JPEG bytes.
		"""
		from PIL import Image, ImageOps

		with self._lock:
			handler = self._handler
		image = None
		if handler is not None:
			try:
				image = handler(rgb)
			except Exception as e:
				logger.exception("[%s] frame handler failed", self._label)
				with self._lock:
					self._handler_errors += 1
					self._last_error = f"frame handler failed: {e!r}"
		if image is None:
			image = ImageOps.mirror(Image.fromarray(rgb))
		return self._encode(image)

	def _run_loop(self) -> None:
		try:
			import cv2  # type: ignore
		except Exception as e:
			self._fail(f"OpenCV import failed: {e!r}. Install `opencv-python` (pip).")
			return

		cap = cv2.VideoCapture(self._camera_index)
		if not cap or not cap.isOpened():
			self._fail(f"camera_index={self._camera_index} not available (VideoCapture could not open it)")
			return
		try:
			cap.set(cv2.CAP_PROP_FRAME_WIDTH, float(self._size[0]))
			cap.set(cv2.CAP_PROP_FRAME_HEIGHT, float(self._size[1]))
			cap.set(cv2.CAP_PROP_FPS, float(self._fps))
		except Exception as e:
			logger.debug("[%s] capture property not applied: %r", self._label, e)

		target_dt = 1.0 / float(self._fps)
		logger.info("[%s] capture started on camera %d", self._label, self._camera_index)
		try:
			while self._is_running():
				t0 = time.monotonic()
				ok, bgr = cap.read()
				if not ok or bgr is None:
					self._fail("camera read failed (device disconnected?)")
					return
				if (bgr.shape[1], bgr.shape[0]) != self._size:
					bgr = cv2.resize(bgr, self._size)
				rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
				jpg = self.process_rgb(rgb)
				with self._lock:
					self._latest_jpeg = jpg
					self._latest_t_host = time.time()
					self._frames += 1
				spare = target_dt - (time.monotonic() - t0)
				if spare > 0:
					time.sleep(spare)
		finally:
			cap.release()
			logger.info("[%s] capture stopped", self._label)

	async def mjpeg_stream(self, fps: float) -> AsyncIterator[bytes]:
		async for chunk in mjpeg_from_latest(self.get_latest_jpeg, fps):
			yield chunk

	async def snapshot_jpeg(self) -> Optional[bytes]:
		jpeg, _t = self.get_latest_jpeg()
		return jpeg

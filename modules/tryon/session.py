from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from PIL import Image

from modules.config import AppConfig
from modules.pose.base import PoseProvider
from modules.pose.types import PoseFrame
from modules.tryon.catalog import ProductImage
from modules.tryon.compositor import Compositor, FrameReport
from modules.tryon.smoother import PlacementSmoother
from modules.tryon.surface import PillowSurface

logger = logging.getLogger(__name__)


class TryOnSession:
	"""
	Per-session try-on state: one PlacementSmoother and one Compositor.

	`process_frame` is the whole per-frame pass and is synchronous; whoever owns
	the frame schedule (camera thread, test harness) calls it once per frame and
	stops a session by no longer calling it.
	"""

	def __init__(self, cfg: AppConfig, products: Sequence[ProductImage]) -> None:
		det = cfg.detection
		self.flip_horizontal = bool(det.flip_horizontal)
		self.products = products
		self.smoother = PlacementSmoother()
		self.compositor = Compositor(
			min_pose_confidence=det.min_pose_confidence,
			min_part_confidence=det.min_part_confidence,
			move_farther_text=cfg.overlay.move_farther_text,
			font_size=cfg.overlay.font_size,
		)
		self.frame_count = 0
		self.last_report: Optional[FrameReport] = None

	def process_frame(self, frame, pose: PoseFrame) -> Tuple[Image.Image, FrameReport]:
		"""
		Composite one frame. `frame` is a PIL image or an RGB (H,W,3) array; `pose`
		is in the frame's unmirrored pixel coordinates.
		"""
		image = frame if isinstance(frame, Image.Image) else Image.fromarray(frame)
		if self.flip_horizontal:
			pose = pose.mirrored()
		surface = PillowSurface(image.width, image.height)
		report = self.compositor.render(surface, image, pose, self.products, self.smoother)
		report.frame_index = self.frame_count
		self.frame_count += 1
		self.last_report = report
		return surface.to_image(), report


class TryOnPipeline:
	"""
	Frame handler for the camera thread: pose inference followed by compositing.
	"""

	def __init__(self, session: TryOnSession, provider: PoseProvider) -> None:
		self.session = session
		self.provider = provider

	def __call__(self, rgb) -> Image.Image:
		pose = self.provider.infer_rgb(rgb)
		image, _ = self.session.process_frame(rgb, pose)
		return image

	def close(self) -> None:
		self.provider.close()

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

from modules.pose.types import BodyPart, Keypoint, PoseFrame
from modules.tryon.anchors import anchor_points, index_points
from modules.tryon.catalog import ProductImage
from modules.tryon.placement import PLACEMENT_RULES, eligible_anchor, eligible_anchors
from modules.tryon.smoother import PlacementSmoother
from modules.tryon.surface import DrawingSurface

logger = logging.getLogger(__name__)

STATE_SKIP = "skip"
STATE_RENDER = "render"

# Shoulders wider than this share of the frame mean the subject is too close.
MAX_SHOULDER_SPAN_RATIO = 0.9

# Hand keypoints used by bracelet/ring rules in addition to the head-and-shoulders set.
HAND_PARTS = (BodyPart.LEFT_WRIST, BodyPart.RIGHT_WRIST, BodyPart.LEFT_INDEX, BodyPart.RIGHT_INDEX)


@dataclass(frozen=True)
class DrawnOverlay:
	product_id: str
	anchor: str
	x: float
	y: float


@dataclass
class FrameReport:
	state: str
	pose_score: float
	overlays: List[DrawnOverlay] = field(default_factory=list)
	move_farther: bool = False
	frame_index: int = 0

	def to_dict(self) -> Dict[str, Any]:
		return {
			"frame_index": int(self.frame_index),
			"state": self.state,
			"pose_score": float(self.pose_score),
			"move_farther": bool(self.move_farther),
			"overlays": [
				{"product_id": o.product_id, "anchor": o.anchor, "x": float(o.x), "y": float(o.y)} for o in self.overlays
			],
		}


def should_move_farther(points: Iterable[Keypoint], min_part_confidence: float, width: float) -> bool:
	"""
	Both ears visible but the shoulders are either out of view or span nearly the
	whole frame.
	"""
	idx = index_points(points)
	left_ear = eligible_anchor(idx, BodyPart.LEFT_EAR.value, min_part_confidence)
	right_ear = eligible_anchor(idx, BodyPart.RIGHT_EAR.value, min_part_confidence)
	if left_ear is None or right_ear is None:
		return False
	ls = eligible_anchor(idx, BodyPart.LEFT_SHOULDER.value, min_part_confidence)
	rs = eligible_anchor(idx, BodyPart.RIGHT_SHOULDER.value, min_part_confidence)
	if ls is None and rs is None:
		return True
	if ls is None or rs is None:
		return False
	return abs(ls.x - rs.x) > MAX_SHOULDER_SPAN_RATIO * float(width)


class Compositor:
	"""
	Draws one output frame: the mirrored video, then every product that has an
	eligible anchor, then the "move farther" hint.

	Two states per frame, re-evaluated every call:
	  - skip:   pose score below min_pose_confidence, video only.
	  - render: video plus overlays (and the hint when needed).
	"""

	def __init__(
		self,
		min_pose_confidence: float = 0.1,
		min_part_confidence: float = 0.5,
		move_farther_text: str = "Please Move Farther",
		font_size: int = 30,
	) -> None:
		self.min_pose_confidence = float(min_pose_confidence)
		self.min_part_confidence = float(min_part_confidence)
		self.move_farther_text = str(move_farther_text)
		self.font_size = int(font_size)

	def draw_video(self, surface: DrawingSurface, frame, width: int, height: int) -> None:
		surface.clear()
		surface.save()
		surface.scale(-1, 1)
		surface.translate(-width, 0)
		surface.draw_image(frame, 0, 0, width, height)
		surface.restore()

	def render(
		self,
		surface: DrawingSurface,
		frame,
		pose: PoseFrame,
		products: Sequence[ProductImage],
		smoother: PlacementSmoother,
	) -> FrameReport:
		width, height = int(frame.width), int(frame.height)
		self.draw_video(surface, frame, width, height)

		report = FrameReport(state=STATE_SKIP, pose_score=float(pose.score))
		if float(pose.score) < self.min_pose_confidence:
			return report
		report.state = STATE_RENDER

		points = pose.top_points()
		for part in HAND_PARTS:
			kp = pose.get(part)
			if kp is not None:
				points.append(kp)
		idx = index_points(anchor_points(points))

		for product in products:
			if not product.ready:
				continue
			rule = PLACEMENT_RULES[product.type]
			for kp in eligible_anchors(product, idx, self.min_part_confidence):
				effective = smoother.commit(kp.name, kp.position)
				top_left = rule.top_left(effective, product)
				surface.draw_image(product.bitmap, top_left.x, top_left.y)
				report.overlays.append(DrawnOverlay(product.id, kp.name, top_left.x, top_left.y))

		if should_move_farther(points, self.min_part_confidence, width):
			report.move_farther = True
			surface.draw_text(self.move_farther_text, round(height / 2) - 100, round(width / 2), self.font_size)

		logger.debug("Frame rendered: score=%.3f overlays=%d", pose.score, len(report.overlays))
		return report

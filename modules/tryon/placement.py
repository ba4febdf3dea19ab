"""
Where each product type sits on the body.

A rule names the anchors a product is drawn on and how the bitmap's top-left
corner is offset from the (smoothed) anchor position.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from modules.pose.types import BodyPart, Keypoint, Point
from modules.tryon.anchors import AnchorName, index_points
from modules.tryon.catalog import ProductImage, ProductType

# Studs sit slightly inside the ear keypoint and just below it.
STUD_X_INSET_PX = 3.0
STUD_Y_OFFSET_PX = 10.0


def _stud_offset(pos: Point, w: float, h: float) -> Point:
	return Point(pos.x - (w / 2.0 - STUD_X_INSET_PX), pos.y + STUD_Y_OFFSET_PX)


def _hang_offset(pos: Point, w: float, h: float) -> Point:
	return Point(pos.x - w / 2.0, pos.y)


def _center_offset(pos: Point, w: float, h: float) -> Point:
	return Point(pos.x - w / 2.0, pos.y - h / 2.0)


@dataclass(frozen=True)
class PlacementRule:
	anchors: Tuple[str, ...]
	offset: Callable[[Point, float, float], Point]

	def top_left(self, anchor: Point, product: ProductImage) -> Point:
		return self.offset(anchor, float(product.real_width), float(product.real_height))


PLACEMENT_RULES: Dict[ProductType, PlacementRule] = {
	ProductType.STUD: PlacementRule(
		anchors=(BodyPart.LEFT_EAR.value, BodyPart.RIGHT_EAR.value),
		offset=_stud_offset,
	),
	ProductType.EARRING: PlacementRule(
		anchors=(AnchorName.LEFT_EAR_BOTTOM.value, AnchorName.RIGHT_EAR_BOTTOM.value),
		offset=_hang_offset,
	),
	ProductType.NECKLACE: PlacementRule(
		anchors=(AnchorName.NECK.value,),
		offset=_hang_offset,
	),
	ProductType.BRACELET: PlacementRule(
		anchors=(BodyPart.LEFT_WRIST.value, BodyPart.RIGHT_WRIST.value),
		offset=_center_offset,
	),
	ProductType.RING: PlacementRule(
		anchors=(BodyPart.LEFT_INDEX.value, BodyPart.RIGHT_INDEX.value),
		offset=_center_offset,
	),
}


def eligible_anchor(points: Dict[str, Keypoint], name: str, min_part_confidence: float) -> Optional[Keypoint]:
	kp = points.get(name)
	if kp is None or not (float(kp.score) > float(min_part_confidence)):
		return None
	return kp


def eligible_anchors(
	product: ProductImage, points: Iterable[Keypoint], min_part_confidence: float
) -> List[Keypoint]:
	"""
	Anchors this product can be drawn on this frame, in rule order.
	"""
	rule = PLACEMENT_RULES[product.type]
	idx = points if isinstance(points, dict) else index_points(points)
	out = []
	for name in rule.anchors:
		kp = eligible_anchor(idx, name, min_part_confidence)
		if kp is not None:
			out.append(kp)
	return out

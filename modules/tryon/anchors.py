"""
Secondary anchor points derived from primary pose keypoints.

All functions here are pure: they read a sequence of keypoints and return new
Keypoint values. A side whose inputs are missing simply yields no anchor.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from modules.pose.types import BodyPart, Keypoint, Point


class AnchorName(str, Enum):
	NECK_LEFT = "neckLeft"
	NECK_RIGHT = "neckRight"
	LEFT_EAR_BOTTOM = "leftEarBottom"
	RIGHT_EAR_BOTTOM = "rightEarBottom"
	# Midpoint of the two neck anchors (necklace placement).
	NECK = "neck"


def index_points(points: Iterable[Keypoint]) -> Dict[str, Keypoint]:
	"""
	Name -> keypoint lookup. The first keypoint seen for a name wins.
	"""
	out: Dict[str, Keypoint] = {}
	for kp in points:
		out.setdefault(kp.name, kp)
	return out


def _find(points: Dict[str, Keypoint], name: Union[BodyPart, AnchorName]) -> Optional[Keypoint]:
	return points.get(name.value)


def _neck(points: Dict[str, Keypoint], name: AnchorName, ear: BodyPart, shoulder: BodyPart) -> Optional[Keypoint]:
	nose = _find(points, BodyPart.NOSE)
	e = _find(points, ear)
	s = _find(points, shoulder)
	if nose is None or e is None or s is None:
		return None
	return Keypoint(
		part=name.value,
		score=s.score,
		position=Point(e.x, s.y - (s.y - nose.y) / 2.0),
	)


def derive_anchors(points: Iterable[Keypoint]) -> List[Keypoint]:
	"""
	Neck anchors from nose, ears and shoulders.

	neckLeft sits at leftEar.x, halfway between leftShoulder.y and nose.y and takes
	the shoulder's score; neckRight is the same computation on the right side.
	"""
	idx = index_points(points)
	out: List[Keypoint] = []
	for name, ear, shoulder in (
		(AnchorName.NECK_LEFT, BodyPart.LEFT_EAR, BodyPart.LEFT_SHOULDER),
		(AnchorName.NECK_RIGHT, BodyPart.RIGHT_EAR, BodyPart.RIGHT_SHOULDER),
	):
		kp = _neck(idx, name, ear, shoulder)
		if kp is not None:
			out.append(kp)
	return out


def derive_ear_bottoms(points: Iterable[Keypoint]) -> List[Keypoint]:
	"""
	Ear-lobe anchors: a quarter of the way from the ear down to the shoulder.
	"""
	idx = index_points(points)
	out: List[Keypoint] = []
	for name, ear, shoulder in (
		(AnchorName.LEFT_EAR_BOTTOM, BodyPart.LEFT_EAR, BodyPart.LEFT_SHOULDER),
		(AnchorName.RIGHT_EAR_BOTTOM, BodyPart.RIGHT_EAR, BodyPart.RIGHT_SHOULDER),
	):
		e = _find(idx, ear)
		s = _find(idx, shoulder)
		if e is None or s is None:
			continue
		out.append(Keypoint(part=name.value, score=e.score, position=Point(e.x, e.y + (s.y - e.y) / 4.0)))
	return out


def neck_center(points: Iterable[Keypoint]) -> Optional[Keypoint]:
	idx = index_points(points)
	left = _find(idx, AnchorName.NECK_LEFT)
	right = _find(idx, AnchorName.NECK_RIGHT)
	if left is None or right is None:
		return None
	return Keypoint(
		part=AnchorName.NECK.value,
		score=min(left.score, right.score),
		position=Point((left.x + right.x) / 2.0, (left.y + right.y) / 2.0),
	)


def anchor_points(points: Iterable[Keypoint]) -> List[Keypoint]:
	"""
	The input points followed by every derived anchor for this frame.
	"""
	out = list(points)
	out.extend(derive_anchors(out))
	out.extend(derive_ear_bottoms(out))
	center = neck_center(out)
	if center is not None:
		out.append(center)
	return out

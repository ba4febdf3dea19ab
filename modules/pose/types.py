from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional, Tuple, Union


class BodyPart(str, Enum):
	"""
	Closed vocabulary of body-part labels understood by the try-on core.

	Values use the camelCase spelling of the browser PoseNet taxonomy; `parse`
	also accepts snake_case (MediaPipe/COCO style) spellings.
	"""

	NOSE = "nose"
	LEFT_EYE = "leftEye"
	RIGHT_EYE = "rightEye"
	LEFT_EAR = "leftEar"
	RIGHT_EAR = "rightEar"
	LEFT_SHOULDER = "leftShoulder"
	RIGHT_SHOULDER = "rightShoulder"
	LEFT_ELBOW = "leftElbow"
	RIGHT_ELBOW = "rightElbow"
	LEFT_WRIST = "leftWrist"
	RIGHT_WRIST = "rightWrist"
	LEFT_INDEX = "leftIndex"
	RIGHT_INDEX = "rightIndex"
	LEFT_HIP = "leftHip"
	RIGHT_HIP = "rightHip"
	LEFT_KNEE = "leftKnee"
	RIGHT_KNEE = "rightKnee"
	LEFT_ANKLE = "leftAnkle"
	RIGHT_ANKLE = "rightAnkle"

	@classmethod
	def parse(cls, label: object) -> Optional["BodyPart"]:
		"""
		Map a raw label to a BodyPart. Unknown labels return None (treated as absent).
		"""
		if isinstance(label, BodyPart):
			return label
		if not isinstance(label, str):
			return None
		key = re.sub(r"[\s_\-]", "", label.strip().lower())
		return _LOOKUP.get(key)


_LOOKUP = {p.value.lower(): p for p in BodyPart}

# First seven entries of the taxonomy (nose, eyes, ears, shoulders).
HEAD_AND_SHOULDERS: Tuple[BodyPart, ...] = (
	BodyPart.NOSE,
	BodyPart.LEFT_EYE,
	BodyPart.RIGHT_EYE,
	BodyPart.LEFT_EAR,
	BodyPart.RIGHT_EAR,
	BodyPart.LEFT_SHOULDER,
	BodyPart.RIGHT_SHOULDER,
)

_ORDER = {p: i for i, p in enumerate(BodyPart)}


@dataclass(frozen=True)
class Point:
	x: float
	y: float


@dataclass(frozen=True)
class Keypoint:
	"""
	A single 2D keypoint in pixel coordinates.

	`part` is a BodyPart for keypoints emitted by a pose model and a plain anchor
	name (e.g. "neckLeft") for anchors derived from them.
	"""

	part: Union[BodyPart, str]
	score: float  # confidence/visibility [0..1]
	position: Point

	@property
	def name(self) -> str:
		return self.part.value if isinstance(self.part, BodyPart) else str(self.part)

	@property
	def x(self) -> float:
		return self.position.x

	@property
	def y(self) -> float:
		return self.position.y


@dataclass(frozen=True)
class PoseFrame:
	"""
	Model-agnostic single-pose output for one video frame.

	- Coordinates are in pixel space of a `width` x `height` frame.
	- `score` is the overall pose confidence; `keypoints` are ordered by taxonomy.
	"""

	backend: str
	width: int
	height: int
	score: float = 0.0
	keypoints: Tuple[Keypoint, ...] = field(default_factory=tuple)

	def get(self, part: Union[BodyPart, str]) -> Optional[Keypoint]:
		bp = BodyPart.parse(part)
		if bp is None:
			return None
		for kp in self.keypoints:
			if kp.part == bp:
				return kp
		return None

	def top_points(self) -> list[Keypoint]:
		return [kp for kp in self.keypoints if kp.part in HEAD_AND_SHOULDERS]

	def mirrored(self) -> "PoseFrame":
		"""
		Flip x around the frame width (selfie view). Part labels are kept, the same
		way PoseNet's flipHorizontal does it.
		"""
		w = float(self.width)
		return replace(
			self,
			keypoints=tuple(
				Keypoint(part=kp.part, score=kp.score, position=Point(w - kp.x, kp.y)) for kp in self.keypoints
			),
		)

	@classmethod
	def from_labels(
		cls,
		rows: Iterable[Tuple[object, float, float, float]],
		*,
		width: int,
		height: int,
		score: Optional[float] = None,
		backend: str = "external",
	) -> "PoseFrame":
		"""
		Build a frame from raw (label, score, x, y) rows.

		Rows with unrecognised labels are dropped; if `score` is omitted the mean
		head-and-shoulders score is used.
		"""
		kps: dict[BodyPart, Keypoint] = {}
		for label, s, x, y in rows:
			bp = BodyPart.parse(label)
			if bp is None or bp in kps:
				continue
			kps[bp] = Keypoint(part=bp, score=float(s), position=Point(float(x), float(y)))
		ordered = tuple(sorted(kps.values(), key=lambda kp: _ORDER[kp.part]))
		overall = float(score) if score is not None else mean_score(ordered)
		return cls(backend=backend, width=int(width), height=int(height), score=overall, keypoints=ordered)


def mean_score(keypoints: Iterable[Keypoint], parts: Tuple[BodyPart, ...] = HEAD_AND_SHOULDERS) -> float:
	scores = [float(kp.score) for kp in keypoints if kp.part in parts]
	if not scores:
		return 0.0
	return sum(scores) / float(len(scores))

from __future__ import annotations

import logging

from modules.pose.base import PoseProvider
from modules.pose.types import BodyPart, Keypoint, Point, PoseFrame, mean_score

logger = logging.getLogger(__name__)


# MediaPipe PoseLandmark attribute for every BodyPart the core understands.
LANDMARK_NAMES = {
	BodyPart.NOSE: "NOSE",
	BodyPart.LEFT_EYE: "LEFT_EYE",
	BodyPart.RIGHT_EYE: "RIGHT_EYE",
	BodyPart.LEFT_EAR: "LEFT_EAR",
	BodyPart.RIGHT_EAR: "RIGHT_EAR",
	BodyPart.LEFT_SHOULDER: "LEFT_SHOULDER",
	BodyPart.RIGHT_SHOULDER: "RIGHT_SHOULDER",
	BodyPart.LEFT_ELBOW: "LEFT_ELBOW",
	BodyPart.RIGHT_ELBOW: "RIGHT_ELBOW",
	BodyPart.LEFT_WRIST: "LEFT_WRIST",
	BodyPart.RIGHT_WRIST: "RIGHT_WRIST",
	BodyPart.LEFT_INDEX: "LEFT_INDEX",
	BodyPart.RIGHT_INDEX: "RIGHT_INDEX",
	BodyPart.LEFT_HIP: "LEFT_HIP",
	BodyPart.RIGHT_HIP: "RIGHT_HIP",
	BodyPart.LEFT_KNEE: "LEFT_KNEE",
	BodyPart.RIGHT_KNEE: "RIGHT_KNEE",
	BodyPart.LEFT_ANKLE: "LEFT_ANKLE",
	BodyPart.RIGHT_ANKLE: "RIGHT_ANKLE",
}


class MediaPipePoseProvider(PoseProvider):
	"""
	MediaPipe Pose provider that outputs the BodyPart keypoint set.

	Notes:
	- MediaPipe uses normalized coordinates; we convert to pixel space.
	- `visibility` is used as score (best-effort).
	- MediaPipe has no overall pose score; the mean head-and-shoulders score is used.
	"""

	def __init__(
		self,
		model_complexity: int = 1,
		min_detection_confidence: float = 0.5,
		min_tracking_confidence: float = 0.5,
	) -> None:
		try:
			import mediapipe as mp  # type: ignore
		except Exception as e:
			raise RuntimeError(
				"MediaPipe is not installed. Install pose deps with: pip install -e .[pose]"
			) from e

		self._mp = mp
		self._pose = mp.solutions.pose.Pose(
			static_image_mode=False,
			model_complexity=int(model_complexity),
			enable_segmentation=False,
			smooth_landmarks=True,
			min_detection_confidence=float(min_detection_confidence),
			min_tracking_confidence=float(min_tracking_confidence),
		)

	def name(self) -> str:
		return "mediapipe_pose"

	def infer_rgb(self, rgb) -> PoseFrame:
		# rgb: HxWx3
		h, w = int(rgb.shape[0]), int(rgb.shape[1])
		res = self._pose.process(rgb)
		if not res or not getattr(res, "pose_landmarks", None):
			return PoseFrame(backend=self.name(), width=w, height=h)

		lm = res.pose_landmarks.landmark
		PL = self._mp.solutions.pose.PoseLandmark
		keypoints = []
		for part, attr in LANDMARK_NAMES.items():
			try:
				p = lm[int(getattr(PL, attr))]
			except (AttributeError, IndexError):
				logger.debug("Landmark %s missing from MediaPipe result", attr)
				continue
			keypoints.append(
				Keypoint(
					part=part,
					score=float(getattr(p, "visibility", 0.0) or 0.0),
					position=Point(float(p.x) * float(w), float(p.y) * float(h)),
				)
			)
		return PoseFrame(
			backend=self.name(),
			width=w,
			height=h,
			score=mean_score(keypoints),
			keypoints=tuple(keypoints),
		)

	def close(self) -> None:
		try:
			if self._pose:
				self._pose.close()
		except Exception as e:
			logger.debug("MediaPipe close failed: %r", e)

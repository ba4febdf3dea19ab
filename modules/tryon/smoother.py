from __future__ import annotations

from typing import Dict, Optional

from modules.pose.types import Point

# Vertical head motion while wearing jewelry is larger than horizontal.
THRESHOLD_X_PX = 10.0
THRESHOLD_Y_PX = 12.0


class PlacementSmoother:
	"""
	Per-session jitter filter for overlay anchors.

	One-step hysteresis: an anchor keeps its last committed position until a new
	candidate moves more than `threshold_x` horizontally or `threshold_y` vertically
	(both exclusive). There is no interpolation, so an accepted move shows up with
	zero latency.

	Construct one instance per try-on session and pass it to every frame.
	"""

	def __init__(self, threshold_x: float = THRESHOLD_X_PX, threshold_y: float = THRESHOLD_Y_PX) -> None:
		self.threshold_x = float(threshold_x)
		self.threshold_y = float(threshold_y)
		self._cache: Dict[str, Point] = {}

	def commit(self, anchor_name: str, candidate: Point) -> Point:
		"""
		Return the effective position for `anchor_name` given this frame's candidate.
		"""
		key = str(getattr(anchor_name, "value", anchor_name))
		cached = self._cache.get(key)
		if cached is None:
			self._cache[key] = candidate
			return candidate
		dx = abs(cached.x - candidate.x)
		dy = abs(cached.y - candidate.y)
		if dx > self.threshold_x or dy > self.threshold_y:
			self._cache[key] = candidate
			return candidate
		return cached

	def get(self, anchor_name: str) -> Optional[Point]:
		return self._cache.get(str(getattr(anchor_name, "value", anchor_name)))

	def snapshot(self) -> Dict[str, Point]:
		return dict(self._cache)

	def __contains__(self, anchor_name: object) -> bool:
		return str(getattr(anchor_name, "value", anchor_name)) in self._cache

	def __len__(self) -> int:
		return len(self._cache)

from __future__ import annotations

from abc import ABC, abstractmethod

from modules.pose.types import PoseFrame


class PoseProvider(ABC):
	"""
	Model adapter interface.

	Implementations take an RGB image (H,W,3 uint8) and return a single-pose PoseFrame.
	"""

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def infer_rgb(self, rgb) -> PoseFrame: ...

	@abstractmethod
	def close(self) -> None: ...

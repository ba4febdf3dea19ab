from typing import Any, List, Optional, Tuple

import pytest
from PIL import Image

from modules.pose.types import PoseFrame
from modules.tryon.catalog import ProductImage, ProductType
from modules.tryon.surface import DrawingSurface


class RecordingSurface(DrawingSurface):
	"""Records every draw call as a tuple instead of touching pixels."""

	def __init__(self) -> None:
		self.calls: List[Tuple[Any, ...]] = []

	def clear(self) -> None:
		self.calls.append(("clear",))

	def save(self) -> None:
		self.calls.append(("save",))

	def restore(self) -> None:
		self.calls.append(("restore",))

	def scale(self, sx: float, sy: float) -> None:
		self.calls.append(("scale", sx, sy))

	def translate(self, dx: float, dy: float) -> None:
		self.calls.append(("translate", dx, dy))

	def draw_image(self, bitmap, x: float, y: float, width: Optional[float] = None, height: Optional[float] = None) -> None:
		self.calls.append(("draw_image", bitmap, x, y, width, height))

	def draw_text(self, text: str, x: float, y: float, font_size: int) -> None:
		self.calls.append(("draw_text", text, x, y, font_size))

	def named(self, name: str) -> List[Tuple[Any, ...]]:
		return [c for c in self.calls if c[0] == name]


def head_and_shoulders(
	*,
	nose=(240.0, 200.0),
	left_ear=(200.0, 150.0),
	right_ear=(280.0, 150.0),
	left_shoulder=(160.0, 320.0),
	right_shoulder=(320.0, 320.0),
	score: float = 0.9,
	extra=(),
):
	rows = [
		("nose", score, *nose),
		("leftEye", score, 225.0, 180.0),
		("rightEye", score, 255.0, 180.0),
	]
	if left_ear is not None:
		rows.append(("leftEar", score, *left_ear))
	if right_ear is not None:
		rows.append(("rightEar", score, *right_ear))
	if left_shoulder is not None:
		rows.append(("leftShoulder", score, *left_shoulder))
	if right_shoulder is not None:
		rows.append(("rightShoulder", score, *right_shoulder))
	rows.extend(extra)
	return rows


def make_pose(rows, *, width: int = 480, height: int = 640, score: Optional[float] = None) -> PoseFrame:
	return PoseFrame.from_labels(rows, width=width, height=height, score=score, backend="test")


@pytest.fixture
def surface() -> RecordingSurface:
	return RecordingSurface()


@pytest.fixture
def frame() -> Image.Image:
	return Image.new("RGB", (480, 640), (40, 40, 40))


@pytest.fixture
def stud() -> ProductImage:
	return ProductImage(
		id="stud-1",
		url="mem://stud.png",
		type=ProductType.STUD,
		real_width=20,
		real_height=20,
		bitmap=Image.new("RGBA", (20, 20), (255, 215, 0, 255)),
	)


def make_product(ptype: ProductType, width: int = 20, height: int = 20, ready: bool = True, pid: str = "") -> ProductImage:
	return ProductImage(
		id=pid or f"{ptype.value}-1",
		url=f"mem://{ptype.value}.png",
		type=ptype,
		real_width=width,
		real_height=height,
		bitmap=Image.new("RGBA", (width, height), (200, 200, 255, 255)) if ready else None,
	)

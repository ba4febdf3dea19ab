from __future__ import annotations

from abc import ABC, abstractmethod
from io import BytesIO
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont, ImageOps


class DrawingSurface(ABC):
	"""
	Minimal 2D canvas the compositor draws on.

	Transforms follow the HTML canvas convention: `scale` and `translate` post-multiply
	the current transform, `save`/`restore` push and pop it.
	"""

	@abstractmethod
	def clear(self) -> None: ...

	@abstractmethod
	def save(self) -> None: ...

	@abstractmethod
	def restore(self) -> None: ...

	@abstractmethod
	def scale(self, sx: float, sy: float) -> None: ...

	@abstractmethod
	def translate(self, dx: float, dy: float) -> None: ...

	@abstractmethod
	def draw_image(self, bitmap, x: float, y: float, width: Optional[float] = None, height: Optional[float] = None) -> None: ...

	@abstractmethod
	def draw_text(self, text: str, x: float, y: float, font_size: int) -> None: ...


# (a, e, c, f): x' = a*x + c, y' = e*y + f. Only axis-aligned transforms are needed.
_Transform = Tuple[float, float, float, float]
_IDENTITY: _Transform = (1.0, 1.0, 0.0, 0.0)


class PillowSurface(DrawingSurface):
	"""
	RGB canvas backed by a Pillow image.
	"""

	def __init__(self, width: int, height: int, background: Tuple[int, int, int] = (0, 0, 0)) -> None:
		self.width = int(width)
		self.height = int(height)
		self._background = background
		self._image = Image.new("RGB", (self.width, self.height), background)
		self._transform: _Transform = _IDENTITY
		self._stack: List[_Transform] = []
		self._fonts: dict[int, ImageFont.ImageFont] = {}

	def clear(self) -> None:
		self._image.paste(self._background, (0, 0, self.width, self.height))

	def save(self) -> None:
		self._stack.append(self._transform)

	def restore(self) -> None:
		if self._stack:
			self._transform = self._stack.pop()

	def scale(self, sx: float, sy: float) -> None:
		a, e, c, f = self._transform
		self._transform = (a * float(sx), e * float(sy), c, f)

	def translate(self, dx: float, dy: float) -> None:
		a, e, c, f = self._transform
		self._transform = (a, e, c + a * float(dx), f + e * float(dy))

	def _map(self, x: float, y: float) -> Tuple[float, float]:
		a, e, c, f = self._transform
		return a * x + c, e * y + f

	def draw_image(self, bitmap, x: float, y: float, width: Optional[float] = None, height: Optional[float] = None) -> None:
		w = float(width) if width is not None else float(bitmap.width)
		h = float(height) if height is not None else float(bitmap.height)
		x0, y0 = self._map(float(x), float(y))
		x1, y1 = self._map(float(x) + w, float(y) + h)
		out_w = int(round(abs(x1 - x0)))
		out_h = int(round(abs(y1 - y0)))
		if out_w <= 0 or out_h <= 0:
			return
		img = bitmap
		if (img.width, img.height) != (out_w, out_h):
			img = img.resize((out_w, out_h))
		if x1 < x0:
			img = ImageOps.mirror(img)
		if y1 < y0:
			img = ImageOps.flip(img)
		box = (int(round(min(x0, x1))), int(round(min(y0, y1))))
		if img.mode == "RGBA":
			self._image.paste(img, box, img)
		else:
			self._image.paste(img.convert("RGB"), box)

	def _font(self, size: int):
		font = self._fonts.get(size)
		if font is None:
			font = ImageFont.load_default(size=size)
			self._fonts[size] = font
		return font

	def draw_text(self, text: str, x: float, y: float, font_size: int) -> None:
		font = self._font(int(font_size))
		px, py = self._map(float(x), float(y))
		draw = ImageDraw.Draw(self._image)
		# Canvas fillText anchors at the baseline; bitmap fonts only support top-left.
		anchor = "ls" if isinstance(font, ImageFont.FreeTypeFont) else None
		draw.text((px, py), str(text), fill=(0, 0, 0), font=font, anchor=anchor)

	def to_image(self) -> Image.Image:
		return self._image.copy()

	def to_jpeg(self, quality: int = 80) -> bytes:
		buf = BytesIO()
		self._image.save(buf, format="JPEG", quality=int(quality), optimize=True)
		return buf.getvalue()

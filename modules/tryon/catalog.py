from __future__ import annotations

import asyncio
import json
import logging
import urllib.request
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 10.0


class CatalogError(ValueError):
	"""Raised for a malformed catalog file or entry."""


class ProductType(str, Enum):
	STUD = "stud"
	EARRING = "earring"
	NECKLACE = "necklace"
	BRACELET = "bracelet"
	RING = "ring"

	@classmethod
	def from_tag(cls, tag: str) -> "ProductType":
		"""
		Resolve a free-form type tag ("earring-stud", "earring-drop", "ring", ...).

		Substrings are tested in declaration order, so "earring-stud" is a stud and
		"earring-drop" an earring even though both contain "ring".
		"""
		t = str(tag or "").strip().lower()
		for member in cls:
			if member.value in t:
				return member
		raise CatalogError(f"unknown product type: {tag!r}")


@dataclass
class ProductImage:
	"""
	A catalog entry plus its decoded bitmap.

	`bitmap` stays None until the preload finishes; a product that failed to
	decode keeps bitmap=None and records the reason in `error`.
	"""

	id: str
	url: str
	type: ProductType
	real_width: int
	real_height: int
	bitmap: Any = None  # PIL.Image.Image (RGBA) once decoded
	error: Optional[str] = None

	@property
	def ready(self) -> bool:
		return self.bitmap is not None


def _as_positive_int(v: Any, field_name: str, index: int) -> int:
	try:
		n = int(round(float(v)))
	except (TypeError, ValueError):
		raise CatalogError(f"catalog entry {index}: {field_name} must be a number, got {v!r}") from None
	if n <= 0:
		raise CatalogError(f"catalog entry {index}: {field_name} must be > 0, got {v!r}")
	return n


def parse_entry(obj: Any, index: int) -> ProductImage:
	if not isinstance(obj, dict):
		raise CatalogError(f"catalog entry {index} must be an object")
	url = obj.get("url")
	if not isinstance(url, str) or not url.strip():
		raise CatalogError(f"catalog entry {index}: url is required")
	width = obj.get("realWidth", obj.get("real_width"))
	height = obj.get("realHeight", obj.get("real_height"))
	try:
		ptype = ProductType.from_tag(obj.get("type", ""))
	except CatalogError as e:
		raise CatalogError(f"catalog entry {index}: {e}") from None
	return ProductImage(
		id=str(obj.get("id") or f"{ptype.value}-{index}"),
		url=url.strip(),
		type=ptype,
		real_width=_as_positive_int(width, "realWidth", index),
		real_height=_as_positive_int(height, "realHeight", index),
	)


def parse_catalog(raw: Any) -> List[ProductImage]:
	if isinstance(raw, dict):
		raw = raw.get("products")
	if not isinstance(raw, list):
		raise CatalogError("catalog must be a list of products (or {\"products\": [...]})")
	return [parse_entry(obj, i) for i, obj in enumerate(raw)]


def load_catalog(path: str | Path) -> List[ProductImage]:
	"""
	Read a JSON catalog file. Relative image paths resolve against the file's folder.
	"""
	p = Path(path).expanduser().resolve()
	try:
		raw = json.loads(p.read_text(encoding="utf-8"))
	except json.JSONDecodeError as e:
		raise CatalogError(f"catalog {p} is not valid JSON: {e}") from e
	products = parse_catalog(raw)
	for product in products:
		if not _is_remote(product.url) and not Path(product.url).is_absolute():
			product.url = str(p.parent / product.url)
	return products


def _is_remote(url: str) -> bool:
	return url.lower().startswith(("http://", "https://"))


def _read_bytes(url: str) -> bytes:
	if _is_remote(url):
		with urllib.request.urlopen(url, timeout=HTTP_TIMEOUT_SECONDS) as resp:
			return resp.read()
	return Path(url).expanduser().read_bytes()


def decode_image(product: ProductImage):
	"""
	Fetch and decode one product image, resized to its real width/height.
	"""
	from PIL import Image

	data = _read_bytes(product.url)
	with Image.open(BytesIO(data)) as im:
		im = im.convert("RGBA")
		return im.resize((int(product.real_width), int(product.real_height)), Image.Resampling.LANCZOS)


async def _preload_one(product: ProductImage) -> None:
	try:
		product.bitmap = await asyncio.to_thread(decode_image, product)
		product.error = None
		logger.debug("Decoded product image %s (%s)", product.id, product.url)
	except Exception as e:
		product.error = repr(e)
		logger.error("Failed to decode product image %s from %s: %r", product.id, product.url, e)


async def preload_images(products: Sequence[ProductImage]) -> Dict[str, bool]:
	"""
	Decode all product images concurrently. Failures are logged, never raised.

	Returns {product_id: ready}.
	"""
	await asyncio.gather(*(_preload_one(p) for p in products if not p.ready))
	return {p.id: p.ready for p in products}

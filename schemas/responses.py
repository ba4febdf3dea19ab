"""Pydantic response models for API docs and validation."""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class CatalogEntry(BaseModel):
	"""One product from GET /api/catalog."""

	id: str
	url: str
	type: str = Field(..., description="stud, earring, necklace, bracelet or ring")
	real_width: int
	real_height: int
	ready: bool = Field(..., description="True once the image is decoded and can be drawn")
	error: Optional[str] = Field(None, description="Decode failure, if any")


class CatalogResponse(BaseModel):
	"""Response from GET /api/catalog."""

	count: int
	products: List[CatalogEntry]
	error: Optional[str] = Field(None, description="Catalog load failure, if any")


class OverlayOut(BaseModel):
	product_id: str
	anchor: str
	x: float
	y: float


class TryOnStatusResponse(BaseModel):
	"""Response from GET /api/tryon/status."""

	active: bool
	frames: int = 0
	state: Optional[str] = Field(None, description="'skip' or 'render' for the last frame")
	pose_score: Optional[float] = None
	move_farther: bool = False
	overlays: List[OverlayOut] = Field(default_factory=list)
	anchors: Dict[str, List[float]] = Field(default_factory=dict, description="Smoothed anchor positions [x, y]")

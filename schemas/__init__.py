"""Pydantic response models for API validation and docs."""
from schemas.responses import (
	CatalogEntry,
	CatalogResponse,
	OverlayOut,
	TryOnStatusResponse,
)

__all__ = [
	"CatalogEntry",
	"CatalogResponse",
	"OverlayOut",
	"TryOnStatusResponse",
]

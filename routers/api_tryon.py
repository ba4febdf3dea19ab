"""Try-on API routes. Routes: /api/catalog, /api/tryon/status, /health."""
from typing import Optional

from fastapi import APIRouter, Depends

from app_state import AppState
from deps import get_session, get_state
from modules.tryon.session import TryOnSession
from schemas.responses import CatalogEntry, CatalogResponse, OverlayOut, TryOnStatusResponse

router = APIRouter(tags=["tryon"])


@router.get("/api/catalog", response_model=CatalogResponse)
async def api_catalog(state: AppState = Depends(get_state)):
	"""List catalog products and whether each image is ready to draw."""
	products = [
		CatalogEntry(
			id=p.id,
			url=p.url,
			type=p.type.value,
			real_width=p.real_width,
			real_height=p.real_height,
			ready=p.ready,
			error=p.error,
		)
		for p in state.products
	]
	return CatalogResponse(count=len(products), products=products, error=state.catalog_error)


@router.get("/api/tryon/status", response_model=TryOnStatusResponse)
async def api_tryon_status(session: Optional[TryOnSession] = Depends(get_session)):
	"""Summary of the last composited frame of the active session."""
	if session is None:
		return TryOnStatusResponse(active=False)
	anchors = {name: [float(p.x), float(p.y)] for name, p in session.smoother.snapshot().items()}
	report = session.last_report
	if report is None:
		return TryOnStatusResponse(active=True, anchors=anchors)
	return TryOnStatusResponse(
		active=True,
		frames=session.frame_count,
		state=report.state,
		pose_score=report.pose_score,
		move_farther=report.move_farther,
		overlays=[OverlayOut(product_id=o.product_id, anchor=o.anchor, x=o.x, y=o.y) for o in report.overlays],
		anchors=anchors,
	)


@router.get("/health")
async def health(state: AppState = Depends(get_state)):
	return {
		"ok": True,
		"video": state.video.name() if state.video is not None else None,
		"products": len(state.products),
		"products_ready": sum(1 for p in state.products if p.ready),
	}

"""Video backend routes. Routes: /video/connect, disconnect, status, mjpeg, snapshot.jpg."""
import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response, StreamingResponse

from app_state import AppState
from deps import get_state

logger = logging.getLogger(__name__)

router = APIRouter(tags=["video"])

_NO_CACHE = {
	"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
	"Pragma": "no-cache",
}


def _camera_unavailable(err: str) -> bool:
	e = err.lower()
	return "opencv" in e or "not available" in e or "modulenotfounderror" in e


@router.post("/video/connect")
async def video_connect(state: AppState = Depends(get_state)):
	"""Start a try-on session and the camera stream."""
	try:
		await asyncio.to_thread(state.start_session)
	except RuntimeError as e:
		logger.error("[Video] pose stack unavailable: %s", e)
		raise HTTPException(status_code=503, detail=str(e)) from e
	try:
		await asyncio.to_thread(state.video.start)
		await asyncio.sleep(0.2)
		st = state.video.get_status()
	except Exception as e:
		logger.exception("[Video] connect failed")
		raise HTTPException(status_code=500, detail=f"Video connect failed: {e!r}") from e
	if not st.get("running") and st.get("error"):
		err = str(st.get("error"))
		if _camera_unavailable(err):
			raise HTTPException(status_code=503, detail=f"Camera not available on this system: {err}")
		raise HTTPException(status_code=500, detail=err)
	return {"detail": "Video streaming started.", "status": st}


@router.post("/video/disconnect")
async def video_disconnect(state: AppState = Depends(get_state)):
	"""Stop the camera stream. The session ends with it."""
	try:
		await asyncio.to_thread(state.video.stop)
		state.end_session()
	except Exception as e:
		raise HTTPException(status_code=500, detail=f"Video disconnect failed: {e!r}") from e
	return {"detail": "Video streaming stopped.", "status": state.video.get_status()}


@router.get("/video/status")
async def video_status(state: AppState = Depends(get_state)):
	return state.video.get_status()


@router.get("/video/mjpeg")
async def video_mjpeg(fps: float = 15.0, state: AppState = Depends(get_state)):
	"""Live MJPEG stream of composited try-on frames."""
	return StreamingResponse(
		state.video.mjpeg_stream(fps=float(fps)),
		media_type="multipart/x-mixed-replace; boundary=frame",
		headers={**_NO_CACHE, "Connection": "keep-alive"},
	)


@router.get("/video/snapshot.jpg")
async def video_snapshot(state: AppState = Depends(get_state)):
	"""Return the latest composited JPEG frame."""
	jpeg = await state.video.snapshot_jpeg()
	if jpeg is None:
		raise HTTPException(status_code=404, detail="No JPEG frame available yet")
	return Response(content=jpeg, media_type="image/jpeg", headers=_NO_CACHE)

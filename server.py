import argparse
import asyncio
import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app_state import AppState
from modules import __version__
from modules.config import AppConfig, get_config, resolve_path, set_config_path
from modules.pose.base import PoseProvider
from modules.tryon.catalog import CatalogError, load_catalog, preload_images
from modules.video_backend import VideoBackend, get_video_backend
from routers import api_tryon, pages, video

logger = logging.getLogger(__name__)

# UI directory path
UI_DIR = Path(__file__).parent / "UI"


@lru_cache(maxsize=8)
def load_html_template(filename: str) -> str:
	"""
	Load an HTML template file from the UI directory (cached after first read).

	Raises:
		FileNotFoundError: If the file doesn't exist
	"""
	file_path = UI_DIR / filename
	if not file_path.exists():
		raise FileNotFoundError(f"UI template not found: {file_path}")
	return file_path.read_text(encoding="utf-8")


def _default_provider_factory(cfg: AppConfig) -> Callable[[], PoseProvider]:
	def _build() -> PoseProvider:
		from modules.pose.mediapipe_provider import MediaPipePoseProvider

		det = cfg.detection
		return MediaPipePoseProvider(
			model_complexity=det.model_complexity,
			min_detection_confidence=det.min_detection_confidence,
			min_tracking_confidence=det.min_tracking_confidence,
		)

	return _build


def _load_products(state: AppState, cfg: AppConfig) -> None:
	path = resolve_path(cfg.catalog.path)
	if not path.exists():
		state.catalog_error = f"catalog not found: {path}"
		logger.warning("[Catalog] %s; running without products", state.catalog_error)
		return
	try:
		state.products = load_catalog(path)
	except (OSError, CatalogError) as e:
		state.catalog_error = str(e)
		logger.error("[Catalog] load failed: %s", e)
		return
	logger.info("[Catalog] %d product(s) from %s", len(state.products), path)


def create_app(
	cfg: Optional[AppConfig] = None,
	*,
	video_backend: Optional[VideoBackend] = None,
	provider_factory: Optional[Callable[[], PoseProvider]] = None,
) -> FastAPI:
	cfg = cfg or get_config()

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		state = AppState()
		state.cfg = cfg
		state.UI_DIR = UI_DIR
		state.get_page_html = load_html_template
		state.video = video_backend or get_video_backend(cfg)
		state.provider_factory = provider_factory or _default_provider_factory(cfg)
		_load_products(state, cfg)
		# Images decode in the background; frames drawn before that skip them.
		state.preload_task = asyncio.create_task(preload_images(state.products))
		app.state.state = state
		try:
			yield
		finally:
			task = state.preload_task
			if task and not task.done():
				task.cancel()
				try:
					await task
				except asyncio.CancelledError:
					pass
			state.close()

	app = FastAPI(title="Jewelry Try-On", version=__version__, lifespan=lifespan)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.include_router(pages.router)
	app.include_router(video.router)
	app.include_router(api_tryon.router)
	return app


def main(argv: Optional[list[str]] = None) -> int:
	import uvicorn

	parser = argparse.ArgumentParser(description="Jewelry try-on server (webcam + pose + overlays).")
	parser.add_argument("--config", default=None, help="Path to config.json")
	parser.add_argument("--host", default=None)
	parser.add_argument("--port", type=int, default=None)
	parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
	args = parser.parse_args(argv)

	logging.basicConfig(
		level=logging.DEBUG if args.debug else logging.INFO,
		format="%(levelname)s:%(name)s:%(message)s",
	)
	if args.config:
		set_config_path(args.config)
	cfg = get_config()
	host = args.host or cfg.server.host
	port = int(args.port or cfg.server.port)
	uvicorn.run(create_app(cfg), host=host, port=port, log_level="debug" if args.debug else "info")
	return 0


if __name__ == "__main__":
	raise SystemExit(main())

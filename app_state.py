"""
Explicit app state – single source of truth for runtime lifecycle.
Created in lifespan, attached to app.state.state; injected into routes via Depends(get_state).
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, List, Optional

from modules.config import AppConfig
from modules.pose.base import PoseProvider
from modules.tryon.catalog import ProductImage
from modules.tryon.session import TryOnPipeline, TryOnSession
from modules.video_backend import VideoBackend

logger = logging.getLogger(__name__)


class AppState:
	"""
	Holds all runtime state for the app. Populated in server lifespan.
	"""
	# UI (set at app load)
	get_page_html: Optional[Callable[[str], str]] = None
	UI_DIR: Optional[Path] = None

	cfg: Optional[AppConfig] = None
	video: Optional[VideoBackend] = None

	# Catalog and its one-time async decode
	products: List[ProductImage]
	catalog_error: Optional[str] = None
	preload_task: Optional["asyncio.Task[Any]"] = None

	# Pose provider is built lazily on first connect (MediaPipe start-up is slow).
	provider_factory: Optional[Callable[[], PoseProvider]] = None
	provider: Optional[PoseProvider] = None

	# Active try-on session (one per video connect)
	session: Optional[TryOnSession] = None

	def __init__(self) -> None:
		self.products = []

	def start_session(self) -> TryOnSession:
		"""
		Start a fresh try-on session on the video backend (new smoother, same catalog).
		Raises RuntimeError when the pose stack is unavailable.
		"""
		if self.cfg is None or self.video is None:
			raise RuntimeError("app state not initialised")
		if self.provider is None:
			if self.provider_factory is None:
				raise RuntimeError("no pose provider configured")
			self.provider = self.provider_factory()
			logger.info("Pose provider ready: %s", self.provider.name())
		session = TryOnSession(self.cfg, self.products)
		self.video.set_frame_handler(TryOnPipeline(session, self.provider))
		self.session = session
		return session

	def end_session(self) -> None:
		"""Detach the try-on pipeline from the video backend and drop the session and its placement cache."""
		if self.video is not None:
			self.video.set_frame_handler(None)
		if self.session is not None:
			logger.info("Try-on session ended after %d frames", self.session.frame_count)
		self.session = None

	def close(self) -> None:
		if self.video is not None:
			self.video.stop()
		self.end_session()
		if self.provider is not None:
			self.provider.close()
			self.provider = None

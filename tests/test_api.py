import asyncio
import json
from typing import Any, AsyncIterator, Dict, Optional

import numpy as np
import pytest
from fastapi.testclient import TestClient

from modules.config import AppConfig, CatalogConfig
from modules.video_backend import VideoBackend
from server import create_app
from tests.conftest import head_and_shoulders, make_pose
from tests.test_session import FixedPoseProvider


class FakeVideoBackend(VideoBackend):
	"""Runs the frame handler once per start() on a blank frame."""

	def __init__(self, error: Optional[str] = None) -> None:
		self.handler = None
		self.running = False
		self.error = error
		self.jpeg: Optional[bytes] = None

	def name(self) -> str:
		return "fake"

	def start(self) -> None:
		if self.error:
			return
		self.running = True
		from io import BytesIO

		image = self.handler(np.zeros((640, 480, 3), dtype=np.uint8))
		buf = BytesIO()
		image.save(buf, format="JPEG")
		self.jpeg = buf.getvalue()

	def stop(self) -> None:
		self.running = False

	def get_status(self) -> Dict[str, Any]:
		return {"running": self.running, "has_frame": self.jpeg is not None, "error": self.error}

	def set_frame_handler(self, handler) -> None:
		self.handler = handler

	def get_latest_jpeg(self):
		return self.jpeg, (1.0 if self.jpeg else None)

	async def mjpeg_stream(self, fps: float) -> AsyncIterator[bytes]:
		yield b"--frame\r\n"

	async def snapshot_jpeg(self) -> Optional[bytes]:
		return self.jpeg


@pytest.fixture
def catalog_cfg(tmp_path):
	path = tmp_path / "catalog.json"
	path.write_text(
		json.dumps(
			[
				{"id": "pearl", "url": "pearl.png", "type": "earring-stud", "realWidth": 20, "realHeight": 20},
				{"id": "chain", "url": "chain.png", "type": "necklace", "realWidth": 120, "realHeight": 60},
			]
		),
		encoding="utf-8",
	)
	return AppConfig(catalog=CatalogConfig(path=str(path)))


def _client(cfg, backend=None, provider_factory=None):
	provider = FixedPoseProvider(make_pose(head_and_shoulders()))
	app = create_app(
		cfg,
		video_backend=backend or FakeVideoBackend(),
		provider_factory=provider_factory or (lambda: provider),
	)
	return TestClient(app)


def test_index_page(catalog_cfg):
	with _client(catalog_cfg) as client:
		resp = client.get("/")
		assert resp.status_code == 200
		assert "Jewelry Try-On" in resp.text


def test_catalog_lists_products(catalog_cfg):
	with _client(catalog_cfg) as client:
		body = client.get("/api/catalog").json()
		assert body["count"] == 2
		assert body["error"] is None
		assert [(p["id"], p["type"]) for p in body["products"]] == [("pearl", "stud"), ("chain", "necklace")]


def test_missing_catalog_is_reported_not_fatal(tmp_path):
	cfg = AppConfig(catalog=CatalogConfig(path=str(tmp_path / "nope.json")))
	with _client(cfg) as client:
		body = client.get("/api/catalog").json()
		assert body["count"] == 0
		assert "catalog not found" in body["error"]
		assert client.get("/health").json()["products"] == 0


def test_status_before_connect(catalog_cfg):
	with _client(catalog_cfg) as client:
		assert client.get("/api/tryon/status").json()["active"] is False
		assert client.get("/video/snapshot.jpg").status_code == 404


def test_connect_runs_a_session(catalog_cfg):
	with _client(catalog_cfg) as client:
		resp = client.post("/video/connect")
		assert resp.status_code == 200
		assert resp.json()["status"]["running"] is True

		status = client.get("/api/tryon/status").json()
		assert status["active"] is True
		assert status["frames"] == 1
		assert status["state"] == "render"
		assert status["pose_score"] == pytest.approx(0.9)

		snap = client.get("/video/snapshot.jpg")
		assert snap.status_code == 200
		assert snap.headers["content-type"] == "image/jpeg"

		assert client.post("/video/disconnect").json()["status"]["running"] is False


def test_connect_without_pose_stack_returns_503(catalog_cfg):
	def no_mediapipe():
		raise RuntimeError("MediaPipe is not installed.")

	with _client(catalog_cfg, provider_factory=no_mediapipe) as client:
		resp = client.post("/video/connect")
		assert resp.status_code == 503
		assert "MediaPipe" in resp.json()["detail"]


def test_connect_without_camera_returns_503(catalog_cfg):
	backend = FakeVideoBackend(error="OpenCV import failed: ModuleNotFoundError('cv2')")
	with _client(catalog_cfg, backend=backend) as client:
		assert client.post("/video/connect").status_code == 503


def test_camera_error_returns_500(catalog_cfg):
	backend = FakeVideoBackend(error="camera read failed (device disconnected?)")
	with _client(catalog_cfg, backend=backend) as client:
		assert client.post("/video/connect").status_code == 500


def test_disconnect_ends_the_session(catalog_cfg):
	backend = FakeVideoBackend()
	with _client(catalog_cfg, backend=backend) as client:
		client.post("/video/connect")
		assert client.get("/api/tryon/status").json()["active"] is True

		client.post("/video/disconnect")
		status = client.get("/api/tryon/status").json()
		assert status["active"] is False
		assert status["anchors"] == {}
		assert backend.handler is None


def test_reconnect_starts_a_new_session(catalog_cfg):
	with _client(catalog_cfg) as client:
		client.post("/video/connect")
		client.post("/video/disconnect")
		client.post("/video/connect")
		assert client.get("/api/tryon/status").json()["frames"] == 1


def test_pose_provider_is_built_off_the_event_loop(catalog_cfg):
	seen = []

	def factory():
		try:
			asyncio.get_running_loop()
			seen.append("loop")
		except RuntimeError:
			seen.append("worker")
		return FixedPoseProvider(make_pose(head_and_shoulders()))

	with _client(catalog_cfg, provider_factory=factory) as client:
		assert client.post("/video/connect").status_code == 200
	assert seen == ["worker"]

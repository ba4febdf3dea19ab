from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionConfig:
	# Frames whose overall pose score is below this draw the video only.
	min_pose_confidence: float = 0.1
	# Keypoints/anchors must score strictly above this to carry an overlay.
	min_part_confidence: float = 0.5
	# Mirror keypoints to match the selfie-view video.
	flip_horizontal: bool = True
	# MediaPipe Pose settings.
	model_complexity: int = 1
	min_detection_confidence: float = 0.5
	min_tracking_confidence: float = 0.5


@dataclass(frozen=True)
class VideoConfig:
	backend: str = "opencv"
	camera_index: int = 0
	width: int = 480
	height: int = 640
	fps: int = 15
	jpeg_quality: int = 80


@dataclass(frozen=True)
class CatalogConfig:
	# JSON list of {url, type, realWidth, realHeight}; relative paths resolve against the repo root.
	path: str = "catalog.json"


@dataclass(frozen=True)
class OverlayConfig:
	move_farther_text: str = "Please Move Farther"
	font_size: int = 30


@dataclass(frozen=True)
class ServerConfig:
	host: str = "127.0.0.1"
	port: int = 8000


@dataclass(frozen=True)
class AppConfig:
	detection: DetectionConfig = field(default_factory=DetectionConfig)
	video: VideoConfig = field(default_factory=VideoConfig)
	catalog: CatalogConfig = field(default_factory=CatalogConfig)
	overlay: OverlayConfig = field(default_factory=OverlayConfig)
	server: ServerConfig = field(default_factory=ServerConfig)


_CONFIG_PATH: Optional[Path] = None
_CONFIG_CACHE: Optional[AppConfig] = None


def _repo_root() -> Path:
	# modules/config.py -> repo root is one level up.
	return Path(__file__).resolve().parents[1]


def get_default_config_path() -> Path:
	return _repo_root() / "config.json"


def set_config_path(path: str | Path) -> None:
	"""
	Override the config path (must be called before first get_config()).
	"""
	global _CONFIG_PATH
	global _CONFIG_CACHE
	_CONFIG_PATH = Path(path).expanduser().resolve()
	_CONFIG_CACHE = None


def _deep_get(d: Dict[str, Any], keys: list[str], default: Any = None) -> Any:
	cur: Any = d
	for k in keys:
		if not isinstance(cur, dict):
			return default
		cur = cur.get(k)
	return cur if cur is not None else default


def _as_int(v: Any, default: int) -> int:
	try:
		return int(v)
	except Exception:
		return int(default)


def _as_bool(v: Any, default: bool) -> bool:
	if isinstance(v, bool):
		return v
	if isinstance(v, (int, float)):
		return bool(v)
	if isinstance(v, str):
		return v.strip().lower() in ("1", "true", "yes", "on")
	return bool(default)


def _as_str(v: Any, default: str = "") -> str:
	return str(v) if v is not None else str(default)


def _as_float(v: Any, default: float) -> float:
	try:
		return float(v)
	except Exception:
		return float(default)


def _as_unit(v: Any, default: float) -> float:
	"""Confidence value clamped to [0, 1]."""
	return min(1.0, max(0.0, _as_float(v, default)))


def _positive(v: int, default: int) -> int:
	return int(v) if int(v) > 0 else int(default)


def resolve_path(path: str) -> Path:
	p = Path(path).expanduser()
	return p if p.is_absolute() else (_repo_root() / p)


def parse_config(raw: Dict[str, Any]) -> AppConfig:
	d = DetectionConfig()
	detection = DetectionConfig(
		min_pose_confidence=_as_unit(_deep_get(raw, ["detection", "min_pose_confidence"], d.min_pose_confidence), d.min_pose_confidence),
		min_part_confidence=_as_unit(_deep_get(raw, ["detection", "min_part_confidence"], d.min_part_confidence), d.min_part_confidence),
		flip_horizontal=_as_bool(_deep_get(raw, ["detection", "flip_horizontal"], d.flip_horizontal), d.flip_horizontal),
		model_complexity=min(2, max(0, _as_int(_deep_get(raw, ["detection", "model_complexity"], d.model_complexity), d.model_complexity))),
		min_detection_confidence=_as_unit(_deep_get(raw, ["detection", "min_detection_confidence"], d.min_detection_confidence), d.min_detection_confidence),
		min_tracking_confidence=_as_unit(_deep_get(raw, ["detection", "min_tracking_confidence"], d.min_tracking_confidence), d.min_tracking_confidence),
	)

	v = VideoConfig()
	video_backend = _as_str(_deep_get(raw, ["video", "backend"], v.backend), v.backend).strip().lower()
	video = VideoConfig(
		backend=video_backend or v.backend,
		# NOTE: do not use `or` here; camera index 0 is valid.
		camera_index=max(0, _as_int(_deep_get(raw, ["video", "camera_index"], v.camera_index), v.camera_index)),
		width=_positive(_as_int(_deep_get(raw, ["video", "width"], v.width), v.width), v.width),
		height=_positive(_as_int(_deep_get(raw, ["video", "height"], v.height), v.height), v.height),
		fps=_positive(_as_int(_deep_get(raw, ["video", "fps"], v.fps), v.fps), v.fps),
		jpeg_quality=min(95, _positive(_as_int(_deep_get(raw, ["video", "jpeg_quality"], v.jpeg_quality), v.jpeg_quality), v.jpeg_quality)),
	)

	catalog_path = _as_str(_deep_get(raw, ["catalog", "path"], CatalogConfig.path), CatalogConfig.path).strip()

	o = OverlayConfig()
	overlay = OverlayConfig(
		move_farther_text=_as_str(_deep_get(raw, ["overlay", "move_farther_text"], o.move_farther_text), o.move_farther_text),
		font_size=_positive(_as_int(_deep_get(raw, ["overlay", "font_size"], o.font_size), o.font_size), o.font_size),
	)

	s = ServerConfig()
	server = ServerConfig(
		host=_as_str(_deep_get(raw, ["server", "host"], s.host), s.host).strip() or s.host,
		port=_positive(_as_int(_deep_get(raw, ["server", "port"], s.port), s.port), s.port),
	)

	return AppConfig(
		detection=detection,
		video=video,
		catalog=CatalogConfig(path=catalog_path or CatalogConfig.path),
		overlay=overlay,
		server=server,
	)


def load_config(path: Optional[str | Path] = None) -> AppConfig:
	p = Path(path).expanduser().resolve() if path else (_CONFIG_PATH or get_default_config_path())
	if not p.exists():
		# Defaults-only config; app can still run.
		return AppConfig()
	try:
		raw = json.loads(p.read_text(encoding="utf-8"))
	except Exception as e:
		# If config is malformed, fail safe to defaults (but keep app running).
		logger.warning("Config %s unreadable, using defaults: %r", p, e)
		return AppConfig()

	if not isinstance(raw, dict):
		logger.warning("Config %s is not a JSON object, using defaults", p)
		return AppConfig()
	return parse_config(raw)


def get_config() -> AppConfig:
	global _CONFIG_CACHE
	if _CONFIG_CACHE is None:
		_CONFIG_CACHE = load_config()
	return _CONFIG_CACHE

import json

from modules.config import AppConfig, load_config, parse_config


def test_missing_file_gives_defaults(tmp_path):
	cfg = load_config(tmp_path / "nope.json")
	assert cfg == AppConfig()
	assert cfg.detection.min_pose_confidence == 0.1
	assert cfg.detection.min_part_confidence == 0.5
	assert (cfg.video.width, cfg.video.height) == (480, 640)


def test_malformed_file_gives_defaults(tmp_path):
	p = tmp_path / "config.json"
	p.write_text("[1, 2", encoding="utf-8")
	assert load_config(p) == AppConfig()
	p.write_text("[1, 2]", encoding="utf-8")
	assert load_config(p) == AppConfig()


def test_values_are_read_and_coerced(tmp_path):
	p = tmp_path / "config.json"
	p.write_text(
		json.dumps(
			{
				"detection": {"min_pose_confidence": "0.25", "flip_horizontal": "no", "model_complexity": 2},
				"video": {"camera_index": 0, "width": 640, "height": "480", "fps": 30},
				"catalog": {"path": "products.json"},
				"overlay": {"move_farther_text": "Step back", "font_size": 24},
				"server": {"port": 9000},
			}
		),
		encoding="utf-8",
	)
	cfg = load_config(p)
	assert cfg.detection.min_pose_confidence == 0.25
	assert cfg.detection.flip_horizontal is False
	assert cfg.detection.model_complexity == 2
	assert cfg.video.camera_index == 0
	assert (cfg.video.width, cfg.video.height, cfg.video.fps) == (640, 480, 30)
	assert cfg.catalog.path == "products.json"
	assert cfg.overlay.move_farther_text == "Step back"
	assert cfg.server.port == 9000
	assert cfg.server.host == "127.0.0.1"


def test_invalid_values_fall_back_or_clamp():
	cfg = parse_config(
		{
			"detection": {"min_part_confidence": 7, "min_pose_confidence": "abc", "model_complexity": 9},
			"video": {"width": -1, "fps": 0, "jpeg_quality": 500, "backend": ""},
			"server": {"port": "x"},
		}
	)
	assert cfg.detection.min_part_confidence == 1.0
	assert cfg.detection.min_pose_confidence == 0.1
	assert cfg.detection.model_complexity == 2
	assert cfg.video.width == 480
	assert cfg.video.fps == 15
	assert cfg.video.jpeg_quality == 95
	assert cfg.video.backend == "opencv"
	assert cfg.server.port == 8000

import numpy as np
from PIL import Image

from modules.config import AppConfig, DetectionConfig
from modules.pose.base import PoseProvider
from modules.tryon.compositor import STATE_RENDER, STATE_SKIP
from modules.tryon.session import TryOnPipeline, TryOnSession
from tests.conftest import head_and_shoulders, make_pose


class FixedPoseProvider(PoseProvider):
	def __init__(self, pose):
		self.pose = pose
		self.calls = 0
		self.closed = False

	def name(self) -> str:
		return "fixed"

	def infer_rgb(self, rgb):
		self.calls += 1
		return self.pose

	def close(self) -> None:
		self.closed = True


def test_process_frame_mirrors_pose_before_placing(frame, stud):
	session = TryOnSession(AppConfig(), [stud])
	# Unmirrored left ear at x=280 lands at x=200 in the selfie view.
	pose = make_pose(head_and_shoulders(left_ear=(280.0, 150.0), right_ear=(200.0, 150.0)))
	image, report = session.process_frame(frame, pose)
	assert isinstance(image, Image.Image)
	assert image.size == (480, 640)
	assert report.state == STATE_RENDER
	left = [o for o in report.overlays if o.anchor == "leftEar"][0]
	assert (left.x, left.y) == (193.0, 160.0)


def test_process_frame_without_flip(frame, stud):
	cfg = AppConfig(detection=DetectionConfig(flip_horizontal=False))
	session = TryOnSession(cfg, [stud])
	_, report = session.process_frame(frame, make_pose(head_and_shoulders(left_ear=(200.0, 150.0))))
	assert (report.overlays[0].x, report.overlays[0].y) == (193.0, 160.0)


def test_session_owns_one_smoother_across_frames(frame, stud):
	session = TryOnSession(AppConfig(), [stud])
	session.process_frame(frame, make_pose(head_and_shoulders(left_ear=(280.0, 150.0))))
	_, report = session.process_frame(frame, make_pose(head_and_shoulders(left_ear=(276.0, 152.0))))
	assert session.frame_count == 2
	assert report.frame_index == 1
	assert session.last_report is report
	assert session.smoother.get("leftEar").x == 200.0


def test_low_score_frame_is_skipped(frame, stud):
	session = TryOnSession(AppConfig(), [stud])
	_, report = session.process_frame(frame, make_pose(head_and_shoulders(), score=0.05))
	assert report.state == STATE_SKIP
	assert len(session.smoother) == 0


def test_pipeline_runs_provider_then_session(stud):
	provider = FixedPoseProvider(make_pose(head_and_shoulders()))
	session = TryOnSession(AppConfig(), [stud])
	pipeline = TryOnPipeline(session, provider)
	rgb = np.zeros((640, 480, 3), dtype=np.uint8)
	image = pipeline(rgb)
	assert image.size == (480, 640)
	assert provider.calls == 1
	assert session.last_report.overlays
	pipeline.close()
	assert provider.closed

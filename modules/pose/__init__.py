"""
Pose estimation utilities.

This package defines a model-agnostic PoseFrame interface and provider adapters
(e.g., MediaPipe Pose) so the try-on core never depends on a specific pose stack.
"""

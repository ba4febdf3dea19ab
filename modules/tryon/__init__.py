"""
Try-on core: anchor derivation, placement smoothing and compositing.

Nothing in this package touches the camera, the pose model or the web server;
a harness feeds it frames and PoseFrame values one at a time.
"""

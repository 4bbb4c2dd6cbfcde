"""Core — models, detection, resolution, services and the lifecycle engine."""

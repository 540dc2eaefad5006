"""AI storyboard generator: script segmentation and per-scene image generation."""

__version__ = "0.1.0"

"""Error kinds raised by the storyboard core."""
from __future__ import annotations


class StoryboardError(Exception):
    pass


class ParseError(StoryboardError):
    """The script could not be segmented into scenes."""


class GenerationError(StoryboardError):
    """An image request for one scene failed or returned no image."""


class AccessError(StoryboardError):
    """No usable Gemini credential has been selected."""

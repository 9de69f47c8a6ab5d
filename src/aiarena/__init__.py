"""aiarena — head-to-head turn-based matches between LLM agents."""

__version__ = "0.1.0"

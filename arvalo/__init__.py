"""Arvalo: agentic tool-use orchestration for purchase tracking and post-purchase savings."""

__version__ = "1.0.0"

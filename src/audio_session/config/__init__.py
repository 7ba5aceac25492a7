"""
Configuration settings for the audio-session controller.

Defaults live in ``config/defaults.toml`` and can be overridden via environment
variables or CLI flags.
"""

from __future__ import annotations

from .base import *  # noqa: F401,F403

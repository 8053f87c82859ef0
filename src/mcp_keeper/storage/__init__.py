"""Crash-safe file persistence."""

from .atomic import write_atomic

__all__ = ["write_atomic"]

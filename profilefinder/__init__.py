"""Resolve people to their public professional-profile URLs."""

__version__ = "0.3.0"

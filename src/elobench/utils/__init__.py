"""Shared utilities for elobench."""

from elobench.utils.logging import setup_logging

__all__ = ["setup_logging"]

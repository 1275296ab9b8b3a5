"""Utility functions."""

from ovr.utils.time import as_utc, utc_now

__all__ = ["utc_now", "as_utc"]

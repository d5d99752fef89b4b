"""Utility helpers shared across insnav."""

from insnav.utils.angles import angle_diff, wrap_angle

__all__ = ["wrap_angle", "angle_diff"]

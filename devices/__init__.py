"""
devices
-------
Ready-made mechanisms built as link trees.
"""

from devices.three_axis_robot import build_three_axis_robot

__all__ = ["build_three_axis_robot"]

"""
scene
-----
Live scene holding the link tree shown to the viewer.
"""

from scene.scene import Scene

__all__ = ["Scene"]

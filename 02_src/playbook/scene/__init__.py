"""Scene module."""

from .scene import Scene, SceneCallback

__all__ = ["Scene", "SceneCallback"]

"""Brain module."""

from .brain import Brain
from .storage import BrainStorage, IBrainStorage

__all__ = ["Brain", "BrainStorage", "IBrainStorage"]

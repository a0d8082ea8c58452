"""Application-level services: referential cleanup and deferred tag search."""

from .sweeper import Sweeper
from .tag_search import TagSearchTaskManager

__all__ = ["Sweeper", "TagSearchTaskManager"]

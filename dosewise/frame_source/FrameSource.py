"""
Abstract base class for frame sources.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class FrameSource(ABC):
    """
    Abstract base class for camera frame sources.

    The detection loop samples latest_frame() on its own cadence instead of
    consuming every frame.
    """

    @abstractmethod
    def latest_frame(self) -> Optional[Any]:
        """
        Most recent frame (BGR numpy array), or None if nothing has been
        captured yet or the source is exhausted.
        """
        pass

    @abstractmethod
    def cleanup(self):
        """Release resources."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cleanup()
        return False

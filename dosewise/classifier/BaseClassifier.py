"""
Base classifier interface for pill classification.

The adherence pipeline only ever sees this contract; concrete model
formats stay behind an adapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

import numpy as np


@dataclass
class Prediction:
    """One (label, probability) pair from a single predict() call."""
    label: str
    probability: float

    def __repr__(self):
        return f"Prediction({self.label}: {self.probability:.3f})"


class BaseClassifier(ABC):
    """
    Abstract base class for pill classifiers.

    Classifies a whole camera frame into the label vocabulary
    (pill_morning, pill_evening, no_pill, multiple_pills, ...).
    """

    @abstractmethod
    def predict(self, frame: np.ndarray) -> List[Prediction]:
        """
        Classify a single frame.

        Args:
            frame: BGR camera frame

        Returns:
            Predictions in the model's class order. Labels are canonical
            (lowercase, underscore-separated).

        Raises:
            ClassifierInferenceError: If inference fails
        """
        pass

    @abstractmethod
    def cleanup(self):
        """Release model resources."""
        pass

    @property
    @abstractmethod
    def class_names(self) -> List[str]:
        """Return list of class names."""
        pass

    @property
    @abstractmethod
    def source(self) -> str:
        """Path or URL the model was loaded from."""
        pass

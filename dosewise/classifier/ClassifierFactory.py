"""
Classifier factory: turn a configured source into a loaded classifier.
"""

from typing import Optional

from dosewise.adherence.DoseTypes import KNOWN_LABELS
from dosewise.classifier.BaseClassifier import BaseClassifier
from dosewise.errors import ClassifierLoadError
from dosewise.utils.AppLogging import logger


class ClassifierFactory:
    """
    Factory for classifiers.
    """

    @staticmethod
    def load(source: Optional[str], device: Optional[str] = None) -> BaseClassifier:
        """
        Load a classifier from a path or URL.

        Args:
            source: Model path or URL
            device: Optional inference device override

        Returns:
            Loaded classifier

        Raises:
            ClassifierLoadError: Empty source, unreachable or invalid model
        """
        source = (source or "").strip()
        if not source:
            raise ClassifierLoadError("No classifier source configured", source=source)

        from dosewise.classifier.UltralyticsClassifier import UltralyticsClassifier

        try:
            classifier = UltralyticsClassifier(model_source=source, device=device)
        except ImportError as e:
            raise ClassifierLoadError(
                f"ultralytics package not installed. Install with: pip install ultralytics ({e})",
                source=source,
            ) from e

        unknown = [name for name in classifier.class_names if name not in KNOWN_LABELS]
        if unknown:
            logger.warning(
                f"[ClassifierFactory] Model declares labels outside the dose vocabulary: {unknown}"
            )
        return classifier

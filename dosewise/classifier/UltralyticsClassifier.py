"""
Ultralytics-based pill classifier.

Loads YOLO classification weights (local .pt path or downloadable URL)
and reports the full probability vector for each frame.
"""

from typing import List, Optional

import numpy as np

from dosewise.adherence.DoseTypes import normalize_label
from dosewise.classifier.BaseClassifier import BaseClassifier, Prediction
from dosewise.errors import ClassifierInferenceError, ClassifierLoadError
from dosewise.utils.AppLogging import logger


class UltralyticsClassifier(BaseClassifier):
    """
    Ultralytics YOLO classifier.

    Class names come from the model itself and are normalized to the
    canonical label form.
    """

    # Periodic CUDA cache cleanup frequency (every N predictions)
    CUDA_CLEANUP_INTERVAL = 200

    def __init__(self, model_source: str, device: Optional[str] = None):
        """
        Initialize the classifier.

        Args:
            model_source: Path or URL of a YOLO classification model
            device: Device to run inference on (auto-detected when None)

        Raises:
            ClassifierLoadError: If the weights cannot be loaded or are not a
                classification model
        """
        from ultralytics import YOLO

        self._source = model_source
        self._inference_count = 0

        logger.info(f"[UltralyticsClassifier] Loading model: {model_source}")
        try:
            self.model = YOLO(model_source, task='classify')
        except Exception as e:
            raise ClassifierLoadError(f"Could not load classifier from {model_source}: {e}", source=model_source) from e

        if getattr(self.model, 'task', 'classify') != 'classify':
            raise ClassifierLoadError(
                f"{model_source} is a '{self.model.task}' model, expected a classification model",
                source=model_source,
            )

        names = self.model.names or {}
        self._class_names = [normalize_label(names[i]) for i in sorted(names)]

        if device:
            self.device = device
        else:
            import torch
            self.device = 'cuda' if torch.cuda.is_available() else 'cpu'

        # Suppress YOLO verbose logging
        import logging as log
        log.getLogger('ultralytics').setLevel(log.WARNING)

        logger.info(
            f"[UltralyticsClassifier] Model loaded, device: {self.device}, "
            f"classes: {self._class_names}"
        )

    def predict(self, frame: np.ndarray) -> List[Prediction]:
        """
        Classify a camera frame.

        Args:
            frame: BGR camera frame

        Returns:
            One Prediction per model class, in model class order
        """
        if self.model is None:
            raise ClassifierInferenceError("Classifier has been released")

        self._inference_count += 1

        if self.device == 'cuda' and self._inference_count % self.CUDA_CLEANUP_INTERVAL == 0:
            import torch
            torch.cuda.empty_cache()

        try:
            results = self.model(frame, device=self.device, verbose=False)
        except Exception as e:
            raise ClassifierInferenceError(f"Inference failed: {e}") from e

        if not results or getattr(results[0], 'probs', None) is None:
            return []

        probabilities = results[0].probs.data.cpu().numpy()
        return [
            Prediction(label=self._class_names[i], probability=float(p))
            for i, p in enumerate(probabilities)
            if i < len(self._class_names)
        ]

    def cleanup(self):
        """Release model resources."""
        self.model = None

        if self.device == 'cuda':
            import torch
            torch.cuda.empty_cache()

        logger.info("[UltralyticsClassifier] Cleanup complete")

    @property
    def class_names(self) -> List[str]:
        return self._class_names

    @property
    def source(self) -> str:
        return self._source

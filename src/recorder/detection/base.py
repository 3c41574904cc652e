"""Common interface for frame classifiers."""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from ..models import ClassificationResult, DetectionMode


class FrameClassifier(ABC):
    """Answers "has the run ended, and what was the score?" for one frame."""

    mode: DetectionMode

    @abstractmethod
    def classify(self, frame: np.ndarray) -> ClassificationResult:
        """
        Classify a sampled RGB frame.

        Raises:
            ClassificationError: If no result could be produced this tick
        """


def build_classifier(mode: DetectionMode, model: Optional[str] = None, **kwargs) -> FrameClassifier:
    """
    Create the classifier used for a detection mode.

    Args:
        mode: Detection mode
        model: Remote model identifier (ignored in local mode)
        **kwargs: Extra constructor arguments for the classifier
    """
    if mode is DetectionMode.LOCAL:
        from .local_classifier import LocalFrameClassifier
        return LocalFrameClassifier(**kwargs)

    from .remote_classifier import RemoteFrameClassifier
    return RemoteFrameClassifier(model=model, **kwargs)

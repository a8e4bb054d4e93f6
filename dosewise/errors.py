"""
Error taxonomy for DoseWise.

None of these are fatal to the process: the session degrades to
"detection unavailable" and the dashboard keeps serving persisted history.
"""


class DoseWiseError(Exception):
    """Base class for all DoseWise errors."""


class CameraAccessError(DoseWiseError):
    """
    Camera could not be opened.

    ``reason`` is ``'denied'`` when the OS refused access to the device and
    ``'error'`` for missing hardware or any other failure.
    """

    DENIED = 'denied'
    ERROR = 'error'

    def __init__(self, message: str, reason: str = ERROR):
        super().__init__(message)
        self.reason = reason


class ClassifierLoadError(DoseWiseError):
    """Classifier source is invalid or unreachable."""

    def __init__(self, message: str, source: str = ""):
        super().__init__(message)
        self.source = source


class ClassifierInferenceError(DoseWiseError):
    """A single predict() call failed."""

"""Exception hierarchy for the inference pipeline.

Every error carries a stable ``code`` so API clients and logs can match on
it without parsing messages.
"""

from __future__ import annotations


class AffectScoreError(Exception):
    """Base class for all pipeline errors."""

    code: str = "E_AFFECT_SCORE"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = str(self)


class ModelLoadError(AffectScoreError):
    """Model parameters are malformed or dimensionally inconsistent."""

    code = "E_MODEL_LOAD"


class DimensionMismatchError(AffectScoreError):
    """Feature vector length disagrees with the loaded model."""

    code = "E_DIMENSION_MISMATCH"

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Feature vector has {actual} dimensions, model expects {expected}."
        )


class InsufficientDataError(AffectScoreError):
    """Buffer holds fewer samples than the minimum processing window."""

    code = "E_INSUFFICIENT_DATA"

    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(f"{available} samples buffered, {required} required.")


class InvalidConfigurationError(AffectScoreError):
    """Score or pipeline configuration is unusable."""

    code = "E_INVALID_CONFIG"


class SessionError(AffectScoreError):
    """Session start/stop requested in the wrong state."""

    code = "E_SESSION"


class InvalidSampleError(AffectScoreError):
    """Input sample is missing a field or holds an unusable value."""

    code = "E_INVALID_SAMPLE"

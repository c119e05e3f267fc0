"""Error types raised by the pseudo-CT conversion pipeline."""

from typing import Any, Dict, Optional


class PseudoCTError(Exception):
    """Base class for all conversion errors.

    Carries the pipeline stage that failed and the parameter values in use,
    so the caller can correct the configuration and retry.
    """

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.context = dict(context or {})

    def __str__(self) -> str:
        text = self.message
        if self.stage:
            text = f"[{self.stage}] {text}"
        if self.context:
            params = ', '.join(f"{k}={v!r}" for k, v in self.context.items())
            text = f"{text} ({params})"
        return text


class ConfigurationError(PseudoCTError, ValueError):
    """Invalid parameter, rejected before any computation."""


class ShapeMismatchError(PseudoCTError, ValueError):
    """Probability volume or mask does not match the reference volume shape."""


class PeakNotFoundError(PseudoCTError, RuntimeError):
    """Histogram normalizer could not locate a soft-tissue peak."""


class EmptyMaskError(PseudoCTError):
    """A refined tissue mask contains no voxels."""


class EmptyMaskWarning(UserWarning):
    """Advisory counterpart of EmptyMaskError."""


class SegmentationError(PseudoCTError, RuntimeError):
    """External segmentation output is missing or unreadable."""


class DebiasError(PseudoCTError, RuntimeError):
    """External bias-field correction failed."""

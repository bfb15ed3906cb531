"""
Error taxonomy for the film emulation pipeline.

Every error carries a human-readable ``message`` that a presentation layer
can show as-is.
"""

from typing import Optional


class FilmEmulationError(Exception):
    """Base class for all pipeline errors."""

    default_message = "Image processing failed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(self.message)

    @property
    def message(self) -> str:
        if self.detail:
            return f"{self.default_message} ({self.detail})"
        return self.default_message


class InvalidInputError(FilmEmulationError):
    """Buffer cannot be interpreted as an image."""

    default_message = "Invalid input image"


class DimensionMismatchError(FilmEmulationError, ValueError):
    """Two buffers that must be the same size are not."""

    default_message = "Image dimensions do not match"


class StageDegradedError(FilmEmulationError):
    """
    A stage could not produce output and falls back to pass-through.
    Raised inside a stage; never escapes the stage wrapper.
    """

    default_message = "Filter stage degraded to pass-through"


class StageFailedError(FilmEmulationError):
    """A stage failed in a way that aborts the whole pipeline call."""

    def __init__(self, stage: str, detail: Optional[str] = None):
        self.stage = stage
        super().__init__(detail)

    @property
    def message(self) -> str:
        text = f"Error applying filter: {self.stage}"
        if self.detail:
            text += f" ({self.detail})"
        return text


class RenderingFailedError(FilmEmulationError):
    """Final buffer could not be materialized or encoded."""

    default_message = "Error rendering final image"


class PipelineCancelledError(FilmEmulationError):
    """Pipeline call was cancelled before completion."""

    default_message = "Filter processing was cancelled"

"""Exception types raised by the media assembly pipeline.

Every failure surfaces as a single terminal ``PipelineError`` subclass. Lower
level errors (HTTP, ffmpeg, I/O) are chained with ``raise ... from`` so the
original cause stays visible in tracebacks.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    suggestion: Optional[str] = None


class InvalidInput(PipelineError):
    """Empty section lists, non-positive durations and other caller mistakes."""


class SynthesisFailure(PipelineError):
    """A section's narration could not be synthesized."""

    def __init__(self, message: str, section_title: Optional[str] = None):
        super().__init__(message)
        self.section_title = section_title


class AudioFormatMismatch(SynthesisFailure):
    """A segment's container layout differs from the narration track's."""

    suggestion = "Configure every audio producer with the same sample rate, channel count and bit depth."


class FootageLookupError(PipelineError):
    """The footage catalog could not be queried or a clip could not be fetched."""


class InsufficientFootage(PipelineError):
    """Selected footage covers too little of the narration to render."""

    suggestion = "Try a shorter script or sections with more concrete, searchable terms."

    def __init__(self, available_seconds: float, required_seconds: float, min_ratio: float):
        self.available_seconds = available_seconds
        self.required_seconds = required_seconds
        self.min_ratio = min_ratio
        self.shortfall_seconds = max(0.0, required_seconds - available_seconds)
        super().__init__(
            f"Found {available_seconds:.1f}s of footage for {required_seconds:.1f}s of narration "
            f"(shortfall {self.shortfall_seconds:.1f}s). Need at least "
            f"{required_seconds * min_ratio:.1f}s ({min_ratio:.0%}) to render."
        )


class EncodingFailure(PipelineError):
    """The compositor could not load, mux or encode the video."""


class StorageError(PipelineError):
    """A finished artifact could not be written to storage."""


class PipelineStageError(PipelineError):
    """Wraps a stage failure with the name of the stage that raised it."""

    def __init__(self, stage: str, error: Exception):
        self.stage = stage
        self.error = error
        self.suggestion = getattr(error, "suggestion", None)
        super().__init__(f"{stage} failed: {error}")

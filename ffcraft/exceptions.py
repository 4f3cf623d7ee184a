"""Exceptions raised by ffcraft."""


class FfcraftError(Exception):
    """Base exception for all ffcraft errors."""
    pass


class JobError(FfcraftError, ValueError):
    """Base exception for errors raised while turning a job into ffmpeg arguments."""
    pass


class CommandLineParseError(JobError):
    """Raised when a raw argument template cannot be tokenized."""
    pass


class ValidationError(JobError):
    """Raised when a job is missing a path required by its mode."""
    pass


class UnsupportedPresetError(JobError):
    """Raised when preset mode is asked for an unknown preset."""
    pass


class ProbeError(FfcraftError):
    """Raised when ffprobe fails or returns unusable output."""
    pass


class ProcessStartError(FfcraftError):
    """Raised when the ffmpeg process cannot be spawned."""
    pass


class TaskAlreadyRunningError(FfcraftError):
    """Raised when a transcode is requested while another one is active."""
    pass

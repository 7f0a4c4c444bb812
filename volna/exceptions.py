"""
Custom exceptions for Volna Bot
"""
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    CONNECTION_FAILED = "connection_failed"
    METADATA_FETCH_FAILED = "metadata_fetch_failed"
    STREAM_OPEN_FAILED = "stream_open_failed"
    PLAYBACK_ERROR = "playback_error"
    PRECONDITION_VIOLATION = "precondition_violation"


class VolnaBotError(Exception):
    """Base exception for Volna Bot.

    The message is user-facing: command handlers reply with ``str(exc)``.
    """
    kind: Optional[ErrorKind] = None


class ConfigurationError(VolnaBotError):
    """Raised when there's a configuration error."""
    kind = ErrorKind.CONFIGURATION


class ValidationError(VolnaBotError):
    """Raised when input validation fails."""
    kind = ErrorKind.VALIDATION


class ConnectionFailed(VolnaBotError):
    """Raised when joining a voice channel fails."""
    kind = ErrorKind.CONNECTION_FAILED


class MetadataFetchFailed(VolnaBotError):
    """Raised when video metadata cannot be fetched."""
    kind = ErrorKind.METADATA_FETCH_FAILED


class StreamOpenFailed(VolnaBotError):
    """Raised when an audio stream cannot be opened for a track."""
    kind = ErrorKind.STREAM_OPEN_FAILED


class PlaybackError(VolnaBotError):
    """Raised when the playback driver rejects or fails a track."""
    kind = ErrorKind.PLAYBACK_ERROR


class PreconditionViolation(VolnaBotError):
    """Raised when a command does not apply to the current session state."""
    kind = ErrorKind.PRECONDITION_VIOLATION


class QueueFull(PreconditionViolation):
    """Raised when the guild queue reached max_queue_size."""

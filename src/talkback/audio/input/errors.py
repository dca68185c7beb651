"""Classification of microphone acquisition failures."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from ...core.errors import TalkbackError


class MicrophoneErrorKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    DEVICE_NOT_FOUND = "device_not_found"
    DEVICE_BUSY = "device_busy"
    CONSTRAINTS_UNSATISFIABLE = "constraints_unsatisfiable"
    UNKNOWN = "unknown"


MESSAGES = {
    MicrophoneErrorKind.PERMISSION_DENIED: (
        "Microphone access was denied. Allow microphone access for this terminal "
        "in your system privacy settings and try again."
    ),
    MicrophoneErrorKind.DEVICE_NOT_FOUND: (
        "No microphone was found. Check that a microphone is connected."
    ),
    MicrophoneErrorKind.DEVICE_BUSY: (
        "The microphone is in use by another program. Close the other program and try again."
    ),
    MicrophoneErrorKind.CONSTRAINTS_UNSATISFIABLE: (
        "The microphone does not support the requested settings."
    ),
}

# Substrings of PortAudio / OS error text, checked in order.
_PATTERNS = (
    (MicrophoneErrorKind.PERMISSION_DENIED, ("permission", "not permitted", "access denied")),
    (MicrophoneErrorKind.DEVICE_NOT_FOUND, ("no input device", "no default input", "invalid device",
                                            "no such device", "error querying device -1", "-9996")),
    (MicrophoneErrorKind.DEVICE_BUSY, ("device unavailable", "busy", "in use", "-9985")),
    (MicrophoneErrorKind.CONSTRAINTS_UNSATISFIABLE, ("invalid sample rate", "invalid number of channels",
                                                    "sample format", "-9997", "-9998")),
)


class MicrophoneError(TalkbackError):
    """Raised when the input device cannot be acquired."""

    def __init__(self, kind: MicrophoneErrorKind, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.kind = kind
        self.original = original


def classify(error: BaseException) -> MicrophoneErrorKind:
    if isinstance(error, PermissionError):
        return MicrophoneErrorKind.PERMISSION_DENIED
    text = str(error).lower()
    for kind, needles in _PATTERNS:
        if any(needle in text for needle in needles):
            return kind
    return MicrophoneErrorKind.UNKNOWN


def microphone_error(error: BaseException, constraint: Optional[str] = None) -> MicrophoneError:
    """Wrap a device failure in a MicrophoneError carrying a user-facing message."""
    kind = classify(error)
    if kind is MicrophoneErrorKind.CONSTRAINTS_UNSATISFIABLE:
        message = f"{MESSAGES[kind]} ({constraint or 'unknown'})"
    elif kind is MicrophoneErrorKind.UNKNOWN:
        message = f"Microphone error: {error}" if str(error) else "Microphone access is required."
    else:
        message = MESSAGES[kind]
    return MicrophoneError(kind, message, original=error)

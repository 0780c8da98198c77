from .status import RecordingStatus
from .token import CancellationToken

__all__ = [
    "RecordingStatus",
    "CancellationToken",
]

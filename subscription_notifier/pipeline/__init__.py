"""Check pipeline: selection followed by delivery of due notifications."""

from .models import CheckRunResult
from .runner import NotificationCheckPipeline

__all__ = [
    "NotificationCheckPipeline",
    "CheckRunResult",
]

"""Application schema exports."""

from .application import (
    Application,
    ApplicationSubmission,
    ArchivedApplication,
    DecisionRequest,
    DiscordProfile,
)

__all__ = [
    "Application",
    "ApplicationSubmission",
    "ArchivedApplication",
    "DecisionRequest",
    "DiscordProfile",
]

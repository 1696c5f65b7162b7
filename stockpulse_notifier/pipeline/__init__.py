"""Wishlist notification pipeline: parse, resolve, notify, record."""

from .models import PipelineResult, PipelineState, ProcessingFailure
from .resolver import EntityResolver
from .runner import NotificationPipeline

__all__ = [
    "NotificationPipeline",
    "EntityResolver",
    "PipelineResult",
    "PipelineState",
    "ProcessingFailure",
]

"""Scheduling module for periodic queue polling."""

from .service import SchedulerService

__all__ = [
    "SchedulerService",
]

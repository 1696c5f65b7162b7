"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for risky but valid settings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    queue = config_dict.get("queue") or {}
    if isinstance(queue, dict):
        poll_interval = queue.get("poll_interval")
        if isinstance(poll_interval, str):
            try:
                if parse_duration(poll_interval) < 5:
                    warning_messages.append(
                        f"Short poll_interval ({poll_interval}) will poll the spool file continuously"
                    )
            except DurationParseError:
                # Reported as a validation error later
                pass

    email = config_dict.get("email") or {}
    dead_letter = config_dict.get("dead_letter") or {}
    if isinstance(email, dict) and isinstance(dead_letter, dict):
        retries = email.get("max_retries", 0)
        if isinstance(retries, int) and retries > 0 and not dead_letter.get("enabled", False):
            warning_messages.append(
                "email.max_retries is set but dead_letter is disabled; "
                "messages that exhaust retries will be dropped"
            )

    pipeline = config_dict.get("pipeline") or {}
    if isinstance(pipeline, dict) and pipeline.get("skip_already_notified") is False:
        warning_messages.append(
            "pipeline.skip_already_notified is false; redelivered messages will notify again"
        )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages using Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)

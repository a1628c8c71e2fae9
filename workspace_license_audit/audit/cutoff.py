"""Inactivity cutoff calculation."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from ..config import ConfigurationError
from .interfaces import Clock, SystemClock


def compute_cutoff(inactivity_days: int, clock: Optional[Clock] = None) -> datetime:
    """
    Return the instant ``inactivity_days`` days before now.

    The clock is sampled once so every stage of a run shares the same
    boundary.
    """
    if isinstance(inactivity_days, bool) or not isinstance(inactivity_days, int):
        raise ConfigurationError(
            f"inactivity_days must be an integer, got {inactivity_days!r}"
        )
    if inactivity_days <= 0:
        raise ConfigurationError(
            f"inactivity_days must be positive, got {inactivity_days}"
        )
    now = (clock or SystemClock()).now()
    return now - timedelta(days=inactivity_days)

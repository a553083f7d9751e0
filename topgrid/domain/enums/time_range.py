from __future__ import annotations
from enum import StrEnum

class TimeRange(StrEnum):
    """Ranking window understood by the upstream top-items endpoint."""
    short_term = "short_term"    # ~4 weeks
    medium_term = "medium_term"  # ~6 months
    long_term = "long_term"      # all time

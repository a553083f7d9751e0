# topgrid/domain/dataclasses/reports.py
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


# ---------------------------------------------------------------------------
# Base report (shared fields + utilities)
# ---------------------------------------------------------------------------
@dataclass
class BaseReport:
    """Common report base:
    - timing: started_at / finished_at
    - error capture: error_details (recoverable problems only)
    - helpers: start(), stop(), add_error(), as_dict()
    """
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    # Each tuple is (subject, message); subject is usually "rank:<n>"
    error_details: List[Tuple[str, str]] = field(default_factory=list)

    def start(self) -> None:
        if self.started_at is None:
            self.started_at = datetime.now()

    def stop(self) -> None:
        self.finished_at = datetime.now()

    def add_error(self, subject: str, message: str) -> None:
        self.error_details.append((subject, message))

    @property
    def duration_sec(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["duration_sec"] = self.duration_sec
        return d


# ---------------------------------------------------------------------------
# Collage run
# ---------------------------------------------------------------------------
@dataclass
class CollageRunReport(BaseReport):
    items_requested: int = 0
    items_real: int = 0
    items_padded: int = 0
    images_fetched: int = 0
    images_placeholder: int = 0
    labels_clamped: int = 0

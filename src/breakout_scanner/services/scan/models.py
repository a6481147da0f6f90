"""Data models for full-universe scans."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..acquisition.models import AcquisitionFailure
from ..analysis.models import Analysis


@dataclass
class ScanStatistics:
    breakout_rate: float = 0.0
    waiting_rate: float = 0.0
    valid_rate: float = 0.0
    average_score: float = 0.0
    top_scores: List[Tuple[str, int]] = field(default_factory=list)


@dataclass
class ScanResult:
    """Classified output of one scan."""

    breakouts: List[Analysis] = field(default_factory=list)
    waiting: List[Analysis] = field(default_factory=list)
    rejected: List[Analysis] = field(default_factory=list)
    failures: List[AcquisitionFailure] = field(default_factory=list)
    total_scanned: int = 0
    duration_ms: float = 0.0
    started_at: Optional[datetime] = None
    statistics: ScanStatistics = field(default_factory=ScanStatistics)

    @property
    def error_count(self) -> int:
        return len(self.failures)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)

    def summary(self) -> Dict[str, Any]:
        return {
            "total_scanned": self.total_scanned,
            "breakouts": len(self.breakouts),
            "waiting": len(self.waiting),
            "rejected": self.rejected_count,
            "errors": self.error_count,
            "duration_ms": round(self.duration_ms, 1),
            "average_score": round(self.statistics.average_score, 1),
        }

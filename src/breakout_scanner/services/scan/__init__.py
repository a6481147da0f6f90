"""Full-universe scan orchestration."""

from .models import ScanResult, ScanStatistics
from .orchestrator import ScanOrchestrator, candidate_from_analysis, compute_statistics

__all__ = [
    "ScanOrchestrator",
    "ScanResult",
    "ScanStatistics",
    "candidate_from_analysis",
    "compute_statistics",
]

"""Top-level package for the bulk lead import pipeline."""

from . import models  # noqa: F401
from .config import ImportSettings
from .models import HistoryRecord, ImportResult, LeadStatus, NormalizedLead, RowIssue, StaffMember
from .orchestrator import ImportOrchestrator

__all__ = [
    "HistoryRecord",
    "ImportOrchestrator",
    "ImportResult",
    "ImportSettings",
    "LeadStatus",
    "NormalizedLead",
    "RowIssue",
    "StaffMember",
    "ingestion",
    "orchestrator",
    "storage",
]

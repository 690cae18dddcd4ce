"""Workflow orchestration for coordinating ingestion, normalization, and persistence."""

from .service import ImportOrchestrator

__all__ = ["ImportOrchestrator"]

"""Export orchestration for gridprint."""

from .orchestrator import ExportOrchestrator

__all__ = ["ExportOrchestrator"]

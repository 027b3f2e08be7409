"""
demoshelf Pipeline - demo loading and analysis orchestration.

This module handles:
- Header loading and analysis dispatch (AnalysisOrchestrator)
- Folder scanning (LibraryScanner)
- JSON backups (BackupCodec)
"""

from demoshelf.pipeline.backup import BackupCodec
from demoshelf.pipeline.library import LibraryScanner
from demoshelf.pipeline.orchestrator import AnalysisOrchestrator, BatchAnalysisResult

__all__ = ["AnalysisOrchestrator", "BackupCodec", "BatchAnalysisResult", "LibraryScanner"]

"""
demoshelf - CS Demo Library Manager

Scans demo folders, caches per-demo analysis results keyed by a file
fingerprint, reconciles Steam ban status into rosters and aggregates the
cached records into rank, overall and per-map statistics for one account.

Usage:
    from demoshelf import AnalysisOrchestrator, DemoCache, DemoFileAnalyzer

    orchestrator = AnalysisOrchestrator(DemoFileAnalyzer(), DemoCache(), context)
    demo = await orchestrator.get_header("match.dem")
"""

__version__ = "0.1.0"
__author__ = "demoshelf Contributors"


def __getattr__(name):
    """Lazy import for heavy dependencies."""
    if name == "Demo":
        from demoshelf.core.models import Demo
        return Demo
    elif name == "DemoCache":
        from demoshelf.infra.cache import DemoCache
        return DemoCache
    elif name == "DemoFileAnalyzer":
        from demoshelf.core.parser import DemoFileAnalyzer
        return DemoFileAnalyzer
    elif name == "AnalysisOrchestrator":
        from demoshelf.pipeline.orchestrator import AnalysisOrchestrator
        return AnalysisOrchestrator
    elif name == "LibraryScanner":
        from demoshelf.pipeline.library import LibraryScanner
        return LibraryScanner
    elif name == "BackupCodec":
        from demoshelf.pipeline.backup import BackupCodec
        return BackupCodec
    elif name == "BanReconciler":
        from demoshelf.analysis.bans import BanReconciler
        return BanReconciler
    elif name == "StatsAggregator":
        from demoshelf.analysis.stats import StatsAggregator
        return StatsAggregator
    raise AttributeError(f"module 'demoshelf' has no attribute '{name}'")


__all__ = [
    "__version__",
    "Demo",
    "DemoCache",
    "DemoFileAnalyzer",
    "AnalysisOrchestrator",
    "LibraryScanner",
    "BackupCodec",
    "BanReconciler",
    "StatsAggregator",
]

"""Services — import pipeline, model orchestration, analysis, export."""

from req_intel.services.analysis_service import AnalysisService
from req_intel.services.import_dispatcher import SmartImportDispatcher
from req_intel.services.llm_service import ModelOrchestrator

__all__ = ["AnalysisService", "SmartImportDispatcher", "ModelOrchestrator"]

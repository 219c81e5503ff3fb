"""Request orchestration for MINDSCAN."""

from .service import AnalysisReport, AnalysisService, service_from_env

__all__ = ["AnalysisReport", "AnalysisService", "service_from_env"]

"""
Sync services: change detection, entity collection, cascade analysis,
AI extraction, graph validation and the sync orchestrator.
"""

from lattice.services.cascade_analyzer import CascadeAnalyzer, format_warnings
from lattice.services.change_detector import ChangeDetector
from lattice.services.entity_collector import collect_unique_entities
from lattice.services.entity_extractor import IntervalGate, LLMEntityExtractor, validate_extraction
from lattice.services.graph_validator import GraphValidator
from lattice.services.sync_service import SyncPass, SyncService

__all__ = [
    "CascadeAnalyzer",
    "ChangeDetector",
    "GraphValidator",
    "IntervalGate",
    "LLMEntityExtractor",
    "SyncPass",
    "SyncService",
    "collect_unique_entities",
    "format_warnings",
    "validate_extraction",
]

from subagent_hub.importer.attribution import AttributionEngine
from subagent_hub.importer.orchestrator import ImportOrchestrator
from subagent_hub.importer.parser import AgentExtractor
from subagent_hub.importer.scanner import RepositoryScanner
from subagent_hub.importer.validator import FormatValidator

__all__ = [
    "AgentExtractor",
    "AttributionEngine",
    "FormatValidator",
    "ImportOrchestrator",
    "RepositoryScanner",
]

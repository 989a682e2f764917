from enum import Enum


class Discipline(str, Enum):
    LINGUISTICS = "linguistics"
    LITERATURE = "literature"
    CULTURAL_STUDIES = "cultural_studies"


class QueryType(str, Enum):
    TRANSLATION = "translation"
    ERROR_ANALYSIS = "error_analysis"
    CULTURAL_EXPLANATION = "cultural_explanation"
    COMPARATIVE = "comparative"
    INTERPRETIVE = "interpretive"
    GENERAL = "general"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Ordinal position: low < medium < high."""
        return {"low": 0, "medium": 1, "high": 2}[self.value]


class Era(str, Enum):
    CLASSICAL = "classical"
    MODERN = "modern"
    CONTEMPORARY = "contemporary"


class Stance(str, Enum):
    DESCRIPTIVE = "descriptive"
    PRESCRIPTIVE = "prescriptive"
    CRITICAL = "critical"


class SourceType(str, Enum):
    JOURNAL = "journal"
    BOOK = "book"
    ETHNOGRAPHY = "ethnography"
    ANALYSIS = "analysis"
    FEW_SHOT = "few_shot"


class PipelineMode(str, Enum):
    PRIMARY = "primary"
    LEGACY = "legacy"


class RAGEngineError(RuntimeError):
    """Raised when the RAG engine encounters a recoverable error."""


class LLMCallError(RAGEngineError):
    """Raised when a text-generation call fails (transport, timeout, empty reply)."""


class PipelineError(RAGEngineError):
    """Raised when both the primary and the legacy generation strategies fail."""

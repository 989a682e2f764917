"""
Unified configuration loader for the cultural-linguistic RAG pipeline.

This module is the single source of truth for all configuration:
- Settings dataclasses (Settings, RetrievalWeights)
- Loading settings from config/settings.yaml with env var overrides
- Pydantic schema validation of the knowledge-base file shape

All code should import configuration from this module, not from settings.yaml directly.
"""

from __future__ import annotations

import functools
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

logger = logging.getLogger(__name__)

_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"
_REPO_ROOT = Path(__file__).resolve().parents[2]


# ─────────────────────────────────────────────────────────────────────────────
# Core Settings Dataclasses
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RetrievalWeights:
    """Additive weights for hybrid document scoring.

    Ranking priority is discipline > subfield > culture > context >= concept.
    """
    discipline: float = 3.0
    subfield: float = 2.5
    culture: float = 2.0
    context: float = 1.5
    concept: float = 1.0


def _default_confidence_bonus() -> dict[str, float]:
    return {"high": 1.5, "medium": 1.0, "low": 0.5}


def _default_source_type_bonus() -> dict[str, float]:
    return {
        "ethnography": 1.4,
        "journal": 1.3,
        "book": 1.2,
        "analysis": 1.0,
        "few_shot": 0.8,
    }


@dataclass(frozen=True)
class Settings:
    """Application settings - all values loaded from config/settings.yaml.

    This is a frozen dataclass to ensure immutability after loading.
    """
    # OpenAI settings
    chat_model: str = ""
    max_tokens: int = 4096
    timeout_secs: float = 60.0

    # Generation stage temperatures
    intent_temperature: float = 0.3
    article_temperature: float = 0.7
    audit_temperature: float = 0.3
    legacy_temperature: float = 0.7
    enable_auditor: bool = True
    include_references: bool = True

    # Retrieval
    max_results: int = 5
    prefer_high_confidence: bool = True
    include_related_disciplines: bool = True
    lexical_overlap_bonus: float = 0.3
    retrieval_weights: RetrievalWeights = RetrievalWeights()
    confidence_bonus: dict[str, float] = field(default_factory=_default_confidence_bonus)
    source_type_bonus: dict[str, float] = field(default_factory=_default_source_type_bonus)

    # Conversation history
    max_history_messages: int = 10
    max_chars_per_message: int = 4000

    # Paths
    knowledge_base_path: Path = Path("data/knowledge_base.yaml")


# ─────────────────────────────────────────────────────────────────────────────
# Settings Loading Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _env_int(key: str, default: int) -> int:
    val = os.getenv(key)
    return int(val) if val and val.strip() else default


def _env_float(key: str, default: float) -> float:
    val = os.getenv(key)
    if val is None or val.strip() == "":
        return default
    return float(val)


def _env_bool(key: str, default: bool) -> bool:
    val = os.getenv(key)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _validate_settings(settings: Settings) -> None:
    """Validate settings values."""
    if settings.max_results < 1:
        raise ValueError(f"retrieval.max_results must be >= 1 (got {settings.max_results})")

    if settings.max_tokens < 1:
        raise ValueError(f"openai.max_tokens must be >= 1 (got {settings.max_tokens})")

    if settings.timeout_secs <= 0:
        raise ValueError(f"openai.timeout_secs must be > 0 (got {settings.timeout_secs})")

    for name in ("intent_temperature", "article_temperature", "audit_temperature", "legacy_temperature"):
        value = getattr(settings, name)
        if not (0.0 <= value <= 2.0):
            raise ValueError(f"generation.{name} must be within [0, 2] (got {value})")

    w = settings.retrieval_weights
    if min(w.discipline, w.subfield, w.culture, w.context, w.concept) <= 0:
        raise ValueError(f"retrieval.weights must all be > 0 (got {w})")

    # Ranking priority must hold: discipline > subfield > culture > context >= concept
    if not (w.discipline > w.subfield > w.culture > w.context >= w.concept):
        raise ValueError(
            "retrieval.weights must be monotonic "
            f"(discipline={w.discipline} > subfield={w.subfield} > culture={w.culture} "
            f"> context={w.context} >= concept={w.concept})"
        )

    bonus = settings.confidence_bonus
    missing = sorted({"high", "medium", "low"} - set(bonus))
    if missing:
        raise ValueError(f"retrieval.confidence_bonus is missing levels: {missing}")
    if not (bonus["high"] > bonus["medium"] > bonus["low"] > 0):
        raise ValueError(
            f"retrieval.confidence_bonus must satisfy high > medium > low > 0 (got {bonus})"
        )

    if any(v <= 0 for v in settings.source_type_bonus.values()):
        raise ValueError(
            f"retrieval.source_type_bonus values must be > 0 (got {settings.source_type_bonus})"
        )


def _load_settings_yaml() -> dict[str, Any]:
    """Load raw settings from config/settings.yaml."""
    settings_path = _CONFIG_DIR / "settings.yaml"
    if not settings_path.exists():
        return {}
    with open(settings_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@functools.lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and validate application settings from config/settings.yaml.

    Environment variables override YAML values:
    - OPENAI_CHAT_MODEL
    - LINGUA_OPENAI_TIMEOUT_SECS, LINGUA_MAX_TOKENS
    - LINGUA_MAX_RESULTS, LINGUA_ENABLE_AUDITOR, LINGUA_INCLUDE_REFERENCES
    - LINGUA_KNOWLEDGE_BASE_PATH

    Returns:
        Settings: Validated, frozen settings object
    """
    load_dotenv()

    config = _load_settings_yaml()
    root = _REPO_ROOT

    openai_cfg = config.get("openai", {}) or {}
    gen_cfg = config.get("generation", {}) or {}
    retrieval_cfg = config.get("retrieval", {}) or {}
    paths_cfg = config.get("paths", {}) or {}
    conversation_cfg = config.get("conversation", {}) or {}

    chat_model = os.getenv("OPENAI_CHAT_MODEL") or openai_cfg.get("chat_model", "")
    max_tokens = _env_int("LINGUA_MAX_TOKENS", int(openai_cfg.get("max_tokens", 4096)))
    timeout_secs = _env_float("LINGUA_OPENAI_TIMEOUT_SECS", float(openai_cfg.get("timeout_secs", 60)))

    weights_cfg = retrieval_cfg.get("weights", {}) or {}
    retrieval_weights = RetrievalWeights(
        discipline=float(weights_cfg.get("discipline", 3.0)),
        subfield=float(weights_cfg.get("subfield", 2.5)),
        culture=float(weights_cfg.get("culture", 2.0)),
        context=float(weights_cfg.get("context", 1.5)),
        concept=float(weights_cfg.get("concept", 1.0)),
    )

    confidence_bonus = _default_confidence_bonus()
    confidence_bonus.update(
        {str(k): float(v) for k, v in (retrieval_cfg.get("confidence_bonus") or {}).items()}
    )
    source_type_bonus = _default_source_type_bonus()
    source_type_bonus.update(
        {str(k): float(v) for k, v in (retrieval_cfg.get("source_type_bonus") or {}).items()}
    )

    kb_raw = os.getenv("LINGUA_KNOWLEDGE_BASE_PATH") or paths_cfg.get("knowledge_base", "data/knowledge_base.yaml")
    knowledge_base_path = Path(kb_raw)
    if not knowledge_base_path.is_absolute():
        knowledge_base_path = root / knowledge_base_path

    settings = Settings(
        chat_model=str(chat_model),
        max_tokens=max_tokens,
        timeout_secs=timeout_secs,
        intent_temperature=float(gen_cfg.get("intent_temperature", 0.3)),
        article_temperature=float(gen_cfg.get("article_temperature", 0.7)),
        audit_temperature=float(gen_cfg.get("audit_temperature", 0.3)),
        legacy_temperature=float(gen_cfg.get("legacy_temperature", 0.7)),
        enable_auditor=_env_bool("LINGUA_ENABLE_AUDITOR", bool(gen_cfg.get("enable_auditor", True))),
        include_references=_env_bool(
            "LINGUA_INCLUDE_REFERENCES", bool(gen_cfg.get("include_references", True))
        ),
        max_results=_env_int("LINGUA_MAX_RESULTS", int(retrieval_cfg.get("max_results", 5))),
        prefer_high_confidence=bool(retrieval_cfg.get("prefer_high_confidence", True)),
        include_related_disciplines=bool(retrieval_cfg.get("include_related_disciplines", True)),
        lexical_overlap_bonus=float(retrieval_cfg.get("lexical_overlap_bonus", 0.3)),
        retrieval_weights=retrieval_weights,
        confidence_bonus=confidence_bonus,
        source_type_bonus=source_type_bonus,
        max_history_messages=int(conversation_cfg.get("max_history_messages", 10)),
        max_chars_per_message=int(conversation_cfg.get("max_chars_per_message", 4000)),
        knowledge_base_path=knowledge_base_path,
    )

    _validate_settings(settings)
    return settings


def get_settings_yaml() -> dict[str, Any]:
    """Get raw settings dict from YAML (used by the LLM client)."""
    return _load_settings_yaml()


# ─────────────────────────────────────────────────────────────────────────────
# Pydantic Schema for the Knowledge Base File
# ─────────────────────────────────────────────────────────────────────────────


class DocumentRecordSchema(BaseModel):
    """Shape of a single document record in the knowledge-base YAML.

    Vocabulary checks happen later in document_schema.validate_document; this
    schema only guarantees field presence and types.
    """

    id: str
    text: str
    source: str
    discipline: list[str]
    subfield: list[str] = []
    culture: list[str] = []
    context: list[str] = []
    era: str = "contemporary"
    stance: str = "descriptive"
    confidence: str = "medium"
    source_type: str = "analysis"
    related_concepts: list[str] = []
    languages: list[str] = []

    @field_validator(
        "discipline", "subfield", "culture", "context", "related_concepts", "languages",
        mode="before",
    )
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return list(v)


class KnowledgeBaseFileSchema(BaseModel):
    """Schema for the knowledge-base YAML file."""

    version: int = 1
    documents: list[DocumentRecordSchema] = []

    @field_validator("documents", mode="before")
    @classmethod
    def ensure_documents_list(cls, v: Any) -> list[Any]:
        if v is None:
            return []
        return list(v)


def validate_knowledge_base_file(raw: dict[str, Any], *, path: Path | str) -> KnowledgeBaseFileSchema:
    """Validate the raw knowledge-base mapping against the file schema.

    Raises:
        ValueError: with the pydantic error list when the file is malformed.
    """
    try:
        return KnowledgeBaseFileSchema.model_validate(raw)
    except ValidationError as e:
        logger.error("Invalid knowledge base file '%s': %s", path, e.errors())
        raise ValueError(f"Invalid knowledge base file '{path}': {e}") from e


def clear_config_cache() -> None:
    """Clear all cached configurations (useful for testing)."""
    load_settings.cache_clear()

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from ..common.config_loader import Settings, load_settings
from ..common.knowledge_base import load_knowledge_base
from ..engine.conversation import (
    HistoryMessage,
    format_history_for_prompt,
    last_exchange,
    truncate_history,
)
from ..engine.pipeline import CulturalPipeline, PipelineOptions
from ..engine.retrieval import HybridRetriever


@dataclass(frozen=True)
class AskResult:
    answer: str
    article: dict[str, Any]
    references: list[str]
    intent: dict[str, Any]
    mode: str
    audit_status: str


def build_pipeline(*, settings: Settings | None = None) -> CulturalPipeline:
    resolved_settings = settings or load_settings()
    store = load_knowledge_base(resolved_settings.knowledge_base_path)
    retriever = HybridRetriever.from_settings(store, resolved_settings)
    return CulturalPipeline(retriever, settings=resolved_settings)


def _coerce_history(
    history: Iterable[HistoryMessage | Mapping[str, Any]] | None,
) -> list[HistoryMessage]:
    if not history:
        return []
    return [m if isinstance(m, HistoryMessage) else HistoryMessage.from_dict(m) for m in history]


def ask(
    *,
    question: str,
    history: Iterable[HistoryMessage | Mapping[str, Any]] | None = None,
    enable_auditor: bool | None = None,
    include_references: bool | None = None,
    contexts: Iterable[str] = (),
    pipeline: Optional[CulturalPipeline] = None,
    settings: Settings | None = None,
) -> AskResult:
    """Ask a question and get a rendered answer with references.

    Args:
        history: Prior turns, as HistoryMessage objects or {"role", "content"} dicts.
        enable_auditor / include_references: Override the configured defaults.
        contexts: Situational context filters for retrieval (e.g. "academic").

    Raises:
        ValueError: if the question is empty.
        PipelineError: if no generation strategy produced an answer.
    """
    if not (question or "").strip():
        raise ValueError("Question must not be empty.")

    resolved_pipeline = pipeline or build_pipeline(settings=settings)
    resolved_settings = resolved_pipeline.settings

    recent = truncate_history(
        _coerce_history(history),
        max_messages=resolved_settings.max_history_messages,
    )
    conversation_context = format_history_for_prompt(
        recent,
        max_chars_per_message=resolved_settings.max_chars_per_message,
    )
    # Intent analysis only needs the last exchange to resolve follow-ups.
    intent_context = format_history_for_prompt(
        last_exchange(recent),
        max_chars_per_message=resolved_settings.max_chars_per_message,
    )

    options = PipelineOptions(
        enable_auditor=(
            resolved_settings.enable_auditor if enable_auditor is None else bool(enable_auditor)
        ),
        include_references=(
            resolved_settings.include_references
            if include_references is None
            else bool(include_references)
        ),
        contexts=tuple(contexts),
    )

    result = resolved_pipeline.run(
        question.strip(),
        conversation_context,
        options,
        intent_context=intent_context,
    )

    return AskResult(
        answer=result.markdown,
        article=result.article.to_dict(),
        references=list(result.sources),
        intent=result.intent.to_dict(),
        mode=result.mode.value,
        audit_status=result.audit_status,
    )

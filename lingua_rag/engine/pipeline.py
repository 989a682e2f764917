"""Cultural-linguistic reasoning pipeline.

Sequences the stages of one request:

    ClassifyIntent -> Retrieve -> AssembleContext -> Generate -> (Audit)
    -> Validate -> Render

Every stage except generation degrades locally (heuristic intent, empty
retrieval, repaired output, skipped audit). Generation falls back from the
primary structured strategy to the legacy streamed strategy; only when both
fail does run() raise PipelineError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..common.config_loader import Settings, load_settings
from .article_json_mode import ArticleOutput, render_article_markdown
from .context_assembler import assemble_context, summarize_sources
from .generation_strategies import (
    audit_article,
    execute_article_generation,
    execute_legacy_generation,
)
from .generation_types import GenerationConfig, GenerationResult, LLMFn, StreamFn
from .intent_router import Intent, analyze_intent, fallback_intent
from .prompt_builder import build_generation_prompt, build_legacy_prompt
from .retrieval import HybridRetriever, RetrievalOptions
from .types import PipelineError, PipelineMode

logger = logging.getLogger(__name__)

AUDIT_APPLIED = "applied"
AUDIT_SKIPPED = "skipped"
AUDIT_DISABLED = "disabled"


@dataclass(frozen=True)
class PipelineOptions:
    enable_auditor: bool = True
    include_references: bool = True
    # Situational context filters passed to the retriever (e.g. "academic").
    contexts: tuple[str, ...] = ()


@dataclass(frozen=True)
class PipelineResult:
    article: ArticleOutput
    markdown: str
    intent: Intent
    sources: list[str]
    mode: PipelineMode = PipelineMode.PRIMARY
    audit_status: str = AUDIT_DISABLED
    debug: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "article": self.article.to_dict(),
            "markdown": self.markdown,
            "intent": self.intent.to_dict(),
            "sources": list(self.sources),
            "mode": self.mode.value,
            "audit_status": self.audit_status,
        }


class CulturalPipeline:
    """Orchestrates one question end to end. Holds no per-request state."""

    def __init__(
        self,
        retriever: HybridRetriever,
        *,
        llm_fn: LLMFn | None = None,
        stream_fn: StreamFn | None = None,
        settings: Settings | None = None,
    ):
        if llm_fn is None or stream_fn is None:
            from .llm_client import call_llm, call_llm_stream

            llm_fn = llm_fn or call_llm
            stream_fn = stream_fn or call_llm_stream
        self.retriever = retriever
        self.llm_fn = llm_fn
        self.stream_fn = stream_fn
        self.settings = settings or load_settings()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _classify(self, question: str, context: str, debug: dict[str, Any]) -> Intent:
        intent, error = analyze_intent(
            question,
            context,
            llm_fn=self.llm_fn,
            temperature=self.settings.intent_temperature,
        )
        if intent is None:
            logger.warning("Intent analysis failed (%s); using heuristic fallback", error)
            debug["intent_source"] = "heuristic"
            debug["intent_error"] = error
            return fallback_intent(question)
        debug["intent_source"] = "llm"
        return intent

    def _generate(
        self,
        *,
        question: str,
        intent: Intent,
        interpretive_context: str,
        conversation_context: str,
        debug: dict[str, Any],
    ) -> GenerationResult:
        s = self.settings
        primary_config = GenerationConfig.for_primary(
            temperature=s.article_temperature,
            audit_temperature=s.audit_temperature,
            max_tokens=s.max_tokens,
        )
        prompt = build_generation_prompt(
            question=question,
            intent=intent,
            interpretive_context=interpretive_context,
            conversation_context=conversation_context,
        )
        try:
            return execute_article_generation(prompt, self.llm_fn, primary_config)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Primary generation failed (%s); switching to legacy mode", exc)
            debug["primary_error"] = str(exc)

        legacy_config = GenerationConfig.for_legacy(
            temperature=s.legacy_temperature,
            max_tokens=s.max_tokens,
        )
        legacy_prompt = build_legacy_prompt(
            question=question,
            intent=intent,
            interpretive_context=interpretive_context,
            conversation_context=conversation_context,
        )
        try:
            return execute_legacy_generation(legacy_prompt, self.stream_fn, legacy_config)
        except Exception as exc:  # noqa: BLE001
            logger.error("Legacy generation failed: %s", exc)
            raise PipelineError("Both primary and legacy generation failed.") from exc

    def _audit(
        self,
        article: ArticleOutput,
        generation: GenerationResult,
        options: PipelineOptions,
        debug: dict[str, Any],
    ) -> tuple[ArticleOutput, str]:
        if not options.enable_auditor:
            return article, AUDIT_DISABLED
        if generation.mode is PipelineMode.LEGACY:
            logger.info("Audit skipped: legacy mode output is not audited")
            return article, AUDIT_SKIPPED

        config = GenerationConfig.for_primary(
            temperature=self.settings.article_temperature,
            audit_temperature=self.settings.audit_temperature,
            max_tokens=self.settings.max_tokens,
        )
        audited, error = audit_article(article, self.llm_fn, config)
        if audited is None:
            logger.warning("Audit skipped: %s", error)
            debug["audit_error"] = error
            return article, AUDIT_SKIPPED
        return audited, AUDIT_APPLIED

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(
        self,
        question: str,
        conversation_context: str = "",
        options: PipelineOptions | None = None,
        *,
        intent_context: str | None = None,
    ) -> PipelineResult:
        """Answer one question.

        Args:
            question: The user's question.
            conversation_context: Prior conversation, already formatted as text.
            options: Auditor / references / context-filter switches.
            intent_context: Context for intent analysis only; defaults to
                ``conversation_context``.

        Raises:
            PipelineError: only when both generation strategies fail.
        """
        options = options or PipelineOptions()
        s = self.settings
        debug: dict[str, Any] = {}

        logger.info("Stage 1: analyzing intent")
        intent = self._classify(
            question,
            conversation_context if intent_context is None else intent_context,
            debug,
        )
        logger.info(
            "Intent: discipline=%s cultures=%s query_type=%s comparison=%s confidence=%s",
            intent.primary_discipline.value,
            ", ".join(intent.cultures_involved),
            intent.query_type.value,
            intent.requires_comparison,
            intent.analysis_confidence.value,
        )

        logger.info("Stage 2: hybrid retrieval")
        documents = self.retriever.retrieve(
            question,
            intent,
            RetrievalOptions(
                max_results=s.max_results,
                prefer_high_confidence=s.prefer_high_confidence,
                include_related_disciplines=s.include_related_disciplines,
                contexts=tuple(options.contexts),
            ),
        )
        logger.info("Retrieved %d documents", len(documents))
        debug["retrieved_ids"] = [d.id for d in documents]

        logger.info("Stage 3: assembling interpretive context")
        interpretive_context = assemble_context(documents, intent)
        sources = summarize_sources(documents) if options.include_references else []

        logger.info("Stage 4: generating")
        generation = self._generate(
            question=question,
            intent=intent,
            interpretive_context=interpretive_context,
            conversation_context=conversation_context,
            debug=debug,
        )
        debug["generation"] = dict(generation.debug)
        debug["repaired"] = generation.repaired

        article, audit_status = self._audit(generation.article, generation, options, debug)

        logger.info("Rendering (mode=%s, audit=%s)", generation.mode.value, audit_status)
        markdown = render_article_markdown(article)

        return PipelineResult(
            article=article,
            markdown=markdown,
            intent=intent,
            sources=sources,
            mode=generation.mode,
            audit_status=audit_status,
            debug=debug,
        )

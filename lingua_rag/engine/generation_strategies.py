"""Generation strategies for the two output modes, plus the audit stage.

Strategy Pattern: one function per mode.
- Primary: one JSON-mode call under the article schema, validated, repaired on failure.
- Legacy: streamed prose under the legacy prompt, normalised through repair.

Strategies let collaborator exceptions propagate; the orchestrator owns the
fallback policy. The audit stage instead returns an (article, error) tuple.
"""

from __future__ import annotations

import logging

from . import prompt_templates as PT
from .article_json_mode import (
    ArticleOutput,
    repair_article,
    validate_article_json_soft,
)
from .generation_types import GenerationConfig, GenerationResult, LLMFn, StreamFn
from .prompt_builder import build_audit_prompt
from .types import LLMCallError, PipelineMode

logger = logging.getLogger(__name__)


def _normalise(raw_answer: str, result: GenerationResult) -> GenerationResult:
    article, error_reason = validate_article_json_soft(raw_answer)
    if article is None:
        logger.warning("Article output failed validation (%s); repairing", error_reason)
        result.article = repair_article(raw_answer)
        result.repaired = True
        result.debug["article_json_valid"] = False
        result.debug["article_json_error"] = error_reason
    else:
        result.article = article
        result.debug["article_json_valid"] = True
    return result


# ---------------------------------------------------------------------------
# Strategy 1: Structured article generation (JSON mode)
# ---------------------------------------------------------------------------


def execute_article_generation(
    prompt: str,
    llm_fn: LLMFn,
    config: GenerationConfig,
) -> GenerationResult:
    """Generate the structured article in one JSON-mode call.

    Raises whatever ``llm_fn`` raises; a malformed reply is repaired, not raised.
    """
    raw_answer = llm_fn(
        PT.ARTICLE_SYSTEM_PROMPT,
        prompt,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        json_mode=True,
    )
    result = GenerationResult(
        article=repair_article(""),
        raw_llm_response=raw_answer,
        mode=PipelineMode.PRIMARY,
        debug={"llm_calls_count": 1, "temperature": config.temperature},
    )
    return _normalise(raw_answer, result)


# ---------------------------------------------------------------------------
# Strategy 2: Legacy prose generation (streaming)
# ---------------------------------------------------------------------------


def execute_legacy_generation(
    prompt: str,
    stream_fn: StreamFn,
    config: GenerationConfig,
) -> GenerationResult:
    """Stream a prose answer under the legacy prompt and normalise it.

    Raises:
        LLMCallError: if the stream yields no text.
        Any exception raised by ``stream_fn`` while streaming.
    """
    chunks: list[str] = []
    for chunk in stream_fn(
        PT.LEGACY_SYSTEM_PROMPT,
        prompt,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
    ):
        chunks.append(chunk)

    raw_answer = "".join(chunks)
    if not raw_answer.strip():
        raise LLMCallError("Legacy generation returned no text.")

    result = GenerationResult(
        article=repair_article(""),
        raw_llm_response=raw_answer,
        mode=PipelineMode.LEGACY,
        debug={"llm_calls_count": 1, "stream_chunks": len(chunks), "temperature": config.temperature},
    )
    return _normalise(raw_answer, result)


# ---------------------------------------------------------------------------
# Audit stage (best-effort)
# ---------------------------------------------------------------------------


def audit_article(
    article: ArticleOutput,
    llm_fn: LLMFn,
    config: GenerationConfig,
) -> tuple[ArticleOutput | None, str | None]:
    """Ask the auditor to review/revise an article.

    Returns:
        (audited_article, None) when the reply is a valid article, otherwise
        (None, error_reason). Never raises.
    """
    try:
        raw = llm_fn(
            PT.AUDIT_SYSTEM_PROMPT,
            build_audit_prompt(article),
            temperature=config.audit_temperature,
            max_tokens=config.max_tokens,
            json_mode=True,
        )
    except Exception as exc:  # noqa: BLE001
        return None, f"llm_call_fail: {exc}"

    audited, error_reason = validate_article_json_soft(raw)
    if audited is None:
        return None, error_reason
    return audited, None

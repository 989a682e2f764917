"""Tests for lingua_rag/engine/pipeline.py - end-to-end orchestration.

Covers:
- Primary path (intent -> retrieval -> generation -> audit -> render)
- Heuristic intent fallback
- Legacy generation fallback and total failure
- Audit enabled / disabled / failing
- References toggle and ungrounded questions
"""

import json
import logging

import pytest

from conftest import VALID_ARTICLE, StubLLM, StubStream
from lingua_rag.common.config_loader import Settings
from lingua_rag.engine import prompt_templates as PT
from lingua_rag.engine.article_json_mode import render_article_markdown, validate_article_json
from lingua_rag.engine.document_schema import DocumentStore
from lingua_rag.engine.intent_router import INTENT_SYSTEM_PROMPT, fallback_intent
from lingua_rag.engine.pipeline import (
    AUDIT_APPLIED,
    AUDIT_DISABLED,
    AUDIT_SKIPPED,
    CulturalPipeline,
    PipelineOptions,
)
from lingua_rag.engine.retrieval import HybridRetriever
from lingua_rag.engine.types import Confidence, LLMCallError, PipelineError, PipelineMode

QUESTION = "Why does 'Sudah menikah?' sound polite in Indonesian but intrusive in English?"


def _pipeline(store, llm_fn=None, stream_fn=None, **settings_overrides):
    return CulturalPipeline(
        HybridRetriever(store),
        llm_fn=llm_fn or StubLLM(),
        stream_fn=stream_fn or StubStream(),
        settings=Settings(**settings_overrides),
    )


class TestPrimaryPath:
    """Happy path with every stage succeeding."""

    def test_primary_result(self, kb_store):
        """Structured article, audit applied, references listed."""
        llm = StubLLM()
        result = _pipeline(kb_store, llm).run(QUESTION)

        assert result.mode is PipelineMode.PRIMARY
        assert result.audit_status == AUDIT_APPLIED
        assert result.article.to_dict() == VALID_ARTICLE
        assert result.markdown == render_article_markdown(validate_article_json(VALID_ARTICLE))
        assert result.intent.analysis_confidence is Confidence.HIGH
        assert 0 < len(result.sources) <= 5
        assert result.debug["intent_source"] == "llm"

    def test_each_stage_called_once(self, kb_store):
        """Intent, generation and audit each make exactly one call."""
        llm = StubLLM()
        stream = StubStream()
        _pipeline(kb_store, llm, stream).run(QUESTION)

        assert len(llm.calls_for(INTENT_SYSTEM_PROMPT)) == 1
        assert len(llm.calls_for(PT.ARTICLE_SYSTEM_PROMPT)) == 1
        assert len(llm.calls_for(PT.AUDIT_SYSTEM_PROMPT)) == 1
        assert stream.calls == []

    def test_stage_temperatures_from_settings(self, kb_store):
        """Intent, article and audit temperatures come from settings."""
        llm = StubLLM()
        _pipeline(
            kb_store, llm, intent_temperature=0.1, article_temperature=0.9, audit_temperature=0.2
        ).run(QUESTION)

        assert llm.calls_for(INTENT_SYSTEM_PROMPT)[0]["temperature"] == 0.1
        assert llm.calls_for(PT.ARTICLE_SYSTEM_PROMPT)[0]["temperature"] == 0.9
        assert llm.calls_for(PT.AUDIT_SYSTEM_PROMPT)[0]["temperature"] == 0.2

    def test_generation_prompt_carries_context(self, kb_store):
        """Retrieved references and conversation context reach the generator."""
        llm = StubLLM()
        _pipeline(kb_store, llm).run(QUESTION, "User: earlier question")

        prompt = llm.calls_for(PT.ARTICLE_SYSTEM_PROMPT)[0]["user_prompt"]
        assert "INTERPRETIVE CONTEXT" in prompt
        assert "=== Reference 1:" in prompt
        assert "ADDITIONAL CONTEXT:\nUser: earlier question" in prompt
        assert QUESTION in prompt

    def test_intent_context_override(self, kb_store):
        """intent_context replaces the conversation context for intent analysis only."""
        llm = StubLLM()
        _pipeline(kb_store, llm).run(QUESTION, "FULL HISTORY", intent_context="LAST EXCHANGE")

        assert "Additional Context: LAST EXCHANGE" in llm.calls_for(INTENT_SYSTEM_PROMPT)[0]["user_prompt"]
        assert "FULL HISTORY" in llm.calls_for(PT.ARTICLE_SYSTEM_PROMPT)[0]["user_prompt"]

    def test_to_dict(self, kb_store):
        """to_dict is JSON-serialisable."""
        result = _pipeline(kb_store).run(QUESTION)
        payload = result.to_dict()
        assert payload["mode"] == "primary"
        json.dumps(payload)


class TestIntentFallback:
    """Intent failures degrade to the heuristic classifier."""

    @pytest.mark.parametrize(
        "reply", ["not json", json.dumps({"primary_discipline": "x"}), "[" * 100000, LLMCallError("down")]
    )
    def test_heuristic_intent_used(self, kb_store, reply, caplog):
        """Unparseable, invalid or failed intent replies use fallback_intent."""
        llm = StubLLM(intent=reply)
        with caplog.at_level(logging.WARNING):
            result = _pipeline(kb_store, llm).run(QUESTION)

        assert result.intent == fallback_intent(QUESTION)
        assert result.debug["intent_source"] == "heuristic"
        assert result.mode is PipelineMode.PRIMARY
        assert "heuristic fallback" in caplog.text


class TestLegacyFallback:
    """Primary generation failures switch to the legacy strategy."""

    @pytest.mark.parametrize("error", [LLMCallError("down"), TimeoutError("slow")])
    def test_legacy_mode(self, kb_store, error, caplog):
        """Legacy output is repaired into an article and never audited."""
        llm = StubLLM(article=error)
        stream = StubStream(chunks=["Legacy ", "answer."])
        with caplog.at_level(logging.WARNING):
            result = _pipeline(kb_store, llm, stream).run(QUESTION)

        assert result.mode is PipelineMode.LEGACY
        assert result.audit_status == AUDIT_SKIPPED
        assert result.article.sections[0].paragraph == "Legacy answer."
        assert result.markdown == "Legacy answer.\n\n## Response\n\nLegacy answer."
        assert llm.calls_for(PT.AUDIT_SYSTEM_PROMPT) == []
        assert len(stream.calls) == 1
        assert "legacy mode" in caplog.text

    def test_legacy_prompt_has_examples(self, kb_store):
        """The legacy prompt carries the worked examples and references."""
        stream = StubStream()
        _pipeline(kb_store, StubLLM(article=LLMCallError("down")), stream).run(QUESTION)

        prompt = stream.calls[0]["user_prompt"]
        assert "EXAMPLE 1" in prompt
        assert "REFERENCE NOTES:" in prompt

    def test_both_strategies_fail(self, kb_store):
        """PipelineError when legacy generation also fails."""
        llm = StubLLM(article=LLMCallError("primary down"))
        stream = StubStream(error=LLMCallError("legacy down"))

        with pytest.raises(PipelineError) as exc_info:
            _pipeline(kb_store, llm, stream).run(QUESTION)
        assert isinstance(exc_info.value.__cause__, LLMCallError)

    def test_empty_legacy_stream_fails(self, kb_store):
        """An empty legacy stream counts as a failure."""
        llm = StubLLM(article=LLMCallError("down"))
        with pytest.raises(PipelineError):
            _pipeline(kb_store, llm, StubStream(chunks=[])).run(QUESTION)


class TestMalformedOutput:
    """Malformed primary replies are repaired, not escalated."""

    def test_prose_reply_repaired(self, kb_store):
        """Prose from the primary call still yields a primary-mode article."""
        llm = StubLLM(article="Just some prose.")
        result = _pipeline(kb_store, llm).run(QUESTION)

        assert result.mode is PipelineMode.PRIMARY
        assert result.debug["repaired"] is True
        assert result.article.sections[0].title == "Response"
        assert result.audit_status == AUDIT_APPLIED

    def test_deeply_nested_reply_repaired(self, kb_store):
        """A reply too deep to decode is repaired in primary mode."""
        stream = StubStream()
        result = _pipeline(kb_store, StubLLM(article="[" * 100000), stream).run(QUESTION)

        assert result.mode is PipelineMode.PRIMARY
        assert result.debug["repaired"] is True
        assert stream.calls == []


class TestAudit:
    """Audit switches and failures."""

    def test_audit_disabled(self, kb_store):
        """No audit call when disabled."""
        llm = StubLLM()
        result = _pipeline(kb_store, llm).run(QUESTION, options=PipelineOptions(enable_auditor=False))

        assert result.audit_status == AUDIT_DISABLED
        assert llm.calls_for(PT.AUDIT_SYSTEM_PROMPT) == []

    @pytest.mark.parametrize(
        "reply", ["garbage", json.dumps({"intro": {"text": "x"}}), "[" * 100000, LLMCallError("down")]
    )
    def test_failed_audit_keeps_article(self, kb_store, reply):
        """A failed audit leaves the generated article in place."""
        llm = StubLLM(audit=reply)
        result = _pipeline(kb_store, llm).run(QUESTION)

        assert result.audit_status == AUDIT_SKIPPED
        assert result.article.to_dict() == VALID_ARTICLE
        assert "audit_error" in result.debug

    def test_audit_revision_applied(self, kb_store):
        """A valid audit reply replaces the article."""
        revised = dict(VALID_ARTICLE, intro={"text": "Often, in many settings..."})
        llm = StubLLM(audit=json.dumps(revised))
        result = _pipeline(kb_store, llm).run(QUESTION)

        assert result.article.intro.text == "Often, in many settings..."
        assert result.markdown.startswith("Often, in many settings...")


class TestReferencesAndGrounding:
    """Reference toggle and ungrounded questions."""

    def test_references_disabled(self, kb_store):
        """include_references=False gives an empty source list."""
        result = _pipeline(kb_store).run(QUESTION, options=PipelineOptions(include_references=False))
        assert result.sources == []

    def test_max_results_from_settings(self, kb_store):
        """Retrieval honours the configured max_results."""
        result = _pipeline(kb_store, max_results=2).run(QUESTION)
        assert len(result.sources) == 2

    def test_empty_store_is_ungrounded(self):
        """No documents: the generator is told there is no grounding."""
        llm = StubLLM()
        result = _pipeline(DocumentStore([]), llm).run(QUESTION)

        assert result.sources == []
        assert result.mode is PipelineMode.PRIMARY
        prompt = llm.calls_for(PT.ARTICLE_SYSTEM_PROMPT)[0]["user_prompt"]
        assert prompt.startswith("NO GROUNDING FOUND")

"""Pytest configuration and shared fixtures for tests."""

import json
from pathlib import Path

import pytest

from lingua_rag.common.config_loader import clear_config_cache
from lingua_rag.common.knowledge_base import clear_knowledge_base_cache, read_knowledge_base
from lingua_rag.engine import prompt_templates as PT
from lingua_rag.engine.document_schema import DocumentStore, validate_document
from lingua_rag.engine.intent_router import INTENT_SYSTEM_PROMPT
from lingua_rag.engine.llm_client import reset_clients

REPO_ROOT = Path(__file__).resolve().parents[1]
KNOWLEDGE_BASE_PATH = REPO_ROOT / "data" / "knowledge_base.yaml"

_ENV_KEYS = (
    "OPENAI_CHAT_MODEL",
    "LINGUA_MAX_TOKENS",
    "LINGUA_OPENAI_TIMEOUT_SECS",
    "LINGUA_OPENAI_MAX_RETRIES",
    "LINGUA_ENABLE_AUDITOR",
    "LINGUA_INCLUDE_REFERENCES",
    "LINGUA_MAX_RESULTS",
    "LINGUA_KNOWLEDGE_BASE_PATH",
    "LINGUA_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch):
    """Fresh settings, knowledge base and OpenAI client for every test."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    clear_config_cache()
    clear_knowledge_base_cache()
    yield
    clear_config_cache()
    clear_knowledge_base_cache()
    reset_clients()


# ─────────────────────────────────────────────────────────────────────────────
# Documents
# ─────────────────────────────────────────────────────────────────────────────


def make_record(**overrides):
    record = {
        "id": "doc-1",
        "text": "Indirect refusals preserve harmony in hierarchical settings.",
        "discipline": ["linguistics"],
        "subfield": ["pragmatics"],
        "culture": ["Indonesia"],
        "context": ["general"],
        "confidence": "high",
        "source_type": "journal",
        "source": "Test Source",
        "related_concepts": ["politeness"],
    }
    record.update(overrides)
    return record


def make_doc(**overrides):
    return validate_document(make_record(**overrides))


@pytest.fixture
def sample_store():
    """Small hand-built store covering each discipline."""
    return DocumentStore([
        make_doc(
            id="ling-indo",
            text="Indonesian speakers often use indirect refusal to keep politeness and harmony.",
            discipline=["linguistics"],
            subfield=["pragmatics"],
            culture=["Indonesia"],
            context=["academic", "formal"],
            related_concepts=["politeness", "indirectness"],
        ),
        make_doc(
            id="ling-english",
            text="English small talk avoids personal questions about income and marriage.",
            discipline=["linguistics"],
            subfield=["pragmatics", "sociolinguistics"],
            culture=["English", "Western"],
            context=["social"],
            related_concepts=["privacy", "small talk"],
        ),
        make_doc(
            id="cult-indo",
            text="Personal questions signal care and communal identity in Indonesian society.",
            discipline=["cultural_studies"],
            subfield=["cultural_norms"],
            culture=["Indonesia"],
            context=["social", "casual"],
            confidence="medium",
            source_type="ethnography",
            related_concepts=["personal questions", "communal identity"],
        ),
        make_doc(
            id="lit-symbol",
            text="The lotus symbolizes purity in Buddhist literary traditions.",
            discipline=["literature"],
            subfield=["symbolism"],
            culture=["Japanese"],
            context=["literary"],
            confidence="low",
            source_type="analysis",
            related_concepts=["symbolism"],
        ),
    ])


@pytest.fixture(scope="session")
def kb_store():
    """The bundled knowledge base, read once per session."""
    return read_knowledge_base(KNOWLEDGE_BASE_PATH)


# ─────────────────────────────────────────────────────────────────────────────
# Stub text-generation collaborators
# ─────────────────────────────────────────────────────────────────────────────


VALID_ARTICLE = {
    "intro": {"text": "Personal questions carry different weight across cultures."},
    "sections": [
        {
            "title": "Pragmatic Function",
            "paragraph": "In Indonesian settings such questions often signal care.",
            "bullets": ["Often read as friendliness", "Varies by region and age"],
        },
        {
            "title": "English Norms",
            "paragraph": "English speakers typically treat them as private topics.",
            "bullets": [],
        },
    ],
    "conclusion": {"text": "Neither convention is more correct; they reflect different values."},
}

VALID_INTENT = {
    "cultures_involved": ["Indonesia", "English"],
    "potential_conflicts": ["privacy vs. communal care"],
    "primary_discipline": "linguistics",
    "secondary_disciplines": ["cultural_studies"],
    "subfields": ["pragmatics", "cultural_norms"],
    "social_domain": "small talk",
    "key_concepts": ["personal questions", "politeness"],
    "query_type": "comparative",
    "interpretive_frame": "Pragmatic norms of personal questions",
    "requires_comparison": True,
    "requires_historical_context": False,
    "analysis_confidence": "high",
}


class StubLLM:
    """Routes calls by system prompt to canned replies.

    A reply may be a string, an exception instance (raised), or a callable
    taking (system_prompt, user_prompt) and returning a string.
    """

    def __init__(self, *, intent=None, article=None, audit=None):
        self.replies = {
            INTENT_SYSTEM_PROMPT: json.dumps(VALID_INTENT) if intent is None else intent,
            PT.ARTICLE_SYSTEM_PROMPT: json.dumps(VALID_ARTICLE) if article is None else article,
            PT.AUDIT_SYSTEM_PROMPT: echo_audit if audit is None else audit,
        }
        self.calls = []

    def __call__(self, system_prompt, user_prompt, *, temperature, max_tokens, json_mode):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "json_mode": json_mode,
        })
        reply = self.replies[system_prompt]
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(system_prompt, user_prompt)
        return reply

    def calls_for(self, system_prompt):
        return [c for c in self.calls if c["system_prompt"] == system_prompt]


class StubStream:
    """Streaming collaborator yielding fixed chunks (or raising)."""

    def __init__(self, chunks=("Legacy ", "prose ", "answer."), error=None):
        self.chunks = list(chunks)
        self.error = error
        self.calls = []

    def __call__(self, system_prompt, user_prompt, *, temperature, max_tokens):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        yield from self.chunks


def echo_audit(system_prompt, user_prompt):
    """Auditor that returns the article embedded in the audit prompt unchanged."""
    return user_prompt[user_prompt.index("{"): user_prompt.rindex("}") + 1]


@pytest.fixture
def stub_llm():
    return StubLLM()


@pytest.fixture
def stub_stream():
    return StubStream()

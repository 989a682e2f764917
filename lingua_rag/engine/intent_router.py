"""Intent analysis for cultural-linguistic questions.

Turns a free-text question (plus optional conversation context) into a
structured Intent used to drive retrieval and context assembly:
- LLM path: one JSON-mode call, validated field by field
- Heuristic path: deterministic keyword rules, used whenever the LLM path fails

classify_intent() never raises. analyze_intent() returns an (intent, error)
tuple so callers can decide the fallback policy themselves.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from typing import Any

from .article_json_mode import strip_code_fence
from .document_schema import ALL_SUBFIELDS
from .generation_types import LLMFn
from .types import Confidence, Discipline, QueryType

logger = logging.getLogger(__name__)

PLACEHOLDER_CULTURE = "General"
DEFAULT_SOCIAL_DOMAIN = "general communication"
DEFAULT_INTERPRETIVE_FRAME = "General cultural-linguistic analysis"


@dataclass(frozen=True)
class Intent:
    """Structured descriptor of one incoming question."""
    cultures_involved: tuple[str, ...]
    primary_discipline: Discipline
    secondary_disciplines: tuple[Discipline, ...] = ()
    subfields: tuple[str, ...] = ()
    potential_conflicts: tuple[str, ...] = ()
    social_domain: str = DEFAULT_SOCIAL_DOMAIN
    key_concepts: tuple[str, ...] = ()
    interpretive_frame: str = DEFAULT_INTERPRETIVE_FRAME
    query_type: QueryType = QueryType.GENERAL
    requires_comparison: bool = False
    requires_historical_context: bool = False
    # Diagnostics only; never used for filtering.
    analysis_confidence: Confidence = Confidence.MEDIUM

    def with_key_concepts(self, concepts: tuple[str, ...]) -> "Intent":
        return replace(self, key_concepts=tuple(concepts))

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["primary_discipline"] = self.primary_discipline.value
        d["secondary_disciplines"] = [s.value for s in self.secondary_disciplines]
        d["query_type"] = self.query_type.value
        d["analysis_confidence"] = self.analysis_confidence.value
        for key in ("cultures_involved", "subfields", "potential_conflicts", "key_concepts"):
            d[key] = list(d[key])
        return d


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

INTENT_SYSTEM_PROMPT = """You are a humanities research assistant analyzing user queries for Cultural-Linguistic Reasoning.

Your task is to classify the query and extract structured metadata for knowledge retrieval.

DISCIPLINE CLASSIFICATION:
- "linguistics": Questions about language structure, pragmatics, sociolinguistics, discourse
- "literature": Questions about literary analysis, symbolism, narrative, genre
- "cultural_studies": Questions about cultural norms, ethnography, identity, power

SUBFIELD EXAMPLES:
- Linguistics: pragmatics, sociolinguistics, discourse_analysis, semantics
- Cultural Studies: ethnography, cultural_norms, postcolonial_studies, identity_studies
- Literature: literary_criticism, symbolism, postcolonial_literature

QUERY TYPE:
- "translation": Translating between languages
- "error_analysis": Analyzing language errors
- "cultural_explanation": Explaining cultural practices
- "comparative": Comparing across cultures
- "interpretive": Seeking interpretation/analysis
- "general": General inquiry

Return ONLY valid JSON:
{
  "cultures_involved": ["culture1", "culture2"],
  "potential_conflicts": ["conflict description"],
  "primary_discipline": "linguistics|literature|cultural_studies",
  "secondary_disciplines": [],
  "subfields": ["pragmatics", "cultural_norms"],
  "social_domain": "domain name",
  "key_concepts": ["concept1", "concept2"],
  "query_type": "cultural_explanation",
  "interpretive_frame": "Brief description of interpretive angle",
  "requires_comparison": true,
  "requires_historical_context": false,
  "analysis_confidence": "high|medium|low"
}"""


def build_intent_user_prompt(question: str, context: str = "") -> str:
    lines = [f"User Question: {question}", ""]
    if context and context.strip():
        lines.append(f"Additional Context: {context.strip()}")
        lines.append("")
    lines.append("Analyze this query for humanities-focused knowledge retrieval.")
    lines.append("Identify the academic discipline, cultural context, and interpretive needs.")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Heuristic fallback
# ---------------------------------------------------------------------------

_LITERATURE_WORDS = ("sastra", "novel", "puisi", "literary")
_CULTURE_WORDS = ("budaya", "culture", "tradisi", "norma")
_POLITENESS_WORDS = ("sopan", "polite", "formal", "bahasa")
_COMPARISON_WORDS = ("beda", "differ", "compare")

# (label, substrings) in detection order
_CULTURE_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Indonesia", ("indonesia", "indonesian")),
    ("Java", ("jawa", "javanese")),
    ("English", ("english", "inggris")),
    ("Chinese", ("china", "chinese", "mandarin")),
    ("Japanese", ("jepang", "japan")),
    ("Western", ("barat", "western")),
)


def _contains_any(text: str, words: tuple[str, ...]) -> bool:
    return any(w in text for w in words)


def detect_cultures(question: str) -> list[str]:
    """Return every culture label whose name appears in the question, in fixed order."""
    q = (question or "").lower()
    return [label for label, needles in _CULTURE_PATTERNS if _contains_any(q, needles)]


def fallback_intent(question: str) -> Intent:
    """Deterministic keyword classifier. Total: any string (including "") yields a valid Intent."""
    question = question or ""
    q = question.lower()

    discipline = Discipline.LINGUISTICS
    subfields: list[str] = []
    if _contains_any(q, _LITERATURE_WORDS):
        discipline = Discipline.LITERATURE
        subfields = ["literary_criticism"]
    elif _contains_any(q, _CULTURE_WORDS):
        discipline = Discipline.CULTURAL_STUDIES
        subfields = ["cultural_norms"]
    elif _contains_any(q, _POLITENESS_WORDS):
        discipline = Discipline.LINGUISTICS
        subfields = ["pragmatics", "sociolinguistics"]
    if not subfields:
        subfields = ["pragmatics"]

    cultures = detect_cultures(question) or [PLACEHOLDER_CULTURE]
    requires_comparison = len(cultures) > 1 or _contains_any(q, _COMPARISON_WORDS)
    key_concepts = [w for w in question.split() if len(w) > 4][:5]

    return Intent(
        cultures_involved=tuple(cultures),
        primary_discipline=discipline,
        secondary_disciplines=(),
        subfields=tuple(subfields),
        potential_conflicts=(),
        social_domain=DEFAULT_SOCIAL_DOMAIN,
        key_concepts=tuple(key_concepts),
        interpretive_frame=DEFAULT_INTERPRETIVE_FRAME,
        query_type=QueryType.COMPARATIVE if requires_comparison else QueryType.CULTURAL_EXPLANATION,
        requires_comparison=requires_comparison,
        requires_historical_context=False,
        analysis_confidence=Confidence.LOW,
    )


# ---------------------------------------------------------------------------
# LLM path
# ---------------------------------------------------------------------------


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1"}
    return False


def _enum_or(enum_cls, value: Any, default):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def parse_intent_response(raw_text: str) -> tuple[Intent | None, str | None]:
    """Validate an LLM intent reply.

    Required: ``primary_discipline`` from the closed vocabulary and a non-empty
    ``cultures_involved`` list of strings. Other fields are coerced: unknown
    query types become ``general``, unknown secondary disciplines and subfields
    are dropped, unknown confidence becomes ``medium``.

    Returns:
        (intent, None) on success, (None, error_reason) on failure.
    """
    try:
        obj = json.loads(strip_code_fence(raw_text))
    except (json.JSONDecodeError, RecursionError) as e:
        return None, f"json_parse_fail: {e}"

    if not isinstance(obj, dict):
        return None, "schema_fail: Expected object at $."

    raw_primary = obj.get("primary_discipline")
    primary = _enum_or(Discipline, raw_primary, None) if isinstance(raw_primary, str) else None
    if primary is None:
        return None, f"schema_fail: Invalid discipline at $.primary_discipline ({raw_primary!r})."

    cultures = obj.get("cultures_involved")
    if not isinstance(cultures, list) or not _str_list(cultures):
        return None, "schema_fail: Expected non-empty array of strings at $.cultures_involved."
    if len(_str_list(cultures)) != len(cultures):
        return None, "schema_fail: Expected only strings at $.cultures_involved."

    secondary: list[Discipline] = []
    for raw in _str_list(obj.get("secondary_disciplines")):
        d = _enum_or(Discipline, raw, None)
        if d is not None and d != primary and d not in secondary:
            secondary.append(d)

    subfields = [s for s in _str_list(obj.get("subfields")) if s in ALL_SUBFIELDS]

    intent = Intent(
        cultures_involved=tuple(_str_list(cultures)),
        primary_discipline=primary,
        secondary_disciplines=tuple(secondary),
        subfields=tuple(subfields),
        potential_conflicts=tuple(_str_list(obj.get("potential_conflicts"))),
        social_domain=str(obj.get("social_domain") or DEFAULT_SOCIAL_DOMAIN),
        key_concepts=tuple(_str_list(obj.get("key_concepts"))),
        interpretive_frame=str(obj.get("interpretive_frame") or DEFAULT_INTERPRETIVE_FRAME),
        query_type=_enum_or(QueryType, obj.get("query_type"), QueryType.GENERAL),
        requires_comparison=_as_bool(obj.get("requires_comparison")),
        requires_historical_context=_as_bool(obj.get("requires_historical_context")),
        analysis_confidence=_enum_or(Confidence, obj.get("analysis_confidence"), Confidence.MEDIUM),
    )
    return intent, None


def analyze_intent(
    question: str,
    context: str = "",
    *,
    llm_fn: LLMFn,
    temperature: float = 0.3,
    max_tokens: int = 1024,
) -> tuple[Intent | None, str | None]:
    """Ask the LLM for a structured intent.

    Returns:
        (intent, None) on success, (None, error_reason) if the call raised or the
        reply failed validation.
    """
    try:
        raw = llm_fn(
            INTENT_SYSTEM_PROMPT,
            build_intent_user_prompt(question, context),
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
        )
    except Exception as exc:  # noqa: BLE001
        return None, f"llm_call_fail: {exc}"
    return parse_intent_response(raw)


def classify_intent(
    question: str,
    context: str = "",
    *,
    llm_fn: LLMFn | None = None,
    temperature: float = 0.3,
) -> Intent:
    """Classify a question. Never raises: any LLM failure yields fallback_intent()."""
    if llm_fn is None:
        from .llm_client import call_llm

        llm_fn = call_llm

    intent, error = analyze_intent(question, context, llm_fn=llm_fn, temperature=temperature)
    if intent is None:
        logger.warning("Intent analysis failed (%s); using heuristic fallback", error)
        return fallback_intent(question)

    logger.debug(
        "Intent: discipline=%s cultures=%s confidence=%s",
        intent.primary_discipline.value,
        ", ".join(intent.cultures_involved),
        intent.analysis_confidence.value,
    )
    return intent


def to_legacy_intent(intent: Intent) -> dict[str, Any]:
    """Reduced intent view used by the legacy prompt.

    The legacy query-type vocabulary has no comparative/interpretive entries;
    both collapse to cultural_explanation.
    """
    qt = intent.query_type
    if qt in (QueryType.COMPARATIVE, QueryType.INTERPRETIVE):
        qt = QueryType.CULTURAL_EXPLANATION
    return {
        "cultures_involved": list(intent.cultures_involved),
        "social_domain": intent.social_domain,
        "potential_conflicts": list(intent.potential_conflicts),
        "key_concepts": list(intent.key_concepts),
        "query_type": qt.value,
    }

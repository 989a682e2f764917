"""Hybrid retrieval over the in-memory document store.

Every document is scored against the intent with a weighted multi-factor
function (metadata matches, concept hits and lexical overlap), adjusted by
confidence and source-type multipliers, filtered, sorted, and finally passed
through a diversification step that caps how many results may share a
primary discipline (and, for comparative questions, a primary culture).

The store is injected at construction time; the retriever holds no other state
and never raises for a well-formed store.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Sequence

from ..common.config_loader import RetrievalWeights
from .document_schema import Document, DocumentStore
from .types import Confidence

if TYPE_CHECKING:
    from ..common.config_loader import Settings
    from .intent_router import Intent

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_BONUS: Mapping[str, float] = {"high": 1.5, "medium": 1.0, "low": 0.5}
DEFAULT_SOURCE_TYPE_BONUS: Mapping[str, float] = {
    "ethnography": 1.4,
    "journal": 1.3,
    "book": 1.2,
    "analysis": 1.0,
    "few_shot": 0.8,
}
DEFAULT_LEXICAL_OVERLAP_BONUS = 0.3

_WORD_RE = re.compile(r"\w+", re.UNICODE)


@dataclass(frozen=True)
class RetrievalOptions:
    max_results: int = 5
    min_confidence: Confidence | None = None
    prefer_high_confidence: bool = True
    include_related_disciplines: bool = True
    contexts: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoredDocument:
    document: Document
    score: float


def _query_terms(query: str) -> list[str]:
    """Unique lower-cased words longer than 3 characters, in first-seen order."""
    seen: dict[str, None] = {}
    for word in _WORD_RE.findall((query or "").lower()):
        if len(word) > 3:
            seen.setdefault(word, None)
    return list(seen)


def _confidence_rank(value: str) -> int:
    try:
        return Confidence(value).rank
    except ValueError:
        return 0


class HybridRetriever:
    """Weighted multi-factor ranking with diversified top-k selection."""

    def __init__(
        self,
        store: DocumentStore,
        weights: RetrievalWeights | None = None,
        *,
        confidence_bonus: Mapping[str, float] | None = None,
        source_type_bonus: Mapping[str, float] | None = None,
        lexical_overlap_bonus: float = DEFAULT_LEXICAL_OVERLAP_BONUS,
    ):
        self.store = store
        self.weights = weights or RetrievalWeights()
        self.confidence_bonus = dict(confidence_bonus or DEFAULT_CONFIDENCE_BONUS)
        self.source_type_bonus = dict(source_type_bonus or DEFAULT_SOURCE_TYPE_BONUS)
        self.lexical_overlap_bonus = lexical_overlap_bonus

    @classmethod
    def from_settings(cls, store: DocumentStore, settings: "Settings") -> "HybridRetriever":
        return cls(
            store,
            settings.retrieval_weights,
            confidence_bonus=settings.confidence_bonus,
            source_type_bonus=settings.source_type_bonus,
            lexical_overlap_bonus=settings.lexical_overlap_bonus,
        )

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score_document(
        self,
        doc: Document,
        query: str,
        intent: "Intent",
        options: RetrievalOptions | None = None,
    ) -> float:
        options = options or RetrievalOptions()
        w = self.weights
        score = 0.0

        doc_disciplines = set(doc.discipline)
        if intent.primary_discipline.value in doc_disciplines:
            score += w.discipline

        if options.include_related_disciplines:
            for secondary in intent.secondary_disciplines:
                if secondary.value in doc_disciplines:
                    score += 0.5 * w.discipline

        doc_subfields = set(doc.subfield)
        for subfield in intent.subfields:
            if subfield in doc_subfields:
                score += w.subfield

        doc_cultures = [c.lower() for c in doc.culture]
        for culture in intent.cultures_involved:
            needle = culture.lower()
            if needle and any(needle in label for label in doc_cultures):
                score += w.culture

        doc_contexts = [c.lower() for c in doc.context]
        for ctx in options.contexts:
            needle = ctx.lower()
            if needle and any(needle in label for label in doc_contexts):
                score += w.context

        text = doc.text.lower()
        related = [c.lower() for c in doc.related_concepts]
        for concept in intent.key_concepts:
            needle = concept.lower().strip()
            if not needle:
                continue
            if needle in text:
                score += w.concept
            if any(needle in rc for rc in related):
                score += 0.5 * w.concept

        for term in _query_terms(query):
            if term in text:
                score += self.lexical_overlap_bonus

        if options.prefer_high_confidence:
            score *= self.confidence_bonus.get(doc.confidence, 1.0)
        score *= self.source_type_bonus.get(doc.source_type, 1.0)
        return score

    def score_documents(
        self,
        query: str,
        intent: "Intent",
        options: RetrievalOptions | None = None,
    ) -> list[ScoredDocument]:
        """Score, filter (score > 0, confidence floor) and sort descending."""
        options = options or RetrievalOptions()
        floor = options.min_confidence.rank if options.min_confidence is not None else None

        scored: list[ScoredDocument] = []
        for doc in self.store:
            if floor is not None and _confidence_rank(doc.confidence) < floor:
                continue
            score = self.score_document(doc, query, intent, options)
            if score <= 0:
                continue
            scored.append(ScoredDocument(document=doc, score=score))

        # sorted() is stable: equal scores keep store order
        return sorted(scored, key=lambda s: s.score, reverse=True)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @staticmethod
    def diversify(
        ranked: Sequence[ScoredDocument],
        max_results: int,
        *,
        requires_comparison: bool,
    ) -> list[ScoredDocument]:
        """Admit results under per-discipline / per-culture caps, then backfill."""
        if max_results <= 0:
            return []

        cap = math.ceil(max_results / 2)
        discipline_counts: dict[str, int] = {}
        culture_counts: dict[str, int] = {}
        selected: list[ScoredDocument] = []
        selected_ids: set[str] = set()

        for item in ranked:
            if len(selected) >= max_results:
                break
            doc = item.document
            d_key = doc.primary_discipline
            c_key = doc.primary_culture.lower()
            if discipline_counts.get(d_key, 0) >= cap:
                continue
            if requires_comparison and culture_counts.get(c_key, 0) >= cap:
                continue
            selected.append(item)
            selected_ids.add(doc.id)
            discipline_counts[d_key] = discipline_counts.get(d_key, 0) + 1
            if requires_comparison:
                culture_counts[c_key] = culture_counts.get(c_key, 0) + 1

        if len(selected) < max_results:
            for item in ranked:
                if len(selected) >= max_results:
                    break
                if item.document.id in selected_ids:
                    continue
                selected.append(item)
                selected_ids.add(item.document.id)

        return selected

    def retrieve(
        self,
        query: str,
        intent: "Intent",
        options: RetrievalOptions | None = None,
    ) -> list[Document]:
        """Return at most ``options.max_results`` diversified documents, best first."""
        options = options or RetrievalOptions()
        ranked = self.score_documents(query, intent, options)
        chosen = self.diversify(
            ranked,
            options.max_results,
            requires_comparison=intent.requires_comparison,
        )
        logger.debug(
            "Retrieved %d/%d candidates: %s",
            len(chosen),
            len(ranked),
            ", ".join(f"{s.document.id}={s.score:.2f}" for s in chosen),
        )
        return [s.document for s in chosen]

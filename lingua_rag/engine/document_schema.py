"""Interpretive document model and the immutable document store.

Documents are validated once, when they are loaded, and never mutated afterwards.
A record that violates the controlled vocabularies is rejected with a
DocumentValidationError naming the document and field; nothing is silently dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Sequence

from .types import Confidence, Discipline, Era, SourceType, Stance


SUBFIELDS_BY_DISCIPLINE: dict[str, frozenset[str]] = {
    Discipline.LINGUISTICS.value: frozenset({
        "pragmatics",
        "sociolinguistics",
        "discourse_analysis",
        "semantics",
        "syntax",
        "phonology",
        "morphology",
        "historical_linguistics",
        "psycholinguistics",
        "applied_linguistics",
    }),
    Discipline.LITERATURE.value: frozenset({
        "literary_criticism",
        "comparative_literature",
        "postcolonial_literature",
        "genre_studies",
        "narrative_theory",
        "symbolism",
        "stylistics",
        "reception_theory",
    }),
    Discipline.CULTURAL_STUDIES.value: frozenset({
        "ethnography",
        "cultural_norms",
        "postcolonial_studies",
        "media_studies",
        "identity_studies",
        "diaspora_studies",
        "gender_studies",
        "power_relations",
    }),
}

ALL_SUBFIELDS: frozenset[str] = frozenset().union(*SUBFIELDS_BY_DISCIPLINE.values())

_DISCIPLINES = frozenset(d.value for d in Discipline)
_ERAS = frozenset(e.value for e in Era)
_STANCES = frozenset(s.value for s in Stance)
_CONFIDENCES = frozenset(c.value for c in Confidence)
_SOURCE_TYPES = frozenset(s.value for s in SourceType)


@dataclass(frozen=True)
class DocumentValidationError(Exception):
    """A knowledge-base record violates the document invariants."""
    code: str
    message: str
    doc_id: str = ""
    field: str = ""

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"


@dataclass(frozen=True)
class Document:
    id: str
    text: str
    discipline: tuple[str, ...]
    source: str
    subfield: tuple[str, ...] = ()
    culture: tuple[str, ...] = ()
    context: tuple[str, ...] = ()
    era: str = Era.CONTEMPORARY.value
    stance: str = Stance.DESCRIPTIVE.value
    confidence: str = Confidence.MEDIUM.value
    source_type: str = SourceType.ANALYSIS.value
    related_concepts: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()

    @property
    def primary_discipline(self) -> str:
        return self.discipline[0]

    @property
    def primary_culture(self) -> str:
        return self.culture[0] if self.culture else ""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _fail(code: str, message: str, *, doc_id: str, field: str) -> DocumentValidationError:
    return DocumentValidationError(code, message, doc_id=doc_id, field=field)


def _require_text(value: Any, *, doc_id: str, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise _fail("missing_field", f"Document '{doc_id}' requires a non-empty '{field}'.", doc_id=doc_id, field=field)
    return value


def _tags(value: Any, *, doc_id: str, field: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise _fail("schema_fail", f"Document '{doc_id}': '{field}' must be a list.", doc_id=doc_id, field=field)
    out: list[str] = []
    for i, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise _fail(
                "schema_fail",
                f"Document '{doc_id}': expected non-empty string at {field}[{i}].",
                doc_id=doc_id,
                field=field,
            )
        out.append(item.strip())
    return tuple(out)


def _require_member(value: Any, allowed: frozenset[str], *, doc_id: str, field: str) -> str:
    if value not in allowed:
        raise _fail(
            "vocabulary_fail",
            f"Document '{doc_id}': {field}={value!r} is not one of {sorted(allowed)}.",
            doc_id=doc_id,
            field=field,
        )
    return value


def validate_document(record: Mapping[str, Any]) -> Document:
    """Build a Document from a raw mapping, enforcing every invariant.

    Missing scalar fields take the load-time defaults (era=contemporary,
    stance=descriptive, confidence=medium, source_type=analysis).

    Raises:
        DocumentValidationError: naming the document id and the offending field.
    """
    raw_id = record.get("id")
    doc_id = raw_id if isinstance(raw_id, str) else ""
    _require_text(raw_id, doc_id=doc_id or "<unknown>", field="id")
    text = _require_text(record.get("text"), doc_id=doc_id, field="text")
    source = _require_text(record.get("source"), doc_id=doc_id, field="source")

    discipline = _tags(record.get("discipline"), doc_id=doc_id, field="discipline")
    if not discipline:
        raise _fail("missing_field", f"Document '{doc_id}' must have at least one discipline.", doc_id=doc_id, field="discipline")
    for tag in discipline:
        _require_member(tag, _DISCIPLINES, doc_id=doc_id, field="discipline")

    subfield = _tags(record.get("subfield"), doc_id=doc_id, field="subfield")
    allowed_subfields = frozenset().union(*(SUBFIELDS_BY_DISCIPLINE[d] for d in discipline))
    for tag in subfield:
        if tag not in allowed_subfields:
            raise _fail(
                "vocabulary_fail",
                f"Document '{doc_id}': subfield {tag!r} does not belong to disciplines {list(discipline)}.",
                doc_id=doc_id,
                field="subfield",
            )

    return Document(
        id=doc_id,
        text=text,
        discipline=discipline,
        source=source,
        subfield=subfield,
        culture=_tags(record.get("culture"), doc_id=doc_id, field="culture"),
        context=_tags(record.get("context"), doc_id=doc_id, field="context"),
        era=_require_member(record.get("era") or Era.CONTEMPORARY.value, _ERAS, doc_id=doc_id, field="era"),
        stance=_require_member(record.get("stance") or Stance.DESCRIPTIVE.value, _STANCES, doc_id=doc_id, field="stance"),
        confidence=_require_member(
            record.get("confidence") or Confidence.MEDIUM.value, _CONFIDENCES, doc_id=doc_id, field="confidence"
        ),
        source_type=_require_member(
            record.get("source_type") or SourceType.ANALYSIS.value, _SOURCE_TYPES, doc_id=doc_id, field="source_type"
        ),
        related_concepts=_tags(record.get("related_concepts"), doc_id=doc_id, field="related_concepts"),
        languages=_tags(record.get("languages"), doc_id=doc_id, field="languages"),
    )


# ---------------------------------------------------------------------------
# Filter helpers (an empty filter matches everything)
# ---------------------------------------------------------------------------


def matches_discipline(doc: Document, disciplines: Iterable[str]) -> bool:
    wanted = {d.lower() for d in disciplines}
    if not wanted:
        return True
    return any(d.lower() in wanted for d in doc.discipline)


def matches_culture(doc: Document, cultures: Iterable[str]) -> bool:
    wanted = [c.lower() for c in cultures]
    if not wanted:
        return True
    return any(w in label.lower() for w in wanted for label in doc.culture)


def matches_context(doc: Document, contexts: Iterable[str]) -> bool:
    wanted = [c.lower() for c in contexts]
    if not wanted:
        return True
    return any(w in label.lower() for w in wanted for label in doc.context)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class DocumentStore:
    """Immutable, pre-validated collection of interpretive documents.

    Built once at process start and shared read-only by every request.
    """

    __slots__ = ("_docs", "_by_id")

    def __init__(self, documents: Sequence[Document]):
        by_id: dict[str, Document] = {}
        for doc in documents:
            if doc.id in by_id:
                raise DocumentValidationError(
                    "duplicate_id", f"Duplicate document id '{doc.id}'.", doc_id=doc.id, field="id"
                )
            by_id[doc.id] = doc
        self._docs: tuple[Document, ...] = tuple(documents)
        self._by_id = by_id

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "DocumentStore":
        return cls([validate_document(r) for r in records])

    def __len__(self) -> int:
        return len(self._docs)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._docs)

    @property
    def documents(self) -> tuple[Document, ...]:
        return self._docs

    def get(self, doc_id: str) -> Document | None:
        return self._by_id.get(doc_id)

    def by_discipline(self, discipline: str) -> list[Document]:
        wanted = discipline.lower()
        return [d for d in self._docs if any(x.lower() == wanted for x in d.discipline)]

    def by_culture(self, culture: str) -> list[Document]:
        return [d for d in self._docs if matches_culture(d, [culture])]

    def by_subfield(self, subfield: str) -> list[Document]:
        wanted = subfield.lower()
        return [d for d in self._docs if any(x.lower() == wanted for x in d.subfield)]

    def search(self, query: str) -> list[Document]:
        """Case-insensitive substring search over text and related concepts."""
        q = query.lower()
        return [
            d for d in self._docs
            if q in d.text.lower() or any(q in c.lower() for c in d.related_concepts)
        ]

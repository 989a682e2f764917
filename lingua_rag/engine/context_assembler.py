"""Interpretive context assembly.

Packages ranked documents plus intent-sensitive epistemic reminders into the
grounding block handed to the generation stage. Pure and deterministic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from .document_schema import Document
from .types import Discipline, SourceType

if TYPE_CHECKING:
    from .intent_router import Intent

_DIVIDER = "─" * 60

NO_GROUNDING_MESSAGE = (
    "NO GROUNDING FOUND: no interpretive references matched this question.\n"
    "Reason from general principles of cultural-linguistic analysis, state that "
    "the answer is not grounded in specific literature, and use hedging language "
    "(often, typically, in some contexts) throughout."
)

_DISCIPLINE_CAVEATS: dict[Discipline, str] = {
    Discipline.LINGUISTICS: "Linguistic patterns are tendencies, not rules.",
    Discipline.CULTURAL_STUDIES: "Cultural practices are dynamic and internally diverse.",
    Discipline.LITERATURE: "Literary readings are situated, not definitive.",
}

_SOURCE_TYPE_LABELS: dict[str, str] = {
    SourceType.FEW_SHOT.value: "Few-Shot Example",
    SourceType.ETHNOGRAPHY.value: "Ethnographic Study",
    SourceType.JOURNAL.value: "Journal Article",
    SourceType.BOOK.value: "Book",
    SourceType.ANALYSIS.value: "Analysis",
}


def _fmt(values: Sequence[str]) -> str:
    return ", ".join(values) if values else "-"


def _format_document(idx: int, doc: Document) -> str:
    lines = [
        f"=== Reference {idx}: {doc.source} ===",
        f"[Discipline: {_fmt(doc.discipline)} | Subfield: {_fmt(doc.subfield)}]",
        f"[Cultures: {_fmt(doc.culture)}]",
        f"[Era: {doc.era} | Stance: {doc.stance} | Confidence: {doc.confidence}]",
        "",
        doc.text,
    ]
    return "\n".join(lines)


def epistemic_reminders(intent: "Intent") -> list[str]:
    reminders = [
        "Treat each reference as a perspective, not as fact.",
        "Acknowledge variation within each culture; no culture is monolithic.",
    ]
    if intent.requires_comparison:
        reminders.append("Avoid hierarchical judgment when comparing cultures.")
    caveat = _DISCIPLINE_CAVEATS.get(intent.primary_discipline)
    if caveat:
        reminders.append(caveat)
    return reminders


def assemble_context(documents: Sequence[Document], intent: "Intent") -> str:
    """Format ranked documents into a grounding block for the generation call.

    An empty list yields NO_GROUNDING_MESSAGE so the generator knows it is
    ungrounded.
    """
    if not documents:
        return NO_GROUNDING_MESSAGE

    lines: list[str] = [
        "INTERPRETIVE CONTEXT",
        f"Discipline: {intent.primary_discipline.value}",
        f"Cultures: {_fmt(intent.cultures_involved)}",
        "",
        "The following references are provided as GROUNDING, not as universal rules.",
        "Use them to inform your reasoning and apply the epistemic constraints strictly.",
        "",
    ]

    blocks = [_format_document(i, doc) for i, doc in enumerate(documents, start=1)]
    lines.append(f"\n\n{_DIVIDER}\n\n".join(blocks))

    lines.append("")
    lines.append("EPISTEMIC REMINDERS:")
    lines.extend(f"- {r}" for r in epistemic_reminders(intent))
    return "\n".join(lines)


def summarize_sources(documents: Sequence[Document]) -> list[str]:
    """One human-readable line per document, in retrieval order."""
    out: list[str] = []
    for doc in documents:
        label = _SOURCE_TYPE_LABELS.get(doc.source_type, "Reference")
        out.append(f"{label}: {doc.source} ({doc.confidence} confidence)")
    return out

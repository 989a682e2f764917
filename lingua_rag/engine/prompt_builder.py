"""Prompt construction for the generation, audit and legacy stages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import prompt_templates as PT
from .intent_router import to_legacy_intent

if TYPE_CHECKING:
    from .article_json_mode import ArticleOutput
    from .intent_router import Intent


def build_generation_prompt(
    *,
    question: str,
    intent: "Intent",
    interpretive_context: str,
    conversation_context: str = "",
) -> str:
    return PT.GENERATION_PROMPT_TEMPLATE.format(
        interpretive_context=interpretive_context,
        conversation_context=(conversation_context or "").strip() or "(none)",
        question=question,
        discipline=intent.primary_discipline.value,
        cultures=", ".join(intent.cultures_involved),
        interpretive_frame=intent.interpretive_frame,
    )


def build_audit_prompt(article: "ArticleOutput") -> str:
    return PT.AUDIT_PROMPT_TEMPLATE.format(article_json=article.to_json())


def format_few_shot_examples() -> str:
    return "\n".join(
        PT.FEW_SHOT_EXAMPLE_TEMPLATE.format(idx=i, question=q, answer=a)
        for i, (q, a) in enumerate(PT.FEW_SHOT_EXAMPLES, start=1)
    )


def build_legacy_prompt(
    *,
    question: str,
    intent: "Intent",
    interpretive_context: str,
    conversation_context: str = "",
) -> str:
    legacy = to_legacy_intent(intent)
    history_section = ""
    if conversation_context and conversation_context.strip():
        history_section = PT.HISTORY_CONTEXT_TEMPLATE.format(
            conversation_context=conversation_context.strip()
        )
    return PT.LEGACY_PROMPT_TEMPLATE.format(
        examples=format_few_shot_examples(),
        history_section=history_section,
        interpretive_context=interpretive_context,
        cultures=", ".join(legacy["cultures_involved"]),
        social_domain=legacy["social_domain"],
        query_type=legacy["query_type"],
        question=question,
    )

"""Data types for the generation pipeline.

Single Responsibility: Type definitions only. No logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Protocol

from .types import PipelineMode

if TYPE_CHECKING:
    from .article_json_mode import ArticleOutput


class LLMFn(Protocol):
    """Text-generation collaborator (Dependency Inversion).

    Returns raw text. In JSON mode the collaborator is asked for JSON only, but
    callers must still strip fences and validate the reply.
    """

    def __call__(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        json_mode: bool,
    ) -> str: ...


class StreamFn(Protocol):
    """Streaming text-generation collaborator; yields text chunks."""

    def __call__(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> Iterable[str]: ...


@dataclass
class GenerationConfig:
    """Mode-specific generation settings.

    Drives the differences between the primary (structured JSON) strategy and
    the legacy (streamed prose) strategy without separate code paths upstream.
    """

    mode: PipelineMode
    temperature: float = 0.7
    max_tokens: int = 4096
    json_mode: bool = True
    stream: bool = False
    audit_temperature: float = 0.3

    @classmethod
    def for_primary(
        cls,
        *,
        temperature: float = 0.7,
        audit_temperature: float = 0.3,
        max_tokens: int = 4096,
    ) -> "GenerationConfig":
        """Factory for the structured article strategy (JSON mode, single call)."""
        return cls(
            mode=PipelineMode.PRIMARY,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
            stream=False,
            audit_temperature=audit_temperature,
        )

    @classmethod
    def for_legacy(
        cls,
        *,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> "GenerationConfig":
        """Factory for the legacy strategy (prose, streamed, never audited)."""
        return cls(
            mode=PipelineMode.LEGACY,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=False,
            stream=True,
        )


@dataclass
class GenerationResult:
    """Outcome of one generation strategy.

    ``article`` is always a valid ArticleOutput: malformed replies have already
    been repaired.
    """

    article: "ArticleOutput"
    raw_llm_response: str
    mode: PipelineMode
    repaired: bool = False
    debug: dict[str, Any] = field(default_factory=dict)

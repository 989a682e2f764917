from __future__ import annotations

import html
import json
from dataclasses import dataclass
from typing import Any

REPAIR_SECTION_TITLE = "Response"
REPAIR_INTRO_CHARS = 200
CONCLUSION_HEADING = "Kesimpulan"


@dataclass(frozen=True)
class ArticleJSONValidationError(Exception):
    """Validation error for article JSON output.

    Validation is strict, but callers never surface it: any failure is
    handled by repair_article().
    """
    code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"


# ---------------------------------------------------------------------------
# Article model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ArticleText:
    text: str = ""


@dataclass(frozen=True)
class ArticleSection:
    title: str
    paragraph: str
    bullets: tuple[str, ...] = ()


@dataclass(frozen=True)
class ArticleOutput:
    intro: ArticleText
    sections: tuple[ArticleSection, ...]
    conclusion: ArticleText

    def to_dict(self) -> dict[str, Any]:
        return {
            "intro": {"text": self.intro.text},
            "sections": [
                {"title": s.title, "paragraph": s.paragraph, "bullets": list(s.bullets)}
                for s in self.sections
            ],
            "conclusion": {"text": self.conclusion.text},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)


# ---------------------------------------------------------------------------
# Article JSON Schema
# ---------------------------------------------------------------------------
# {
#   "intro": {"text": str},
#   "sections": [{"title": str, "paragraph": str, "bullets": [str, ...]}, ...],
#   "conclusion": {"text": str}
# }
# sections may be empty; bullets must be present but may be empty.

_TOP_KEYS = {"intro", "sections", "conclusion"}
_TEXT_KEYS = {"text"}
_SECTION_KEYS = {"title", "paragraph", "bullets"}


def _require_dict(obj: Any, *, path: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ArticleJSONValidationError("schema_fail", f"Expected object at {path}.", details={"path": path})
    return obj


def _require_list(obj: Any, *, path: str) -> list[Any]:
    if not isinstance(obj, list):
        raise ArticleJSONValidationError("schema_fail", f"Expected array at {path}.", details={"path": path})
    return obj


def _require_str(obj: Any, *, path: str) -> str:
    if not isinstance(obj, str):
        raise ArticleJSONValidationError("schema_fail", f"Expected string at {path}.", details={"path": path})
    return obj


def _require_keys(d: dict[str, Any], *, keys: set[str], path: str) -> None:
    extra = sorted(set(d.keys()) - keys)
    missing = sorted(keys - set(d.keys()))
    if extra or missing:
        raise ArticleJSONValidationError(
            "unknown_fields",
            f"Invalid keys at {path}.",
            details={"path": path, "extra": extra, "missing": missing},
        )


def validate_article_json(obj: Any) -> ArticleOutput:
    """Validate parsed JSON against the article schema.

    Raises:
        ArticleJSONValidationError: naming the first offending field/index.
    """
    root = _require_dict(obj, path="$")
    _require_keys(root, keys=_TOP_KEYS, path="$")

    intro = _require_dict(root["intro"], path="$.intro")
    _require_keys(intro, keys=_TEXT_KEYS, path="$.intro")
    intro_text = _require_str(intro["text"], path="$.intro.text")

    sections: list[ArticleSection] = []
    for i, item in enumerate(_require_list(root["sections"], path="$.sections")):
        s = _require_dict(item, path=f"$.sections[{i}]")
        _require_keys(s, keys=_SECTION_KEYS, path=f"$.sections[{i}]")
        title = _require_str(s["title"], path=f"$.sections[{i}].title")
        paragraph = _require_str(s["paragraph"], path=f"$.sections[{i}].paragraph")
        bullets = [
            _require_str(b, path=f"$.sections[{i}].bullets[{j}]")
            for j, b in enumerate(_require_list(s["bullets"], path=f"$.sections[{i}].bullets"))
        ]
        sections.append(ArticleSection(title=title, paragraph=paragraph, bullets=tuple(bullets)))

    conclusion = _require_dict(root["conclusion"], path="$.conclusion")
    _require_keys(conclusion, keys=_TEXT_KEYS, path="$.conclusion")
    conclusion_text = _require_str(conclusion["text"], path="$.conclusion.text")

    return ArticleOutput(
        intro=ArticleText(intro_text),
        sections=tuple(sections),
        conclusion=ArticleText(conclusion_text),
    )


def strip_code_fence(raw_text: str) -> str:
    """Remove an enclosing ``` / ```json fence if present."""
    text = (raw_text or "").strip()
    if text.startswith("```"):
        lines = text.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def validate_article_json_soft(raw_text: str) -> tuple[ArticleOutput | None, str | None]:
    """Attempt strict parse + validation without raising.

    Returns:
        (article, None) on success, (None, error_reason) on failure.
    """
    try:
        parsed = json.loads(strip_code_fence(raw_text))
    except (json.JSONDecodeError, RecursionError) as e:
        return None, f"json_parse_fail: {e}"

    try:
        return validate_article_json(parsed), None
    except ArticleJSONValidationError as e:
        return None, f"{e.code}: {e.message}"


def repair_article(raw_text: str) -> ArticleOutput:
    """Synthesize a minimal valid article from arbitrary text."""
    raw = raw_text if isinstance(raw_text, str) else ""
    return ArticleOutput(
        intro=ArticleText(raw[:REPAIR_INTRO_CHARS]),
        sections=(ArticleSection(title=REPAIR_SECTION_TITLE, paragraph=raw, bullets=()),),
        conclusion=ArticleText(""),
    )


def parse_article_response(raw_text: str) -> ArticleOutput:
    """Parse LLM output into an ArticleOutput. Never raises."""
    article, _ = validate_article_json_soft(raw_text)
    if article is None:
        return repair_article(raw_text)
    return article


# ---------------------------------------------------------------------------
# Deterministic renderers
# ---------------------------------------------------------------------------


def render_article_markdown(article: ArticleOutput, *, conclusion_heading: str = CONCLUSION_HEADING) -> str:
    """Render an article to markdown. Pure: same input, byte-identical output."""
    lines: list[str] = []

    if article.intro.text:
        lines.append(article.intro.text)
        lines.append("")

    for section in article.sections:
        if section.title:
            lines.append(f"## {section.title}")
            lines.append("")
        if section.paragraph:
            lines.append(section.paragraph)
            lines.append("")
        if section.bullets:
            lines.extend(f"- {item}" for item in section.bullets)
            lines.append("")

    if article.conclusion.text:
        lines.append(f"## {conclusion_heading}")
        lines.append("")
        lines.append(article.conclusion.text)

    return "\n".join(lines).strip()


def render_article_html(article: ArticleOutput, *, conclusion_heading: str = CONCLUSION_HEADING) -> str:
    """Render an article to escaped HTML fragments."""
    esc = html.escape
    parts: list[str] = []

    if article.intro.text:
        parts.append(f'<p class="intro">{esc(article.intro.text)}</p>')

    for section in article.sections:
        parts.append("<section>")
        if section.title:
            parts.append(f"<h2>{esc(section.title)}</h2>")
        if section.paragraph:
            parts.append(f"<p>{esc(section.paragraph)}</p>")
        if section.bullets:
            parts.append("<ul>")
            parts.extend(f"<li>{esc(item)}</li>" for item in section.bullets)
            parts.append("</ul>")
        parts.append("</section>")

    if article.conclusion.text:
        parts.append('<section class="conclusion">')
        parts.append(f"<h2>{esc(conclusion_heading)}</h2>")
        parts.append(f"<p>{esc(article.conclusion.text)}</p>")
        parts.append("</section>")

    return "".join(parts)

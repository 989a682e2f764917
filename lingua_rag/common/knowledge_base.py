"""Knowledge-base loading.

Reads data/knowledge_base.yaml (or the configured path), checks the file shape
with pydantic, validates every record against the document vocabularies and
returns an immutable DocumentStore. Loading happens once per path per process.
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path

import yaml

from ..engine.document_schema import DocumentStore
from .config_loader import load_settings, validate_knowledge_base_file

logger = logging.getLogger(__name__)


def read_knowledge_base(path: Path | str) -> DocumentStore:
    """Parse and validate a knowledge-base YAML file (uncached).

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the file shape is invalid.
        DocumentValidationError: if any record violates the document invariants.
    """
    kb_path = Path(path)
    if not kb_path.exists():
        raise FileNotFoundError(f"Knowledge base not found: {kb_path}")

    with open(kb_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid knowledge base file '{kb_path}': top level must be a mapping")

    parsed = validate_knowledge_base_file(raw, path=kb_path)
    store = DocumentStore.from_records(rec.model_dump() for rec in parsed.documents)
    logger.info("Knowledge base loaded: %d documents from %s", len(store), kb_path)
    return store


@functools.lru_cache(maxsize=4)
def _load_cached(path: str) -> DocumentStore:
    return read_knowledge_base(path)


def load_knowledge_base(path: Path | str | None = None) -> DocumentStore:
    """Return the shared DocumentStore for ``path`` (default: settings path)."""
    resolved = Path(path) if path is not None else load_settings().knowledge_base_path
    return _load_cached(str(resolved.resolve()))


def clear_knowledge_base_cache() -> None:
    """Drop cached stores (useful for testing)."""
    _load_cached.cache_clear()

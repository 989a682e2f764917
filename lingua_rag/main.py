import argparse
import json
import logging
import os

from .engine.article_json_mode import render_article_html, validate_article_json
from .engine.conversation import HistoryMessage
from .engine.document_schema import DocumentValidationError
from .engine.types import RAGEngineError
from .services.ask import AskResult, ask, build_pipeline
from .common.config_loader import load_settings


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cultural-linguistic RAG CLI")
    parser.add_argument(
        "--question",
        "-q",
        default="",
        help="Answer a single question and exit (default: interactive loop)",
    )
    parser.add_argument(
        "--no-audit",
        action="store_true",
        help="Skip the epistemic audit pass",
    )
    parser.add_argument(
        "--no-references",
        action="store_true",
        help="Do not list the reference sources under the answer",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "--json",
        action="store_true",
        help="Print the full result (article, intent, sources) as JSON",
    )
    output.add_argument(
        "--html",
        action="store_true",
        help="Print the article rendered as HTML",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log pipeline stages (DEBUG level)",
    )
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.getenv("LINGUA_LOG_LEVEL", "WARNING")
    level = getattr(logging, level_name.strip().upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def format_result(result: AskResult, *, as_json: bool = False, as_html: bool = False) -> str:
    if as_json:
        return json.dumps(
            {
                "answer": result.answer,
                "article": result.article,
                "references": result.references,
                "intent": result.intent,
                "mode": result.mode,
                "audit_status": result.audit_status,
            },
            ensure_ascii=False,
            indent=2,
        )

    if as_html:
        body = render_article_html(validate_article_json(result.article))
    else:
        body = result.answer

    if not result.references:
        return body
    refs = "\n".join(f"- {ref}" for ref in result.references)
    return f"{body}\n\nREFERENCES:\n{refs}"


def run(argv: list[str] | None = None):
    args = parse_args(argv)
    _configure_logging(args.verbose)

    settings = load_settings()
    try:
        pipeline = build_pipeline(settings=settings)
    except (OSError, ValueError, DocumentValidationError) as err:
        raise SystemExit(f"Failed to load knowledge base: {err}")

    ask_kwargs = {
        "enable_auditor": False if args.no_audit else None,
        "include_references": False if args.no_references else None,
        "pipeline": pipeline,
    }

    if args.question.strip():
        try:
            result = ask(question=args.question, **ask_kwargs)
        except RAGEngineError as err:
            raise SystemExit(f"Unable to answer the question: {err}")
        print(format_result(result, as_json=args.json, as_html=args.html))
        return

    print("Cultural-linguistic RAG ready. Type 'quit' to exit.")

    history: list[HistoryMessage] = []
    while True:
        try:
            question = input("\nEnter a question: ")
        except EOFError:
            print("Goodbye!")
            break
        if question.strip().lower() in {"quit", "exit"}:
            print("Goodbye!")
            break
        if not question.strip():
            continue

        try:
            result = ask(question=question, history=list(history), **ask_kwargs)
        except RAGEngineError as err:
            print(f"Unable to answer the question: {err}")
            continue

        history.append(HistoryMessage(role="user", content=question))
        history.append(HistoryMessage(role="assistant", content=result.answer))

        print("\nANSWER:")
        print(format_result(result, as_json=args.json, as_html=args.html))


if __name__ == "__main__":
    run()

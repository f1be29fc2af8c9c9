"""
explainer-eval CLI Runner

Usage:
    explainer-eval evaluate --url https://youtu.be/abc --purpose "teach X" --all
    explainer-eval evaluate --url https://youtu.be/abc --metric "Pacing and speed of narration"
    explainer-eval title get --url https://youtu.be/abc
    explainer-eval title set --url https://youtu.be/abc --title "Binary search explained"
    explainer-eval metrics
    explainer-eval serve --port 3000
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from functools import partial
from pathlib import Path

from dotenv import load_dotenv

from explainer_eval.domain.constants import METRIC_CATALOG
from explainer_eval.domain.entities import EvaluationOutcome, EvaluationRequest
from explainer_eval.domain.exceptions import EvaluatorError
from explainer_eval.evaluator_config import EvaluatorConfig, load_config
from explainer_eval.infrastructure.model_clients.factory import create_backend, create_client
from explainer_eval.logging_config import setup_logging
from explainer_eval.title_store import JsonFileTitleStore
from explainer_eval.use_cases.evaluation import evaluate_all, evaluate_metric, outcome_to_frame
from explainer_eval.use_cases.health_check import run_health_check


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="explainer-eval",
        description="explainer-eval: Score educational video descriptions with an LLM",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    evaluate = subparsers.add_parser("evaluate", help="Evaluate a video description")
    evaluate.add_argument("--url", required=True, help="Video URL (used as the identifier)")
    evaluate.add_argument("--video-type", default=None, help="Video type (e.g. tutorial, project walkthrough)")
    evaluate.add_argument("--purpose", default=None, help="Purpose of the video")
    evaluate.add_argument("--key-concepts", default=None, help="Key concepts covered")
    evaluate.add_argument("--justifications", default=None, help="Justifications of technical decisions")
    evaluate.add_argument("--goal", default=None, help="Evaluation goal")
    evaluate.add_argument("--title", default=None, help="Title (default: stored title for the URL)")
    selection = evaluate.add_mutually_exclusive_group(required=True)
    selection.add_argument("--metric", default=None, help="Evaluate a single metric")
    selection.add_argument("--all", action="store_true", help="Evaluate every metric in the catalog")
    evaluate.add_argument(
        "--output-dir",
        default="results",
        help="Directory for output files (default: results)",
    )
    evaluate.add_argument(
        "--skip-health-check",
        action="store_true",
        help="Skip the backend health check before evaluating",
    )

    title = subparsers.add_parser("title", help="Read or store a video title")
    title_sub = title.add_subparsers(dest="title_command", required=True)
    title_get = title_sub.add_parser("get", help="Show the stored title for a URL")
    title_get.add_argument("--url", required=True)
    title_set = title_sub.add_parser("set", help="Store a title for a URL")
    title_set.add_argument("--url", required=True)
    title_set.add_argument("--title", required=True)

    subparsers.add_parser("metrics", help="List the metric catalog")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind host (default: HOST from .env)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT from .env)")

    return parser.parse_args(argv)


def _title_store(config: EvaluatorConfig) -> JsonFileTitleStore:
    return JsonFileTitleStore(config.storage.title_store_path, seed_path=config.storage.seed_path)


def print_outcome(outcome: EvaluationOutcome) -> None:
    """Print metric scores, feedback and common improvements."""
    if not outcome.metric_results:
        print("=== Raw Reply (no structured results recovered) ===\n")
        print(outcome.raw_text)
        print()
        return

    print("=== Scores ===\n")
    print(f"  {'Metric':<45} {'Score':>6}")
    print(f"  {'-'*45} {'-'*6}")
    for r in outcome.metric_results:
        print(f"  {r.metric:<45} {r.score:>6}")
    print()

    print("=== Feedback ===\n")
    for r in outcome.metric_results:
        print(f"  {r.metric}")
        print(f"    {r.feedback}")
        print()

    if outcome.common_improvements:
        print("=== Common Improvement Suggestions ===\n")
        for i, suggestion in enumerate(outcome.common_improvements, start=1):
            print(f"  {i}. {suggestion}")
        print()


def cmd_evaluate(args: argparse.Namespace, config: EvaluatorConfig) -> int:
    request = EvaluationRequest(
        url=args.url,
        video_type=args.video_type,
        purpose=args.purpose,
        key_concepts=args.key_concepts,
        justifications=args.justifications,
        goal=args.goal,
        title=args.title,
    )
    run_id = datetime.now().strftime("%Y%m%d_%H%M%S")

    print(f"\n=== Evaluating: {request.url} ===\n")
    print(f"  Metrics:    {'all (' + str(len(METRIC_CATALOG)) + ')' if args.all else args.metric}")
    print(f"  Strategies: {config.backend.strategies}")
    print(f"  Model:      {config.backend.model}")
    print(f"  Run ID:     {run_id}")
    print()

    if not args.skip_health_check:
        available, _ = run_health_check(
            config.backend.strategies, partial(create_client, config=config),
        )
        if not available:
            print("ERROR: No backend strategy available. Exiting.")
            return 1

    backend = create_backend(config)
    title_store = _title_store(config)
    try:
        if args.all:
            outcome = evaluate_all(request, backend, title_store)
        else:
            outcome = evaluate_metric(request, args.metric, backend, title_store)
    finally:
        backend.close()

    print_outcome(outcome)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / f"evaluation_{run_id}.csv"
    raw_path = output_dir / f"raw_{run_id}.txt"
    outcome_to_frame(outcome, request.url).to_csv(csv_path, index=False)
    raw_path.write_text(outcome.raw_text, encoding="utf-8")

    print("=== Output ===\n")
    print(f"  Results:   {csv_path}")
    print(f"  Raw reply: {raw_path}")
    print()
    return 0


def cmd_title(args: argparse.Namespace, config: EvaluatorConfig) -> int:
    store = _title_store(config)
    if args.title_command == "get":
        title = store.get(args.url)
        print(title if title else "No stored title for this URL.")
    else:
        store.set(args.url, args.title)
        print(f"Saved title for {args.url}")
    return 0


def cmd_metrics() -> int:
    for i, metric in enumerate(METRIC_CATALOG, start=1):
        print(f"{i:>2}. {metric}")
    return 0


def cmd_serve(args: argparse.Namespace, config: EvaluatorConfig) -> int:
    import uvicorn

    from explainer_eval.api import create_app

    uvicorn.run(
        create_app(config),
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_config=None,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    config = load_config()
    setup_logging(config.server.log_level, config.server.log_json)

    try:
        if args.command == "evaluate":
            return cmd_evaluate(args, config)
        if args.command == "title":
            return cmd_title(args, config)
        if args.command == "metrics":
            return cmd_metrics()
        return cmd_serve(args, config)
    except EvaluatorError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

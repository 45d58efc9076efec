"""Application entrypoint — start the API server or run one-off commands."""

from __future__ import annotations

import argparse
import asyncio
import csv
import json
import sys
from datetime import datetime
from pathlib import Path

import uvicorn
from pydantic import ValidationError

from affect_score.config import get_settings
from affect_score.errors import AffectScoreError, InvalidSampleError
from affect_score.logger import setup_logging
from affect_score.model_store import ModelStore
from affect_score.pipeline import PipelineCoordinator


async def _replay(path: Path, coordinator: PipelineCoordinator) -> int:
    """Feed a CSV of samples through the pipeline, one tick per row.

    Required columns are ``hr`` and ``hrv``; ``motion`` and an ISO
    ``timestamp`` are optional.  Every emitted score is printed as a JSON
    line.  Returns the number of emitted cycles.

    Raises InvalidSampleError naming the file line of the first row that
    is missing a column or holds an unparseable or non-finite value.
    """
    emitted = 0
    try:
        fh = path.open(newline="", encoding="utf-8")
    except OSError as exc:
        raise InvalidSampleError(f"Cannot read {path}: {exc}") from exc
    with fh:
        reader = csv.DictReader(fh)
        for row in reader:
            where = f"{path}:{reader.line_num}"
            try:
                ts = row.get("timestamp")
                coordinator.push(
                    float(row["hr"]),
                    float(row["hrv"]),
                    float(row.get("motion") or 0.0),
                    datetime.fromisoformat(ts) if ts else None,
                )
            except KeyError as exc:
                raise InvalidSampleError(f"{where}: missing column {exc}") from exc
            except ValidationError as exc:
                err = exc.errors()[0]
                field = ".".join(str(part) for part in err["loc"])
                raise InvalidSampleError(f"{where}: {field}: {err['msg']}") from exc
            except (TypeError, ValueError) as exc:
                raise InvalidSampleError(f"{where}: {exc}") from exc
            outcome = await coordinator.tick()
            if outcome.score is not None:
                print(outcome.score.model_dump_json())
                emitted += 1
    return emitted


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="affect-score",
        description="HR/HRV emotion inference and wellness-impact scoring.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── serve ─────────────────────────────────────────────────
    serve_parser = sub.add_parser("serve", help="Start the API server.")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")

    # ── replay ────────────────────────────────────────────────
    replay_parser = sub.add_parser("replay", help="Run a CSV of samples through the pipeline.")
    replay_parser.add_argument("csv", type=Path)

    # ── inspect-model ─────────────────────────────────────────
    inspect_parser = sub.add_parser("inspect-model", help="Validate and describe a model file.")
    inspect_parser.add_argument("path", nargs="?", default=None)

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "serve":
        uvicorn.run(
            "affect_score.api.server:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            reload=args.reload,
        )
    elif args.command == "replay":
        try:
            coordinator = PipelineCoordinator.from_settings(settings)
            emitted = asyncio.run(_replay(args.csv, coordinator))
        except AffectScoreError as exc:
            print(f"error [{exc.code}]: {exc.message}", file=sys.stderr)
            sys.exit(2)
        print(f"Replay finished: {emitted} results emitted.", file=sys.stderr)
    elif args.command == "inspect-model":
        store = ModelStore()
        try:
            params = store.load(args.path) if args.path else store.load_default()
        except AffectScoreError as exc:
            print(f"error [{exc.code}]: {exc.message}", file=sys.stderr)
            sys.exit(2)
        print(
            json.dumps(
                {
                    "source": store.source,
                    "classes": list(params.classes),
                    "n_features": params.n_features,
                    "feature_order": list(params.feature_order),
                    "provenance": params.provenance(),
                },
                indent=2,
            )
        )
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Application entrypoint: start the API server or run one-off commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import uvicorn

from vibeshift.config import get_settings
from vibeshift.logger import setup_logging


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="vibeshift",
        description="Mood-shifting playlist curves driven by a contextual bandit.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── serve ─────────────────────────────────────────────────
    serve_parser = sub.add_parser("serve", help="Start the API server.")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")

    # ── init-db ───────────────────────────────────────────────
    sub.add_parser("init-db", help="Create database tables.")

    # ── mood ──────────────────────────────────────────────────
    mood_parser = sub.add_parser("mood", help="Compute mood from a signal snapshot JSON file.")
    mood_parser.add_argument("snapshot", type=Path)

    # ── curve ─────────────────────────────────────────────────
    curve_parser = sub.add_parser("curve", help="Print the target curve for a mood and gains.")
    curve_parser.add_argument("--mood", type=float, required=True)
    curve_parser.add_argument("--n", type=int, default=None)
    curve_parser.add_argument("--bpm", type=float, default=None)
    curve_parser.add_argument("--kv", type=float, default=0.6)
    curve_parser.add_argument("--ke", type=float, default=0.4)
    curve_parser.add_argument("--kt", type=float, default=0.3)
    curve_parser.add_argument("--kd", type=float, default=0.2)

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "serve":
        uvicorn.run(
            "vibeshift.api.server:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            reload=args.reload,
        )
    elif args.command == "init-db":
        from vibeshift.storage.database import init_db

        asyncio.run(init_db())
        print("Database tables created.")
    elif args.command == "mood":
        from vibeshift.affect.mood import compute_mood
        from vibeshift.models import SignalSnapshot

        snapshot = SignalSnapshot.model_validate_json(args.snapshot.read_text(encoding="utf-8"))
        print(json.dumps({"mood": compute_mood(snapshot)}))
    elif args.command == "curve":
        from vibeshift.models import Action
        from vibeshift.playlist.curve import make_playlist

        n = args.n or settings.default_session_length
        action = Action(id="cli", kv=args.kv, ke=args.ke, kt=args.kt, kd=args.kd, N=n)
        targets = make_playlist(
            args.mood,
            action,
            n,
            base_bpm=args.bpm or settings.default_base_bpm,
            neutral=settings.curve_neutral,
        )
        print(json.dumps([t.model_dump(mode="json") for t in targets], indent=2))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

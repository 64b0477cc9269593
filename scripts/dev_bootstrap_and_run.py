#!/usr/bin/env python3
"""Prep and launch the questlog tracker with one command.

The script mirrors `manage.py` by loading `.env`, (optionally) blowing away the
local SQLite database, running migrations, and finally starting the Django
development server on `PORT` (default 8080).

Examples
--------
python scripts/dev_bootstrap_and_run.py
python scripts/dev_bootstrap_and_run.py --reset
python scripts/dev_bootstrap_and_run.py --no-server
"""
from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path
from typing import Iterable, List

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
MANAGE_DIR = ROOT / "questlog"
PYTHON = sys.executable
DB_PATH = MANAGE_DIR / "db.sqlite3"
DEFAULT_PORT = "8080"


def load_env_file() -> None:
    """Load environment variables from `.env` if it exists."""
    env_path = ROOT / ".env"
    if env_path.exists():
        load_dotenv(env_path)


def default_runserver_addr() -> str:
    explicit = os.getenv("RUNSERVER_ADDR")
    if explicit:
        return explicit
    return f"127.0.0.1:{os.getenv('PORT') or DEFAULT_PORT}"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Migrate the tracker database and launch the dev server."
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete the local SQLite database before migrating.",
    )
    parser.add_argument(
        "--no-server",
        action="store_true",
        help="Perform setup tasks but do not launch the Django development server.",
    )
    parser.add_argument(
        "--runserver-addr",
        default=None,
        help="Host:port passed to runserver (env RUNSERVER_ADDR, else 127.0.0.1:$PORT).",
    )
    parser.add_argument(
        "--runserver-arg",
        dest="runserver_args",
        action="append",
        default=[],
        help="Additional argument to pass to runserver (can be repeated).",
    )
    return parser.parse_args()


def build_commands(args: argparse.Namespace) -> List[List[str]]:
    commands: List[List[str]] = [
        [PYTHON, "manage.py", "migrate"],
    ]
    if not args.no_server:
        runserver: List[str] = [PYTHON, "manage.py", "runserver", args.runserver_addr or default_runserver_addr()]
        if args.runserver_args:
            runserver.extend(args.runserver_args)
        commands.append(runserver)
    return commands


def run_command(cmd: Iterable[str]) -> None:
    command_list = list(cmd)
    display = " ".join(command_list)
    print(f"\n=== Running: {display}\n", flush=True)
    subprocess.run(command_list, cwd=MANAGE_DIR, check=True)


def reset_datastore() -> None:
    if not DB_PATH.exists():
        print(">>> No SQLite file found; nothing to reset.", flush=True)
        return
    print(f"\n=== Removing {DB_PATH} for a clean reset\n", flush=True)
    for path in (DB_PATH, DB_PATH.with_name(DB_PATH.name + "-journal")):
        try:
            path.unlink()
        except FileNotFoundError:
            pass


def main() -> None:
    load_env_file()

    if not MANAGE_DIR.exists():
        raise SystemExit(f"Expected manage.py directory at {MANAGE_DIR}")

    args = parse_args()
    if args.reset:
        reset_datastore()

    for cmd in build_commands(args):
        try:
            run_command(cmd)
        except subprocess.CalledProcessError as exc:
            print(
                f"Command failed (exit {exc.returncode}): {' '.join(cmd)}",
                file=sys.stderr,
                flush=True,
            )
            raise SystemExit(exc.returncode) from exc


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nAborted by user.\n", flush=True)

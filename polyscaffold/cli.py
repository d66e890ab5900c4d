from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Sequence


def _split_ids(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _default_root() -> str:
    from .foundation.config_io import find_repo_root

    try:
        return find_repo_root()
    except FileNotFoundError:
        return os.getcwd()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="polyscaffold", add_help=True)
    sub = parser.add_subparsers(dest="command", required=True)

    scaffold = sub.add_parser("scaffold", help="Create a project from features")
    scaffold.add_argument("project_name")
    scaffold.add_argument("--features", default=None, help="Comma-separated feature ids")
    scaffold.add_argument("--answers", default=None, help="YAML file with question answers")
    scaffold.add_argument("--project-dir", default=None, help="Target directory (default: ./<project_name>)")
    scaffold.add_argument("--dry-run", action="store_true", help="Print the execution plan only")

    sub.add_parser("list-features", help="List available features")

    for name, help_text in (
        ("analyze", "Report duplicates, unused catalog entries and suggestions"),
        ("optimize", "Report (or apply) catalog optimizations"),
        ("migrate", "Move shared dependencies into the catalog"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--project-dir", default=None, help="Workspace root (default: discovered)")
        if name == "optimize":
            cmd.add_argument("--apply", action="store_true", help="Apply suggestions")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    if args.command == "scaffold":
        from .app.scaffold import load_answers, run_scaffold
        from .foundation.logging_utils import configure_stdio_utf8

        configure_stdio_utf8()
        answers = load_answers(args.answers) if args.answers else {}
        outcome = run_scaffold(
            args.project_name,
            project_dir=args.project_dir,
            features=_split_ids(args.features),
            answers=answers,
            dry_run=args.dry_run,
        )
        if outcome.dry_run:
            for planned in outcome.plan:
                marker = "run " if planned.active else "skip"
                print(f"{marker} {planned.feature_id}/{planned.stage_name}")
        else:
            print(f"Created {args.project_name} at {outcome.project_dir}")
        return 0

    if args.command == "list-features":
        from .features import get_feature_registry

        for row in get_feature_registry().describe():
            depends = ", ".join(row["depends_on"]) or "-"
            print(f"{row['feature_id']}: {row['name']} (depends on: {depends})")
        return 0

    if args.command in ("analyze", "optimize", "migrate"):
        from .app import deps

        project_dir = os.path.abspath(args.project_dir or _default_root())
        if args.command == "analyze":
            payload = deps.analyze(project_dir)
        elif args.command == "optimize":
            payload = deps.optimize(project_dir, apply=args.apply)
        else:
            payload = deps.migrate(project_dir)
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))

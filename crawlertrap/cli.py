from __future__ import annotations

import argparse
import json
import logging
import sys

import uvicorn


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crawlertrap")
    sub = parser.add_subparsers(dest="subcommand")

    # --- serve ---
    serve = sub.add_parser("serve", help="Run the trap site")
    serve.add_argument("--host", default=None, help="Bind host (default: settings host)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: settings port)")
    serve.add_argument("--config", default=None, help="YAML settings file")
    serve.add_argument(
        "--log-level",
        default=None,
        choices=["critical", "error", "warning", "info", "debug"],
        help="Log level for the app and uvicorn",
    )

    # --- read-only helpers ---
    visitors = sub.add_parser("visitors", help="Print every retained visitor as JSON")
    visitors.add_argument("--config", default=None, help="YAML settings file")

    settings = sub.add_parser("settings", help="Print the effective settings")
    settings.add_argument("--config", default=None, help="YAML settings file")

    return parser


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.subcommand is None:
        parser.print_help()
        return 2

    # Lazy imports so --help never touches settings or the data dir
    from crawlertrap.settings import get_settings

    s = get_settings(args.config)

    if args.subcommand == "serve":
        log_level = args.log_level or s.log_level
        _configure_logging(log_level)

        from crawlertrap.server import create_app

        uvicorn.run(
            create_app(s),
            host=args.host or s.host,
            port=args.port or s.port,
            log_level=log_level,
        )
        return 0

    if args.subcommand == "visitors":
        _configure_logging(s.log_level)

        from crawlertrap.visitors import VisitorLog

        log = VisitorLog(s.visitor_log_path)
        print(json.dumps([v.to_record() for v in log.get_all()], indent=2, ensure_ascii=False))
        return 0

    if args.subcommand == "settings":
        print(s.model_dump_json(indent=2))
        return 0

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())

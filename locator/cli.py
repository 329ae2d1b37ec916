#!/usr/bin/env python3
"""Headless control of the locator services.

Usage examples:
  # Share location with a server and report once
  python -m locator.cli enable --url https://example.test/report

  # Show settings and background task registration
  python -m locator.cli status

  # Keep the background task running in a terminal session (e.g. Termux)
  python -m locator.cli run
"""

from __future__ import annotations

import argparse
import time
from typing import List, Optional

from .exceptions import StorageWriteError
from .services import Services, create_services
from .workflow import STATUS_SAVE_FAILED, WorkflowResult


def _print_result(result: WorkflowResult) -> None:
    print(result.status_text)
    if result.outcome is not None:
        line = f"Report {result.outcome.status.value}"
        if result.outcome.status_code is not None:
            line += f" (HTTP {result.outcome.status_code})"
        if result.outcome.error:
            line += f": {result.outcome.error}"
        print(line)


def _print_toggle(result: WorkflowResult) -> int:
    _print_result(result)
    return 1 if result.status_text == STATUS_SAVE_FAILED else 0


def cmd_status(services: Services, args) -> int:
    settings = services.settings_store.get()
    status = services.workflow.refresh_status()
    print(f"Share location: {'on' if settings.enabled else 'off'}")
    print(f"Server URL: {settings.url or '(not set)'}")
    print(f"Background fetch: {status.available.value}, "
          f"{'registered' if status.is_registered else 'not registered'}")
    return 0


def cmd_enable(services: Services, args) -> int:
    if args.url is not None:
        try:
            services.workflow.set_url(args.url)
        except StorageWriteError as exc:
            print(exc)
            return 1
    return _print_toggle(services.workflow.set_enabled(True))


def cmd_disable(services: Services, args) -> int:
    return _print_toggle(services.workflow.set_enabled(False))


def cmd_set_url(services: Services, args) -> int:
    try:
        settings = services.workflow.set_url(args.url)
    except StorageWriteError as exc:
        print(exc)
        return 1
    print(f"Server URL: {settings.url or '(not set)'}")
    return 0


def cmd_report(services: Services, args) -> int:
    result = services.workflow.run()
    _print_result(result)
    return 0 if result.outcome is not None and result.outcome.ok else 1


def cmd_run(services: Services, args) -> int:
    print(f"Background task {services.config.TASK_ID} active; Ctrl+C to stop")
    try:
        while True:
            time.sleep(args.poll)
    except KeyboardInterrupt:
        pass
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="locator", description="Share this device's location with a server.")
    ap.add_argument("--env", default=None, choices=["development", "production", "testing"],
                    help="config to use (default: LOCATOR_ENV or development)")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="show settings and background task status").set_defaults(func=cmd_status)

    p = sub.add_parser("enable", help="turn location sharing on and report once")
    p.add_argument("--url", help="server URL to report to")
    p.set_defaults(func=cmd_enable)

    sub.add_parser("disable", help="turn location sharing off").set_defaults(func=cmd_disable)

    p = sub.add_parser("set-url", help="change the server URL")
    p.add_argument("url")
    p.set_defaults(func=cmd_set_url)

    sub.add_parser("report", help="locate and report now").set_defaults(func=cmd_report)

    p = sub.add_parser("run", help="keep the background scheduler running")
    p.add_argument("--poll", type=float, default=1.0, help=argparse.SUPPRESS)
    p.set_defaults(func=cmd_run)
    return ap


def main(argv: Optional[List[str]] = None, services: Optional[Services] = None) -> int:
    args = build_parser().parse_args(argv)
    own_services = services is None
    if own_services:
        # Only `run` executes jobs; other commands just read or edit the job store
        services = create_services(args.env, paused=args.command != "run")
    try:
        return args.func(services, args)
    finally:
        if own_services:
            services.shutdown()


if __name__ == "__main__":
    raise SystemExit(main())

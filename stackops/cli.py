from __future__ import annotations

import argparse
import json
import sys
from typing import Any

import uvicorn

from . import console, db
from .alerts import send_email
from .docker_ops import ContainerRuntime, RuntimeOpError
from .health import probe_stack
from .reconciler import ALL, RestartReconciler, status_table
from .settings import settings
from .stack import StackConfig, configured_stack
from .updates import UpdateChecker


def _compose_hint(runtime: Any) -> str:
    try:
        return " ".join(runtime.compose_command())
    except RuntimeOpError:
        return "podman-compose"


def _restart_epilog(stack: StackConfig) -> str:
    lines = ["services:", f"  {ALL:<16} Restart all services in the stack"]
    for s in stack.services:
        lines.append(f"  {s.name:<16} container {s.container}")
    lines += [
        "",
        "examples:",
        "  restart n8n-runners        restart just the runners",
        "  restart n8n n8n-runners    restart n8n and runners",
        "  restart all                restart the entire stack",
    ]
    return "\n".join(lines)


def build_parser(stack: StackConfig) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="stackops", description="Update checks and safe restarts for a compose stack")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_chk = sub.add_parser("check-updates", help="Check monitored containers for newer registry images")
    s_chk.add_argument("--workers", type=int, default=settings.check_workers, help="Services checked in parallel")
    s_chk.add_argument("--json", action="store_true", help="Print the report as JSON")

    s_rst = sub.add_parser(
        "restart",
        help="Safely (re)start services",
        description=(
            "Safe restart wrapper. Removes stopped containers that still hold a service's "
            "name before asking compose to (re)create it."
        ),
        epilog=_restart_epilog(stack),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    s_rst.add_argument("services", nargs="*", help=f"'{ALL}' or one or more service names")
    s_rst.add_argument("-s", "--status", action="store_true", help="Show current container status and exit")
    s_rst.set_defaults(cmd_parser=s_rst)

    s_st = sub.add_parser("status", help="Show container status")
    s_st.add_argument("--probe", action="store_true", help="Also probe HTTP health endpoints")

    s_srv = sub.add_parser("serve", help="Run the HTTP API")
    s_srv.add_argument("--host", default="127.0.0.1")
    s_srv.add_argument("--port", type=int, default=8000)
    return p


def _print_status(stack: StackConfig, reconciler: RestartReconciler, probe: bool = False) -> None:
    console.info("Current container status:")
    print()
    lines = status_table(stack, reconciler.status())
    if probe:
        results = probe_stack(stack, settings.health_timeout_s)
        extra = ["HTTP"]
        for s in stack.services:
            r = results.get(s.name)
            extra.append("-" if r is None else ("ok" if r[0] else r[1]))
        width = max(len(line) for line in lines)
        lines = [f"{line:<{width}}  {col}" for line, col in zip(lines, extra)]
    for line in lines:
        print(line)


def _check_updates(args: argparse.Namespace, stack: StackConfig, runtime: Any) -> int:
    checker = UpdateChecker(stack, runtime, max_workers=args.workers)
    report = checker.run()
    lines = report.render(stack, settings.compose_dir, _compose_hint(runtime))
    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        for line in lines:
            print(line)

    if report.updates or report.errors:
        body = "\n".join(lines)
        send_email(f"{stack.name}: {len(report.updates)} update(s), {len(report.errors)} error(s)", body)
    return 0


def _preflight_failed(runtime: Any) -> bool:
    problems = runtime.preflight()
    for msg in problems:
        console.error(msg)
    return bool(problems)


def _restart(args: argparse.Namespace, parser: argparse.ArgumentParser, stack: StackConfig, runtime: Any) -> int:
    reconciler = RestartReconciler(stack, runtime)

    if args.status:
        if _preflight_failed(runtime):
            return 1
        _print_status(stack, reconciler)
        return 0

    if not args.services:
        console.error("No service specified")
        print()
        parser.print_help()
        return 1

    # Unknown names alone never reach the runtime, so they skip the preflight.
    if ALL in args.services or any(stack.get(n) for n in args.services):
        if _preflight_failed(runtime):
            return 1

    console.info(f"{stack.name} Safe Restart")
    console.info("=" * (len(stack.name) + 13))
    print()

    report = reconciler.reconcile(args.services)

    if report.ok:
        if not report.all_services:
            console.success("All requested services restarted successfully")
    else:
        console.error("Some services failed to restart")
    print()
    for line in status_table(stack, report.statuses):
        print(line)
    return 0 if report.ok else 1


def main(argv: list[str] | None = None, runtime: Any = None, stack: StackConfig | None = None) -> int:
    try:
        stack = stack or configured_stack(settings)
    except (OSError, ValueError) as e:
        console.error(f"Invalid stack configuration: {e}")
        return 2

    parser = build_parser(stack)
    args = parser.parse_args(argv)

    if args.cmd == "serve":
        uvicorn.run("stackops.api:app", host=args.host, port=args.port)
        return 0

    db.init_db()
    if runtime is not None:
        return _dispatch(args, stack, runtime)

    owned = ContainerRuntime(settings)
    try:
        return _dispatch(args, stack, owned)
    finally:
        owned.close()


def _dispatch(args: argparse.Namespace, stack: StackConfig, runtime: Any) -> int:
    if args.cmd == "check-updates":
        return _check_updates(args, stack, runtime)

    if args.cmd == "restart":
        return _restart(args, args.cmd_parser, stack, runtime)

    if args.cmd == "status":
        _print_status(stack, RestartReconciler(stack, runtime), probe=args.probe)
        return 0

    return 2


def check_updates_main() -> None:
    raise SystemExit(main(["check-updates", *sys.argv[1:]]))


def restart_service_main() -> None:
    raise SystemExit(main(["restart", *sys.argv[1:]]))


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

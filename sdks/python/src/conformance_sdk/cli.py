from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable

from conformance_sdk import __version__
from conformance_sdk.errors import ConsoleError


def _parse_header(raw: str) -> tuple[str, str]:
    if "=" not in raw:
        raise SystemExit(f"Invalid --header value (expected NAME=VALUE): {raw}")
    name, value = raw.split("=", 1)
    return name.strip(), value.strip()


def _write(args: argparse.Namespace, data: Any, text: str) -> None:
    if args.format == "json":
        sys.stdout.write(json.dumps(data, indent=2, ensure_ascii=False) + "\n")
        return
    sys.stdout.write(text + ("\n" if text and not text.endswith("\n") else ""))


def _confirmer(args: argparse.Namespace) -> Callable[[str], bool]:
    def confirm(message: str) -> bool:
        if getattr(args, "yes", False):
            return True
        if not sys.stdin.isatty():
            return False
        answer = input(f"{message} [y/N] ")
        return answer.strip().lower() in {"y", "yes"}

    return confirm


def _status_text(controller: Any) -> str:
    from conformance_sdk.render import render_report

    status = controller.status
    digest = controller.digest
    lines = []
    if digest is not None:
        lines.append(f"{digest.name} [{digest.id}] {digest.conformance_status.glyph} {digest.conformance_status.display_title}")
    lines.append(f"running={status.is_running} input_required={status.input_required} skippable={status.is_skippable}")
    if status.next_actions:
        lines.append(f"Next: {status.next_actions}")
    if status.prompt_text:
        lines.append(f"Prompt: {status.prompt_text}")
    if controller.input_buffer:
        lines.append("Input template:")
        lines.append(controller.input_buffer)
    for entry in controller.sandbox_waiting:
        lines.append(f"Waiting: {entry.describe()}")
    if controller.report is not None:
        lines.append("")
        lines.append(render_report(controller.report))
    return "\n".join(lines)


async def _open(session: Any, args: argparse.Namespace) -> Any:
    controller = session.controller(args.sandbox, args.scenario)
    await controller.open()
    if controller.error:
        raise ConsoleError(controller.error)
    return controller


async def _dispatch(args: argparse.Namespace, session: Any) -> int:
    from pydantic import ValidationError

    from conformance_sdk.models.sandbox import CreateSandboxRequest
    from conformance_sdk.runner import RunOptions, ScenarioRunner

    client = session.client
    command = args.command

    if command == "standards":
        standards = await client.get_available_standards()
        lines = []
        for standard in standards:
            for version in standard.versions:
                lines.append(f"{standard.name} {version.number}: suites={version.suites} roles={version.roles}")
        _write(args, [s.to_dict() for s in standards], "\n".join(lines))
        return 0

    if command == "sandboxes":
        sandboxes = await client.get_all_sandboxes()
        _write(args, [s.to_dict() for s in sandboxes], "\n".join(f"{s.id}  {s.name}" for s in sandboxes))
        return 0

    if command == "sandbox":
        action = args.sandbox_command
        if action == "show":
            sandbox = await client.get_sandbox(args.sandbox, include_operator_log=args.operator_log)
            text = f"{sandbox.id}  {sandbox.name}  can_notify_party={sandbox.can_notify_party}"
            if sandbox.operator_log is not None:
                text += "\n" + json.dumps(sandbox.operator_log, indent=2, ensure_ascii=False)
            _write(args, sandbox.to_dict(), text)
            return 0
        if action == "config":
            config = await client.get_sandbox_config(args.sandbox)
            _write(args, config.to_dict(), json.dumps(config.to_dict(), indent=2, ensure_ascii=False))
            return 0
        if action == "update-config":
            draft = await session.config_draft(args.sandbox)
            if args.name is not None:
                draft.updated.sandbox_name = args.name
            if args.external_party_url is not None:
                draft.updated.external_party_url = args.external_party_url
            if args.auth_header_name is not None:
                draft.updated.external_party_auth_header_name = args.auth_header_name
            if args.auth_header_value is not None:
                draft.updated.external_party_auth_header_value = args.auth_header_value
            if args.clear_headers:
                while draft.remove_header() is not None:
                    pass
            for raw in args.header:
                draft.add_header(*_parse_header(raw))
            if not draft.updated.has_valid_headers:
                raise ConsoleError("Invalid additional header name or value", operation="updateSandboxConfig")
            if not draft.can_update():
                _write(args, {"updated": False}, "Nothing to update")
                return 0
            await client.update_sandbox_config(draft.to_update())
            _write(args, {"updated": True}, "Updated")
            return 0
        if action == "create":
            try:
                request = CreateSandboxRequest(
                    standard_name=args.standard,
                    version_number=args.version_number,
                    scenario_suite=args.suite,
                    tested_party_role=args.role,
                    is_default_type=not args.custom,
                    sandbox_name=args.name,
                )
            except ValidationError as exc:
                raise ConsoleError(str(exc), operation="createSandbox") from exc
            sandbox_id = await client.create_sandbox(request)
            _write(args, {"sandboxId": sandbox_id}, sandbox_id)
            return 0
        if action == "notify":
            await client.notify_party(args.sandbox)
            _write(args, {"notified": True}, "Notified")
            return 0
        if action == "reset":
            await client.reset_party(args.sandbox)
            _write(args, {"reset": True}, "Reset")
            return 0

    if command == "scenarios":
        listing = session.listing(args.sandbox)
        modules = await listing.load()
        data = []
        lines = []
        for module in modules:
            lines.append(module.module_name)
            entries = []
            for scenario in module.scenarios:
                affordance = listing.affordances(scenario)
                marker = "" if affordance.enabled else " (disabled)"
                lines.append(
                    f"  {scenario.conformance_status.glyph} {scenario.name} [{scenario.id}] "
                    f"{affordance.action.label}{marker}"
                )
                entries.append(
                    {**scenario.to_dict(), "action": affordance.action.value, "enabled": affordance.enabled}
                )
            data.append({"moduleName": module.module_name, "scenarios": entries})
        _write(args, data, "\n".join(lines))
        return 0

    if command == "start-stop":
        listing = session.listing(args.sandbox)
        await listing.load()
        done = await listing.trigger(args.scenario, confirm=_confirmer(args))
        _write(args, {"triggered": done}, "Done" if done else "Cancelled")
        return 0 if done else 1

    if command == "status":
        controller = await _open(session, args)
        try:
            _write(args, controller.status.to_dict(), _status_text(controller))
        finally:
            controller.close()
        return 0

    if command == "submit":
        controller = await _open(session, args)
        try:
            if args.input_file is not None:
                controller.input_buffer = Path(args.input_file).read_text(encoding="utf-8")
            elif args.input is not None:
                controller.input_buffer = args.input
            submitted = await controller.submit(with_input=not args.no_input)
            if controller.input_error:
                raise ConsoleError(controller.input_error, operation="handleActionInput")
            if controller.error:
                raise ConsoleError(controller.error)
            _write(args, controller.status.to_dict(), _status_text(controller))
        finally:
            controller.close()
        return 0 if submitted else 1

    if command == "complete":
        controller = await _open(session, args)
        try:
            done = await controller.complete_current_action(skip=args.skip, confirm=_confirmer(args))
            if controller.error:
                raise ConsoleError(controller.error)
            _write(args, controller.status.to_dict(), _status_text(controller))
        finally:
            controller.close()
        return 0 if done else 1

    if command == "exchanges":
        exchanges = await client.get_current_action_exchanges(args.sandbox, args.scenario)
        payload = exchanges.to_dict()
        _write(args, payload, json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    if command == "run":
        runner = ScenarioRunner(
            client,
            session.poller,
            RunOptions(max_steps=args.max_steps, counterpart_sandbox_id=args.counterpart, restart=args.restart),
        )
        result = await runner.run(args.sandbox, args.scenario)
        text = f"Scenario {result.scenario_id} finished after {result.steps} steps"
        if not result.conformant:
            text += "\n" + result.failure_summary()
        data = {
            "scenarioId": result.scenario_id,
            "steps": result.steps,
            "conformant": result.conformant,
            "report": None if result.report is None else result.report.to_dict(),
        }
        _write(args, data, text)
        return 0 if result.conformant else 1

    raise SystemExit(f"Unknown command: {command}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="conformance-console")
    parser.add_argument("--version", action="version", version=f"conformance-console {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_common_flags(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", type=str, help="YAML settings file")
        p.add_argument("--base-url", type=str)
        p.add_argument("--token", type=str, help="Bearer token")
        p.add_argument("--timeout", type=float)
        p.add_argument("--poll-budget", type=float, help="Seconds to wait for the sandbox to stop waiting")
        p.add_argument("--poll-interval", type=float)
        p.add_argument("--log-level", type=str, choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
        p.add_argument("--format", default="text", choices=["text", "json"])

    def add_scenario_args(p: argparse.ArgumentParser) -> None:
        add_common_flags(p)
        p.add_argument("sandbox")
        p.add_argument("scenario")

    add_common_flags(sub.add_parser("standards", help="List available standards"))
    add_common_flags(sub.add_parser("sandboxes", help="List sandboxes"))

    sandbox = sub.add_parser("sandbox", help="Sandbox operations")
    sandbox_sub = sandbox.add_subparsers(dest="sandbox_command", required=True)
    show = sandbox_sub.add_parser("show")
    add_common_flags(show)
    show.add_argument("sandbox")
    show.add_argument("--operator-log", action="store_true")
    config = sandbox_sub.add_parser("config")
    add_common_flags(config)
    config.add_argument("sandbox")
    update = sandbox_sub.add_parser("update-config")
    add_common_flags(update)
    update.add_argument("sandbox")
    update.add_argument("--name", type=str)
    update.add_argument("--external-party-url", type=str)
    update.add_argument("--auth-header-name", type=str)
    update.add_argument("--auth-header-value", type=str)
    update.add_argument("--header", action="append", default=[], help="Repeatable NAME=VALUE additional header")
    update.add_argument("--clear-headers", action="store_true")
    create = sandbox_sub.add_parser("create")
    add_common_flags(create)
    create.add_argument("--standard", required=True)
    create.add_argument("--version-number", required=True)
    create.add_argument("--suite", required=True)
    create.add_argument("--role", required=True)
    create.add_argument("--name", required=True)
    create.add_argument("--custom", action="store_true", help="Create a non-default sandbox")
    for name in ("notify", "reset"):
        p = sandbox_sub.add_parser(name)
        add_common_flags(p)
        p.add_argument("sandbox")

    scenarios = sub.add_parser("scenarios", help="List scenarios of a sandbox")
    add_common_flags(scenarios)
    scenarios.add_argument("sandbox")

    start_stop = sub.add_parser("start-stop", help="Start, restart or stop a scenario")
    add_scenario_args(start_stop)
    start_stop.add_argument("--yes", action="store_true", help="Confirm without prompting")

    add_scenario_args(sub.add_parser("status", help="Show scenario status and report"))

    submit = sub.add_parser("submit", help="Answer the current prompt")
    add_scenario_args(submit)
    submit.add_argument("--input", type=str)
    submit.add_argument("--input-file", type=str)
    submit.add_argument("--no-input", action="store_true", help="Acknowledge without input")

    complete = sub.add_parser("complete", help="Mark the current action complete")
    add_scenario_args(complete)
    complete.add_argument("--skip", action="store_true")
    complete.add_argument("--yes", action="store_true")

    add_scenario_args(sub.add_parser("exchanges", help="Show exchanges of the current action"))

    run = sub.add_parser("run", help="Drive a scenario to completion")
    add_scenario_args(run)
    run.add_argument("--counterpart", type=str, help="Sandbox to notify on the other side")
    run.add_argument("--restart", action="store_true")
    run.add_argument("--max-steps", type=int, default=200)

    args = parser.parse_args(argv)

    from conformance_sdk.config import load_settings
    from conformance_sdk.session import ConsoleSession

    try:
        settings = load_settings(
            args.config,
            overrides={
                "base_url": args.base_url,
                "token": args.token,
                "timeout_s": args.timeout,
                "poll_budget_s": args.poll_budget,
                "poll_interval_s": args.poll_interval,
                "log_level": args.log_level,
            },
        )
        logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
        return asyncio.run(_dispatch(args, ConsoleSession(settings)))
    except ConsoleError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

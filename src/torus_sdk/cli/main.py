"""Command-line interface for torus."""

from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from typing import Sequence

from torus_sdk.bootstrap import AccountBootstrapper, BootstrapStage
from torus_sdk.cli.prompts import TerminalInputs
from torus_sdk.client import Client
from torus_sdk.config import ClientConfig, ConfigError, load_config
from torus_sdk.errors import (
    CanceledError,
    DaemonError,
    EmailInUseError,
    EntropyUnavailableError,
    SignupFailedError,
    StageCanceledError,
    StageFailure,
    TransportError,
    ValidationError,
)
from torus_sdk.progress import ProgressEvent

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_DAEMON_ERROR = 2
EXIT_CANCELED = 3

_RESUME_STAGES = {
    "login": BootstrapStage.LOGGING_IN,
    "keypairs": BootstrapStage.GENERATING_KEYPAIRS,
}
_RESUME_FLAGS = {stage: flag for flag, stage in _RESUME_STAGES.items()}

_SENSITIVE_FIELDS = (
    "passphrase",
    "password",
    "secret",
    "token",
    "invite_code",
    "authorization",
)


def _sdk_version() -> str:
    try:
        return pkg_version("torus-sdk")
    except PackageNotFoundError:
        return "0.0.0+local"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="torus")
    parser.add_argument("--version", action="version", version=f"torus {_sdk_version()}")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to client config TOML (default: $TORUS_ROOT/config.toml)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log daemon traffic to stderr")

    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version", help="Show client and daemon versions")
    version.add_argument("--json", action="store_true")

    signup = sub.add_parser(
        "signup",
        help="Create a new account, which while in alpha requires an invite code",
    )
    signup.add_argument("args", nargs="*", metavar="[email] [code]")
    signup.add_argument(
        "--resume-from",
        choices=sorted(_RESUME_STAGES),
        default=None,
        help="Resume a partially completed signup at the given stage",
    )

    machines = sub.add_parser("machines", help="Manage machine identities")
    machines_sub = machines.add_subparsers(dest="machines_command", required=True)
    create = machines_sub.add_parser("create", help="Create a machine and its token secret")
    create.add_argument("name")
    create.add_argument("--org", required=True, help="Org id the machine belongs to")
    create.add_argument("--team", default=None, help="Team id to place the machine in")
    create.add_argument("--json", action="store_true")

    return parser


def _sanitize_error_text(value: str) -> str:
    redacted = value
    for field in _SENSITIVE_FIELDS:
        redacted = re.sub(
            rf"(?i)({field}\s*[=:]\s*)([^,\s]+)",
            r"\1[REDACTED]",
            redacted,
        )
    return redacted


def _print_error(stderr, prefix: str, message: str, *, code: int) -> int:
    print(f"{prefix}: {_sanitize_error_text(message)}", file=stderr)
    return code


def _progress_printer(stdout):
    def _print(event: ProgressEvent, err: BaseException | None) -> None:
        if event is not None:
            print(event.message, file=stdout)

    return _print


def _run_version(*, config: ClientConfig, as_json: bool, stdout, stderr) -> int:
    payload = {
        "cli": "torus",
        "sdk_version": _sdk_version(),
        "api_version": config.api_version,
        "daemon_version": None,
    }
    try:
        with Client(config) as client:
            payload["daemon_version"] = client.version.get().version
    except (TransportError, CanceledError, DaemonError) as exc:
        logger.debug("daemon version unavailable: %s", exc)

    if as_json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(f"torus {payload['sdk_version']}", file=stdout)
        print(f"api: {payload['api_version']}", file=stdout)
        print(f"daemon: {payload['daemon_version'] or 'unavailable'}", file=stdout)
    return EXIT_SUCCESS


def _signup_usage_error(parser: argparse.ArgumentParser, args: list[str], stderr) -> int:
    text = "Too many arguments supplied." if len(args) > 2 else "Too few arguments supplied."
    print(text, file=stderr)
    print("", file=stderr)
    print(parser.format_usage().strip(), file=stderr)
    return EXIT_VALIDATION_ERROR


def _print_stage_failure(stderr, exc: StageFailure) -> int:
    if isinstance(exc, EmailInUseError):
        return _print_error(
            stderr,
            "signup error",
            "Email address in use, please try again.",
            code=EXIT_DAEMON_ERROR,
        )
    if isinstance(exc, SignupFailedError):
        print("signup error: Signup failed, please try again.", file=stderr)
        _print_error(stderr, "cause", str(exc.cause), code=EXIT_DAEMON_ERROR)
        if exc.indeterminate:
            _print_signup_may_have_completed(stderr)
        return EXIT_DAEMON_ERROR

    canceled = isinstance(exc, StageCanceledError)
    code = EXIT_CANCELED if canceled else EXIT_DAEMON_ERROR
    verb = "canceled" if canceled else "failed"
    print(f"{exc.stage.label} {verb}: {_sanitize_error_text(str(exc.cause))}", file=stderr)
    if exc.indeterminate:
        if canceled:
            print("the daemon may have completed the request before it was canceled.", file=stderr)
        else:
            print(
                "the connection to the daemon dropped; the operation may have completed.",
                file=stderr,
            )
    if exc.stage is BootstrapStage.SIGNING_UP and exc.indeterminate:
        _print_signup_may_have_completed(stderr)
    if BootstrapStage.SIGNING_UP in exc.committed:
        print("Your account was created but setup did not finish.", file=stderr)
    flag = _RESUME_FLAGS.get(exc.resume_stage)
    if flag is not None:
        print(f"Resume with: torus signup --resume-from {flag}", file=stderr)
    return code


def _print_signup_may_have_completed(stderr) -> None:
    print(
        "If your account was created, resume with: torus signup --resume-from login",
        file=stderr,
    )


def _run_signup(*, parser, args, config: ClientConfig, stdin, stdout, stderr) -> int:
    positional = list(args.args)
    if positional and len(positional) != 2:
        return _signup_usage_error(parser, positional, stderr)
    default_email, default_invite = positional if positional else (None, None)
    start = _RESUME_STAGES.get(args.resume_from, BootstrapStage.SIGNING_UP)

    with Client(config) as client:
        bootstrapper = AccountBootstrapper.from_client(client)
        inputs = TerminalInputs(stdin=stdin, stdout=stdout)
        try:
            context = bootstrapper.collect(
                inputs,
                email=default_email,
                invite_code=default_invite,
                start=start,
            )
        except ValidationError as exc:
            return _print_error(stderr, "input error", str(exc), code=EXIT_VALIDATION_ERROR)

        print("", file=stdout)
        try:
            bootstrapper.run(context, progress=_progress_printer(stdout), start=start)
        except StageFailure as exc:
            return _print_stage_failure(stderr, exc)

    print("", file=stdout)
    print("Your account has been created!", file=stdout)
    return EXIT_SUCCESS


def _run_machines_create(*, args, config: ClientConfig, stdout, stderr) -> int:
    with Client(config) as client:
        try:
            identity, secret = client.machines.create(
                args.org,
                args.name,
                team_id=args.team,
                progress=None if args.json else _progress_printer(stdout),
            )
        except ValidationError as exc:
            return _print_error(stderr, "input error", str(exc), code=EXIT_VALIDATION_ERROR)
        except EntropyUnavailableError as exc:
            return _print_error(stderr, "entropy error", str(exc), code=EXIT_DAEMON_ERROR)
        except CanceledError as exc:
            return _print_error(stderr, "canceled", str(exc), code=EXIT_CANCELED)
        except TransportError as exc:
            print(
                "the connection to the daemon dropped; check whether the machine exists "
                "before retrying.",
                file=stderr,
            )
            return _print_error(stderr, "transport error", str(exc), code=EXIT_DAEMON_ERROR)
        except DaemonError as exc:
            return _print_error(stderr, "daemon error", str(exc), code=EXIT_DAEMON_ERROR)

    payload = {
        "machine_id": identity.id,
        "name": identity.name,
        "org_id": identity.org_id,
        "team_id": identity.team_id,
        "token_secret": secret.encoded,
    }
    if args.json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return EXIT_SUCCESS

    print(f"machine_id: {payload['machine_id']}", file=stdout)
    print(f"name: {payload['name']}", file=stdout)
    print(f"org_id: {payload['org_id']}", file=stdout)
    if payload["team_id"]:
        print(f"team_id: {payload['team_id']}", file=stdout)
    print(f"token_secret: {payload['token_secret']}", file=stdout)
    print("", file=stdout)
    print("Store the token secret now; it cannot be retrieved again.", file=stdout)
    return EXIT_SUCCESS


def main(
    argv: Sequence[str] | None = None,
    *,
    stdin=sys.stdin,
    stdout=sys.stdout,
    stderr=sys.stderr,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        return _print_error(stderr, "config error", str(exc), code=EXIT_VALIDATION_ERROR)

    if args.command == "version":
        return _run_version(config=config, as_json=args.json, stdout=stdout, stderr=stderr)

    if args.command == "signup":
        return _run_signup(
            parser=parser,
            args=args,
            config=config,
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
        )

    if args.command == "machines" and args.machines_command == "create":
        return _run_machines_create(args=args, config=config, stdout=stdout, stderr=stderr)

    parser.error(f"unknown command: {args.command}")
    return EXIT_VALIDATION_ERROR


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

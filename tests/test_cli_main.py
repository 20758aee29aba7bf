from __future__ import annotations

import io
import json

import pytest

from torus_sdk.cli.main import main
from torus_sdk.client import Client
from torus_sdk.errors import CanceledError, EntropyUnavailableError, TransportError
from torus_sdk.token_secret import TokenSecret

USER = {"id": "user-1", "name": "Ada Lovelace", "username": "ada", "email": "ada@example.com"}


class _Inputs:
    def __init__(self, *, stdin=None, stdout=None) -> None:  # noqa: ANN001
        self.asked: list[str] = []

    def full_name(self) -> str:
        return "Ada Lovelace"

    def username(self) -> str:
        return "ada"

    def email(self, default: str | None = None) -> str:
        return default or "ada@example.com"

    def invite_code(self, default: str | None = None) -> str:
        self.asked.append("invite_code")
        return default or "invite-123"

    def passphrase(self) -> str:
        return "correct horse battery"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TORUS_ROOT", str(tmp_path))
    monkeypatch.delenv("AG_DEBUG", raising=False)
    monkeypatch.delenv("TORUS_DAEMON_URL", raising=False)


@pytest.fixture
def cli(monkeypatch, transport):  # noqa: ANN001
    monkeypatch.setattr("torus_sdk.cli.main.Client", lambda config: Client(config, transport=transport))
    monkeypatch.setattr("torus_sdk.cli.main.TerminalInputs", _Inputs)

    def run(*argv: str) -> tuple[int, str, str]:
        out = io.StringIO()
        err = io.StringIO()
        rc = main(list(argv), stdin=io.StringIO(""), stdout=out, stderr=err)
        return rc, out.getvalue(), err.getvalue()

    return run


def _script_signup(transport) -> None:  # noqa: ANN001
    transport.on(
        "POST",
        "/signup",
        transport.progress("Creating user account"),
        transport.result(USER),
    )
    transport.on("POST", "/login", transport.result(None))
    transport.on("GET", "/orgs", transport.result([{"id": "org-1", "name": "ada"}]))
    transport.on(
        "POST",
        "/keypairs/generate",
        transport.progress("Generating keypairs"),
        transport.result(None),
    )


def test_signup_creates_account(cli, transport) -> None:
    _script_signup(transport)

    rc, out, err = cli("signup", "ada@example.com", "invite-xyz")

    assert rc == 0
    assert "Creating user account" in out
    assert "Generating keypairs" in out
    assert out.strip().endswith("Your account has been created!")
    assert transport.calls[0].body["invite_code"] == "invite-xyz"
    assert err == ""


@pytest.mark.parametrize(
    ("argv", "message"),
    [
        (["signup", "ada@example.com"], "Too few arguments supplied."),
        (["signup", "a@b.co", "code", "extra"], "Too many arguments supplied."),
    ],
)
def test_signup_rejects_wrong_argument_count(cli, transport, argv, message) -> None:
    rc, _, err = cli(*argv)

    assert rc == 1
    assert message in err
    assert transport.calls == []


def test_signup_duplicate_email(cli, transport) -> None:
    transport.on("POST", "/signup", transport.error(None, "resource exists", 409))

    rc, _, err = cli("signup")

    assert rc == 2
    assert "Email address in use, please try again." in err
    assert transport.paths() == ["POST /signup"]


def test_signup_other_failure(cli, transport) -> None:
    transport.on("POST", "/signup", transport.error("bad_request", "invalid invite code"))

    rc, _, err = cli("signup")

    assert rc == 2
    assert "Signup failed, please try again." in err
    assert "Email address in use" not in err


def test_keypair_failure_names_stage_and_resume_command(cli, transport) -> None:
    _script_signup(transport)
    transport.routes[("POST", "/keypairs/generate")] = [[transport.error("internal_server", "boom")]]

    rc, _, err = cli("signup")

    assert rc == 2
    assert "keypair generation failed: boom" in err
    assert "Your account was created but setup did not finish." in err
    assert "torus signup --resume-from keypairs" in err


def test_login_drop_is_reported_as_indeterminate(cli, transport) -> None:
    _script_signup(transport)
    transport.routes[("POST", "/login")] = [[TransportError("socket closed")]]

    rc, _, err = cli("signup")

    assert rc == 2
    assert "login failed" in err
    assert "may have completed" in err
    assert "--resume-from login" in err


def test_canceled_signup_points_at_login_resume(cli, transport) -> None:
    _script_signup(transport)
    transport.routes[("POST", "/signup")] = [[CanceledError("deadline exceeded")]]

    rc, _, err = cli("signup")

    assert rc == 3
    assert "signup canceled: deadline exceeded" in err
    assert "may have completed the request before it was canceled" in err
    assert "If your account was created, resume with: torus signup --resume-from login" in err
    assert transport.paths() == ["POST /signup"]


def test_signup_drop_points_at_login_resume(cli, transport) -> None:
    _script_signup(transport)
    transport.routes[("POST", "/signup")] = [[TransportError("socket closed")]]

    rc, _, err = cli("signup")

    assert rc == 2
    assert "Signup failed, please try again." in err
    assert "--resume-from login" in err


def test_resume_from_login_skips_signup_and_invite(cli, transport) -> None:
    _script_signup(transport)

    rc, out, _ = cli("signup", "--resume-from", "login")

    assert rc == 0
    assert transport.paths() == ["POST /login", "GET /orgs", "POST /keypairs/generate"]
    assert "Your account has been created!" in out


def test_machines_create_json(cli, transport) -> None:
    transport.on(
        "POST",
        "/machines",
        lambda call: transport.result(
            {"id": "machine-1", "name": call.body["name"], "org_id": call.body["org_id"]}
        ),
    )

    rc, out, err = cli("machines", "create", "--org", "org-1", "ci-runner", "--json")

    assert rc == 0
    payload = json.loads(out)
    assert payload["name"] == "ci-runner"
    assert payload["org_id"] == "org-1"
    assert len(TokenSecret.decode(payload["token_secret"]).raw) == 18
    assert payload["token_secret"] == transport.calls[0].body["secret"]


def test_machines_create_text_warns_secret_is_one_time(cli, transport) -> None:
    transport.on(
        "POST",
        "/machines",
        transport.progress("Creating machine"),
        transport.result({"id": "machine-1", "name": "ci", "org_id": "org-1", "team_id": "team-1"}),
    )

    rc, out, _ = cli("machines", "create", "--org", "org-1", "--team", "team-1", "ci")

    assert rc == 0
    assert "Creating machine" in out
    assert "team_id: team-1" in out
    assert "cannot be retrieved again" in out


def test_machines_create_transport_error(cli, transport) -> None:
    transport.on("POST", "/machines", TransportError("socket closed"))

    rc, out, err = cli("machines", "create", "--org", "org-1", "ci")

    assert rc == 2
    assert "check whether the machine exists" in err
    assert "token_secret" not in out


def test_machines_create_daemon_error_redacts_secrets(cli, transport) -> None:
    transport.on("POST", "/machines", transport.error("bad_request", "rejected secret=abc123"))

    rc, _, err = cli("machines", "create", "--org", "org-1", "ci")

    assert rc == 2
    assert "secret=[REDACTED]" in err
    assert "abc123" not in err


def test_version_json_includes_daemon_version(cli, transport) -> None:
    transport.on("GET", "/version", transport.result({"version": "0.9.1"}))

    rc, out, _ = cli("version", "--json")

    assert rc == 0
    payload = json.loads(out)
    assert payload["cli"] == "torus"
    assert payload["daemon_version"] == "0.9.1"
    assert payload["api_version"] == "0.1.0"


def test_version_without_daemon(cli, transport) -> None:
    transport.on("GET", "/version", TransportError("daemon unreachable"))

    rc, out, _ = cli("version")

    assert rc == 0
    assert "daemon: unavailable" in out


def test_invalid_config_returns_error(cli, tmp_path) -> None:
    config_path = tmp_path / "bad.toml"
    config_path.write_text("timeout = -1\n", encoding="utf-8")

    rc, _, err = cli("--config", str(config_path), "version")

    assert rc == 1
    assert "config error" in err


def test_machines_create_entropy_failure(cli, transport, monkeypatch) -> None:
    def broken(entropy=None):  # noqa: ANN001
        raise EntropyUnavailableError("secure random source failed: getrandom unavailable")

    monkeypatch.setattr("torus_sdk.machines.generate_token_secret", broken)

    rc, out, err = cli("machines", "create", "--org", "org-1", "ci")

    assert rc == 2
    assert "entropy error: secure random source failed" in err
    assert "token_secret" not in out
    assert transport.calls == []

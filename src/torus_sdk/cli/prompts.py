"""Terminal input collection for account signup."""

from __future__ import annotations

import getpass
import re
from typing import Callable, TextIO

from torus_sdk.errors import ValidationError

USERNAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]{0,63}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSPHRASE_LENGTH = 8
MAX_ATTEMPTS = 3


def validate_full_name(value: str) -> None:
    if not value.strip():
        raise ValidationError("please enter your full name")


def validate_username(value: str) -> None:
    if not USERNAME_PATTERN.match(value):
        raise ValidationError(
            "usernames are lowercase letters, digits, '-' or '_' (max 64 characters)"
        )


def validate_email(value: str) -> None:
    if not EMAIL_PATTERN.match(value):
        raise ValidationError("please enter a valid email address")


def validate_invite_code(value: str) -> None:
    if not value.strip():
        raise ValidationError("please enter your invite code")


def validate_passphrase(value: str) -> None:
    if len(value) < MIN_PASSPHRASE_LENGTH:
        raise ValidationError(f"passphrases must be at least {MIN_PASSPHRASE_LENGTH} characters")


class TerminalInputs:
    def __init__(
        self,
        *,
        stdin: TextIO,
        stdout: TextIO,
        read_secret: Callable[[str], str] = getpass.getpass,
    ) -> None:
        self._stdin = stdin
        self._stdout = stdout
        self._read_secret = read_secret

    def _readline(self, label: str) -> str:
        print(f"{label}: ", end="", file=self._stdout, flush=True)
        line = self._stdin.readline()
        if not line:
            raise ValidationError(f"no input for {label.lower()}")
        return line.strip()

    def _ask(
        self,
        label: str,
        validate: Callable[[str], None],
        default: str | None = None,
    ) -> str:
        if default:
            try:
                validate(default)
            except ValidationError as exc:
                print(f"{label}: {exc}", file=self._stdout)
            else:
                return default
        last_error: ValidationError | None = None
        for _ in range(MAX_ATTEMPTS):
            value = self._readline(label)
            try:
                validate(value)
            except ValidationError as exc:
                print(str(exc), file=self._stdout)
                last_error = exc
                continue
            return value
        raise last_error or ValidationError(f"invalid {label.lower()}")

    def full_name(self) -> str:
        return self._ask("Full Name", validate_full_name)

    def username(self) -> str:
        return self._ask("Username", validate_username)

    def email(self, default: str | None = None) -> str:
        return self._ask("Email", validate_email, default)

    def invite_code(self, default: str | None = None) -> str:
        return self._ask("Invite Code", validate_invite_code, default)

    def passphrase(self) -> str:
        for _ in range(MAX_ATTEMPTS):
            value = self._read_secret("Passphrase: ")
            try:
                validate_passphrase(value)
            except ValidationError as exc:
                print(str(exc), file=self._stdout)
                continue
            if self._read_secret("Confirm Passphrase: ") != value:
                print("passphrases do not match", file=self._stdout)
                continue
            return value
        raise ValidationError("no valid passphrase entered")


__all__ = ["TerminalInputs"]

"""Unit tests for certgate/auth/cli.py — the certgate-token command."""

from __future__ import annotations

import jwt
import pytest

from certgate.auth.cli import main
from certgate.auth.tokens import verify
from tests.helpers import BOOTSTRAP_SECRET, ISSUER_SECRET


def test_key_token(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--key-id", "event_team_1", "--secret", ISSUER_SECRET, "--ttl", "60"]) == 0
    token = capsys.readouterr().out.strip()
    claims = verify(token, ISSUER_SECRET)
    assert claims["keyId"] == "event_team_1"
    assert claims["exp"] - claims["iat"] == 60


def test_secret_from_environment(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("CERTGATE_TOKEN_SECRET", ISSUER_SECRET)
    assert main(["--key-id", "event_team_1"]) == 0
    token = capsys.readouterr().out.strip()
    assert verify(token, ISSUER_SECRET)["keyId"] == "event_team_1"


def test_bootstrap_token(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--bootstrap"]) == 0
    token = capsys.readouterr().out.strip()
    assert verify(token, BOOTSTRAP_SECRET)["keyId"] == "bootstrap"


def test_bootstrap_ignores_token_secret(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("CERTGATE_TOKEN_SECRET", ISSUER_SECRET)
    assert main(["--bootstrap"]) == 0
    token = capsys.readouterr().out.strip()
    with pytest.raises(jwt.InvalidSignatureError):
        jwt.decode(token, ISSUER_SECRET, algorithms=["HS256"])


def test_missing_secret_exits_2(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--key-id", "event_team_1"]) == 2
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "no signing secret" in captured.err


def test_non_positive_ttl_exits_2() -> None:
    assert main(["--key-id", "k", "--secret", ISSUER_SECRET, "--ttl", "0"]) == 2


def test_key_id_and_bootstrap_are_exclusive() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--key-id", "k", "--bootstrap"])
    assert exc_info.value.code == 2


def test_identity_is_required() -> None:
    with pytest.raises(SystemExit):
        main([])

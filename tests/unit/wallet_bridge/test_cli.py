import json
import logging

import pytest
from click.testing import CliRunner

from wallet_bridge import BridgeSession, Proof, RelayTransport, SessionKeyMaterial, cli
from wallet_bridge.logging_config import BridgeJSONFormatter, setup_logging

from tests.fixtures.relay import PROOF_DOCUMENT, REQUEST_ID, FakeRelay, wallet_reply


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda *args: None)


def _fake_opener(relay, *replies):
    async def opener(*args, **kwargs):
        session = BridgeSession(
            REQUEST_ID,
            SessionKeyMaterial.generate(),
            Proof,
            RelayTransport(client=relay.client()),
            poll_interval=0,
            owns_transport=True,
        )
        relay.script(*(reply(session) if callable(reply) else reply for reply in replies))
        return session

    return opener


def test_verify_prints_transitions_and_exits_zero(monkeypatch):
    relay = FakeRelay()
    monkeypatch.setattr(
        cli,
        "request_verification",
        _fake_opener(
            relay,
            {"status": "retrieved"},
            lambda session: wallet_reply(session, PROOF_DOCUMENT),
        ),
    )

    result = CliRunner().invoke(cli.main, ["verify", "app_123", "vote", "--no-qr"])

    assert result.exit_code == cli.EXIT_CONFIRMED
    assert "Connector URL: https://worldcoin.org/verify?t=wld&" in result.output
    assert "Waiting for the wallet" in result.output
    assert "Awaiting user confirmation" in result.output
    assert PROOF_DOCUMENT["nullifier_hash"] in result.output


def test_verify_failed_outcome_exits_one(monkeypatch):
    relay = FakeRelay()
    monkeypatch.setattr(
        cli,
        "request_verification",
        _fake_opener(relay, lambda session: wallet_reply(session, {"error_code": "verification_rejected"})),
    )

    result = CliRunner().invoke(cli.main, ["verify", "app_123", "vote", "--no-qr"])

    assert result.exit_code == cli.EXIT_FAILED
    assert "rejected" in result.output


def test_timeout_exits_one(monkeypatch):
    relay = FakeRelay()
    monkeypatch.setattr(cli, "request_verification", _fake_opener(relay, {"status": "initialized"}))

    result = CliRunner().invoke(
        cli.main, ["verify", "app_123", "vote", "--no-qr", "--timeout", "0.05"]
    )

    assert result.exit_code == cli.EXIT_FAILED
    assert "Timed out" in result.output


def test_invalid_app_id_exits_two():
    result = CliRunner().invoke(cli.main, ["verify", "not_an_app", "vote", "--no-qr"])

    assert result.exit_code == cli.EXIT_ERROR
    assert "Invalid app id" in result.output


def test_invalid_bridge_url_exits_two():
    result = CliRunner().invoke(
        cli.main,
        ["verify", "app_123", "vote", "--no-qr", "--bridge-url", "http://relay.example.org"],
    )

    assert result.exit_code == cli.EXIT_ERROR
    assert "HTTPS" in result.output


def test_credential_requires_a_category():
    result = CliRunner().invoke(cli.main, ["credential", "app_123", "age_check"])

    assert result.exit_code != 0
    assert "--category" in result.output


def test_render_qr_produces_terminal_art():
    art = cli.render_qr("https://worldcoin.org/verify?t=wld&i=abc")

    assert len(art.splitlines()) > 10


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("wallet_bridge.session", logging.INFO, __file__, 1, "opened %s", ("x",), None)
    record.request_id = str(REQUEST_ID)

    entry = json.loads(BridgeJSONFormatter().format(record))

    assert entry["message"] == "opened x"
    assert entry["level"] == "INFO"
    assert entry["request_id"] == str(REQUEST_ID)


def test_setup_logging_replaces_root_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("debug", "json")
        setup_logging("debug", "json")

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, BridgeJSONFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

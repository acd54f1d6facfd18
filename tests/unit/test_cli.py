"""Unit tests for the command line interface."""

import sys
import types

import pytest

from src.cli import build_parser, consume_settings, load_router, main
from src.router.router import WebhookRouter
from src.verifiers.hmac_verifier import HMACVerifier
from src.verifiers.stripe import StripeVerifier

PAYLOAD = '{"id": "evt_1", "type": "x.done", "data": {}}'


@pytest.fixture
def hooks_module(monkeypatch):
    """Register an importable module exposing a router and a factory."""
    module = types.ModuleType("cli_test_hooks")
    module.router = WebhookRouter().on("x.done", lambda e: None)
    module.make_router = lambda: WebhookRouter()
    module.not_a_router = 42
    monkeypatch.setitem(sys.modules, "cli_test_hooks", module)
    return module


class TestSignCommand:
    """Tests for the sign subcommand."""

    def test_hmac_signature(self, capsys):
        assert main(["sign", "--secret", "s3cret", PAYLOAD]) == 0

        out = capsys.readouterr().out.strip()
        assert HMACVerifier("s3cret").verify_signature(PAYLOAD, out)

    def test_hmac_prefix(self, capsys):
        main(["sign", "--secret", "s3cret", "--prefix", "sha256=", PAYLOAD])

        assert capsys.readouterr().out.startswith("sha256=")

    def test_stripe_signature_verifies(self, capsys):
        main(["sign", "--secret", "whsec", "--scheme", "stripe", PAYLOAD])

        header = capsys.readouterr().out.strip()
        result = StripeVerifier("whsec")(PAYLOAD, {"stripe-signature": header})
        assert result.event.id == "evt_1"

    def test_invalid_json(self, capsys):
        assert main(["sign", "--secret", "s3cret", "not json"]) == 1

        assert "valid JSON" in capsys.readouterr().err


class TestParser:
    """Tests for argument parsing."""

    def test_serve_defaults(self):
        args = build_parser().parse_args(["serve", "-r", "app:router"])

        assert args.router == "app:router"
        assert args.config == "config.yaml"
        assert args.port is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestLoadRouter:
    """Tests for router import strings."""

    def test_instance(self, hooks_module):
        assert load_router("cli_test_hooks:router") is hooks_module.router

    def test_factory(self, hooks_module):
        assert isinstance(load_router("cli_test_hooks:make_router"), WebhookRouter)

    def test_not_a_router(self, hooks_module):
        with pytest.raises(ValueError):
            load_router("cli_test_hooks:not_a_router")

    def test_bad_target(self):
        with pytest.raises(ValueError):
            load_router("no-colon")


class TestConsumeSettings:
    """Tests for consumer name resolution."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch, tmp_path):
        monkeypatch.delenv("WEBHOOK_CONSUMER", raising=False)
        monkeypatch.chdir(tmp_path)

    def parse(self, *extra):
        return build_parser().parse_args(["consume", "-r", "m:r", "-c", "config.yaml", *extra])

    def test_consumer_flag_defaults_to_none(self):
        assert self.parse().consumer is None

    def test_hostname_when_unconfigured(self, monkeypatch):
        monkeypatch.setattr("src.cli.socket.gethostname", lambda: "worker-host")

        assert consume_settings(self.parse()).consumer == "worker-host"

    def test_config_file_value_kept(self, tmp_path):
        (tmp_path / "config.yaml").write_text("webhook:\n  consumer_name: from-yaml\n")

        assert consume_settings(self.parse()).consumer == "from-yaml"

    def test_environment_value_kept(self, monkeypatch):
        monkeypatch.setenv("WEBHOOK_CONSUMER", "from-env")

        assert consume_settings(self.parse()).consumer == "from-env"

    def test_flag_beats_config(self, tmp_path):
        (tmp_path / "config.yaml").write_text("webhook:\n  consumer: from-yaml\n")

        assert consume_settings(self.parse("--consumer", "from-flag")).consumer == "from-flag"

"""
Command-line interface tests.
"""
import argparse
import json
import logging

import pytest
import structlog

from mixplanner import __main__ as cli


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch, tmp_path):
    """Keep CLI runs from reconfiguring logging or writing log files.

    Engine events below WARNING are dropped so stdout carries only the
    command output.
    """
    monkeypatch.setattr(cli, "setup_logging", lambda level=None: None)
    monkeypatch.chdir(tmp_path)

    previous = structlog.get_config()
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING))
    yield
    structlog.configure(**previous)


class TestParser:

    def test_serve_defaults(self):
        args = cli.create_parser().parse_args(["serve"])

        assert args.command == "serve"
        assert isinstance(args.port, int)
        assert args.log_level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

    def test_serve_options(self):
        args = cli.create_parser().parse_args(["--log-level", "DEBUG", "serve", "--port", "9001"])

        assert args.port == 9001
        assert args.log_level == "DEBUG"

    def test_repeated_amounts(self):
        args = cli.create_parser().parse_args([
            "forecast", "--spend", "television=100", "--spend", "digital=50", "--aux", "posts=8"
        ])

        assert args.spend == [("television", 100.0), ("digital", 50.0)]
        assert args.aux == [("posts", 8.0)]

    @pytest.mark.parametrize("text", ["television", "=5", "digital=lots"])
    def test_malformed_amount(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            cli.amount(text)

    def test_budget_required(self):
        with pytest.raises(SystemExit):
            cli.create_parser().parse_args(["recommend"])


class TestCommands:

    def test_serve_is_default(self, monkeypatch):
        calls = []
        monkeypatch.setattr(cli.uvicorn, "run", lambda *args, **kwargs: calls.append(kwargs))

        assert cli.main([]) == 0
        assert calls and calls[0]["port"] == cli.settings.api.port

    def test_forecast(self, capsys):
        code = cli.main([
            "forecast", "--domain", "skincare", "--horizon", "7",
            "--spend", "television=7200000", "--spend", "digital=4800000", "--aux", "posts=8"
        ])

        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["domain"] == "skincare"
        assert result["horizon_periods"] == 7
        assert result["aggregate"]["grossProfit"] > 0
        assert "periods" not in result

    def test_forecast_with_periods(self, capsys):
        cli.main(["forecast", "--horizon", "3", "--spend", "digital=1000000", "--periods"])

        result = json.loads(capsys.readouterr().out)
        assert len(result["periods"]) == 3

    def test_recommend(self, capsys):
        code = cli.main(["recommend", "--domain", "skincare", "--budget", "12000000", "--aux", "posts=8", "--step", "10"])

        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert 0 <= result["digital_share_pct"] <= 100
        assert sum(result["spend"].values()) == pytest.approx(12_000_000)
        assert result["auxiliary"] == {"organicPosts": 8.0}

    def test_stdout_is_only_json(self, capsys):
        cli.main(["recommend", "--budget", "1000000", "--step", "50"])

        out = capsys.readouterr().out
        assert out.startswith("{")
        assert out.rstrip().endswith("}")

    def test_engine_errors_exit_nonzero(self, capsys):
        code = cli.main(["recommend", "--budget", "-1"])

        assert code == 2
        assert "total_budget" in capsys.readouterr().err

    def test_unknown_domain(self, capsys):
        code = cli.main(["forecast", "--domain", "haircare", "--spend", "television=1"])

        assert code == 2
        assert "Unknown domain" in capsys.readouterr().err

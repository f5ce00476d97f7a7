"""
Tests for the command-line entry point.
"""

import json

import pytest

import main as cli
from fxcore import config


QUOTES = config.DATA_DIR / "usd_quotes.csv"


class TestBootstrapCommand:

    def test_writes_report(self, tmp_path, capsys):
        out = tmp_path / "usd.csv"
        cli.main(["bootstrap", str(QUOTES), "--method", "quantlib_log_linear", "--out", str(out)])
        text = out.read_text()
        assert text.startswith("tenor,discountFactor,zeroRate,forwardRate")
        assert "Done in" in capsys.readouterr().out

    def test_compare_prints_every_method(self, capsys):
        cli.main(["bootstrap", str(QUOTES), "--compare"])
        printed = capsys.readouterr().out
        for method in ("linear", "bloomberg", "quantlib_monotonic_convex", "quantlib_linear_forward"):
            assert method in printed

    def test_plots(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "OUTPUT_DIR", tmp_path)
        cli.main(["bootstrap", str(QUOTES), "--method", "bloomberg", "--plot"])
        assert (tmp_path / "curves.png").exists()
        assert (tmp_path / "curves.html").exists()

    def test_missing_file_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            cli.main(["bootstrap", str(tmp_path / "nope.csv")])
        assert exc.value.code == 1
        assert "ERROR" in capsys.readouterr().out


class TestPriceCommand:

    def test_vanilla(self, capsys):
        cli.main(["price", "--type", "call", "--pair", "EUR/USD", "--spot", "1.10", "--strike", "100",
                  "--strike-type", "percent", "--maturity", "1", "--vol", "10", "--rd", "4.5", "--rf", "3"])
        result = json.loads(capsys.readouterr().out)
        assert result["method"] == "Garman-Kohlhagen"
        assert abs(result["price"] - 0.05067) < 5e-4
        assert "greeks" in result

    def test_touch_without_greeks(self, capsys):
        cli.main(["price", "--type", "one-touch", "--spot", "1.10", "--barrier", "1.2", "--maturity", "0.5",
                  "--vol", "8", "--rd", "4.5", "--rf", "3", "--rebate", "100", "--pay-at-touch", "--no-greeks"])
        result = json.loads(capsys.readouterr().out)
        assert result["method"] == "Digital Closed-Form"
        assert "greeks" not in result
        assert 0 < result["price"] < 100

    def test_missing_rate_exits(self, capsys):
        with pytest.raises(SystemExit) as exc:
            cli.main(["price", "--type", "call", "--spot", "1.10", "--strike", "1.10",
                      "--maturity", "1", "--vol", "10"])
        assert exc.value.code == 1
        assert "ERROR" in capsys.readouterr().out

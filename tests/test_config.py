"""Tests for kitechart.config — environment variable loading and validation."""

import pytest

from kitechart.config import load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Ensure kitechart env vars are cleared between tests.

    Setting before deleting registers each variable with monkeypatch, so
    values written by load_dotenv are undone at teardown too.
    """
    for var in [
        "KITE_RELAY_URL",
        "LOG_LEVEL",
        "API_PORT",
        "SIGNAL_LOOK_AROUND",
        "SIGNAL_MIN_DISTANCE",
        "STRIKE_STEP",
        "LOT_SIZE",
        "LOTS",
    ]:
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)


class TestLoadConfig:
    def test_defaults(self, tmp_path):
        cfg = load_config(env_path=str(tmp_path / "missing.env"))
        assert cfg.relay_base_url == "http://localhost:3001"
        assert cfg.log_level == "INFO"
        assert cfg.api_port == 8000
        assert cfg.signal_look_around == 3
        assert cfg.signal_min_distance == 10
        assert cfg.strike_step == 50.0
        assert cfg.lot_size == 50
        assert cfg.lots == 1

    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("KITE_RELAY_URL", "http://relay:4000/")
        monkeypatch.setenv("SIGNAL_MIN_DISTANCE", "15")
        monkeypatch.setenv("STRIKE_STEP", "100")
        monkeypatch.setenv("LOTS", "2")
        cfg = load_config(env_path=str(tmp_path / "missing.env"))
        assert cfg.relay_base_url == "http://relay:4000"
        assert cfg.signal_min_distance == 15
        assert cfg.strike_step == 100.0
        assert cfg.lots == 2

    def test_dotenv_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("LOT_SIZE=25\nAPI_PORT=9001\n")
        cfg = load_config(env_path=str(env))
        assert cfg.lot_size == 25
        assert cfg.api_port == 9001

    def test_invalid_number_names_variable(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOT_SIZE", "fifty")
        with pytest.raises(ValueError, match="LOT_SIZE"):
            load_config(env_path=str(tmp_path / "missing.env"))

    def test_option_sim_settings(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOT_SIZE", "75")
        sim = load_config(env_path=str(tmp_path / "missing.env")).option_sim
        assert sim.lot_size == 75
        assert sim.strike_step == 50.0
        assert sim.lots == 1

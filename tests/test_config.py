import datetime as dt

import pytest

from core.config import load_settings
from domain.errors import InvalidInput


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)


def test_defaults(tmp_path):
    s = load_settings({"HOME": str(tmp_path), "XDG_CONFIG_HOME": str(tmp_path / "xdg")})
    assert s.db_path == "missions.db"
    assert s.tz == "UTC"
    assert s.user_id == "local"
    assert s.stats_default_start == dt.date(2025, 11, 30)
    assert s.stats_window_days is None
    assert s.log_level == "WARNING"


def test_toml_file_then_env_override(tmp_path):
    cfg = tmp_path / "custom.toml"
    cfg.write_text(
        'DB_PATH = "/data/m.db"\n'
        'tz = "Europe/Bucharest"\n'
        'stats_default_start = 2024-01-15\n'
        "stats_window_days = 30\n"
    )
    s = load_settings({"MISSIONS_CONFIG": str(cfg), "MISSIONS_USER_ID": "alice"})
    assert s.db_path == "/data/m.db"
    assert s.tz == "Europe/Bucharest"
    assert s.stats_default_start == dt.date(2024, 1, 15)
    assert s.stats_window_days == 30
    assert s.user_id == "alice"


def test_xdg_config_file(tmp_path):
    d = tmp_path / "xdg" / "missions"
    d.mkdir(parents=True)
    (d / "config.toml").write_text('log_level = "debug"\n')
    s = load_settings({"XDG_CONFIG_HOME": str(tmp_path / "xdg")})
    assert s.log_level == "DEBUG"


@pytest.mark.parametrize(
    "env",
    [
        {"MISSIONS_STATS_WINDOW_DAYS": "0"},
        {"MISSIONS_STATS_WINDOW_DAYS": "week"},
        {"MISSIONS_STATS_DEFAULT_START": "30/11/2025"},
        {"MISSIONS_LOG_LEVEL": "LOUD"},
    ],
)
def test_invalid_values(tmp_path, env):
    with pytest.raises(InvalidInput):
        load_settings(env)


def test_broken_toml(tmp_path):
    cfg = tmp_path / "bad.toml"
    cfg.write_text("tz = \n")
    with pytest.raises(InvalidInput):
        load_settings({"MISSIONS_CONFIG": str(cfg)})

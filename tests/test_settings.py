import sys, pathlib
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

import pytest

import settings
from transfers import ConfigError


@pytest.fixture
def clean_env(monkeypatch):
    """Make sure .env loading in a test cannot leak into the next one."""
    for var in (settings.API_KEY_VAR, settings.CONTRACT_VAR):
        monkeypatch.setenv(var, "placeholder")
        monkeypatch.delenv(var)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)
    app = tmp_path / "app"
    app.mkdir()
    return app


def never_prompt():
    raise AssertionError("should not prompt for an API key")


def test_load_conf_file_with_comments(tmp_path):
    conf = tmp_path / "ethcrawler.conf"
    conf.write_text(
        "# EthCrawler configuration file\n\n"
        "ETHERSCAN_API_KEY = ABC123\n"
        "# USDT contract address\n"
        "USDT_CONTRACT=0xcontract\n"
        "UNRELATED=1\n"
    )
    assert settings.load_config_file(conf) == settings.Settings("ABC123", "0xcontract")


def test_load_env_file_respects_exported_variables(tmp_path, monkeypatch, clean_env):
    env = tmp_path / ".env"
    env.write_text("ETHERSCAN_API_KEY=from-file\nUSDT_CONTRACT=0xfile\n")
    monkeypatch.setenv(settings.API_KEY_VAR, "from-shell")

    loaded = settings.load_config_file(env)

    assert loaded.api_key == "from-shell"
    assert loaded.contract == "0xfile"


def test_search_order_prefers_program_dir_and_conf(workdir):
    (pathlib.Path.cwd() / ".env").write_text("ETHERSCAN_API_KEY=x\n")
    assert settings.find_config_file(workdir) == pathlib.Path(".env")

    (workdir / ".env").write_text("ETHERSCAN_API_KEY=y\n")
    assert settings.find_config_file(workdir) == workdir / ".env"

    (workdir / "ethcrawler.conf").write_text("ETHERSCAN_API_KEY=z\n")
    assert settings.find_config_file(workdir) == workdir / "ethcrawler.conf"


def test_no_config_found(workdir):
    assert settings.find_config_file(workdir) is None


def test_first_run_creates_conf(workdir):
    cfg = settings.setup_configuration(None, lambda: "NEWKEY", base_dir=workdir)

    assert cfg == settings.Settings("NEWKEY", settings.DEFAULT_USDT_CONTRACT)
    text = (workdir / "ethcrawler.conf").read_text()
    assert "ETHERSCAN_API_KEY=NEWKEY" in text
    assert f"USDT_CONTRACT={settings.DEFAULT_USDT_CONTRACT}" in text
    assert settings.load_config_file(workdir / "ethcrawler.conf") == cfg


def test_missing_key_is_prompted_and_saved(workdir):
    conf = workdir / "ethcrawler.conf"
    conf.write_text("USDT_CONTRACT=0xother\n")

    cfg = settings.setup_configuration(None, lambda: "PROMPTED", base_dir=workdir)

    assert cfg == settings.Settings("PROMPTED", "0xother")
    assert settings.load_config_file(conf) == cfg


def test_missing_contract_defaults_to_usdt(tmp_path, clean_env):
    env = tmp_path / ".env"
    env.write_text("ETHERSCAN_API_KEY=KEY\n")

    cfg = settings.setup_configuration(str(env), never_prompt)

    assert cfg.contract == settings.DEFAULT_USDT_CONTRACT
    assert env.read_text() == f"ETHERSCAN_API_KEY=KEY\nUSDT_CONTRACT={settings.DEFAULT_USDT_CONTRACT}\n"


def test_complete_config_is_left_untouched(tmp_path):
    conf = tmp_path / "custom.conf"
    original = "ETHERSCAN_API_KEY=KEY\nUSDT_CONTRACT=0xabc\n"
    conf.write_text(original)

    cfg = settings.setup_configuration(str(conf), never_prompt)

    assert cfg == settings.Settings("KEY", "0xabc")
    assert conf.read_text() == original


def test_explicit_config_must_exist(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        settings.setup_configuration(str(tmp_path / "missing.conf"), never_prompt)

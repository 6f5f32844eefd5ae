from relay.core.config import DEFAULT_OLLAMA_URL, SEED_RANGE, Settings
from relay.core.types import SamplingOptions

CONFIG_TOML = """
strict_commands = true

[bot]
homeserver = "https://matrix.example.org"
username = "llm-bot"
password = "hunter2"
user_id = "@me:example.org"
crypto_db_path = "crypto.db"

[llm]
model = "llama3.1:8b"
default_prompt = "You are a pirate."
"""


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)

    settings = Settings()

    assert settings.llm.url == DEFAULT_OLLAMA_URL
    assert settings.llm.seed_range == SEED_RANGE
    assert settings.strict_commands is False
    assert settings.max_history_turns == 0
    assert settings.status_api_enabled is False


def test_load_reads_bot_and_llm_tables(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "relay.toml"
    path.write_text(CONFIG_TOML, encoding="utf-8")

    settings = Settings.load(path)

    assert settings.bot.homeserver == "https://matrix.example.org"
    assert settings.bot.username == "llm-bot"
    assert settings.bot.allowed_user_id == "@me:example.org"
    assert settings.llm.model == "llama3.1:8b"
    assert settings.llm.default_prompt == "You are a pirate."
    assert settings.strict_commands is True
    assert settings.missing_bot_fields() == []


def test_config_toml_in_working_directory_is_picked_up(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.toml").write_text(CONFIG_TOML, encoding="utf-8")

    assert Settings().llm.model == "llama3.1:8b"


def test_environment_overrides_file(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "relay.toml"
    path.write_text(CONFIG_TOML, encoding="utf-8")
    monkeypatch.setenv("RELAY_LLM__MODEL", "mistral:7b")

    settings = Settings.load(path)

    assert settings.llm.model == "mistral:7b"
    assert settings.llm.default_prompt == "You are a pirate."


def test_missing_bot_fields(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)

    settings = Settings()

    assert set(settings.missing_bot_fields()) == {"username", "password", "allowed_user_id"}


def test_sampling_options_from_settings(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)

    options = SamplingOptions.from_settings(Settings().llm)

    assert options == SamplingOptions(temperature=0.7, top_k=40, top_p=0.9)
    assert options.to_ollama() == {"temperature": 0.7, "top_k": 40, "top_p": 0.9}

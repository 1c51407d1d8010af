import json

from filterchain.infrastructure.config.settings import DEFAULT_IMAGE_API_BASE_URL, Settings


def test_defaults(monkeypatch, tmp_path):
    for name in ("IMAGE_API_KEY", "IMAGE_API_BASE_URL", "AI_MAX_ATTEMPTS", "UPLOAD_DIR", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("APPSETTINGS_PATH", str(tmp_path / "missing.json"))

    settings = Settings.from_env()

    assert settings.image_api_key is None
    assert settings.image_api_base_url == DEFAULT_IMAGE_API_BASE_URL
    assert settings.ai_max_attempts == 30
    assert settings.ai_poll_interval == 10.0
    assert settings.upload_dir == "uploads"
    assert settings.log_level == "INFO"


def test_api_key_falls_back_to_appsettings(monkeypatch, tmp_path):
    appsettings = tmp_path / "appsettings.json"
    appsettings.write_text(json.dumps({"IMAGE_API_KEY": "from-file"}), encoding="utf-8")
    monkeypatch.delenv("IMAGE_API_KEY", raising=False)
    monkeypatch.setenv("APPSETTINGS_PATH", str(appsettings))

    assert Settings.from_env().image_api_key == "from-file"

    monkeypatch.setenv("IMAGE_API_KEY", "from-env")
    assert Settings.from_env().image_api_key == "from-env"


def test_unreadable_appsettings_is_ignored(monkeypatch, tmp_path):
    appsettings = tmp_path / "appsettings.json"
    appsettings.write_text("{broken", encoding="utf-8")
    monkeypatch.delenv("IMAGE_API_KEY", raising=False)
    monkeypatch.setenv("APPSETTINGS_PATH", str(appsettings))

    assert Settings.from_env().image_api_key is None

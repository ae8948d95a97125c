import json

from src.api.generate_openapi import generate_openapi
from src.api.settings import get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("CORS_ALLOW_ORIGINS", "LOG_LEVEL", "ENABLE_DEBUG_PARAMS", "FONT_PATH"):
            monkeypatch.delenv(name, raising=False)
        s = get_settings()
        assert s.cors_allow_origins == ["*"]
        assert s.log_level == "INFO"
        assert s.enable_debug_params is True
        assert s.font_path is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example,")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("ENABLE_DEBUG_PARAMS", "off")
        monkeypatch.setenv("FONT_PATH", " /opt/fonts/Brand.ttf ")
        s = get_settings()
        assert s.cors_allow_origins == ["https://a.example", "https://b.example"]
        assert s.log_level == "DEBUG"
        assert s.enable_debug_params is False
        assert s.font_path == "/opt/fonts/Brand.ttf"

    def test_unknown_log_level_falls_back(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        assert get_settings().log_level == "INFO"


class TestOpenAPI:
    def test_schema_written_with_tags(self, tmp_path):
        out = generate_openapi(str(tmp_path / "interfaces" / "openapi.json"))
        with open(out, encoding="utf-8") as f:
            schema = json.load(f)
        assert {t["name"] for t in schema["tags"]} >= {"health", "timer"}
        assert "/api/timer" in schema["paths"]

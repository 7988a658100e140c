from tutorix.config.logging import build_logging_config
from tutorix.config.settings import settings


def test_console_format_colours_through_colorlog(monkeypatch):
    monkeypatch.setattr(settings, "LOG_FORMAT", "console")

    config = build_logging_config()

    assert config["handlers"]["console"]["formatter"] == "colored"
    assert config["formatters"]["colored"]["()"] == "colorlog.ColoredFormatter"


def test_json_format_passes_rendered_line_through(monkeypatch):
    monkeypatch.setattr(settings, "LOG_FORMAT", "json")

    config = build_logging_config()

    assert config["handlers"]["console"]["formatter"] == "plain"

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from textual.logging import TextualHandler

from termix.cli import app as cli_app
from termix.config.defaults import default_config


class _FakeApp:
    instances: list[_FakeApp] = []

    def __init__(self, start_path: str, config: object, use_icons: bool = True) -> None:
        self.start_path = start_path
        self.config = config
        self.use_icons = use_icons
        self.ran = False
        _FakeApp.instances.append(self)

    def run(self) -> None:
        self.ran = True


@pytest.fixture(autouse=True)
def _fake_app(monkeypatch: pytest.MonkeyPatch) -> None:
    _FakeApp.instances.clear()
    monkeypatch.setattr(cli_app, "TermixApp", _FakeApp)


def test_run_starts_in_working_directory(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    cli_app.run()
    app = _FakeApp.instances[-1]
    assert app.ran
    assert app.start_path == str(tmp_path)
    assert app.use_icons


def test_no_icons_flag() -> None:
    cli_app.run(no_icons=True)
    assert _FakeApp.instances[-1].use_icons is False


def test_run_ignores_files_in_home_directory(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_dir = tmp_path / ".config" / "termix"
    config_dir.mkdir(parents=True)
    (config_dir / "config.json").write_text('{"defaultExtension": ".md", "copyChunkSize": 4096}')
    monkeypatch.setenv("HOME", str(tmp_path))
    cli_app.run()
    assert _FakeApp.instances[-1].config == default_config()


def test_startup_failure_exits_with_code_1(monkeypatch: pytest.MonkeyPatch) -> None:
    def explode(*args: object, **kwargs: object) -> None:
        raise RuntimeError("terminal unavailable")

    monkeypatch.setattr(cli_app, "TermixApp", explode)
    with pytest.raises(cli_app.typer.Exit) as exc_info:
        cli_app.run()
    assert exc_info.value.exit_code == 1


def test_configure_logging_adds_textual_and_file_handlers(tmp_path: Path) -> None:
    log_file = tmp_path / "termix.log"
    config = default_config()
    config.log_level = "info"
    config.log_file = str(log_file)

    cli_app.configure_logging(config)
    logger = logging.getLogger("termix")
    try:
        assert logger.level == logging.INFO
        assert any(isinstance(h, TextualHandler) for h in logger.handlers)
        logging.getLogger("termix.services.transfer").info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "hello" in log_file.read_text()
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from rowstore.config import get_settings
from rowstore.main import app
from scripts import seed_data

runner = CliRunner()


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_info_masks_the_token(monkeypatch) -> None:
    monkeypatch.setenv("TURSO_DATABASE_URL", "libsql://example-db.turso.io")
    monkeypatch.setenv("TURSO_AUTH_TOKEN", "secret-token-value")

    result = runner.invoke(app, ["info"])

    assert result.exit_code == 0
    assert "https://example-db.turso.io" in result.stdout
    assert "secret-token-value" not in result.stdout
    assert "secr" in result.stdout


def test_search_without_configuration_exits_nonzero(monkeypatch) -> None:
    monkeypatch.setenv("TURSO_DATABASE_URL", "undefined")
    monkeypatch.setenv("TURSO_AUTH_TOKEN", "undefined")

    result = runner.invoke(app, ["search", "alice"])

    assert result.exit_code == 1
    assert "TURSO_DATABASE_URL" in result.output


def test_seed_script_generates_without_loading(tmp_path) -> None:
    output = tmp_path / "users.json"

    result = runner.invoke(
        seed_data.app, ["--rows", "12", "--seed", "5", "--output", str(output), "--no-load"]
    )

    assert result.exit_code == 0
    assert "Skipping load" in result.stdout
    assert len(json.loads(output.read_text(encoding="utf-8"))) == 12

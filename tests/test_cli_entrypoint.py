from __future__ import annotations

import importlib
import json
from pathlib import Path

import pytest


def test_console_entrypoint_exposes_app() -> None:
    pytest.importorskip("typer")

    module = importlib.import_module("roadside_narrator.main")

    assert hasattr(module, "app")
    assert module.app is not None


def test_seeds_command_prints_fixture_seed(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    pytest.importorskip("typer")
    from typer.testing import CliRunner

    from roadside_narrator import main
    from roadside_narrator.config import Settings

    monkeypatch.setattr(main, "settings", Settings(openai_api_key=None))

    fixture = tmp_path / "pois.json"
    fixture.write_text(
        json.dumps(
            [
                {
                    "id": "poi-historic-downtown",
                    "name": "Historic Downtown",
                    "category": "landmark",
                    "location": {"latitude": 40.7128, "longitude": -74.006},
                    "metadata": {"significance_score": 0.8},
                }
            ]
        ),
        encoding="utf-8",
    )

    result = CliRunner().invoke(
        main.app,
        ["seeds", "--latitude", "40.7128", "--longitude", "-74.006", "--poi-fixture", str(fixture)],
    )

    assert result.exit_code == 0
    assert "Historic" in result.output


def test_seeds_command_rejects_bad_latitude() -> None:
    pytest.importorskip("typer")
    from typer.testing import CliRunner

    from roadside_narrator.main import app

    result = CliRunner().invoke(app, ["seeds", "--latitude", "95", "--longitude", "0"])

    assert result.exit_code != 0

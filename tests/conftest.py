"""Shared test fixtures for zapspec.

Provides the Budget API document (raw and parsed), a representative
generator configuration, an isolated environment for settings and cache
resolution, and a CLI runner.  These fixtures are automatically discovered by
pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from zapspec.models import GeneratorConfig, ParsedDocument
from zapspec.output import reset_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager's consoles hold on to the streams that were current when it
    was created; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def budget_raw() -> dict[str, Any]:
    """Load the raw Budget API document."""
    with open(FIXTURES_DIR / "budget_api.json") as f:
        return json.load(f)


@pytest.fixture
def budget_document(budget_raw: dict[str, Any]) -> ParsedDocument:
    """Parsed Budget API document."""
    from zapspec.parser.extractor import extract_document

    return extract_document(budget_raw, "3.0.3")


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def budget_config_data() -> dict[str, Any]:
    """Raw configuration maps as they appear in the JSON files."""
    return {
        "actions": {
            "insertTransactions": {
                "hideRequestBodyProperties": ["external_id", "skip_duplicates"],
                "fieldDefaults": {"currency": "eur", "apply_rules": True},
                "simplify": {
                    "enabled": True,
                    "name": "create transaction",
                    "flattenArray": {
                        "arrayField": "transactions",
                        "itemSchema": "Transaction",
                        "publicName": "New Transaction",
                    },
                    "additionalProperties": ["apply_rules"],
                },
                "dynamicFields": {
                    "category_id": {"sourceTrigger": "categoryList"},
                },
                "helperFields": {
                    "add_tag": {
                        "label": "Add Tag",
                        "mapTo": "tag_ids",
                        "dynamicFields": {"sourceTrigger": "tagList"},
                    },
                    "add_tag_2": {"label": "Add Another Tag", "mapTo": "tag_ids"},
                },
            },
            "deleteCategory": {"omit": True},
        },
        "triggers": {
            "categoryList": {
                "endpoint": "/categories",
                "hidden": True,
                "filters": {"archived": False},
                "label": {"template": "${name}", "fallback": "Category ${id}"},
            },
            "tagList": {"endpoint": "/tags", "hidden": True},
            "newTransaction": {
                "endpoint": "/transactions",
                "name": "new transaction",
                "title": "Triggers when a new transaction is created",
                "queryParams": {"status": "cleared"},
            },
        },
        "authentication": {"fieldKey": "api_token", "testEndpoint": "/me"},
    }


@pytest.fixture
def budget_config(budget_config_data: dict[str, Any]) -> GeneratorConfig:
    """Validated configuration for the Budget API."""
    return GeneratorConfig.model_validate(budget_config_data)


@pytest.fixture
def config_dir(tmp_path: Path, budget_config_data: dict[str, Any]) -> Path:
    """A configuration directory with the three files, comments included."""
    directory = tmp_path / "config"
    directory.mkdir()
    (directory / "actions-config.json").write_text(
        "// action configuration\n"
        + json.dumps({"actions": budget_config_data["actions"]}, indent=2)
    )
    (directory / "triggers-config.json").write_text(
        "/* triggers */\n" + json.dumps({"triggers": budget_config_data["triggers"]}, indent=2)
    )
    (directory / "authentication-config.json").write_text(
        json.dumps(budget_config_data["authentication"])
    )
    return directory


# ---------------------------------------------------------------------------
# Environment isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate settings and cache resolution to a temporary directory.

    Points XDG_CACHE_HOME into tmp_path, clears every ZAPSPEC_* variable and
    changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    for var in ["ZAPSPEC_SCHEMA_URL", "ZAPSPEC_OUTPUT_DIR", "ZAPSPEC_CONFIG_DIR"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()

"""Tests for the command line interface.

Tests cover:
- Argument parsing and category/area helpers
- Commands that need no database (categories, check-env)
- Discovery, generation, deployment and pipeline commands in mock mode
  against a temporary SQLite database, including JSON output
- Error exit codes
"""

import json
import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from localbiz.categories import DEFAULT_AREAS, DEFAULT_CATEGORIES, BusinessCategory
from localbiz.config import Config
from localbiz.main import create_parser, main, parse_areas, parse_categories


@pytest.fixture(autouse=True)
def restore_root_logger():
    """main() reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def settings(tmp_path):
    """Mock-mode settings pointing at a throwaway database."""
    env = {
        "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path}/cli.db",
        "RETRY_DELAY_SECONDS": "0",
    }
    with patch.dict(os.environ, env, clear=True):
        return Config()


def _run(settings, tmp_path, *argv):
    output = tmp_path / "out.json"
    code = main([*argv, "--quiet", "--output", str(output)], settings=settings)
    payload = json.loads(output.read_text()) if output.exists() else None
    return code, payload


# ============================================================================
# Parsing
# ============================================================================


class TestParsing:
    """Tests for argument parsing helpers."""

    @pytest.mark.unit
    def test_parse_categories_aliases_and_commas(self):
        """Test aliases, comma separated values and de-duplication."""
        categories = parse_categories(["barber,restaurant", "barber_shop"])

        assert categories == [BusinessCategory.BARBER_SHOP, BusinessCategory.RESTAURANT]

    @pytest.mark.unit
    def test_parse_categories_defaults(self):
        assert parse_categories(None) == list(DEFAULT_CATEGORIES)

    @pytest.mark.unit
    def test_parse_categories_unknown(self):
        with pytest.raises(ValueError, match="Unknown category"):
            parse_categories(["spaceships"])

    @pytest.mark.unit
    def test_parse_areas(self):
        """Test city parsing and the default area list."""
        areas = parse_areas(["Tupelo, MS"])

        assert areas[0].city == "Tupelo"
        assert areas[0].state == "MS"
        assert parse_areas([]) == list(DEFAULT_AREAS)

    @pytest.mark.unit
    def test_pipeline_defaults(self):
        """Test the pipeline subcommand defaults."""
        args = create_parser().parse_args(["pipeline"])

        assert args.limit == 10
        assert args.templates == 2
        assert args.max_retries is None
        assert args.retry_delay is None
        assert not args.dry_run

    @pytest.mark.unit
    def test_templates_out_of_range(self):
        """Test that more variations than templates is rejected."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["generate", "--templates", "5"])

    @pytest.mark.unit
    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])


# ============================================================================
# Commands
# ============================================================================


class TestInfoCommands:
    """Tests for commands that do not touch the database."""

    @pytest.mark.unit
    def test_categories(self, settings, capsys):
        """Test the category listing."""
        assert main(["categories"], settings=settings) == 0

        out = capsys.readouterr().out
        assert "barber_shop" in out
        assert "modern_minimal" in out

    @pytest.mark.unit
    def test_check_env_reports_mock_mode(self, settings, capsys):
        """Test that every service shows mock mode without credentials."""
        assert main(["check-env"], settings=settings) == 0

        out = capsys.readouterr().out
        assert "GOOGLE_PLACES_API_KEY (places: mock mode)" in out
        assert "VERCEL_TOKEN (deployment: mock mode)" in out


class TestPipelineCommands:
    """Tests for the stage commands in mock mode."""

    @pytest.mark.integration
    def test_discover_writes_json(self, settings, tmp_path):
        """Test discovery through the CLI and its JSON output."""
        code, payload = _run(
            settings, tmp_path,
            "discover", "--city", "Oxford, MS", "--category", "barber", "--max-results", "5",
        )

        assert code == 0
        assert payload["total_found"] == 5
        assert payload["newly_saved"] == 2
        assert payload["by_area"]["Oxford, MS"]["saved"] == 2

    @pytest.mark.integration
    def test_unknown_category_fails(self, settings, tmp_path, capsys):
        """Test that a bad category exits 1 with a message."""
        code, payload = _run(settings, tmp_path, "discover", "--category", "spaceships")

        assert code == 1
        assert payload is None
        assert "Error: Unknown category: spaceships" in capsys.readouterr().out

    @pytest.mark.integration
    def test_stage_commands_in_sequence(self, settings, tmp_path):
        """Test discover, generate, deploy and stats run one after another."""
        base = ["--city", "Oxford, MS", "--category", "barber", "--max-results", "5"]
        assert _run(settings, tmp_path, "discover", *base)[0] == 0

        code, generated = _run(settings, tmp_path, "generate", "--templates", "2")
        assert code == 0
        assert generated["total_websites_created"] == 4

        code, deployed = _run(settings, tmp_path, "deploy")
        assert code == 0
        assert deployed["successful"] == 4

        code, stats = _run(settings, tmp_path, "stats")
        assert code == 0
        assert stats["by_status"]["deployed"] == 2

    @pytest.mark.integration
    def test_enrich_after_discover(self, settings, tmp_path):
        """Test that discovered businesses are enriched in place."""
        _run(settings, tmp_path, "discover", "--city", "Oxford, MS", "--category", "barber", "--max-results", "5")

        code, payload = _run(settings, tmp_path, "enrich")

        assert code == 0
        assert payload["total"] == 2
        assert payload["enriched"] == 2
        assert payload["with_website"] == 0

    @pytest.mark.integration
    def test_generate_for_missing_business(self, settings, tmp_path):
        """Test that an unknown --business-id exits 1."""
        code, payload = _run(settings, tmp_path, "generate", "--business-id", "nope")

        assert code == 1
        assert payload == {"error": "Business not found: nope"}

    @pytest.mark.integration
    def test_deploy_missing_website(self, settings, tmp_path):
        """Test that an unknown --website-id exits 1."""
        code, payload = _run(settings, tmp_path, "deploy", "--website-id", "nope")

        assert code == 1
        assert payload["error"] == "Website not found: nope"

    @pytest.mark.integration
    def test_pipeline_dry_run(self, settings, tmp_path):
        """Test that a dry run reports a plan and stores nothing."""
        code, payload = _run(
            settings, tmp_path, "pipeline", "--dry-run", "--city", "Oxford, MS", "--category", "gym"
        )

        assert code == 0
        assert payload["plan"]["discovery"]["categories"] == ["gym"]
        assert payload["stats"]["total_businesses"] == 0

    @pytest.mark.integration
    def test_pipeline_full_run(self, settings, tmp_path):
        """Test a full mock pipeline run through the CLI."""
        code, payload = _run(
            settings, tmp_path,
            "pipeline", "--city", "Oxford, MS", "--category", "barber",
            "--max-results", "5", "--retry-delay", "0",
        )

        assert code == 0
        assert payload["success"] is True
        assert payload["discovery"]["newly_saved"] == 2
        assert payload["generation"]["total_websites_created"] == 4
        assert payload["deployment"]["successful"] == 4

    @pytest.mark.integration
    def test_pipeline_rejects_two_only_flags(self, settings, tmp_path):
        """Test that only one --*-only flag may be given."""
        code, _ = _run(settings, tmp_path, "pipeline", "--discover-only", "--deploy-only")

        assert code == 1

    @pytest.mark.integration
    def test_pipeline_discover_only(self, settings, tmp_path):
        """Test that --discover-only skips generation and deployment."""
        code, payload = _run(
            settings, tmp_path,
            "pipeline", "--discover-only", "--city", "Oxford, MS", "--category", "barber",
            "--max-results", "5",
        )

        assert code == 0
        assert payload["generation"] is None
        assert payload["deployment"] is None
        assert payload["stats"]["by_status"]["discovered"] == 2


class TestPreviewCommand:
    """Tests for listing and exporting generated websites."""

    @pytest.fixture
    def generated(self, settings, tmp_path):
        """Two discovered businesses with two variations each."""
        _run(settings, tmp_path, "discover", "--city", "Oxford, MS", "--category", "barber", "--max-results", "5")
        _run(settings, tmp_path, "generate", "--templates", "2")
        code, listing = _run(settings, tmp_path, "preview", "--list")
        assert code == 0
        return listing

    @pytest.mark.integration
    def test_list(self, generated):
        """Test that every website is listed newest first with its business."""
        assert generated["total"] == 4
        websites = generated["websites"]
        assert len({w["business_name"] for w in websites}) == 2
        assert all(w["size_chars"] > 0 for w in websites)
        created = [w["created_at"] for w in websites]
        assert created == sorted(created, reverse=True)

    @pytest.mark.integration
    def test_export_latest(self, settings, tmp_path, generated):
        """Test that the newest website is written to the output directory."""
        out_dir = tmp_path / "html"

        code, payload = _run(settings, tmp_path, "preview", "--out-dir", str(out_dir))

        latest = generated["websites"][0]
        assert code == 0
        assert payload["website_id"] == latest["website_id"]
        preview = out_dir / "preview.html"
        named = Path(payload["files"][1])
        assert preview.read_text(encoding="utf-8") == named.read_text(encoding="utf-8")
        assert len(preview.read_text(encoding="utf-8")) == latest["size_chars"]
        assert named.name.endswith(f"-{latest['template_name']}.html")

    @pytest.mark.integration
    def test_export_by_id_and_business(self, settings, tmp_path, generated):
        """Test exporting a chosen website and a business's latest website."""
        oldest = generated["websites"][-1]

        code, by_id = _run(
            settings, tmp_path, "preview", "--id", oldest["website_id"], "--out-dir", str(tmp_path / "a")
        )
        assert code == 0
        assert by_id["website_id"] == oldest["website_id"]
        assert by_id["business_name"] == oldest["business_name"]

        code, by_business = _run(
            settings, tmp_path,
            "preview", "--business-id", oldest["business_id"], "--out-dir", str(tmp_path / "b"),
        )
        assert code == 0
        assert by_business["business_id"] == oldest["business_id"]
        assert by_business["variation_number"] == 2

    @pytest.mark.integration
    def test_missing_website(self, settings, tmp_path):
        """Test that an unknown --id exits 1 and writes no HTML."""
        code, payload = _run(
            settings, tmp_path, "preview", "--id", "nope", "--out-dir", str(tmp_path / "html")
        )

        assert code == 1
        assert payload == {"error": "Website not found: nope"}
        assert not (tmp_path / "html").exists()

    @pytest.mark.integration
    def test_empty_list(self, settings, tmp_path, capsys):
        code, payload = _run(settings, tmp_path, "preview", "--list")

        assert code == 0
        assert payload == {"total": 0, "websites": []}
        assert "No generated websites found" in capsys.readouterr().out

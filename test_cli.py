"""
CLI Tests

Runs the typer commands against the offline "test" profile.
"""

import json
from pathlib import Path

from typer.testing import CliRunner

from marginalia.cli import app, load_book_context

runner = CliRunner()

BOOK = {
    "title": "Walden",
    "author": "Henry David Thoreau",
    "sections": [
        {"id": "ch1", "title": "Economy", "content": "When I wrote the following pages, or rather the bulk of them..."},
        {"id": "ch2", "title": "Where I Lived, and What I Lived For", "content": "I went to the woods because..."},
    ],
}


def write_book(tmp_path: Path) -> Path:
    path = tmp_path / "walden.json"
    path.write_text(json.dumps(BOOK))
    return path


def test_load_book_context_from_document(tmp_path: Path):
    context = load_book_context(write_book(tmp_path))

    assert context.book_id == "walden"
    assert context.document.section_count == 2
    assert context.settings is None


def test_load_book_context_from_full_context(tmp_path: Path):
    path = tmp_path / "context.json"
    path.write_text(json.dumps({"bookId": "thoreau-1854", "document": BOOK, "settings": {"maxSections": 6}}))

    context = load_book_context(path)

    assert context.book_id == "thoreau-1854"
    assert context.settings.max_sections == 6


def test_research_json_output(tmp_path: Path):
    result = runner.invoke(
        app,
        ["research", "Why did Thoreau go to the woods?", "--book", str(write_book(tmp_path)),
         "--profile", "test", "--format", "json"],
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["mode"] == "full"
    assert len(data["agentResults"]) == 3
    print("[PASS] research --format json")


def test_research_quick_mode_text_output(tmp_path: Path):
    settings_path = tmp_path / "quick.json"
    settings_path.write_text('{"researchMode": "quick"}')

    result = runner.invoke(
        app,
        ["research", "Why did Thoreau go to the woods?", "-b", str(write_book(tmp_path)),
         "-s", str(settings_path), "-p", "test"],
    )

    assert result.exit_code == 0, result.output
    assert "Mode: quick | Agents: 0" in result.stdout


def test_research_rejects_unknown_format(tmp_path: Path):
    result = runner.invoke(
        app,
        ["research", "q", "--book", str(write_book(tmp_path)), "--profile", "test", "--format", "xml"],
    )
    assert result.exit_code == 1


def test_insight(tmp_path: Path):
    result = runner.invoke(app, ["insight", "Who wrote this?", "--book", str(write_book(tmp_path)), "-p", "test"])

    assert result.exit_code == 0, result.output
    assert result.stdout.strip()


def test_settings_command_normalizes(tmp_path: Path):
    path = tmp_path / "settings.json"
    path.write_text('{"tokenLimitPerAgent": 999999999, "enabledAgents": {"bookSearch": false}}')

    result = runner.invoke(app, ["settings", str(path)])

    assert result.exit_code == 0, result.output
    exported = json.loads(result.stdout)
    assert exported["tokenLimitPerAgent"] == 150_000
    assert exported["enabledAgents"]["search"] is False


def test_settings_command_invalid_json(tmp_path: Path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")

    result = runner.invoke(app, ["settings", str(path)])
    assert result.exit_code == 1


def test_profiles_command():
    result = runner.invoke(app, ["profiles"])

    assert result.exit_code == 0, result.output
    assert "dev-fast" in result.stdout
    assert "Backend: mock" in result.stdout


def test_research_without_api_key_reports_error(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    result = runner.invoke(app, ["research", "q", "--book", str(write_book(tmp_path)), "--profile", "dev"])

    assert result.exit_code == 1
    assert not isinstance(result.exception, ValueError)
    assert "requires api_key" in result.output

"""Unit tests for the ingestion CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from ragloader.cli.ingest import main
from ragloader.utils.errors import ConfigurationError
from tests.conftest import MockVectorStore


@pytest.fixture
def patched_build(components: dict[str, Any]):
    with patch("ragloader.cli.ingest._build", return_value=components) as build:
        yield build


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()


def test_ingest_files(
    patched_build: Any, tmp_path: Path, vector_store: MockVectorStore, capsys: pytest.CaptureFixture[str]
) -> None:
    notes = tmp_path / "notes.txt"
    notes.write_text("Rose opens the heart.")
    flowers = tmp_path / "flowers.csv"
    flowers.write_text("name,colour\nrose,pink\n")

    code = main(["file", str(notes), str(flowers), "--concurrency", "2"])

    out = capsys.readouterr().out
    assert code == 0
    assert "OK    notes.txt" in out
    assert "OK    flowers.csv" in out
    assert "2 succeeded, 0 failed" in out
    assert len(vector_store.records) == 2


def test_failed_file_sets_exit_code(
    patched_build: Any, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    binary = tmp_path / "tool.exe"
    binary.write_bytes(b"MZ")

    code = main(["file", str(binary)])

    assert code == 2
    assert "[UnsupportedFormat]" in capsys.readouterr().err


def test_missing_path(patched_build: Any, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["file", str(tmp_path / "nope.txt")]) == 1
    assert "not a file" in capsys.readouterr().err


def test_query_prints_ranked_matches(
    patched_build: Any, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    notes = tmp_path / "notes.txt"
    notes.write_text("Lavender essence for restful sleep.")
    main(["file", str(notes)])
    capsys.readouterr()

    code = main(["query", "sleep", "--top-k", "3"])

    out = capsys.readouterr().out
    assert code == 0
    assert " 1. " in out
    assert "notes.txt" in out
    assert "Lavender essence" in out


def test_configuration_error_reported(capsys: pytest.CaptureFixture[str]) -> None:
    error = ConfigurationError(message="OPENAI_API_KEY is required", provider_name="openai_embedding")

    with patch("ragloader.cli.ingest._build", side_effect=error):
        assert main(["query", "anything"]) == 1

    assert "OPENAI_API_KEY" in capsys.readouterr().err

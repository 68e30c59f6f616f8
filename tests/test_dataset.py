"""Tests for the dataset module (CLI commands with fetching mocked)."""

import json
from unittest.mock import patch

import pandas as pd
import pytest
from typer.testing import CliRunner

from canadian_politics.dataset import app, save_dataframe_to_csv, save_payload

runner = CliRunner()


@pytest.fixture
def sample_dataframe():
    """Create a sample DataFrame for testing."""
    return pd.DataFrame({"name": ["Jean Chrétien", "Kim Campbell"], "duration_years": [10.1, 0.36]})


def test_save_dataframe_to_csv(tmp_path, sample_dataframe):
    """Test saving DataFrame to CSV."""
    output_path = save_dataframe_to_csv(sample_dataframe, "test_output", tmp_path / "out")

    assert output_path == tmp_path / "out" / "test_output.csv"
    loaded = pd.read_csv(output_path)
    pd.testing.assert_frame_equal(loaded, sample_dataframe)


def test_save_payload_keeps_accents(tmp_path, pm_payload):
    output_path = save_payload(pm_payload, "persons", tmp_path)
    text = output_path.read_text(encoding="utf-8")
    assert "Chrétien" in text
    assert json.loads(text) == pm_payload


@patch("canadian_politics.dataset.fetch_person_records")
def test_tenure_command(mock_fetch, tmp_path, pm_payload):
    mock_fetch.return_value = pm_payload
    result = runner.invoke(app, [
        "tenure",
        "--output-dir", str(tmp_path),
        "--raw-dir", str(tmp_path / "raw"),
        "--no-plot",
        "--no-check-robots",
    ])

    assert result.exit_code == 0, result.output
    assert mock_fetch.call_args.kwargs["check_robots"] is False
    assert "duration_years =" in result.output

    table = pd.read_csv(tmp_path / "pm_tenure.csv")
    assert len(table) == len(pm_payload)
    quality = pd.read_csv(tmp_path / "pm_tenure_quality.csv")
    assert sorted(quality["kind"]) == ["DateParseError", "ExtractionMiss"]
    assert (tmp_path / "raw" / "parlinfo_persons.json").exists()


@patch("canadian_politics.dataset.fetch_poll_rows")
def test_polls_command(mock_fetch, tmp_path, poll_rows):
    mock_fetch.return_value = poll_rows
    result = runner.invoke(app, [
        "polls",
        "--output-dir", str(tmp_path),
        "--raw-dir", str(tmp_path / "raw"),
        "--no-plot",
        "--no-check-robots",
    ])

    assert result.exit_code == 0, result.output
    assert mock_fetch.call_args.kwargs["table_index"] == 1

    tidy = pd.read_csv(tmp_path / "polls_tidy.csv")
    assert tidy["firm"].tolist() == ["Leger", "Nanos Research", "Abacus Data", "Ipsos"]
    long = pd.read_csv(tmp_path / "polls_long.csv")
    assert long["category"].tolist()[:5] == ["Conservateur", "Libéral", "NPD", "Bloc Québécois", "Verts"]
    assert (tmp_path / "polls_quality.csv").exists()
    assert len(pd.read_csv(tmp_path / "raw" / "polls_raw.csv")) == len(poll_rows)


def test_missing_settings_file_fails(tmp_path):
    result = runner.invoke(app, ["tenure", "--settings", str(tmp_path / "missing.json"), "--no-check-robots"])
    assert result.exit_code != 0

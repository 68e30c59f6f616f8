"""
Command-line entry points for building the two datasets.

    python -m canadian_politics.dataset tenure   # prime-minister tenure table
    python -m canadian_politics.dataset polls    # long-form poll series

Each command fetches its payload, runs the pipeline, and writes the resulting
table plus a data-quality CSV listing every record-level issue of the run.
"""

import json
from pathlib import Path
from typing import Optional

from loguru import logger
import pandas as pd
import typer

from canadian_politics.analysis import fit_tenure_regression
from canadian_politics.config import (
    EXTERNAL_DATA_DIR,
    FIGURES_DIR,
    PARLINFO_API_URL,
    POLLS_WIKI_URL,
    PROCESSED_DATA_DIR,
    RAW_DATA_DIR,
)
from canadian_politics.metrics import summarize_ages
from canadian_politics.pipeline import build_poll_series, build_tenure_table
from canadian_politics.plots import plot_age_histogram, plot_poll_trends
from canadian_politics.settings import load_settings
from canadian_politics.sources import fetch_person_records, fetch_poll_rows

app = typer.Typer()


def save_dataframe_to_csv(
    df: pd.DataFrame, filename_without_extension: str, output_dir: Path
) -> Path:
    """
    Save a DataFrame to a CSV file with error handling.

    Args:
        df: DataFrame to save
        filename_without_extension: Output filename (without .csv extension)
        output_dir: Directory to save the file in

    Returns:
        Path of the written file
    """
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{filename_without_extension}.csv"
        df.to_csv(output_path, index=False)
        logger.info(f"Successfully saved {len(df)} records to {output_path}")
        return output_path
    except Exception as e:
        logger.error(f"Error saving {filename_without_extension}: {e}")
        raise


def save_payload(payload: list, filename_without_extension: str, output_dir: Path) -> Path:
    """Write the decoded Parlinfo payload as JSON, exactly as received."""
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"{filename_without_extension}.json"
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
    logger.info(f"Saved {len(payload)} raw records to {output_path}")
    return output_path


@app.command()
def tenure(
    url: str = typer.Option(PARLINFO_API_URL, help="Parlinfo person search URL (JSONP)"),
    settings_file: Optional[Path] = typer.Option(None, "--settings", help="Pipeline settings JSON"),
    output_dir: Path = typer.Option(PROCESSED_DATA_DIR, help="Directory for the CSV outputs"),
    raw_dir: Path = typer.Option(EXTERNAL_DATA_DIR, help="Directory for the downloaded payload"),
    plot: bool = typer.Option(True, help="Render the age histogram"),
    regression: bool = typer.Option(True, help="Fit duration ~ age at start"),
    check_robots: bool = typer.Option(True, help="Honour robots.txt"),
):
    """Build the prime-minister tenure table (interval, duration, age at start)."""
    settings = load_settings(settings_file)
    payload = fetch_person_records(url, check_robots=check_robots)
    save_payload(payload, "parlinfo_persons", raw_dir)

    table, report = build_tenure_table(payload, settings)
    save_dataframe_to_csv(table, "pm_tenure", output_dir)
    save_dataframe_to_csv(report.to_frame(), "pm_tenure_quality", output_dir)

    summary = summarize_ages(table)
    logger.info(
        f"Mean age at start {summary['mean_age_at_start']:.1f} over {summary['count']} entities; "
        f"youngest {summary['youngest']}, oldest {summary['oldest']}"
    )

    if plot:
        plot_age_histogram(table, FIGURES_DIR / "age_premiers_ministres.png")
    if regression:
        try:
            result = fit_tenure_regression(table)
            typer.echo(result.describe())
        except ValueError as e:
            logger.error(f"Regression skipped: {e}")


@app.command()
def polls(
    url: str = typer.Option(POLLS_WIKI_URL, help="Wikipedia opinion-polling page"),
    settings_file: Optional[Path] = typer.Option(None, "--settings", help="Pipeline settings JSON"),
    output_dir: Path = typer.Option(PROCESSED_DATA_DIR, help="Directory for the CSV outputs"),
    raw_dir: Path = typer.Option(RAW_DATA_DIR, help="Directory for the raw table rows"),
    plot: bool = typer.Option(True, help="Render the poll trend chart"),
    check_robots: bool = typer.Option(True, help="Honour robots.txt"),
):
    """Build the long-form party poll series."""
    settings = load_settings(settings_file)
    if settings.poll_table is None:
        raise typer.BadParameter("Settings have no 'poll_table' section", param_hint="--settings")

    rows = fetch_poll_rows(url, table_index=settings.poll_table.table_index, check_robots=check_robots)
    save_dataframe_to_csv(pd.DataFrame(rows), "polls_raw", raw_dir)
    tidy, long, report = build_poll_series(rows, settings)
    save_dataframe_to_csv(tidy, "polls_tidy", output_dir)
    save_dataframe_to_csv(long, "polls_long", output_dir)
    save_dataframe_to_csv(report.to_frame(), "polls_quality", output_dir)

    if plot:
        plot_poll_trends(long, FIGURES_DIR / "tendances_sondages_partis.png")


if __name__ == "__main__":
    app()

"""
End-to-end assembly of the two output tables.

    person payload -> extract intervals -> normalize dates -> corrections -> metrics
    poll rows      -> rename -> filter -> coerce -> pivot

Both functions are pure with respect to their inputs: they never fetch, never
write files, and always return the DataQualityReport of the run next to the
data, so a caller can audit what was dropped or left missing.
"""

from typing import Any, Mapping, Sequence, Tuple

from loguru import logger
import pandas as pd

from canadian_politics.dates import apply_date_corrections, normalize_date_columns
from canadian_politics.metrics import DERIVED_COLUMNS, derive_metrics
from canadian_politics.polls import reshape_poll_table
from canadian_politics.quality import DataQualityReport
from canadian_politics.role_intervals import extract_intervals, parse_person_records
from canadian_politics.settings import PipelineSettings, SettingsError

RAW_DATE_COLUMNS = {
    "birth_date_raw": "birth_date",
    "start_raw": "start_date",
    "end_raw": "end_date",
}


def build_tenure_table(
    payload: Sequence[Mapping[str, Any]],
    settings: PipelineSettings,
) -> Tuple[pd.DataFrame, DataQualityReport]:
    """
    Build the one-row-per-person table of role intervals and derived metrics.

    Args:
        payload: Parlinfo person dictionaries, in source order
        settings: Target role label and date-correction table

    Returns:
        (derived table, data-quality report). Row order follows the payload.
        interval_status is "matched", "corrected" or "unresolved" (no usable
        start date even after corrections).
    """
    report = DataQualityReport("tenure")

    entities = parse_person_records(payload)
    intervals = extract_intervals(entities, settings.target_role_label, report)
    normalized = normalize_date_columns(intervals, RAW_DATE_COLUMNS, report)

    normalized["interval_status"] = "matched"
    normalized.loc[normalized["role_matches"] == 0, "interval_status"] = "unresolved"
    corrected = apply_date_corrections(normalized, settings.date_corrections)
    corrected.loc[corrected["start_date"].isna(), "interval_status"] = "unresolved"

    derived = derive_metrics(corrected, report)[DERIVED_COLUMNS]

    unresolved = derived.loc[derived["interval_status"] == "unresolved", "name"].tolist()
    if unresolved:
        logger.warning(f"{len(unresolved)} entities left without a usable interval: {unresolved}")
    report.log_summary()
    return derived.reset_index(drop=True), report


def build_poll_series(
    rows: Sequence[Mapping[str, Any]],
    settings: PipelineSettings,
) -> Tuple[pd.DataFrame, pd.DataFrame, DataQualityReport]:
    """
    Build the typed poll table and its long-form party series.

    Returns:
        (tidy wide table, long table with date/category/value/rank, report)
    """
    if settings.poll_table is None:
        raise SettingsError("Settings have no 'poll_table' section")

    report = DataQualityReport("polls")
    tidy, long = reshape_poll_table(rows, settings.poll_table, report)
    report.log_summary()
    return tidy, long, report

"""
Date normalization and the manual date-correction layer.

Parlinfo timestamps look like "1993-06-25T00:00:00" (sometimes with a zone
suffix). Only the leading calendar date is meaningful here, so normalization
keeps the first ten characters and parses them as YYYY-MM-DD.

A small, versioned table of corrections (see resources/pipeline_settings.json)
is applied after parsing for entities whose source dates are known to be
wrong or incomplete. The table is data, never inferred: entities that are not
listed are never modified.
"""

from dataclasses import dataclass
from datetime import date, datetime
import re
from typing import Any, Dict, Iterable

from loguru import logger
import pandas as pd

from canadian_politics.quality import DataQualityReport, DateParseError

ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Calendar dates representable as datetime64[ns] (Timestamp.min falls after midnight)
EARLIEST_DATE = (pd.Timestamp.min + pd.Timedelta(days=1)).date()
LATEST_DATE = pd.Timestamp.max.date()

# Fields a correction is allowed to override
CORRECTABLE_FIELDS = ("birth_date", "start_date", "end_date")


@dataclass(frozen=True)
class DateCorrection:
    """One override: set *field* of *entity* to *value*, for the stated *reason*.

    *value* may lie after the data-collection date (an announced but not yet
    effective transition); no "not in the future" check is applied.
    """

    entity: str
    field: str
    value: date
    reason: str


def normalize_date(value: Any) -> date:
    """
    Parse the leading YYYY-MM-DD of a timestamp-like string.

    Args:
        value: e.g. "1993-06-25T00:00:00Z" or "1993-06-25"

    Returns:
        The calendar date

    Raises:
        DateParseError: if value is not a string, is shorter than ten
            characters, does not start with a valid ISO calendar date, or
            names a date outside EARLIEST_DATE..LATEST_DATE
    """
    if not isinstance(value, str):
        raise DateParseError(f"expected a date string, got {type(value).__name__}", value=value)

    prefix = value.strip()[:10]
    if len(prefix) < 10 or not ISO_DATE_PREFIX.match(prefix):
        raise DateParseError(f"{value!r} does not start with YYYY-MM-DD", value=value)

    try:
        parsed = datetime.strptime(prefix, "%Y-%m-%d").date()
    except ValueError as e:
        raise DateParseError(f"{value!r} is not a valid calendar date: {e}", value=value) from e
    return check_date_range(parsed, value)


def check_date_range(parsed: date, value: Any = None) -> date:
    """
    Return *parsed* if it fits a datetime64[ns] column.

    Raises:
        DateParseError: for dates before EARLIEST_DATE or after LATEST_DATE,
            e.g. open-end sentinels such as 9999-12-31
    """
    if not EARLIEST_DATE <= parsed <= LATEST_DATE:
        raise DateParseError(
            f"{parsed.isoformat()} is outside the supported range "
            f"{EARLIEST_DATE.isoformat()}..{LATEST_DATE.isoformat()}",
            value=parsed.isoformat() if value is None else value,
        )
    return parsed


def _is_missing(value: Any) -> bool:
    return value is None or (not isinstance(value, str) and pd.isna(value))


def normalize_date_columns(
    frame: pd.DataFrame,
    columns: Dict[str, str],
    report: DataQualityReport,
    record_column: str = "name",
) -> pd.DataFrame:
    """
    Convert raw date-string columns into datetime64 columns.

    Missing raw values become NaT without an issue (they are either already
    reported as an extraction miss or are legitimately open intervals).
    Malformed strings become NaT and a DateParseError naming the entity is
    added to *report*.

    Args:
        frame: DataFrame holding the raw columns
        columns: mapping of raw column name -> normalized column name
        report: collects DateParseError issues
        record_column: column identifying the entity in issue records

    Returns:
        A new DataFrame with the normalized columns added
    """
    result = frame.copy()
    for raw_col, target_col in columns.items():
        values = []
        for record, raw in zip(result[record_column], result[raw_col]):
            if _is_missing(raw):
                values.append(pd.NaT)
                continue
            try:
                values.append(pd.Timestamp(normalize_date(raw)))
            except DateParseError as e:
                e.record = record
                e.field = target_col
                report.add(e)
                values.append(pd.NaT)
        result[target_col] = pd.Series(values, index=result.index, dtype="datetime64[ns]")
    return result


def apply_date_corrections(
    frame: pd.DataFrame,
    corrections: Iterable[DateCorrection],
    name_column: str = "name",
) -> pd.DataFrame:
    """
    Apply entity-keyed date overrides to a normalized frame.

    The override set is closed: only rows whose *name_column* equals a
    correction's entity are touched, and applying the same corrections twice
    gives the same result as applying them once. Corrected rows get
    interval_status = "corrected" when that column exists.

    Returns:
        A new DataFrame
    """
    result = frame.copy()
    for correction in corrections:
        if correction.field not in result.columns:
            logger.warning(
                f"Correction for {correction.entity!r} targets unknown column {correction.field!r}; skipped"
            )
            continue

        try:
            check_date_range(correction.value)
        except DateParseError as e:
            logger.warning(f"Correction for {correction.entity!r} skipped: {e.message}")
            continue

        mask = result[name_column] == correction.entity
        if not mask.any():
            logger.warning(f"Correction for {correction.entity!r} matches no entity; skipped")
            continue

        result.loc[mask, correction.field] = pd.Timestamp(correction.value)
        if "interval_status" in result.columns:
            result.loc[mask, "interval_status"] = "corrected"
        logger.info(
            f"Corrected {correction.field} of {correction.entity!r} to {correction.value.isoformat()} "
            f"({correction.reason})"
        )
    return result

"""
Reshaping of the Wikipedia opinion-polling table into a tidy time series.

The raw table arrives as a list of {header text: cell text} rows. Processing
runs four stages in order, without backtracking:

1. rename   - verbatim source headers (footnote markup included) to canonical
              names; unmapped columns are dropped
2. filter   - rows with an empty key field, then known artifact rows by
              position (header repeats, separators)
3. coerce   - decorated numeric strings ("±2.1 pp", "1,234 (1/4)") to floats,
              and the month-day-year date column to dates
4. pivot    - one column per party to (date, category, value) rows with a
              fixed display order

A bad cell becomes a missing value and an issue in the DataQualityReport; it
never stops the rest of the table from being processed.
"""

from datetime import date, datetime
import re
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

from loguru import logger
import numpy as np
import pandas as pd

from canadian_politics.dates import check_date_range
from canadian_politics.quality import (
    DataQualityReport,
    DateParseError,
    NumericCoercionError,
    StructuralRowError,
)
from canadian_politics.settings import CategorySpec, PollTableSettings

FOOTNOTE_PATTERN = re.compile(r"\[[^\]]*\]")
DIGIT_PATTERN = re.compile(r"\d")


def _squish(text: str) -> str:
    return " ".join(text.split())


# ---------------------------------------------------------------------------
# 1. Rename
# ---------------------------------------------------------------------------
def rename_columns(rows: Sequence[Mapping[str, Any]], mapping: Mapping[str, str]) -> pd.DataFrame:
    """
    Keep the mapped source columns, renamed to canonical names.

    Columns follow the order of *mapping*. A mapped header that is absent from
    the table yields an all-missing column and a warning.
    """
    headers = set()
    for row in rows:
        headers.update(row.keys())

    missing = [source for source in mapping if source not in headers]
    if missing and rows:
        logger.warning(f"Mapped columns not found in table: {missing}")
    dropped = sorted(h for h in headers if h not in mapping)
    if dropped:
        logger.debug(f"Dropping unmapped columns: {dropped}")

    records = [
        {target: row.get(source) for source, target in mapping.items()}
        for row in rows
    ]
    return pd.DataFrame(records, columns=list(mapping.values()))


# ---------------------------------------------------------------------------
# 2. Filter
# ---------------------------------------------------------------------------
def filter_rows(
    frame: pd.DataFrame,
    key_field: str,
    excluded_positions: Iterable[int],
    report: DataQualityReport,
) -> pd.DataFrame:
    """
    Drop rows with an empty key, then drop rows at the given positions.

    Positions are 0-based and counted on the table as it stands after the
    empty-key filter. They are source-specific configuration: each one names
    a known artifact row of the upstream table.

    Returns:
        A new DataFrame with a fresh RangeIndex and a source_row column holding
        each surviving row's position in the renamed input.
    """
    result = frame.copy()
    result.insert(0, "source_row", range(len(result)))

    keys = result[key_field]
    empty = keys.isna() | (keys.astype(str).str.strip() == "")
    for position in result.loc[empty, "source_row"]:
        report.add(StructuralRowError(
            f"empty {key_field!r}", record=int(position), field=key_field,
        ))
    result = result.loc[~empty].reset_index(drop=True)

    excluded = sorted(set(excluded_positions))
    out_of_range = [p for p in excluded if p < 0 or p >= len(result)]
    if out_of_range:
        logger.warning(f"Excluded positions beyond a {len(result)}-row table ignored: {out_of_range}")
    in_range = [p for p in excluded if 0 <= p < len(result)]
    if in_range:
        logger.debug(
            f"Excluding artifact rows at positions {in_range}: "
            f"{result.loc[in_range, key_field].tolist()}"
        )
    result = result.drop(index=in_range).reset_index(drop=True)

    logger.info(
        f"Filtered poll table: {len(frame)} rows in, {int(empty.sum())} without {key_field!r}, "
        f"{len(in_range)} excluded by position, {len(result)} kept"
    )
    return result


# ---------------------------------------------------------------------------
# 3. Coerce
# ---------------------------------------------------------------------------
def coerce_number(value: Any, strip_rules: Sequence[Tuple[str, str]]) -> float:
    """
    Strip decorations from *value* with ordered (regex, replacement) rules and
    parse what is left as a number.

    Raises:
        NumericCoercionError: when nothing numeric is left after stripping
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if pd.isna(value):
            raise NumericCoercionError("missing value", value=value)
        return float(value)
    if value is None:
        raise NumericCoercionError("missing value", value=value)

    text = str(value)
    for pattern, replacement in strip_rules:
        text = re.sub(pattern, replacement, text)
    text = _squish(text)

    if not DIGIT_PATTERN.search(text):
        raise NumericCoercionError(f"no digits left in {value!r}", value=value)
    try:
        return float(text)
    except ValueError as e:
        raise NumericCoercionError(f"{value!r} -> {text!r} is not a number", value=value) from e


def parse_month_day_year(value: Any, formats: Sequence[str]) -> date:
    """
    Parse a month-day-year date ("March 10, 2025", "3/10/2025", ...).

    Only the given formats are tried, in order, so a day/month transposition
    can never be guessed into a valid date.

    Raises:
        DateParseError: when no format matches, or the date does not fit a
            datetime64[ns] column
    """
    if not isinstance(value, str):
        raise DateParseError(f"expected a date string, got {type(value).__name__}", value=value)

    text = _squish(FOOTNOTE_PATTERN.sub("", value))
    for fmt in formats:
        try:
            parsed = datetime.strptime(text, fmt).date()
        except ValueError:
            continue
        return check_date_range(parsed, value)
    raise DateParseError(f"{value!r} matches none of {list(formats)}", value=value)


def coerce_columns(
    frame: pd.DataFrame,
    numeric_columns: Sequence[str],
    strip_rules: Sequence[Tuple[str, str]],
    date_column: str,
    date_formats: Sequence[str],
    report: DataQualityReport,
    record_column: str = "source_row",
) -> pd.DataFrame:
    """
    Convert flagged columns to float and the date column to datetime64.

    Cells that fail become NaN/NaT and add an issue keyed by *record_column*.
    """
    result = frame.copy()
    records = result[record_column] if record_column in result.columns else result.index

    for column in numeric_columns:
        values = []
        for record, raw in zip(records, result[column]):
            try:
                values.append(coerce_number(raw, strip_rules))
            except NumericCoercionError as e:
                e.record = int(record)
                e.field = column
                report.add(e)
                values.append(np.nan)
        result[column] = pd.Series(values, index=result.index, dtype=float)

    dates = []
    for record, raw in zip(records, result[date_column]):
        try:
            dates.append(pd.Timestamp(parse_month_day_year(raw, date_formats)))
        except DateParseError as e:
            e.record = int(record)
            e.field = date_column
            report.add(e)
            dates.append(pd.NaT)
    result[date_column] = pd.Series(dates, index=result.index, dtype="datetime64[ns]")
    return result


# ---------------------------------------------------------------------------
# 4. Pivot
# ---------------------------------------------------------------------------
def pivot_longer(
    frame: pd.DataFrame,
    categories: Sequence[CategorySpec],
    id_column: str = "date",
) -> pd.DataFrame:
    """
    Reshape one-column-per-category into (date, category, value, rank) rows.

    *id_column* names the source column holding the poll date; in the output
    it is always called date.

    category is an ordered Categorical in display order and rank is the
    0-based display position, so downstream legends never fall back to
    alphabetical order. Rows come out in source order, then display order.
    """
    labels = [spec.label for spec in categories]
    rows = []
    for _, source in frame.iterrows():
        for rank, spec in enumerate(categories):
            rows.append({
                "date": source[id_column],
                "category": spec.label,
                "value": source[spec.column],
                "rank": rank,
            })

    long = pd.DataFrame(rows, columns=["date", "category", "value", "rank"])
    long["category"] = pd.Categorical(long["category"], categories=labels, ordered=True)
    long["value"] = long["value"].astype(float)
    long["rank"] = long["rank"].astype(int)
    long["date"] = pd.to_datetime(long["date"])
    return long


def reshape_poll_table(
    rows: Sequence[Mapping[str, Any]],
    table_settings: PollTableSettings,
    report: Optional[DataQualityReport] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Run rename -> filter -> coerce -> pivot over one raw poll table.

    Returns:
        (tidy, long): the typed wide table and its long-form party series
    """
    if report is None:
        report = DataQualityReport("polls")

    renamed = rename_columns(rows, table_settings.column_renames)
    filtered = filter_rows(
        renamed,
        key_field=table_settings.key_field,
        excluded_positions=table_settings.excluded_row_positions,
        report=report,
    )
    tidy = coerce_columns(
        filtered,
        numeric_columns=table_settings.numeric_columns,
        strip_rules=table_settings.strip_rules,
        date_column=table_settings.date_column,
        date_formats=table_settings.date_formats,
        report=report,
    )
    long = pivot_longer(tidy, table_settings.categories, id_column=table_settings.date_column)
    logger.info(f"Reshaped poll table: {len(tidy)} polls, {len(long)} long rows")
    return tidy, long

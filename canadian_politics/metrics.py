"""
Derived temporal metrics: time in office and age at taking office.

Both metrics use a 365.25-day year and are left unrounded; rounding belongs to
presentation. A missing end date means the duration is undefined (NaN), which
pandas aggregates skip, so an ongoing term never counts as zero years.
"""

from typing import Any, Dict

from loguru import logger
import numpy as np
import pandas as pd

from canadian_politics.quality import DataQualityReport, MetricSanityError

DAYS_PER_YEAR = 365.25

DERIVED_COLUMNS = [
    "name", "birth_date", "start_date", "end_date",
    "duration_years", "age_at_start_years",
    "party", "occupation", "province",
    "interval_status", "metric_flag",
]


def years_between(start, end) -> float:
    """(end - start) in days / 365.25, or NaN when either side is missing."""
    if pd.isna(start) or pd.isna(end):
        return np.nan
    return (pd.Timestamp(end) - pd.Timestamp(start)).days / DAYS_PER_YEAR


def derive_metrics(frame: pd.DataFrame, report: DataQualityReport) -> pd.DataFrame:
    """
    Add duration_years and age_at_start_years to a normalized interval frame.

    Negative results are kept as computed, flagged in metric_flag, and added
    to *report* as MetricSanityError.

    Args:
        frame: DataFrame with name, birth_date, start_date, end_date columns
        report: collects MetricSanityError issues

    Returns:
        A new DataFrame
    """
    result = frame.copy()
    result["duration_years"] = [
        years_between(start, end) for start, end in zip(result["start_date"], result["end_date"])
    ]
    result["age_at_start_years"] = [
        years_between(birth, start) for birth, start in zip(result["birth_date"], result["start_date"])
    ]
    result["duration_years"] = result["duration_years"].astype(float)
    result["age_at_start_years"] = result["age_at_start_years"].astype(float)

    flags = []
    for name, duration, age in zip(result["name"], result["duration_years"], result["age_at_start_years"]):
        flagged = False
        if duration < 0:
            report.add(MetricSanityError(
                f"negative duration {duration:.3f} years (end before start)",
                record=name, field="duration_years", value=duration,
            ))
            flagged = True
        if age < 0:
            report.add(MetricSanityError(
                f"negative age at start {age:.3f} years (start before birth)",
                record=name, field="age_at_start_years", value=age,
            ))
            flagged = True
        flags.append(flagged)
    result["metric_flag"] = pd.Series(flags, index=result.index, dtype=bool)

    logger.info(
        f"Derived metrics for {len(result)} entities: "
        f"{int(result['duration_years'].notna().sum())} durations, "
        f"{int(result['age_at_start_years'].notna().sum())} ages"
    )
    return result


def summarize_ages(frame: pd.DataFrame) -> Dict[str, Any]:
    """
    Headline numbers used to annotate the age chart.

    Undefined ages/durations are excluded from every aggregate.
    """
    ages = frame.dropna(subset=["age_at_start_years"])
    summary: Dict[str, Any] = {
        "count": int(len(ages)),
        "mean_age_at_start": float(ages["age_at_start_years"].mean()) if len(ages) else np.nan,
        "mean_duration": float(frame["duration_years"].mean()) if frame["duration_years"].notna().any() else np.nan,
        "youngest": None,
        "oldest": None,
    }
    if len(ages):
        youngest = ages.loc[ages["age_at_start_years"].idxmin()]
        oldest = ages.loc[ages["age_at_start_years"].idxmax()]
        summary["youngest"] = (youngest["name"], float(youngest["age_at_start_years"]))
        summary["oldest"] = (oldest["name"], float(oldest["age_at_start_years"]))
    return summary

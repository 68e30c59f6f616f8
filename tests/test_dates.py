"""
Unit tests for the dates module.
"""

from datetime import date
import unittest

import numpy as np
import pandas as pd
import pytest

from canadian_politics.dates import (
    DateCorrection,
    apply_date_corrections,
    normalize_date,
    normalize_date_columns,
)
from canadian_politics.quality import DataQualityReport, DateParseError


class TestNormalizeDate(unittest.TestCase):
    """Test prefix-based date normalization."""

    def test_timestamp_suffix_is_dropped(self):
        self.assertEqual(normalize_date("1993-06-25T00:00:00Z"), date(1993, 6, 25))
        self.assertEqual(normalize_date("1993-06-25T00:00:00"), date(1993, 6, 25))

    def test_ten_character_input_is_a_no_op(self):
        once = normalize_date("1993-06-25")
        self.assertEqual(once, date(1993, 6, 25))
        self.assertEqual(normalize_date(once.isoformat()), once)

    def test_pre_1900_dates(self):
        self.assertEqual(normalize_date("1815-01-11T00:00:00"), date(1815, 1, 11))

    def test_invalid_inputs(self):
        for bad in ["1993", "1993-6-25", "25/06/1993", "1993-13-01T00:00:00", "1993-02-30", "", "not a date"]:
            with self.subTest(value=bad):
                with self.assertRaises(DateParseError):
                    normalize_date(bad)

    def test_non_string_inputs(self):
        for bad in [None, 19930625, np.nan]:
            with self.subTest(value=bad):
                with self.assertRaises(DateParseError):
                    normalize_date(bad)

    def test_dates_outside_datetime64_range(self):
        for bad in ["9999-12-31T00:00:00", "0001-01-01", "1677-09-21", "2262-04-12"]:
            with self.subTest(value=bad):
                with self.assertRaises(DateParseError):
                    normalize_date(bad)
        self.assertEqual(normalize_date("1677-09-22"), date(1677, 9, 22))
        self.assertEqual(normalize_date("2262-04-11"), date(2262, 4, 11))


def _raw_frame():
    return pd.DataFrame({
        "name": ["A", "B", "C"],
        "start_raw": ["1993-06-25T00:00:00", "garbage", None],
    })


def test_normalize_date_columns_reports_offending_entity():
    report = DataQualityReport()
    result = normalize_date_columns(_raw_frame(), {"start_raw": "start_date"}, report)

    assert result["start_date"].dtype == "datetime64[ns]"
    assert result.loc[0, "start_date"] == pd.Timestamp("1993-06-25")
    assert pd.isna(result.loc[1, "start_date"])
    assert pd.isna(result.loc[2, "start_date"])

    # Missing values are not parse errors, malformed strings are
    assert report.count("DateParseError") == 1
    issue = report.issues[0]
    assert issue.record == "B"
    assert issue.field == "start_date"
    assert issue.value == "garbage"


def test_open_end_sentinel_is_reported_not_fatal():
    frame = pd.DataFrame({
        "name": ["Jean Chrétien", "Forever PM"],
        "end_raw": ["2003-12-11T00:00:00", "9999-12-31T00:00:00"],
    })
    report = DataQualityReport()
    result = normalize_date_columns(frame, {"end_raw": "end_date"}, report)

    assert result.loc[0, "end_date"] == pd.Timestamp("2003-12-11")
    assert pd.isna(result.loc[1, "end_date"])
    assert report.records("DateParseError") == ["Forever PM"]


def test_normalize_date_columns_does_not_mutate_input():
    raw = _raw_frame()
    normalize_date_columns(raw, {"start_raw": "start_date"}, DataQualityReport())
    assert "start_date" not in raw.columns


@pytest.fixture
def normalized():
    return pd.DataFrame({
        "name": ["A. Kim Campbell", "Justin Trudeau", "Jean Chrétien"],
        "start_date": pd.to_datetime([None, "2015-11-04", "1993-11-04"]),
        "end_date": pd.to_datetime([None, None, "2003-12-11"]),
        "interval_status": ["unresolved", "matched", "matched"],
    })


CORRECTIONS = [
    DateCorrection("A. Kim Campbell", "start_date", date(1993, 6, 25), "no matching role"),
    DateCorrection("A. Kim Campbell", "end_date", date(1993, 11, 3), "no matching role"),
    DateCorrection("Justin Trudeau", "end_date", date(2025, 3, 10), "announced transition"),
]


def test_corrections_override_exactly(normalized):
    result = apply_date_corrections(normalized, CORRECTIONS)

    campbell = result.iloc[0]
    assert campbell["start_date"] == pd.Timestamp("1993-06-25")
    assert campbell["end_date"] == pd.Timestamp("1993-11-03")
    assert campbell["interval_status"] == "corrected"
    assert result.iloc[1]["end_date"] == pd.Timestamp("2025-03-10")


def test_corrections_leave_unlisted_entities_untouched(normalized):
    result = apply_date_corrections(normalized, CORRECTIONS)
    pd.testing.assert_series_equal(result.iloc[2], normalized.iloc[2])


def test_corrections_are_idempotent(normalized):
    once = apply_date_corrections(normalized, CORRECTIONS)
    twice = apply_date_corrections(once, CORRECTIONS)
    pd.testing.assert_frame_equal(once, twice)


def test_future_dated_correction_is_accepted(normalized):
    far_future = [DateCorrection("Justin Trudeau", "end_date", date(2099, 1, 1), "announced")]
    result = apply_date_corrections(normalized, far_future)
    assert result.iloc[1]["end_date"] == pd.Timestamp("2099-01-01")


def test_correction_for_unknown_entity_is_skipped(normalized):
    result = apply_date_corrections(
        normalized, [DateCorrection("Nobody", "end_date", date(2000, 1, 1), "typo")]
    )
    pd.testing.assert_frame_equal(result, normalized)


def test_out_of_range_correction_is_skipped(normalized):
    result = apply_date_corrections(
        normalized, [DateCorrection("Justin Trudeau", "end_date", date(9999, 12, 31), "open end")]
    )
    pd.testing.assert_frame_equal(result, normalized)

"""
Data-quality issue taxonomy and the per-run report that collects it.

None of the issues below abort a batch. Each stage catches them locally, turns
the affected cell into a missing value, and hands the issue to a
DataQualityReport so the whole run can be audited afterwards (how many records
were affected, and which ones).
"""

from typing import Any, Dict, List, Optional

from loguru import logger
import pandas as pd


class DataQualityError(Exception):
    """Base class for non-fatal, record-local data defects."""

    kind = "DataQualityError"

    def __init__(self, message: str, record: Any = None, field: Optional[str] = None,
                 value: Any = None):
        super().__init__(message)
        self.message = message
        self.record = record
        self.field = field
        self.value = value


class ExtractionMiss(DataQualityError):
    """No role record matched the target label for an entity."""

    kind = "ExtractionMiss"


class DateParseError(DataQualityError):
    """A date string did not conform to the expected prefix/format."""

    kind = "DateParseError"


class NumericCoercionError(DataQualityError):
    """A decorated numeric string could not be parsed after stripping."""

    kind = "NumericCoercionError"


class StructuralRowError(DataQualityError):
    """A table row failed a required-field check and was excluded."""

    kind = "StructuralRowError"


class MetricSanityError(DataQualityError):
    """A derived metric came out negative, which points at corrupt upstream dates."""

    kind = "MetricSanityError"


class DataQualityReport:
    """Ordered collection of the data-quality issues raised during one run."""

    def __init__(self, name: str = "pipeline"):
        self.name = name
        self._issues: List[DataQualityError] = []

    def add(self, issue: DataQualityError) -> None:
        self._issues.append(issue)
        logger.warning(f"[{self.name}] {issue.kind} on {issue.record!r}: {issue.message}")

    def extend(self, other: "DataQualityReport") -> None:
        self._issues.extend(other.issues)

    @property
    def issues(self) -> List[DataQualityError]:
        return list(self._issues)

    def count(self, kind: Optional[str] = None) -> int:
        if kind is None:
            return len(self._issues)
        return sum(1 for issue in self._issues if issue.kind == kind)

    def by_kind(self) -> Dict[str, int]:
        """Issue counts keyed by kind, in order of first appearance."""
        counts: Dict[str, int] = {}
        for issue in self._issues:
            counts[issue.kind] = counts.get(issue.kind, 0) + 1
        return counts

    def records(self, kind: str) -> List[Any]:
        """Identities of the records affected by *kind*, without repeats."""
        seen = []
        for issue in self._issues:
            if issue.kind == kind and issue.record not in seen:
                seen.append(issue.record)
        return seen

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "kind": issue.kind,
                    "record": issue.record,
                    "field": issue.field,
                    "value": issue.value,
                    "message": issue.message,
                }
                for issue in self._issues
            ],
            columns=["kind", "record", "field", "value", "message"],
        )

    def log_summary(self) -> None:
        if not self._issues:
            logger.info(f"[{self.name}] No data-quality issues recorded")
            return
        logger.info(f"[{self.name}] {len(self._issues)} data-quality issues recorded")
        for kind, count in self.by_kind().items():
            affected = self.records(kind)
            preview = ", ".join(str(r) for r in affected[:5])
            if len(affected) > 5:
                preview += f", ... and {len(affected) - 5} more"
            logger.info(f"  {kind}: {count} ({preview})")

    def __len__(self) -> int:
        return len(self._issues)

    def __bool__(self) -> bool:
        return bool(self._issues)

    def __repr__(self) -> str:
        return f"DataQualityReport(name={self.name!r}, issues={self.by_kind()})"

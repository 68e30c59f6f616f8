"""
Loading of the pipeline's configuration surface.

Everything a run needs that is specific to the upstream sources lives in one
JSON document (by default resources/pipeline_settings.json, or the file named
by the PIPELINE_SETTINGS environment variable):

- the target role label used to find office-holding intervals
- the entity-keyed date-correction table, one documented entry per override
- the poll table's rename map, key field, positional row exclusions, numeric
  columns, ordered strip rules, date formats, and party categories

Changing any of these never requires touching the transformation code.
"""

from dataclasses import dataclass, field
from datetime import date
import json
from pathlib import Path
import re
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from canadian_politics.config import SETTINGS_FILE
from canadian_politics.dates import CORRECTABLE_FIELDS, DateCorrection, check_date_range
from canadian_politics.quality import DateParseError


class SettingsError(Exception):
    """Raised when the settings document is missing or malformed."""
    pass


@dataclass(frozen=True)
class CategorySpec:
    column: str
    label: str


@dataclass(frozen=True)
class PollTableSettings:
    table_index: int
    column_renames: Dict[str, str]
    key_field: str
    excluded_row_positions: Tuple[int, ...]
    numeric_columns: Tuple[str, ...]
    strip_rules: Tuple[Tuple[str, str], ...]
    date_column: str
    date_formats: Tuple[str, ...]
    categories: Tuple[CategorySpec, ...]

    @property
    def category_order(self) -> List[str]:
        return [spec.label for spec in self.categories]


@dataclass(frozen=True)
class PipelineSettings:
    target_role_label: str
    date_corrections: Tuple[DateCorrection, ...] = field(default_factory=tuple)
    poll_table: Optional[PollTableSettings] = None


def _require(section: Dict[str, Any], key: str, where: str) -> Any:
    if key not in section:
        raise SettingsError(f"Missing '{key}' in {where}")
    return section[key]


def parse_date_corrections(entries: List[Dict[str, Any]]) -> Tuple[DateCorrection, ...]:
    """Validate and convert raw correction entries."""
    corrections = []
    seen = set()
    for i, entry in enumerate(entries):
        where = f"date_corrections[{i}]"
        entity = _require(entry, "entity", where)
        field_name = _require(entry, "field", where)
        raw_value = _require(entry, "value", where)
        reason = str(entry.get("reason") or "").strip()

        if field_name not in CORRECTABLE_FIELDS:
            raise SettingsError(f"{where}: field must be one of {CORRECTABLE_FIELDS}, got {field_name!r}")
        if not reason:
            raise SettingsError(f"{where}: every correction must document its reason")
        if (entity, field_name) in seen:
            raise SettingsError(f"{where}: duplicate correction for {entity!r}.{field_name}")
        seen.add((entity, field_name))

        try:
            value = date.fromisoformat(str(raw_value))
        except ValueError as e:
            raise SettingsError(f"{where}: invalid date {raw_value!r}") from e
        try:
            check_date_range(value)
        except DateParseError as e:
            raise SettingsError(f"{where}: {e.message}") from e

        corrections.append(DateCorrection(entity=entity, field=field_name, value=value, reason=reason))
    return tuple(corrections)


def parse_poll_table_settings(section: Dict[str, Any]) -> PollTableSettings:
    where = "poll_table"
    renames = _require(section, "column_renames", where)
    strip_rules = []
    for i, rule in enumerate(_require(section, "strip_rules", where)):
        if not isinstance(rule, (list, tuple)) or len(rule) != 2:
            raise SettingsError(f"{where}.strip_rules[{i}] must be a [pattern, replacement] pair")
        try:
            re.compile(rule[0])
        except re.error as e:
            raise SettingsError(f"{where}.strip_rules[{i}]: invalid pattern {rule[0]!r}: {e}") from e
        strip_rules.append((rule[0], rule[1]))

    categories = tuple(
        CategorySpec(column=_require(c, "column", f"{where}.categories"),
                     label=_require(c, "label", f"{where}.categories"))
        for c in _require(section, "categories", where)
    )
    canonical = set(renames.values())
    numeric_columns = tuple(_require(section, "numeric_columns", where))
    for column in list(numeric_columns) + [c.column for c in categories]:
        if column not in canonical:
            raise SettingsError(f"{where}: column {column!r} is not produced by column_renames")
    unflagged = [c.column for c in categories if c.column not in numeric_columns]
    if unflagged:
        raise SettingsError(f"{where}: category columns must be numeric: {unflagged}")

    key_field = _require(section, "key_field", where)
    date_column = _require(section, "date_column", where)
    for column in (key_field, date_column):
        if column not in canonical:
            raise SettingsError(f"{where}: column {column!r} is not produced by column_renames")

    return PollTableSettings(
        table_index=int(section.get("table_index", 1)),
        column_renames=dict(renames),
        key_field=key_field,
        excluded_row_positions=tuple(int(p) for p in section.get("excluded_row_positions", [])),
        numeric_columns=numeric_columns,
        strip_rules=tuple(strip_rules),
        date_column=date_column,
        date_formats=tuple(_require(section, "date_formats", where)),
        categories=categories,
    )


def settings_from_dict(document: Dict[str, Any]) -> PipelineSettings:
    poll_section = document.get("poll_table")
    return PipelineSettings(
        target_role_label=_require(document, "target_role_label", "settings"),
        date_corrections=parse_date_corrections(document.get("date_corrections", [])),
        poll_table=parse_poll_table_settings(poll_section) if poll_section else None,
    )


def load_settings(path: Optional[Path] = None) -> PipelineSettings:
    """
    Load pipeline settings from a JSON file.

    Args:
        path: Settings file; defaults to config.SETTINGS_FILE

    Returns:
        PipelineSettings

    Raises:
        SettingsError: if the file is missing, is not valid JSON, or fails validation
    """
    path = Path(path) if path is not None else SETTINGS_FILE
    if not path.exists():
        raise SettingsError(f"Settings file not found: {path}")

    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SettingsError(f"Settings file {path} is not valid JSON: {e}") from e

    settings = settings_from_dict(document)
    logger.info(
        f"Loaded settings from {path}: target role {settings.target_role_label!r}, "
        f"{len(settings.date_corrections)} date corrections"
    )
    return settings

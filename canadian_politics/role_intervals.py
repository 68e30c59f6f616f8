"""
Person records and role-interval extraction for the Parlinfo dataset.

Each person in the Parlinfo payload carries a variable-length list of roles
(MP, minister, party leader, ...). This module maps the raw JSON onto small
immutable records and finds, per person, the start/end timestamps of the role
whose French label matches the target label (e.g. "Premier ministre").
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger
import pandas as pd

from canadian_politics.quality import DataQualityReport, ExtractionMiss


@dataclass(frozen=True)
class RoleRecord:
    label: Optional[str]
    start: Optional[str]
    end: Optional[str]


@dataclass(frozen=True)
class RoleInterval:
    """Raw start/end strings of the matched role, or an unresolved interval."""

    start: Optional[str] = None
    end: Optional[str] = None
    matched: bool = False
    match_count: int = 0


@dataclass(frozen=True)
class Entity:
    name: str
    birth_date: Optional[str]
    party: Optional[str] = None
    occupation: Optional[str] = None
    province: Optional[str] = None
    roles: Tuple[RoleRecord, ...] = field(default_factory=tuple)


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def parse_person_records(payload: Iterable[Dict[str, Any]]) -> List[Entity]:
    """
    Map raw Parlinfo person dictionaries onto Entity records.

    Args:
        payload: Sequence of person dictionaries as returned by the Parlinfo API

    Returns:
        List of Entity, in payload order. Missing keys become None (or an empty
        role list); nothing is dropped.
    """
    entities: List[Entity] = []
    for person in payload:
        first = _clean_str(person.get("UsedFirstName")) or ""
        last = _clean_str(person.get("LastName")) or ""
        roles = tuple(
            RoleRecord(
                label=_clean_str(role.get("NameFr")),
                start=_clean_str(role.get("StartDate")),
                end=_clean_str(role.get("EndDate")),
            )
            for role in (person.get("Roles") or [])
        )
        entities.append(
            Entity(
                name=f"{first} {last}".strip(),
                birth_date=_clean_str(person.get("DateOfBirth")),
                party=_clean_str(person.get("PartyEn")),
                occupation=_clean_str(person.get("ProfessionsEn")),
                province=_clean_str(person.get("ProvinceOfBirthEn")),
                roles=roles,
            )
        )
    logger.info(f"Parsed {len(entities)} person records")
    return entities


def extract_role_interval(roles: Sequence[RoleRecord], target_label: str) -> RoleInterval:
    """
    Return the interval of the role labelled *target_label*.

    When several roles carry the label, the last one in source order wins
    (later matches overwrite earlier ones, regardless of their dates).
    """
    best: Optional[RoleRecord] = None
    matches = 0
    for role in roles:
        if role.label == target_label:
            best = role
            matches += 1

    if best is None:
        return RoleInterval()
    return RoleInterval(start=best.start, end=best.end, matched=True, match_count=matches)


def extract_intervals(
    entities: Sequence[Entity],
    target_label: str,
    report: DataQualityReport,
) -> pd.DataFrame:
    """
    Build one row per entity with the raw strings of its matched role interval.

    Entities with no matching role keep their row, with empty interval fields,
    and an ExtractionMiss is added to *report*.

    Returns:
        DataFrame with columns name, birth_date_raw, start_raw, end_raw, party,
        occupation, province, role_matches
    """
    rows = []
    for entity in entities:
        interval = extract_role_interval(entity.roles, target_label)
        if not interval.matched:
            report.add(ExtractionMiss(
                f"no role labelled {target_label!r} among {len(entity.roles)} roles",
                record=entity.name,
                field="roles",
            ))
        elif interval.match_count > 1:
            logger.debug(
                f"{entity.name}: {interval.match_count} roles labelled {target_label!r}, keeping the last"
            )
        rows.append({
            "name": entity.name,
            "birth_date_raw": entity.birth_date,
            "start_raw": interval.start,
            "end_raw": interval.end,
            "party": entity.party,
            "occupation": entity.occupation,
            "province": entity.province,
            "role_matches": interval.match_count,
        })

    frame = pd.DataFrame(
        rows,
        columns=["name", "birth_date_raw", "start_raw", "end_raw",
                 "party", "occupation", "province", "role_matches"],
    )
    logger.info(
        f"Extracted {target_label!r} intervals: {int((frame['role_matches'] > 0).sum())}"
        f"/{len(frame)} entities matched"
    )
    return frame

"""Shared fixtures: small Parlinfo payloads and raw poll tables."""

import pytest

from canadian_politics.settings import settings_from_dict


def make_person(first, last, dob, roles, party="Liberal"):
    return {
        "UsedFirstName": first,
        "LastName": last,
        "DateOfBirth": dob,
        "PartyEn": party,
        "ProfessionsEn": "Lawyer",
        "ProvinceOfBirthEn": "Quebec",
        "Roles": [
            {"NameFr": label, "StartDate": start, "EndDate": end}
            for label, start, end in roles
        ],
    }


@pytest.fixture
def pm_payload():
    return [
        make_person("Jean", "Chrétien", "1934-01-11T00:00:00", [
            ("Député", "1963-04-08T00:00:00", "1986-02-27T00:00:00"),
            ("Premier ministre", "1993-11-04T00:00:00", "2003-12-11T00:00:00"),
        ]),
        make_person("Pierre Elliott", "Trudeau", "1919-10-18T00:00:00", [
            ("Premier ministre", "1968-04-20T00:00:00", "1979-06-03T00:00:00"),
            ("Chef de l'opposition", "1979-06-04T00:00:00", "1980-03-02T00:00:00"),
            ("Premier ministre", "1980-03-03T00:00:00", "1984-06-29T00:00:00"),
        ]),
        make_person("A. Kim", "Campbell", "1947-03-10T00:00:00", [
            ("Première ministre", "1993-06-25T00:00:00", "1993-11-03T00:00:00"),
        ], party="Progressive Conservative"),
        make_person("Justin", "Trudeau", "1971-12-25T00:00:00", [
            ("Premier ministre", "2015-11-04T00:00:00", None),
        ]),
        make_person("Bad", "Date", "1950-01-01T00:00:00", [
            ("Premier ministre", "1993", "1994-01-01T00:00:00"),
        ]),
    ]


@pytest.fixture
def pm_settings():
    return settings_from_dict({
        "target_role_label": "Premier ministre",
        "date_corrections": [
            {"entity": "A. Kim Campbell", "field": "start_date", "value": "1993-06-25",
             "reason": "no matching role in source"},
            {"entity": "A. Kim Campbell", "field": "end_date", "value": "1993-11-03",
             "reason": "no matching role in source"},
            {"entity": "Justin Trudeau", "field": "end_date", "value": "2025-03-10",
             "reason": "announced transition, after collection date"},
        ],
        "poll_table": {
            "table_index": 1,
            "column_renames": {
                "Polling firm": "firm",
                "Last dateof polling[a]": "date",
                "CPC": "pred_cpc",
                "LPC": "pred_lpc",
                "Samplesize[d]": "sample_size",
            },
            "key_field": "firm",
            "excluded_row_positions": [0],
            "numeric_columns": ["pred_cpc", "pred_lpc", "sample_size"],
            "strip_rules": [["±", ""], [" ?pp\\b", ""], ["\\(\\d+/\\d+\\)", ""],
                            ["\\[[^\\]]*\\]", ""], [",", ""]],
            "date_column": "date",
            "date_formats": ["%B %d, %Y", "%b %d, %Y", "%m/%d/%Y"],
            "categories": [
                {"column": "pred_cpc", "label": "Conservateur"},
                {"column": "pred_lpc", "label": "Libéral"},
            ],
        },
    })


@pytest.fixture
def poll_rows():
    header = ["Polling firm", "Last dateof polling[a]", "Link", "CPC", "LPC",
              "Others[b]", "Samplesize[d]"]
    cells = [
        # header repeat inside the table body
        ["Polling firm", "Last dateof polling[a]", "Link", "CPC", "LPC", "Others[b]", "Samplesize[d]"],
        ["Leger", "March 10, 2025", "PDF", "35", "28", "3", "1,234"],
        ["", "", "", "", "", "", ""],
        ["Nanos Research", "Mar 9, 2025", "HTML", "37[f]", "31", "2", "1,000 (1/4)"],
        ["Abacus Data", "3/8/2025", "PDF", "—", "30", "4", "2,000"],
        ["Ipsos", "8 March 2025", "PDF", "40", "25", "1", "n/a"],
    ]
    return [dict(zip(header, row)) for row in cells]

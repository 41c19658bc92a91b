"""Shared builders for survey/choices sheets and on-disk XLSForms."""

import pytest
from openpyxl import Workbook

from hfcgen.xlsform_parser import Sheet


SURVEY_COLUMNS = ["type", "name", "label", "calculation"]
CHOICES_COLUMNS = ["list_name", "name", "label"]


def make_sheet(name, columns, rows):
    """Build a Sheet from positional row tuples."""
    return Sheet(
        name=name,
        columns=list(columns),
        rows=[dict(zip(columns, row)) for row in rows],
    )


def survey_sheet(rows, columns=SURVEY_COLUMNS):
    return make_sheet("survey", columns, rows)


def choices_sheet(rows, columns=CHOICES_COLUMNS):
    return make_sheet("choices", columns, rows)


HOUSEHOLD_SURVEY = [
    ("start", "starttime", "", ""),
    ("text", "enum.name", "Enumerator name", ""),
    ("select_one yn", "consent", "Do you consent?", ""),
    ("integer", "hh_size", "Household size", ""),
    ("date", "visit_date", "Visit date", ""),
    ("begin_repeat", "members", "members", ""),
    ("text", "member_name", "Member name", ""),
    ("integer", "age", "Age", ""),
    ("select_multiple assets", "member_assets", "Assets owned", ""),
    ("end_repeat", "members_end", "", ""),
    ("geopoint", "gps", "Location", ""),
    ("note", "thanks", "Thank you", ""),
    ("calculate", "prev_size", "", "pulldata('hh', 'size', 'id', ${hhid})"),
]

HOUSEHOLD_CHOICES = [
    ("yn", 1, "Yes"),
    ("yn", 0, "No"),
    ("assets", 1, "Radio"),
    ("assets", 2, "TV"),
    ("assets", "other", "Other"),
]


@pytest.fixture
def household_sheets():
    return survey_sheet(HOUSEHOLD_SURVEY), choices_sheet(HOUSEHOLD_CHOICES)


@pytest.fixture
def write_xlsform(tmp_path):
    """Factory writing an .xlsx XLSForm and returning its path."""

    def _write(survey_rows=HOUSEHOLD_SURVEY, choices_rows=HOUSEHOLD_CHOICES,
               survey_columns=SURVEY_COLUMNS, choices_columns=CHOICES_COLUMNS,
               filename="household.xlsx", include_choices=True):
        workbook = Workbook()
        survey = workbook.active
        survey.title = "survey"
        survey.append(list(survey_columns))
        for row in survey_rows:
            survey.append(list(row))
        if include_choices:
            choices = workbook.create_sheet("choices")
            choices.append(list(choices_columns))
            for row in choices_rows:
                choices.append(list(row))
        path = tmp_path / filename
        workbook.save(path)
        return path

    return _write

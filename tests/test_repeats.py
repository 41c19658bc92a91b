"""
Tests for repeat-group resolution and dataset assignment.

Every question strictly inside a begin/end pair must land in exactly one
group: the innermost one.
"""

import pytest

from hfcgen.errors import MalformedRepeatStructureError
from hfcgen.model import MarkerKind, Question, RepeatGroupMarker
from hfcgen.repeats import (
    assign_datasets,
    assign_repeat_groups,
    build_datasets,
    extract_markers,
    match_repeat_markers,
    resolve_repeat_groups,
)


def make_questions(rows):
    """rows: (raw_type, name) or (raw_type, name, working_label) tuples."""
    questions = []
    for order, item in enumerate(rows, start=1):
        raw_type, name = item[0], item[1]
        label = item[2] if len(item) > 2 else ""
        questions.append(Question(
            name=name,
            raw_type=raw_type,
            type_tokens=raw_type.split(),
            label_primary=label,
            label_secondary=label,
            order=order,
        ))
    return questions


def resolve(questions):
    groups = resolve_repeat_groups(questions)
    assign_repeat_groups(questions, groups)
    assign_datasets(questions, groups)
    return groups


def markers(kind, orders):
    return [RepeatGroupMarker(kind, order) for order in orders]


THREE_LEVELS = [
    ("start", "starttime"),                      # 1  survey
    ("begin_repeat", "members", "members"),      # 2
    ("integer", "age"),                          # 3  members
    ("begin_repeat", "jobs", "jobs"),            # 4
    ("text", "employer"),                        # 5  jobs
    ("begin_repeat", "shifts", "shifts"),        # 6
    ("integer", "hours"),                        # 7  shifts
    ("end_repeat", "shifts_end"),                # 8
    ("integer", "wage"),                         # 9  jobs
    ("end_repeat", "jobs_end"),                  # 10
    ("text", "nickname"),                        # 11 members
    ("end_repeat", "members_end"),               # 12
    ("integer", "total"),                        # 13 survey
]


class TestMarkerMatching:

    def test_extract_markers(self):
        begins, ends = extract_markers(make_questions(THREE_LEVELS))
        assert [m.order for m in begins] == [2, 4, 6]
        assert [m.order for m in ends] == [8, 10, 12]
        assert all(m.kind == MarkerKind.BEGIN for m in begins)

    def test_nested_pairs(self):
        pairs = match_repeat_markers(markers(MarkerKind.BEGIN, [2, 4, 6]), markers(MarkerKind.END, [8, 10, 12]))
        assert pairs == [(2, 12), (4, 10), (6, 8)]

    def test_sibling_pairs(self):
        pairs = match_repeat_markers(markers(MarkerKind.BEGIN, [2, 5]), markers(MarkerKind.END, [4, 7]))
        assert pairs == [(2, 4), (5, 7)]

    def test_siblings_inside_parent(self):
        pairs = match_repeat_markers(
            markers(MarkerKind.BEGIN, [1, 2, 5]),
            markers(MarkerKind.END, [4, 7, 8]),
        )
        assert pairs == [(1, 8), (2, 4), (5, 7)]

    def test_no_markers(self):
        assert match_repeat_markers([], []) == []

    def test_unbalanced_counts(self):
        with pytest.raises(MalformedRepeatStructureError, match="Unbalanced"):
            match_repeat_markers(markers(MarkerKind.BEGIN, [2, 4]), markers(MarkerKind.END, [6]))

    def test_begin_after_all_ends(self):
        with pytest.raises(MalformedRepeatStructureError, match="row 5"):
            match_repeat_markers(markers(MarkerKind.BEGIN, [1, 5]), markers(MarkerKind.END, [2, 3]))


class TestRepeatGroups:

    def test_single_group_scenario(self):
        questions = make_questions([
            ("start", "starttime"),
            ("begin_repeat", "grp"),
            ("text", "q1"),
            ("text", "q2"),
            ("end_repeat", "grp_end"),
        ])
        groups = resolve(questions)

        assert len(groups) == 1
        group = groups[0]
        assert (group.index, group.begin_order, group.end_order) == (1, 2, 5)
        assert group.dataset_name == "grp"
        assert group.first_variable_name == "grp"
        assert [q.dataset for q in questions] == ["survey", "grp", "grp", "grp", "grp"]

    def test_dataset_name_from_working_label(self):
        questions = make_questions([
            ("begin_repeat", "hh_roster", "roster"),
            ("text", "member"),
            ("end_repeat", "hh_roster_end"),
        ])
        groups = resolve(questions)
        assert groups[0].dataset_name == "roster"
        assert groups[0].first_variable_name == "hh_roster"
        assert questions[1].dataset == "roster"

    def test_three_levels_of_nesting(self):
        questions = make_questions(THREE_LEVELS)
        groups = resolve(questions)

        assert [(g.begin_order, g.end_order) for g in groups] == [(2, 12), (4, 10), (6, 8)]
        by_name = {q.name: q.dataset for q in questions}
        assert by_name["starttime"] == "survey"
        assert by_name["age"] == "members"
        assert by_name["employer"] == "jobs"
        assert by_name["hours"] == "shifts"
        assert by_name["wage"] == "jobs"
        assert by_name["nickname"] == "members"
        assert by_name["total"] == "survey"

    def test_innermost_group_wins(self):
        questions = make_questions(THREE_LEVELS)
        groups = resolve(questions)
        hours = next(q for q in questions if q.name == "hours")
        containing = [g.index for g in groups if g.contains(hours.order)]
        assert containing == [1, 2, 3]
        assert hours.repeat_group == 3

    def test_zero_groups(self):
        questions = make_questions([("text", "a"), ("integer", "b")])
        groups = resolve(questions)
        assert groups == []
        assert all(q.dataset == "survey" for q in questions)
        assert all(q.repeat_group is None for q in questions)

    def test_malformed_structure_raises(self):
        questions = make_questions([("begin_repeat", "a"), ("text", "q"), ("begin_repeat", "b")])
        with pytest.raises(MalformedRepeatStructureError):
            resolve_repeat_groups(questions)


class TestDatasets:

    def test_survey_first_then_discovery_order(self):
        groups = resolve(make_questions(THREE_LEVELS))
        datasets = build_datasets(groups)
        assert [d.name for d in datasets] == ["survey", "members", "jobs", "shifts"]
        assert datasets[0].reference == "survey"
        assert datasets[0].repeat_group is None
        assert [d.reference for d in datasets[1:]] == ["members", "jobs", "shifts"]
        assert [d.repeat_group for d in datasets[1:]] == [1, 2, 3]

    def test_duplicate_dataset_names_collapse(self):
        questions = make_questions([
            ("begin_repeat", "a", "same"),
            ("end_repeat", "a_end"),
            ("begin_repeat", "b", "same"),
            ("end_repeat", "b_end"),
        ])
        datasets = build_datasets(resolve(questions))
        assert [d.name for d in datasets] == ["survey", "same"]

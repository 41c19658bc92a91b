"""
Repeat-group resolution and dataset assignment.

A repeat group in an XLSForm is an unlabeled interval of rows opened by a
begin_repeat row and closed by an end_repeat row. Groups nest to arbitrary
depth and each one materializes as its own dataset at collection time.

Resolution:
    1. Extract Begin/End markers in ascending row order.
    2. Pair markers: Begins are visited from last to first; each takes the
       closest unclaimed End after it. For a balanced marker sequence this
       is ordinary bracket matching.
    3. Every question belongs to the innermost group containing its order,
       i.e. the containing group with the highest index.
"""

import logging
from typing import Dict, List, Optional, Tuple

from hfcgen.errors import MalformedRepeatStructureError
from hfcgen.model import (
    SURVEY_DATASET,
    Dataset,
    MarkerKind,
    Question,
    RepeatGroup,
    RepeatGroupMarker,
)


LOGGER = logging.getLogger(__name__)


def extract_markers(questions: List[Question]) -> Tuple[List[RepeatGroupMarker], List[RepeatGroupMarker]]:
    """Return (begins, ends), each sorted by question order."""
    begins: List[RepeatGroupMarker] = []
    ends: List[RepeatGroupMarker] = []
    for question in sorted(questions, key=lambda q: q.order):
        if question.base_type == MarkerKind.BEGIN.value:
            begins.append(RepeatGroupMarker(MarkerKind.BEGIN, question.order))
        elif question.base_type == MarkerKind.END.value:
            ends.append(RepeatGroupMarker(MarkerKind.END, question.order))
    return begins, ends


def match_repeat_markers(begins: List[RepeatGroupMarker],
                         ends: List[RepeatGroupMarker]) -> List[Tuple[int, int]]:
    """
    Pair Begin markers with End markers.

    Args:
        begins: Begin markers in ascending order
        ends: End markers in ascending order

    Returns:
        (begin_order, end_order) pairs, in Begin order

    Raises:
        MalformedRepeatStructureError: If counts differ or a Begin has no
            unclaimed End after it
    """
    if len(begins) != len(ends):
        raise MalformedRepeatStructureError(
            f"Unbalanced repeat groups: {len(begins)} begin_repeat rows "
            f"but {len(ends)} end_repeat rows"
        )

    claimed = [False] * len(ends)
    matched: Dict[int, int] = {}

    for i in range(len(begins) - 1, -1, -1):
        begin_order = begins[i].order
        selected: Optional[int] = None
        # Descending scan; the last eligible hit is the closest End
        for j in range(len(ends) - 1, -1, -1):
            if not claimed[j] and ends[j].order > begin_order:
                selected = j
        if selected is None:
            raise MalformedRepeatStructureError(
                f"begin_repeat at row {begin_order} has no matching end_repeat"
            )
        claimed[selected] = True
        matched[i] = ends[selected].order

    return [(begins[i].order, matched[i]) for i in range(len(begins))]


def resolve_repeat_groups(questions: List[Question]) -> List[RepeatGroup]:
    """
    Build the ordered list of RepeatGroup records.

    Dataset name comes from the working label of the begin_repeat row
    (its name when the label is blank); first_variable_name is that row's
    normalized name.
    """
    begins, ends = extract_markers(questions)
    by_order = {question.order: question for question in questions}

    groups: List[RepeatGroup] = []
    for index, (begin_order, end_order) in enumerate(match_repeat_markers(begins, ends), start=1):
        opener = by_order[begin_order]
        groups.append(RepeatGroup(
            index=index,
            begin_order=begin_order,
            end_order=end_order,
            dataset_name=opener.label_secondary or opener.name,
            first_variable_name=opener.name,
        ))
        LOGGER.debug("Repeat group %d: rows %d-%d -> %s", index, begin_order, end_order,
                     groups[-1].dataset_name)
    return groups


def assign_repeat_groups(questions: List[Question], groups: List[RepeatGroup]) -> List[Question]:
    """Set repeat_group to the innermost containing group's index (None outside groups)."""
    for question in questions:
        containing = [group.index for group in groups if group.contains(question.order)]
        question.repeat_group = max(containing) if containing else None
    return questions


def assign_datasets(questions: List[Question], groups: List[RepeatGroup]) -> List[Question]:
    """Set dataset on every question from its repeat group, "survey" otherwise."""
    by_index = {group.index: group for group in groups}
    for question in questions:
        if question.repeat_group is None:
            question.dataset = SURVEY_DATASET
        else:
            question.dataset = by_index[question.repeat_group].dataset_name
    return questions


def build_datasets(groups: List[RepeatGroup]) -> List[Dataset]:
    """The survey dataset first, then one dataset per repeat group in discovery order."""
    datasets = [Dataset(name=SURVEY_DATASET, reference=SURVEY_DATASET)]
    seen = {SURVEY_DATASET}
    for group in groups:
        if group.dataset_name in seen:
            LOGGER.warning("Repeat group %d reuses dataset name %r", group.index, group.dataset_name)
            continue
        seen.add(group.dataset_name)
        datasets.append(Dataset(
            name=group.dataset_name,
            reference=group.dataset_name,
            repeat_group=group.index,
        ))
    return datasets


__all__ = [
    "extract_markers",
    "match_repeat_markers",
    "resolve_repeat_groups",
    "assign_repeat_groups",
    "assign_datasets",
    "build_datasets",
]

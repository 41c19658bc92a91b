"""
Instrument Analyzer — early diagnostics and inventory of parsed XLSForms.

This module provides lightweight analysis of Instrument objects:
    - Question inventory by type and dataset
    - Repeat-group nesting depth
    - Duplicate variable names
    - Choice-list coverage (missing and unused lists)
    - Warning flags for script-generation risk

IMPORTANT: This is the analysis layer. It does NOT modify the instrument.
It only produces read-only reports.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Set

from hfcgen.model import Instrument, QuestionType, RepeatGroup


@dataclass
class InstrumentReport:
    """Analysis report for an instrument."""

    instrument_name: str
    total_questions: int = 0
    total_choices: int = 0
    total_choice_lists: int = 0
    total_repeat_groups: int = 0

    # Inventory
    questions_by_type: Dict[str, int] = field(default_factory=dict)
    questions_by_dataset: Dict[str, int] = field(default_factory=dict)
    catalog_variables: int = 0
    max_repeat_depth: int = 0

    # Consistency
    duplicate_names: Set[str] = field(default_factory=set)
    missing_choice_lists: Set[str] = field(default_factory=set)
    unused_choice_lists: Set[str] = field(default_factory=set)

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def _nesting_depth(group: RepeatGroup, groups: List[RepeatGroup]) -> int:
    return sum(
        1 for other in groups
        if other.begin_order <= group.begin_order and other.end_order >= group.end_order
    )


def analyze_instrument(instrument: Instrument) -> InstrumentReport:
    """
    Analyze a parsed Instrument.

    Checks for:
    - Question counts per type and dataset
    - Repeat nesting depth
    - Duplicate variable names
    - Select questions whose list has no value-coded choices
    - Choice lists no question references

    Returns an InstrumentReport with metrics and warnings.
    """
    report = InstrumentReport(instrument_name=instrument.name)

    report.total_questions = len(instrument.questions)
    report.total_choices = len(instrument.choices)
    report.total_choice_lists = len(instrument.choice_lists)
    report.total_repeat_groups = len(instrument.repeat_groups)

    # =========================================================================
    # 1. INVENTORY
    # =========================================================================

    by_type: Dict[str, int] = defaultdict(int)
    by_dataset: Dict[str, int] = defaultdict(int)
    for question in instrument.questions:
        qtype = question.question_type or QuestionType.NOT_RELEVANT
        by_type[qtype.value] += 1
        by_dataset[question.dataset] += 1
    report.questions_by_type = dict(by_type)
    report.questions_by_dataset = dict(by_dataset)

    report.catalog_variables = sum(len(names) for _, names in instrument.catalog.items())

    if instrument.repeat_groups:
        report.max_repeat_depth = max(
            _nesting_depth(group, instrument.repeat_groups) for group in instrument.repeat_groups
        )

    # =========================================================================
    # 2. CONSISTENCY
    # =========================================================================

    counts = Counter(q.name for q in instrument.questions if q.name)
    report.duplicate_names = {name for name, count in counts.items() if count > 1}

    referenced = {q.choice_list for q in instrument.questions if q.choice_list}
    report.missing_choice_lists = referenced - set(instrument.choice_lists)
    report.unused_choice_lists = set(instrument.choice_lists) - referenced

    # =========================================================================
    # 3. WARNING FLAGS
    # =========================================================================

    if report.total_questions == 0:
        report.add_warning("Instrument has no questions")

    if report.duplicate_names:
        report.add_warning(
            f"Duplicate variable names: {', '.join(sorted(report.duplicate_names))}"
        )

    if report.missing_choice_lists:
        report.add_warning(
            f"Choice lists without value-coded entries: {', '.join(sorted(report.missing_choice_lists))}"
        )

    if report.unused_choice_lists:
        report.add_warning(
            f"Unused choice lists: {', '.join(sorted(report.unused_choice_lists))}"
        )

    for dataset in instrument.datasets:
        if not report.questions_by_dataset.get(dataset.name):
            report.add_warning(f"Dataset {dataset.name} has no questions")

    return report

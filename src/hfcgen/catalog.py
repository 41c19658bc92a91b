"""
VariableCatalog construction.

Groups classified, dataset-assigned questions into
(dataset, question type) buckets of variable names ordered by row order.
"""

from typing import Dict, List, Optional, Tuple

from hfcgen.model import CATALOG_TYPES, Dataset, Question, QuestionType, VariableCatalog


def build_catalog(questions: List[Question], datasets: Optional[List[Dataset]] = None) -> VariableCatalog:
    """
    Build the VariableCatalog.

    Args:
        questions: Questions with question_type and dataset set
        datasets: Known datasets, used to fix bucket order and to keep
            datasets that have no scored variables

    Returns:
        VariableCatalog with one bucket per dataset and scored type
    """
    dataset_names = [dataset.name for dataset in (datasets or [])]
    entries: Dict[Tuple[str, QuestionType], List[str]] = {}

    for dataset in dataset_names:
        for qtype in CATALOG_TYPES:
            entries[(dataset, qtype)] = []

    for question in sorted(questions, key=lambda q: q.order):
        if question.question_type not in CATALOG_TYPES:
            continue
        entries.setdefault((question.dataset, question.question_type), []).append(question.name)

    return VariableCatalog(entries, datasets=dataset_names)


__all__ = ["build_catalog"]

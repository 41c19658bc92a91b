"""
Serialization helpers for hfcgen objects (VariableCatalog, Instrument).

The catalog round-trips losslessly through JSON/YAML via an intermediate
dict. Instruments serialize one way, for inspection.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List

import yaml

from hfcgen.model import (
    CATALOG_TYPES,
    ChoiceEntry,
    Dataset,
    Instrument,
    Question,
    QuestionType,
    RepeatGroup,
    VariableCatalog,
)


def catalog_to_dict(catalog: VariableCatalog) -> Dict[str, Any]:
    datasets: Dict[str, Dict[str, List[str]]] = {}
    for (dataset, qtype), names in catalog.items():
        datasets.setdefault(dataset, {})[qtype.value] = names
    return {"datasets": catalog.dataset_names(), "variables": datasets}


def catalog_from_dict(d: Dict[str, Any]) -> VariableCatalog:
    entries = {}
    for dataset, buckets in (d.get("variables") or {}).items():
        for qtype_value, names in buckets.items():
            qtype = QuestionType(qtype_value)
            if qtype not in CATALOG_TYPES:
                raise ValueError(f"{qtype_value} is not a catalog question type")
            entries[(dataset, qtype)] = list(names or [])
    return VariableCatalog(entries, datasets=d.get("datasets", []))


def catalog_to_json(catalog: VariableCatalog) -> str:
    return json.dumps(catalog_to_dict(catalog), sort_keys=True)


def catalog_from_json(s: str) -> VariableCatalog:
    return catalog_from_dict(json.loads(s))


def catalog_to_yaml(catalog: VariableCatalog) -> str:
    return yaml.safe_dump(catalog_to_dict(catalog), sort_keys=False)


def catalog_from_yaml(s: str) -> VariableCatalog:
    return catalog_from_dict(yaml.safe_load(s))


def question_to_dict(q: Question) -> Dict[str, Any]:
    return {
        "name": q.name,
        "type": q.raw_type,
        "question_type": q.question_type.value if q.question_type else None,
        "label": q.label_primary,
        "label_stata": q.label_secondary,
        "calculation": q.calculation,
        "order": q.order,
        "repeat_group": q.repeat_group,
        "dataset": q.dataset,
    }


def choice_to_dict(c: ChoiceEntry) -> Dict[str, Any]:
    return {"code": c.code, "label": c.label, "order": c.order}


def repeat_group_to_dict(g: RepeatGroup) -> Dict[str, Any]:
    return {
        "index": g.index,
        "begin_order": g.begin_order,
        "end_order": g.end_order,
        "dataset_name": g.dataset_name,
        "first_variable_name": g.first_variable_name,
    }


def dataset_to_dict(d: Dataset) -> Dict[str, Any]:
    return {"name": d.name, "reference": d.reference, "repeat_group": d.repeat_group}


def instrument_to_dict(i: Instrument) -> Dict[str, Any]:
    return {
        "name": i.name,
        "questions": [question_to_dict(q) for q in i.questions],
        "choice_lists": {
            name: [choice_to_dict(c) for c in entries] for name, entries in i.choice_lists.items()
        },
        "repeat_groups": [repeat_group_to_dict(g) for g in i.repeat_groups],
        "datasets": [dataset_to_dict(d) for d in i.datasets],
        "catalog": catalog_to_dict(i.catalog),
        "metadata": i.metadata,
    }


def instrument_to_json(i: Instrument) -> str:
    return json.dumps(instrument_to_dict(i), sort_keys=True)


def instrument_to_yaml(i: Instrument) -> str:
    return yaml.safe_dump(instrument_to_dict(i), sort_keys=False)

"""
Stata high-frequency check generator for analysed XLSForms.

Converts an Instrument into a Stata do-file that runs data-quality checks
over data collected with the form.

Per dataset, emits a block for each non-empty catalog bucket:
    - STRING: listing of free-text responses
    - SELECT_ONE: values outside the choice list codes
    - SELECT_MULTIPLE: tabulations
    - DATE: dates in the future
    - DATETIME: timestamps in the future
    - NUMERIC: 3-sigma dispersion listing (optionally histograms)

The survey dataset additionally gets the success filter, corrections,
duplicate unique-id and enumerator-comment checks.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from hfcgen import __version__
from hfcgen.model import SURVEY_DATASET, Dataset, Instrument, QuestionType


@dataclass
class HFCParameters:
    """
    Parameters consumed verbatim by the generated do-file.

    Properties:
        instrument: Path of the XLSForm the checks are generated from
        output: Path of the do-file to write
        working_dir: Directory holding the exported datasets
        enumerator_id: Enumerator-id variable
        success_condition: Stata condition selecting completed interviews
        unique_ids: Variables that jointly identify a submission
        respondent_name: Respondent-name variable, listed alongside ids
        corrections_file: CSV with id, variable, value columns
        enumerator_comments: Enumerator-comments variable
        graphics_dir: Directory for histograms; None disables graphics
    """

    instrument: str = ""
    output: str = ""
    enumerator_id: str = ""
    unique_ids: List[str] = field(default_factory=list)
    working_dir: str = "."
    success_condition: str = ""
    respondent_name: str = ""
    corrections_file: Optional[str] = None
    enumerator_comments: str = ""
    graphics_dir: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.unique_ids, str):
            self.unique_ids = self.unique_ids.split()
        missing = [
            name for name in ("instrument", "output", "enumerator_id", "unique_ids")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"Missing required HFC parameters: {missing}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HFCParameters":
        known = {name for name in cls.__dataclass_fields__}
        values = {}
        for key, value in d.items():
            key = key.replace("-", "_")
            if key not in known:
                raise ValueError(f"Unknown HFC parameter: {key}")
            values[key] = value
        return cls(**values)

    @classmethod
    def from_yaml(cls, filepath: str) -> "HFCParameters":
        with open(filepath, "r", encoding="utf-8") as f:
            return cls.from_dict(yaml.safe_load(f) or {})


def _quote(s: str) -> str:
    return '"' + s.replace('"', "") + '"'


def _id_vars(dataset: Dataset, params: HFCParameters) -> str:
    if dataset.name != SURVEY_DATASET:
        return "parent_key key"
    ids = [params.enumerator_id] + list(params.unique_ids)
    if params.respondent_name:
        ids.append(params.respondent_name)
    return " ".join(ids)


def _foreach(local: str, names: List[str], body: List[str]) -> List[str]:
    lines = [f'local {local} "{" ".join(names)}"']
    lines.append(f"foreach var of local {local} {{")
    lines.append("    capture confirm variable `var'")
    lines.append("    if _rc continue")
    lines.extend(f"    {line}" for line in body)
    lines.append("}")
    return lines


def _survey_setup(params: HFCParameters) -> List[str]:
    lines = []
    if params.success_condition:
        lines.append(f"keep if {params.success_condition}")

    if params.corrections_file:
        key = params.unique_ids[0]
        lines.extend([
            "",
            "* Corrections",
            "preserve",
            f"import delimited using {_quote(params.corrections_file)}, clear varnames(1) stringcols(_all)",
            "local n_corrections = _N",
            "forvalues i = 1/`n_corrections' {",
            "    local corr_id`i' = id[`i']",
            "    local corr_var`i' = variable[`i']",
            "    local corr_val`i' = value[`i']",
            "}",
            "restore",
            "forvalues i = 1/`n_corrections' {",
            "    capture confirm string variable `corr_var`i''",
            "    if !_rc {",
            f"        replace `corr_var`i'' = \"`corr_val`i''\" if {key} == \"`corr_id`i''\"",
            "    }",
            "    else {",
            f"        replace `corr_var`i'' = `corr_val`i'' if {key} == \"`corr_id`i''\"",
            "    }",
            "}",
        ])

    ids = " ".join(params.unique_ids)
    lines.extend([
        "",
        "* Duplicate unique ids",
        f"duplicates tag {ids}, generate(_hfc_dup)",
        f"list {params.enumerator_id} {ids} if _hfc_dup > 0, abbreviate(32) noobs",
        "drop _hfc_dup",
    ])
    return lines


def _select_one_lines(instrument: Instrument, names: List[str], id_vars: str) -> List[str]:
    lines = []
    for name in names:
        question = instrument.get_question(name)
        list_name = question.choice_list if question else None
        codes = [str(entry.code) for entry in instrument.get_choice_list(list_name or "")]
        lines.append(f"capture confirm variable {name}")
        lines.append("if !_rc {")
        if codes:
            allowed = ", ".join(codes)
            lines.append(
                f"    list {id_vars} {name} if !inlist({name}, {allowed}) & !missing({name}), "
                "abbreviate(32) noobs"
            )
        else:
            lines.append(f"    tab {name}, missing")
        lines.append("}")
    return lines


def _numeric_body(dataset: Dataset, params: HFCParameters, id_vars: str) -> List[str]:
    body = [
        "quietly summarize `var'",
        "if r(N) > 1 {",
        f"    list {id_vars} `var' if abs(`var' - r(mean)) > 3 * r(sd) & !missing(`var'), "
        "abbreviate(32) noobs",
        "}",
    ]
    if params.graphics_dir:
        target = f"{params.graphics_dir}/{dataset.reference}_`var'.png"
        body.extend([
            "histogram `var', frequency",
            f"graph export {_quote(target)}, replace",
        ])
    return body


def _dataset_block(instrument: Instrument, dataset: Dataset, params: HFCParameters) -> List[str]:
    catalog = instrument.catalog
    id_vars = _id_vars(dataset, params)

    lines = [
        "",
        "*" * 72,
        f"* Dataset: {dataset.name}",
        "*" * 72,
        f"use {_quote(dataset.reference)}, clear",
    ]

    if dataset.name == SURVEY_DATASET:
        lines.extend(_survey_setup(params))

    strings = catalog.variables(dataset.name, QuestionType.STRING)
    if strings:
        lines.extend(["", "* Text responses"])
        lines.extend(_foreach("string_vars", strings, [
            f"list {id_vars} `var' if !missing(`var'), abbreviate(32) noobs",
        ]))

    select_one = catalog.variables(dataset.name, QuestionType.SELECT_ONE)
    if select_one:
        lines.extend(["", "* Select-one values outside the choice list"])
        lines.extend(_select_one_lines(instrument, select_one, id_vars))

    select_multiple = catalog.variables(dataset.name, QuestionType.SELECT_MULTIPLE)
    if select_multiple:
        lines.extend(["", "* Select-multiple tabulations"])
        lines.extend(_foreach("multiple_vars", select_multiple, ["tab `var', missing"]))

    dates = catalog.variables(dataset.name, QuestionType.DATE)
    if dates:
        lines.extend(["", "* Dates in the future"])
        lines.extend(_foreach("date_vars", dates, [
            f"list {id_vars} `var' if `var' > today() & !missing(`var'), abbreviate(32) noobs",
        ]))

    datetimes = catalog.variables(dataset.name, QuestionType.DATETIME)
    if datetimes:
        lines.extend([
            "",
            "* Timestamps in the future",
            "local now = clock(\"`c(current_date)' `c(current_time)'\", \"DMYhms\")",
        ])
        lines.extend(_foreach("datetime_vars", datetimes, [
            f"list {id_vars} `var' if `var' > `now' & !missing(`var'), abbreviate(32) noobs",
        ]))

    if catalog.has_numeric(dataset.name):
        lines.extend(["", "* Numeric dispersion (3 standard deviations)"])
        lines.extend(_foreach(
            "numeric_vars",
            catalog.variables(dataset.name, QuestionType.NUMERIC),
            _numeric_body(dataset, params, id_vars),
        ))

    if dataset.name == SURVEY_DATASET and params.enumerator_comments:
        comments = params.enumerator_comments
        lines.extend([
            "",
            "* Enumerator comments",
            f"capture confirm variable {comments}",
            "if !_rc {",
            f"    list {id_vars} {comments} if !missing({comments}), abbreviate(32) noobs",
            "}",
        ])

    return lines


def generate_do_file(instrument: Instrument, params: HFCParameters) -> str:
    """
    Generate the HFC do-file for an instrument.

    Args:
        instrument: Parsed Instrument
        params: HFCParameters

    Returns:
        String containing the do-file
    """
    log_name = f"{Path(params.output).stem}.log"
    lines = [
        f"* High-frequency checks for {instrument.name}",
        f"* Generated by hfcgen {__version__} from {params.instrument}",
        "",
        "clear all",
        "set more off",
        f"cd {_quote(params.working_dir)}",
        "capture log close",
        f"log using {_quote(log_name)}, text replace",
    ]

    if params.graphics_dir:
        lines.append(f"capture mkdir {_quote(params.graphics_dir)}")

    for dataset in instrument.datasets:
        lines.extend(_dataset_block(instrument, dataset, params))

    lines.extend(["", "log close", ""])
    return "\n".join(lines)


def save_do_file(instrument: Instrument, params: HFCParameters) -> None:
    """Generate the do-file and write it to params.output."""
    do_file = generate_do_file(instrument, params)
    with open(params.output, "w", encoding="utf-8") as f:
        f.write(do_file)


__all__ = ["HFCParameters", "generate_do_file", "save_do_file"]

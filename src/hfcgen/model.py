"""
Core Instrument Model Objects

Defines the data structures produced by the form-schema analysis pass.

These are pure data classes representing:
    - Choice entries (value-coded list options)
    - Questions (survey-sheet rows)
    - Repeat groups (nested begin/end repeat intervals)
    - Datasets (main survey table plus one table per repeat group)
    - The VariableCatalog (the artifact consumed by script backends)
    - Instruments (root container)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about Stata or any other target language
        - Are immutable once built, except the derived fields of Question
        - Are fully serializable
        - Represent structure, not behavior
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple


SURVEY_DATASET = "survey"


class QuestionType(Enum):
    """
    Semantic question type derived from the raw XLSForm type token.

    Only the six scored types (see CATALOG_TYPES) ever reach the catalog.
    """

    STRING = "string"
    SELECT_ONE = "select_one"
    SELECT_MULTIPLE = "select_multiple"
    NUMERIC = "numeric"
    DATE = "date"
    DATETIME = "datetime"
    GEOPOINT = "geopoint"
    NOT_RELEVANT = "not_relevant"


CATALOG_TYPES: Tuple[QuestionType, ...] = (
    QuestionType.STRING,
    QuestionType.SELECT_ONE,
    QuestionType.SELECT_MULTIPLE,
    QuestionType.NUMERIC,
    QuestionType.DATE,
    QuestionType.DATETIME,
)


@dataclass(frozen=True)
class ChoiceEntry:
    """
    One value-coded option of a choice list.

    Properties:
        list_name: Choice list identifier, spaces removed (e.g., "yn")
        code: Integer value code (the row's "name" must be digits only)
        label: Option label, sanitized for script interpolation
        order: 1-based data-row position in the raw choices sheet
    """

    list_name: str
    code: int
    label: str
    order: int


@dataclass
class Question:
    """
    Represents a single row of the survey sheet.

    Properties:
        name:
            Variable name, lower-cased with dots stripped
            Examples: "hh_size", "consent"

        raw_type:
            Type cell as written in the form
            Examples: "integer", "select_one yn", "begin_repeat"

        type_tokens:
            raw_type split on whitespace

        label_primary:
            Default (English) label

        label_secondary:
            Working label (labelStata), falls back to label_primary

        calculation:
            Calculation expression, empty when absent

        order:
            1-based position after filtering. This is the sole ordering key
            for every positional computation downstream.

    Derived fields (set by the analysis pass, never re-ordered):
        question_type, repeat_group, dataset
    """

    name: str
    raw_type: str
    type_tokens: List[str] = field(default_factory=list)
    label_primary: str = ""
    label_secondary: str = ""
    calculation: str = ""
    order: int = 0
    question_type: Optional[QuestionType] = None
    repeat_group: Optional[int] = None
    dataset: str = SURVEY_DATASET

    @property
    def base_type(self) -> str:
        """First type token, or "" for a blank type cell."""
        return self.type_tokens[0] if self.type_tokens else ""

    @property
    def choice_list(self) -> Optional[str]:
        """Referenced choice list name for select questions."""
        if self.base_type in ("select_one", "select_multiple") and len(self.type_tokens) > 1:
            return self.type_tokens[1]
        return None


class MarkerKind(Enum):
    BEGIN = "begin_repeat"
    END = "end_repeat"


@dataclass(frozen=True)
class RepeatGroupMarker:
    """Begin/End repeat marker. Exists only while groups are resolved."""

    kind: MarkerKind
    order: int


@dataclass(frozen=True)
class RepeatGroup:
    """
    A matched begin_repeat/end_repeat pair.

    Properties:
        index:
            1-based, in order of the begin_repeat rows
        begin_order / end_order:
            Inclusive interval of question orders
        dataset_name:
            Name of the table the group materializes as
        first_variable_name:
            Normalized name of the begin_repeat row

    INVARIANTS:
        - begin_order < end_order
        - Intervals of distinct groups are disjoint or nested
    """

    index: int
    begin_order: int
    end_order: int
    dataset_name: str
    first_variable_name: str

    def contains(self, order: int) -> bool:
        return self.begin_order <= order <= self.end_order

    @property
    def span(self) -> int:
        return self.end_order - self.begin_order


@dataclass(frozen=True)
class Dataset:
    """
    A named partition of questions.

    "survey" is the implicit top-level dataset; every repeat group adds one.
    reference is the table/file name scripts use to load the dataset.
    """

    name: str
    reference: str
    repeat_group: Optional[int] = None


class VariableCatalog:
    """
    Mapping (dataset name, QuestionType) -> ordered variable names.

    Empty sequences are valid and mean that no check of that kind should be
    emitted for the dataset.
    """

    def __init__(self, entries: Optional[Dict[Tuple[str, QuestionType], List[str]]] = None,
                 datasets: Optional[List[str]] = None):
        self._entries: Dict[Tuple[str, QuestionType], List[str]] = {}
        self._datasets: List[str] = list(datasets or [])
        for (dataset, qtype), names in (entries or {}).items():
            self._entries[(dataset, qtype)] = list(names)
            if dataset not in self._datasets:
                self._datasets.append(dataset)

    def variables(self, dataset: str, qtype: QuestionType) -> List[str]:
        return list(self._entries.get((dataset, qtype), []))

    def __getitem__(self, key: Tuple[str, QuestionType]) -> List[str]:
        dataset, qtype = key
        return self.variables(dataset, qtype)

    def has_numeric(self, dataset: str) -> bool:
        """Whether the dispersion-check block applies to the dataset."""
        return bool(self._entries.get((dataset, QuestionType.NUMERIC)))

    def dataset_names(self) -> List[str]:
        return list(self._datasets)

    def items(self) -> Iterator[Tuple[Tuple[str, QuestionType], List[str]]]:
        """Every (dataset, type) bucket, datasets in order, types in CATALOG_TYPES order."""
        for dataset in self._datasets:
            for qtype in CATALOG_TYPES:
                yield (dataset, qtype), self.variables(dataset, qtype)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VariableCatalog):
            return NotImplemented
        return list(self.items()) == list(other.items())

    def __repr__(self) -> str:
        filled = sum(1 for _, names in self.items() if names)
        return f"VariableCatalog(datasets={self._datasets!r}, buckets={filled})"


@dataclass
class Instrument:
    """
    Root container for an analysed XLSForm.

    Every generated check script MUST be derivable from this object alone.

    Properties:
        name: Instrument identifier (defaults to the workbook file stem)
        questions: Questions in sheet order
        choices: Choice entries in sheet order
        choice_lists: list name -> entries, first occurrence of each code kept
        repeat_groups: Resolved groups, indexed 1..N
        datasets: "survey" first, then repeat groups in discovery order
        catalog: The VariableCatalog
        metadata: Arbitrary key-value pairs (e.g. source path)
    """

    name: str
    questions: List[Question] = field(default_factory=list)
    choices: List[ChoiceEntry] = field(default_factory=list)
    choice_lists: Dict[str, List[ChoiceEntry]] = field(default_factory=dict)
    repeat_groups: List[RepeatGroup] = field(default_factory=list)
    datasets: List[Dataset] = field(default_factory=list)
    catalog: VariableCatalog = field(default_factory=VariableCatalog)
    metadata: Dict[str, str] = field(default_factory=dict)

    def get_question(self, name: str) -> Optional[Question]:
        for question in self.questions:
            if question.name == name:
                return question
        return None

    def get_dataset(self, name: str) -> Optional[Dataset]:
        for dataset in self.datasets:
            if dataset.name == name:
                return dataset
        return None

    def get_choice_list(self, list_name: str) -> List[ChoiceEntry]:
        return list(self.choice_lists.get(list_name, []))

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from workbench.values import auto_parse, is_missing


class ColumnType(str, Enum):
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    DATE = "date"
    TEXT = "text"


class ActionKind(str, Enum):
    REMOVE_DUPLICATES = "remove_duplicates"
    FILL_MISSING = "fill_missing"
    CHANGE_TYPE = "change_type"
    DROP_COLUMN = "drop_column"
    TRIM_WHITESPACE = "trim_whitespace"
    LOWERCASE = "lowercase"
    UPPERCASE = "uppercase"
    REMOVE_NON_ALPHANUM = "remove_non_alphanum"
    CAPITALIZE_WORDS = "capitalize_words"
    REPLACE_SUBSTRING = "replace_substring"
    EXTRACT_DATE_PART = "extract_date_part"
    NUMBER_ROUND = "number_round"
    NUMBER_SCALE = "number_scale"


class FillStrategy(str, Enum):
    ZERO = "zero"
    MEAN = "mean"
    MEDIAN = "median"
    CUSTOM = "custom"


class TargetType(str, Enum):
    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    DATE = "date"
    BOOLEAN = "boolean"


class DatePart(str, Enum):
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    WEEKDAY = "weekday"


# ----------------------
# Column statistics
# ----------------------

class NumericStats(BaseModel):
    kind: Literal["numeric"] = "numeric"
    column: str
    count: int = 0
    mean: float = 0.0
    median: float = 0.0
    mode: Optional[float] = None
    std: float = 0.0
    variance: float = 0.0
    min: float = 0.0
    max: float = 0.0
    range: float = 0.0
    skewness: float = 0.0
    kurtosis: float = 0.0


class CategoryCount(BaseModel):
    value: str
    count: int


class CategoricalStats(BaseModel):
    kind: Literal["categorical"] = "categorical"
    column: str
    unique: int = 0
    top: List[CategoryCount] = []
    most_frequent: Optional[str] = None
    least_frequent: Optional[str] = None
    entropy: float = 0.0


class DatetimeStats(BaseModel):
    kind: Literal["datetime"] = "datetime"
    column: str
    count: int = 0
    min: Optional[datetime] = None
    max: Optional[datetime] = None
    span_days: int = 0
    common_month: Optional[str] = None
    common_weekday: Optional[str] = None


ColumnStatistics = Annotated[
    Union[NumericStats, CategoricalStats, DatetimeStats], Field(discriminator="kind")
]


# ----------------------
# Dataset
# ----------------------

class Column(BaseModel):
    name: str
    type: Optional[ColumnType] = None
    stats: Optional[ColumnStatistics] = None


class Dataset(BaseModel):
    columns: List[Column] = []
    data: List[Dict[str, Any]] = []

    @model_validator(mode="after")
    def _every_row_has_every_column(self):
        # ingestion may hand over rows only; column order then follows the first row
        if not self.columns and self.data:
            self.columns = [Column(name=k) for k in self.data[0].keys()]
        names = self.column_names
        self.data = [
            {**{name: row.get(name) for name in names}, **row} for row in self.data
        ]
        return self

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


# ----------------------
# Cleaning actions
# ----------------------

class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def column(self) -> Optional[str]:
        return getattr(self, "column_name", None)

    @property
    def redundancy_key(self) -> Tuple:
        return (self.kind, self.column)

    @property
    def description(self) -> str:
        return self.kind


class _ColumnAction(_Action):
    column_name: str = Field(min_length=1)


class RemoveDuplicates(_Action):
    kind: Literal["remove_duplicates"] = "remove_duplicates"

    @property
    def description(self) -> str:
        return "Remove duplicate rows"


class FillMissing(_ColumnAction):
    kind: Literal["fill_missing"] = "fill_missing"
    strategy: FillStrategy = FillStrategy.ZERO
    custom_value: Any = None

    @field_validator("custom_value")
    @classmethod
    def _coerce_custom(cls, v):
        return auto_parse(v)

    @model_validator(mode="after")
    def _custom_needs_value(self):
        if self.strategy == FillStrategy.CUSTOM and (
            is_missing(self.custom_value)
            or (isinstance(self.custom_value, str) and not self.custom_value.strip())
        ):
            raise ValueError("custom fill strategy requires a non-empty custom_value")
        return self

    @property
    def description(self) -> str:
        if self.strategy == FillStrategy.CUSTOM:
            return f"Fill missing in '{self.column_name}' with \"{self.custom_value}\""
        return f"Fill missing in '{self.column_name}' using {self.strategy.value}"


class ChangeType(_ColumnAction):
    kind: Literal["change_type"] = "change_type"
    new_type: TargetType

    @property
    def description(self) -> str:
        return f"Change type of '{self.column_name}' to {self.new_type.value}"


class DropColumn(_ColumnAction):
    kind: Literal["drop_column"] = "drop_column"

    @property
    def description(self) -> str:
        return f"Drop column '{self.column_name}'"


class TrimWhitespace(_ColumnAction):
    kind: Literal["trim_whitespace"] = "trim_whitespace"

    @property
    def description(self) -> str:
        return f"Trim whitespace in '{self.column_name}'"


class Lowercase(_ColumnAction):
    kind: Literal["lowercase"] = "lowercase"

    @property
    def description(self) -> str:
        return f"Lowercase '{self.column_name}'"


class Uppercase(_ColumnAction):
    kind: Literal["uppercase"] = "uppercase"

    @property
    def description(self) -> str:
        return f"Uppercase '{self.column_name}'"


class RemoveNonAlphanumeric(_ColumnAction):
    kind: Literal["remove_non_alphanum"] = "remove_non_alphanum"

    @property
    def description(self) -> str:
        return f"Remove special characters from '{self.column_name}'"


class CapitalizeWords(_ColumnAction):
    kind: Literal["capitalize_words"] = "capitalize_words"

    @property
    def description(self) -> str:
        return f"Capitalize '{self.column_name}'"


class ReplaceSubstring(_ColumnAction):
    kind: Literal["replace_substring"] = "replace_substring"
    find: str = ""
    replace_with: str = ""

    @property
    def redundancy_key(self) -> Tuple:
        # the replacement text does not make a second step on the same find distinct
        return (self.kind, self.column_name, self.find)

    @property
    def description(self) -> str:
        return f"In '{self.column_name}', replace \"{self.find}\" with \"{self.replace_with}\""


class ExtractDatePart(_ColumnAction):
    kind: Literal["extract_date_part"] = "extract_date_part"
    part: DatePart

    @property
    def description(self) -> str:
        return f"Extract {self.part.value.capitalize()} from '{self.column_name}'"


class RoundNumbers(_ColumnAction):
    kind: Literal["number_round"] = "number_round"
    places: int = Field(default=0, ge=0, le=15)

    @property
    def description(self) -> str:
        return f"Round '{self.column_name}' to {self.places} decimals"


class ScaleNumbers(_ColumnAction):
    kind: Literal["number_scale"] = "number_scale"
    scale_min: float = 0.0
    scale_max: float = 1.0

    @model_validator(mode="after")
    def _ordered_bounds(self):
        if self.scale_max < self.scale_min:
            raise ValueError("scale_max must not be lower than scale_min")
        return self

    @property
    def description(self) -> str:
        return f"Scale '{self.column_name}' to [{self.scale_min:g}, {self.scale_max:g}]"


CleaningAction = Annotated[
    Union[
        RemoveDuplicates,
        FillMissing,
        ChangeType,
        DropColumn,
        TrimWhitespace,
        Lowercase,
        Uppercase,
        RemoveNonAlphanumeric,
        CapitalizeWords,
        ReplaceSubstring,
        ExtractDatePart,
        RoundNumbers,
        ScaleNumbers,
    ],
    Field(discriminator="kind"),
]

_ACTION_ADAPTER = TypeAdapter(CleaningAction)


def parse_action(payload: Dict[str, Any]) -> CleaningAction:
    """Build a CleaningAction from a plain dict; raises pydantic.ValidationError."""
    return _ACTION_ADAPTER.validate_python(payload)


class ProposalStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED_REDUNDANT = "rejected_redundant"


class ProposalResult(BaseModel):
    status: ProposalStatus
    action: CleaningAction
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status == ProposalStatus.ACCEPTED


# ----------------------
# Preview / summary
# ----------------------

class PreviewStats(BaseModel):
    row_count: int = 0
    column_count: int = 0
    missing: int = 0
    duplicates: int = 0
    changed_cells: int = 0


class PreviewCellOut(BaseModel):
    value: Any = None
    is_changed: bool = False


class PreviewResponse(BaseModel):
    columns: List[str] = []
    rows: List[Dict[str, PreviewCellOut]] = []
    stats: PreviewStats = PreviewStats()
    truncated: bool = False


class DataSummary(BaseModel):
    total_rows: int = 0
    total_columns: int = 0
    missing_values: int = 0
    duplicates: int = 0
    memory_usage: str = "0.00 KB"


class ColumnInfo(BaseModel):
    name: str
    type: ColumnType
    missing_count: int = 0
    unique_count: int = 0
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None
    median: Optional[float] = None
    std: Optional[float] = None


# ----------------------
# Profiling report
# ----------------------

class CorrelationEntry(BaseModel):
    x: str
    y: str
    r: float


class AssociationEntry(BaseModel):
    x: str
    y: str
    chi2: float
    df: int


class MissingEntry(BaseModel):
    column: str
    missing: int
    percent: float


class MixedTypesEntry(BaseModel):
    column: str
    types: List[str]


class HealthReport(BaseModel):
    missing_by_column: List[MissingEntry] = []
    duplicates: int = 0
    low_variance_columns: List[str] = []
    high_cardinality_columns: List[str] = []
    mixed_types: List[MixedTypesEntry] = []
    primary_key_candidates: List[str] = []


class OutlierSummary(BaseModel):
    column: str
    z_count: int = 0
    iqr_count: int = 0
    iqr_fences: Tuple[float, float] = (0.0, 0.0)


class TokenCount(BaseModel):
    token: str
    count: int


class TextStats(BaseModel):
    column: str
    avg_words: float = 0.0
    top_words: List[TokenCount] = []


class ProfileReport(BaseModel):
    total_rows: int = 0
    total_columns: int = 0
    column_types: Dict[str, ColumnType] = {}
    health: HealthReport = HealthReport()
    numeric: List[NumericStats] = []
    categorical: List[CategoricalStats] = []
    datetimes: List[DatetimeStats] = []
    correlations: List[CorrelationEntry] = []
    associations: List[AssociationEntry] = []
    outliers: List[OutlierSummary] = []
    text: List[TextStats] = []
    insights: List[str] = []


class QAContext(BaseModel):
    summary: str = ""
    columns: List[str] = []
    sample_rows: List[Dict[str, Any]] = []

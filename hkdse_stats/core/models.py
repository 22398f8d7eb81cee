"""
DATA MODELS - Pydantic schemas for HKDSE statistics records
Type-safe record structures built by the extraction pipeline and written to SQL

RECORD TYPES:
✅ ParsedRow: one CSV data line, header -> coerced value (transient)
✅ SubjectRecord: per-subject grade distribution with derived rates
✅ GradePointTier: one aggregate grade-point band with admission tier flags
✅ CandidateRecord: per-year candidate counts by school type and gender
✅ DashboardInsight: display-oriented fact for the dashboard

VALIDATION RULES:
- Candidate and level counts must be non-negative integers
- A summed subject total must equal the sum of its level counts
- Tier flags must agree with the fixed grade-point cutoffs
- Day school counts may not exceed all-candidate counts

Dependencies: Pydantic for validation
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Literal, Optional, Union

from pydantic import BaseModel, Field, root_validator, validator

CellValue = Union[int, float, str]


class GradeLevel(str, Enum):
    """HKDSE attainment levels, best first"""
    LEVEL_5_STAR_STAR = "5**"
    LEVEL_5_STAR = "5*"
    LEVEL_5 = "5"
    LEVEL_4 = "4"
    LEVEL_3 = "3"
    LEVEL_2 = "2"
    LEVEL_1 = "1"
    UNCLASSIFIED = "U"


# Grade label -> SubjectRecord field name
LEVEL_FIELDS: Dict[str, str] = {
    "5**": "level_5_star_star",
    "5*": "level_5_star",
    "5": "level_5",
    "4": "level_4",
    "3": "level_3",
    "2": "level_2",
    "1": "level_1",
    "U": "unclassified",
}


class MeanScoreMode(str, Enum):
    """How a subject's mean score was obtained"""
    COMPUTED_WEIGHTED_MEAN = "computed-weighted-mean"
    SUPPLIED_CONSTANT_MEAN = "supplied-constant-mean"


class SignificanceLevel(str, Enum):
    CRITICAL = "critical"
    IMPORTANT = "important"
    NOTABLE = "notable"
    INFORMATIONAL = "informational"


# Minimum range_min for each tier flag
TIER_CUTOFFS: Dict[str, int] = {
    "top_tier": 33,
    "competitive": 27,
    "international": 24,
    "general": 20,
}


@dataclass
class CoercedField:
    """A cell value together with the type the coercer decided on"""

    value: CellValue
    kind: Literal["number", "percentage", "string"]

    @property
    def is_numeric(self) -> bool:
        return self.kind in ("number", "percentage")


@dataclass
class ParsedRow(Mapping):
    """Read-only mapping of column header to coerced cell value"""

    row_id: int
    values: Dict[str, CellValue]
    kinds: Dict[str, str] = field(default_factory=dict)

    def __getitem__(self, header: str) -> CellValue:
        return self.values[header]

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def kind_of(self, header: str) -> str:
        """Coercion kind of a cell ('number', 'percentage' or 'string')"""
        return self.kinds.get(header, "string")


class SubjectRecord(BaseModel):
    """Grade distribution and derived metrics for one subject in one year"""

    year: int = Field(..., ge=2012, le=2100, description="Examination year")
    subject_code: str = Field(..., min_length=1, description="Short subject code (CHIN, ENGL, ...)")
    subject_name: str = Field(..., min_length=1, description="Subject display name")
    category: str = Field(..., description="core, extended or elective")

    total_candidates: int = Field(..., ge=0, description="Candidates sitting the subject")
    level_5_star_star: int = Field(0, ge=0)
    level_5_star: int = Field(0, ge=0)
    level_5: int = Field(0, ge=0)
    level_4: int = Field(0, ge=0)
    level_3: int = Field(0, ge=0)
    level_2: int = Field(0, ge=0)
    level_1: int = Field(0, ge=0)
    unclassified: int = Field(0, ge=0)

    mean_score: float = Field(..., ge=0.0, le=7.0, description="Mean on the 0-7 grade point scale")
    mean_score_mode: MeanScoreMode = Field(..., description="Computed or supplied mean")
    difficulty_index: Optional[float] = Field(None, ge=0.0, description="Published difficulty index")

    distinction_rate: float = Field(..., ge=0.0, description="% at level 5 or above")
    pass_rate: float = Field(..., ge=0.0, description="% at level 2 or above")
    participation_rate: float = Field(..., ge=0.0, description="% of the reference cohort")

    total_source: Literal["summed", "supplied"] = Field(
        "summed", description="Whether total_candidates is the level sum or a supplied figure"
    )

    @validator("category")
    def validate_category(cls, v):
        """Category must be one of the dashboard groupings"""
        if v not in ("core", "extended", "elective"):
            raise ValueError(f"Unknown subject category: {v}")
        return v

    @root_validator(skip_on_failure=True)
    def check_total_matches_levels(cls, values):
        """A summed total must equal the sum of the level counts"""
        if values.get("total_source") == "summed":
            level_sum = sum(values.get(name, 0) for name in LEVEL_FIELDS.values())
            if values.get("total_candidates") != level_sum:
                raise ValueError(
                    f"total_candidates {values.get('total_candidates')} != sum of levels {level_sum}"
                )
        return values

    @property
    def level_counts(self) -> Dict[str, int]:
        """Grade label -> count"""
        return {label: getattr(self, name) for label, name in LEVEL_FIELDS.items()}

    @property
    def level_sum(self) -> int:
        return sum(self.level_counts.values())

    def to_row(self) -> Dict[str, Any]:
        """Column values for the subject_performance table"""
        return self.model_dump(exclude={"mean_score_mode", "total_source"})

    class Config:
        use_enum_values = True


class GradePointTier(BaseModel):
    """Candidates within one aggregate grade-point band"""

    year: int = Field(..., ge=2012, le=2100)
    grade_point_range: str = Field(..., description="Display label, e.g. '33-35'")
    range_min: int = Field(..., ge=0)
    range_max: int = Field(..., ge=0)

    day_school_candidates: int = Field(..., ge=0)
    all_candidates: int = Field(..., ge=0)
    cumulative_day_school: int = Field(..., ge=0)
    cumulative_all: int = Field(..., ge=0)

    percentage_day_school: float = Field(..., ge=0.0)
    percentage_all: float = Field(..., ge=0.0)
    cumulative_percentage_day_school: float = Field(..., ge=0.0)
    cumulative_percentage_all: float = Field(..., ge=0.0)

    top_tier: bool
    competitive: bool
    general: bool
    international: bool

    @root_validator(skip_on_failure=True)
    def check_range_and_flags(cls, values):
        """Band bounds must be ordered and flags must follow the cutoffs"""
        if values["range_min"] > values["range_max"]:
            raise ValueError(
                f"range_min {values['range_min']} exceeds range_max {values['range_max']}"
            )
        for flag, cutoff in TIER_CUTOFFS.items():
            if values[flag] != (values["range_min"] >= cutoff):
                raise ValueError(f"{flag} flag disagrees with cutoff {cutoff}")
        return values

    def to_row(self) -> Dict[str, Any]:
        """Column values for the university_readiness table"""
        return {
            "year": self.year,
            "grade_point_range": self.grade_point_range,
            "grade_point_min": self.range_min,
            "grade_point_max": self.range_max,
            "day_school_candidates": self.day_school_candidates,
            "all_candidates": self.all_candidates,
            "cumulative_day_school": self.cumulative_day_school,
            "cumulative_all": self.cumulative_all,
            "percentage_day_school": self.percentage_day_school,
            "percentage_all": self.percentage_all,
            "cumulative_percentage_day_school": self.cumulative_percentage_day_school,
            "cumulative_percentage_all": self.cumulative_percentage_all,
            "top_tier_universities": self.top_tier,
            "competitive_programs": self.competitive,
            "general_admission": self.general,
            "international_recognition": self.international,
        }


class CandidateRecord(BaseModel):
    """Candidate counts for one examination year"""

    year: int = Field(..., ge=2012, le=2100)
    total_candidates: int = Field(..., ge=0)
    day_school_male: int = Field(..., ge=0)
    day_school_female: int = Field(..., ge=0)
    day_school_total: int = Field(..., ge=0)
    private_male: int = Field(..., ge=0, description="All minus day school (male)")
    private_female: int = Field(..., ge=0, description="All minus day school (female)")
    private_total: int = Field(..., ge=0, description="All minus day school")
    gender_ratio: float = Field(..., ge=0.0, description="Female to male ratio")
    day_school_percentage: float = Field(..., ge=0.0, le=100.0)

    @property
    def all_male(self) -> int:
        return self.day_school_male + self.private_male

    @property
    def all_female(self) -> int:
        return self.day_school_female + self.private_female

    def to_row(self) -> Dict[str, Any]:
        """Column values for the candidates table"""
        return self.model_dump()


class DashboardInsight(BaseModel):
    """A single display fact; significance is assigned by hand"""

    category: str = Field(..., description="hero_stats, key_findings, demographics")
    key: str = Field(..., min_length=1)
    title: str
    value: str = Field(..., description="Pre-formatted display value")
    unit: str = ""
    description: str = ""
    significance_level: SignificanceLevel
    trend_direction: Optional[str] = None
    source_tables: str = ""
    calculation_method: str = ""

    @validator("value", pre=True)
    def stringify_value(cls, v):
        """Accept numbers and keep them as display strings"""
        if isinstance(v, (int, float)):
            return str(v)
        return v

    def to_row(self, year: int) -> Dict[str, Any]:
        """Column values for the dashboard_insights table"""
        return {
            "year": year,
            "insight_category": self.category,
            "insight_key": self.key,
            "display_title": self.title,
            "display_value": self.value,
            "display_unit": self.unit,
            "description": self.description,
            "significance_level": self.significance_level,
            "trend_direction": self.trend_direction or "",
            "source_tables": self.source_tables,
            "calculation_method": self.calculation_method,
        }

    class Config:
        use_enum_values = True


__all__ = [
    "CellValue",
    "GradeLevel",
    "LEVEL_FIELDS",
    "MeanScoreMode",
    "SignificanceLevel",
    "TIER_CUTOFFS",
    "CoercedField",
    "ParsedRow",
    "SubjectRecord",
    "GradePointTier",
    "CandidateRecord",
    "DashboardInsight",
]

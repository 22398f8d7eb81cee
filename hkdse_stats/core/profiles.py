"""
EXTRACTION PROFILES - Which table, which rows, which formulas
Subject extraction is configured as data; the pipeline has no per-subject code

SOURCE TABLES (official HKDSE results statistics exports):
- table3a: candidates taking at least five Category A / B subjects, 332A attainment
- table3b: high achievers (five level 5** etc.)
- table3f: aggregate grade-point bands with cumulative totals
- table3i: Chinese Language x English Language cross-tabulation
- table3j: Mathematics Compulsory Part x Extended Part cross-tabulation

PUBLISHED CONSTANTS:
Some published figures are not derivable from the tables (mean scores,
difficulty indices) or were fixed by hand (the 42,611 core-subject cohort,
the table 3F totals). They are kept here as documented assumptions and are
only applied when use_published_constants is requested.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Literal, Optional, Tuple

from hkdse_stats.core.models import MeanScoreMode

GRADE_LABELS: Tuple[str, ...] = ("5**", "5*", "5", "4", "3", "2", "1", "U")

TYPE_COLUMN = "Type"
NUMBER_TYPE = "Number"
TOTAL_LABEL = "Total"
DESCRIPTION_COLUMN = "Description"

# Table 3A / 3B column headers
FIVE_SUBJECT_DAY = "Day school candidates taking at least five Category A / B subjects"
FIVE_SUBJECT_ALL = "All candidates taking at least five Category A / B subjects"
CANDIDATE_COLUMNS: Dict[str, str] = {
    "day_school_male": f"{FIVE_SUBJECT_DAY} - Male",
    "day_school_female": f"{FIVE_SUBJECT_DAY} - Female",
    "day_school_total": f"{FIVE_SUBJECT_DAY} - Total",
    "all_male": f"{FIVE_SUBJECT_ALL} - Male",
    "all_female": f"{FIVE_SUBJECT_ALL} - Female",
    "all_total": f"{FIVE_SUBJECT_ALL} - Total",
}
CANDIDATE_ROW_MARKER = "No. of candidates"
UNIVERSITY_ELIGIBLE_MARKER = "Level 2+ in Chinese Language, English Language and Mathematics"
FIVE_STAR_STAR_MARKER = "Five level 5**"

# Table 3F column headers
TIER_ROW_MARKER = "grade points"
TIER_COLUMNS: Dict[str, str] = {
    "day_school_candidates": "Day School Candidates - No.",
    "all_candidates": "All Candidates - No.",
    "cumulative_day_school": "Day School Candidates - Cumulative total",
    "cumulative_all": "All Candidates - Cumulative total",
}

SOURCE_TOKENS: Dict[str, str] = {
    "candidates": "table3a",
    "high_achievers": "table3b",
    "grade_points": "table3f",
    "chinese_english": "table3i",
    "mathematics": "table3j",
}


@dataclass(frozen=True)
class SubjectProfile:
    """How to extract one subject's grade distribution"""

    code: str
    name: str
    category: Literal["core", "extended", "elective"]
    source: str
    mode: Literal["row_labels", "column_suffix"]
    label_column: str
    column_prefix: Optional[str] = None
    value_column: str = TOTAL_LABEL
    mean_mode: MeanScoreMode = MeanScoreMode.COMPUTED_WEIGHTED_MEAN
    supplied_mean: Optional[float] = None
    supplied_total: Optional[int] = None
    difficulty_index: Optional[float] = None
    participation_base: Optional[str] = None
    minimum_total: int = 0


CORE_SUBJECT_PROFILES: List[SubjectProfile] = [
    SubjectProfile(
        code="CHIN",
        name="Chinese Language",
        category="core",
        source="chinese_english",
        mode="row_labels",
        label_column="Attainment in Chinese Language",
    ),
    SubjectProfile(
        code="ENGL",
        name="English Language",
        category="core",
        source="chinese_english",
        mode="column_suffix",
        label_column="Attainment in Chinese Language",
        column_prefix="Attainment in English Language",
    ),
    SubjectProfile(
        code="MATH",
        name="Mathematics Compulsory Part",
        category="core",
        source="mathematics",
        mode="row_labels",
        label_column="Attainment in Mathematics Compulsory Part",
    ),
    SubjectProfile(
        code="M1M2",
        name="Mathematics Extended Part",
        category="extended",
        source="mathematics",
        mode="column_suffix",
        label_column="Attainment in Mathematics Compulsory Part",
        column_prefix="Attainment in Mathematics Extended Part",
        participation_base="MATH",
        minimum_total=1000,
    ),
]


@dataclass(frozen=True)
class PublishedConstants:
    """Hand-entered figures from the published 2024 reports"""

    mean_scores: Dict[str, float]
    difficulty_indices: Dict[str, float]
    supplied_totals: Dict[str, int]
    tier_bases: Tuple[int, int]


PUBLISHED_2024 = PublishedConstants(
    mean_scores={"CHIN": 3.02, "ENGL": 2.68, "MATH": 2.73, "M1M2": 3.74},
    difficulty_indices={"CHIN": 6.8, "ENGL": 7.2, "MATH": 5.2, "M1M2": 6.5},
    supplied_totals={"MATH": 42611},
    tier_bases=(40666, 49026),
)

PUBLISHED_CONSTANTS: Dict[int, PublishedConstants] = {2024: PUBLISHED_2024}


def apply_published_constants(
    profiles: List[SubjectProfile], constants: PublishedConstants
) -> List[SubjectProfile]:
    """Switch profiles to supplied means/totals where constants exist"""
    adjusted = []
    for profile in profiles:
        changes = {}
        if profile.code in constants.mean_scores:
            changes["mean_mode"] = MeanScoreMode.SUPPLIED_CONSTANT_MEAN
            changes["supplied_mean"] = constants.mean_scores[profile.code]
        if profile.code in constants.difficulty_indices:
            changes["difficulty_index"] = constants.difficulty_indices[profile.code]
        if profile.code in constants.supplied_totals:
            changes["supplied_total"] = constants.supplied_totals[profile.code]
        adjusted.append(replace(profile, **changes))
    return adjusted


__all__ = [
    "GRADE_LABELS",
    "TYPE_COLUMN",
    "NUMBER_TYPE",
    "TOTAL_LABEL",
    "DESCRIPTION_COLUMN",
    "CANDIDATE_COLUMNS",
    "CANDIDATE_ROW_MARKER",
    "UNIVERSITY_ELIGIBLE_MARKER",
    "FIVE_STAR_STAR_MARKER",
    "TIER_ROW_MARKER",
    "TIER_COLUMNS",
    "SOURCE_TOKENS",
    "SubjectProfile",
    "CORE_SUBJECT_PROFILES",
    "PublishedConstants",
    "PUBLISHED_2024",
    "PUBLISHED_CONSTANTS",
    "apply_published_constants",
]

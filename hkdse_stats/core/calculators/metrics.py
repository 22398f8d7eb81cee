"""
METRIC DERIVER - Subject rates, mean scores, tier flags and candidate ratios
Derived fields attached to extracted HKDSE records

CALCULATION TYPES:
✅ Total candidates: sum of level counts, or an authoritative supplied total
✅ Distinction rate: % at 5**, 5* or 5
✅ Pass rate: % above level 1 (excludes level 1 and U)
✅ Participation rate: % of a reference cohort
✅ Mean score: weighted grade points OR a supplied constant (two named modes)
✅ Grade-point tiers: fixed cutoffs on the band's lower bound

GRADE POINTS:
5** = 7, 5* = 6, 5 = 5, 4 = 4, 3 = 3, 2 = 2, 1 = 1, U = 0

EDGE CASES HANDLED:
- Zero denominators: every rate and the computed mean become 0.0
- Supplied totals win over the level sum; divergence is logged, not reconciled
- Absent level labels count as 0 candidates
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np
from pydantic import ValidationError

from hkdse_stats.core.models import (
    LEVEL_FIELDS,
    TIER_CUTOFFS,
    CandidateRecord,
    GradePointTier,
    MeanScoreMode,
    SubjectRecord,
)
from hkdse_stats.exceptions import RecordValidationError

logger = logging.getLogger(__name__)


GRADE_POINTS: Dict[str, int] = {
    "5**": 7,
    "5*": 6,
    "5": 5,
    "4": 4,
    "3": 3,
    "2": 2,
    "1": 1,
    "U": 0,
}

DISTINCTION_LEVELS = ("5**", "5*", "5")
FAILING_LEVELS = ("1", "U")

RATE_DECIMALS = 2


def safe_percentage(numerator: float, denominator: float, decimals: int = RATE_DECIMALS) -> float:
    """100 * numerator / denominator, or 0.0 when the denominator is zero"""
    if not denominator:
        return 0.0
    return round(100.0 * numerator / denominator, decimals)


def sum_levels(levels: Mapping[str, int]) -> int:
    """Total over every grade bucket, unclassified included"""
    return sum(levels.get(label, 0) for label in GRADE_POINTS)


def distinction_rate(levels: Mapping[str, int], total_candidates: int) -> float:
    distinctions = sum(levels.get(label, 0) for label in DISTINCTION_LEVELS)
    return safe_percentage(distinctions, total_candidates)


def pass_rate(levels: Mapping[str, int], total_candidates: int) -> float:
    if not total_candidates:
        return 0.0
    failing = sum(levels.get(label, 0) for label in FAILING_LEVELS)
    return safe_percentage(total_candidates - failing, total_candidates)


def weighted_mean_score(levels: Mapping[str, int]) -> float:
    """Mean grade points over candidates with a known level"""
    graded = [
        (GRADE_POINTS[label], count)
        for label, count in levels.items()
        if label in GRADE_POINTS and count > 0
    ]
    if not graded:
        return 0.0
    points, weights = zip(*graded)
    return round(float(np.average(points, weights=weights)), 2)


def tier_flags(range_min: int) -> Dict[str, bool]:
    """Admission tier flags for a grade-point band"""
    return {flag: range_min >= cutoff for flag, cutoff in TIER_CUTOFFS.items()}


class SubjectMetricsCalculator:
    """Build SubjectRecords with derived metrics from grade level counts"""

    def __init__(self, year: int):
        """
        Args:
            year: Examination year stamped on every record
        """
        self.year = year
        self.calculation_log: List[str] = []

    def build_subject_record(
        self,
        subject_code: str,
        subject_name: str,
        category: str,
        levels: Mapping[str, int],
        mean_mode: MeanScoreMode = MeanScoreMode.COMPUTED_WEIGHTED_MEAN,
        supplied_mean: Optional[float] = None,
        supplied_total: Optional[int] = None,
        participation_base: Optional[int] = None,
        difficulty_index: Optional[float] = None,
    ) -> SubjectRecord:
        """
        Derive totals, rates and mean score for one subject

        Args:
            subject_code: Short code (CHIN, ENGL, MATH, M1M2, ...)
            subject_name: Display name
            category: core, extended or elective
            levels: Grade label -> candidate count
            mean_mode: Which mean score derivation to use
            supplied_mean: Mean score for SUPPLIED_CONSTANT_MEAN
            supplied_total: Authoritative candidate total; overrides the level sum
            participation_base: Reference cohort size; defaults to the subject total
            difficulty_index: Published difficulty index, passed through

        Returns:
            Validated SubjectRecord
        """
        level_sum = sum_levels(levels)

        if supplied_total is not None:
            total = int(supplied_total)
            total_source = "supplied"
            if total != level_sum:
                logger.warning(
                    f"⚠️ {subject_code}: supplied total {total} differs from level sum {level_sum}"
                )
        else:
            total = level_sum
            total_source = "summed"

        if mean_mode == MeanScoreMode.SUPPLIED_CONSTANT_MEAN:
            if supplied_mean is None:
                raise RecordValidationError(
                    "SubjectRecord", subject_code, "supplied-constant-mean requires a mean value"
                )
            mean_score = float(supplied_mean)
        else:
            mean_score = weighted_mean_score(levels)

        base = participation_base if participation_base is not None else total

        try:
            record = SubjectRecord(
                year=self.year,
                subject_code=subject_code,
                subject_name=subject_name,
                category=category,
                total_candidates=total,
                **{name: int(levels.get(label, 0)) for label, name in LEVEL_FIELDS.items()},
                mean_score=mean_score,
                mean_score_mode=mean_mode,
                difficulty_index=difficulty_index,
                distinction_rate=distinction_rate(levels, total),
                pass_rate=pass_rate(levels, total),
                participation_rate=safe_percentage(total, base),
                total_source=total_source,
            )
        except ValidationError as e:
            raise RecordValidationError("SubjectRecord", subject_code, str(e)) from e

        self.calculation_log.append(
            f"✅ {subject_code}: {total} candidates, distinction {record.distinction_rate:.2f}%, "
            f"pass {record.pass_rate:.2f}%, mean {record.mean_score:.2f} ({record.mean_score_mode})"
        )
        return record


def build_grade_point_tier(
    year: int,
    range_min: int,
    range_max: int,
    day_school_candidates: int,
    all_candidates: int,
    cumulative_day_school: int,
    cumulative_all: int,
    bases: Tuple[int, int],
) -> GradePointTier:
    """
    Build one grade-point band with percentages and tier flags

    Args:
        bases: (day school total, all candidates total) used as percentage denominators
    """
    day_base, all_base = bases
    try:
        return GradePointTier(
            year=year,
            grade_point_range=f"{range_min}-{range_max}",
            range_min=range_min,
            range_max=range_max,
            day_school_candidates=day_school_candidates,
            all_candidates=all_candidates,
            cumulative_day_school=cumulative_day_school,
            cumulative_all=cumulative_all,
            percentage_day_school=safe_percentage(day_school_candidates, day_base),
            percentage_all=safe_percentage(all_candidates, all_base),
            cumulative_percentage_day_school=safe_percentage(cumulative_day_school, day_base),
            cumulative_percentage_all=safe_percentage(cumulative_all, all_base),
            **tier_flags(range_min),
        )
    except ValidationError as e:
        raise RecordValidationError("GradePointTier", f"{range_min}-{range_max}", str(e)) from e


def build_candidate_record(
    year: int,
    day_school_male: int,
    day_school_female: int,
    day_school_total: int,
    all_male: int,
    all_female: int,
    all_total: int,
) -> CandidateRecord:
    """Derive private counts, gender ratio and day school share"""
    gender_ratio = round(all_female / all_male, 3) if all_male else 0.0
    try:
        return CandidateRecord(
            year=year,
            total_candidates=all_total,
            day_school_male=day_school_male,
            day_school_female=day_school_female,
            day_school_total=day_school_total,
            private_male=all_male - day_school_male,
            private_female=all_female - day_school_female,
            private_total=all_total - day_school_total,
            gender_ratio=gender_ratio,
            day_school_percentage=safe_percentage(day_school_total, all_total),
        )
    except ValidationError as e:
        raise RecordValidationError("CandidateRecord", str(year), str(e)) from e


__all__ = [
    "GRADE_POINTS",
    "DISTINCTION_LEVELS",
    "safe_percentage",
    "sum_levels",
    "distinction_rate",
    "pass_rate",
    "weighted_mean_score",
    "tier_flags",
    "SubjectMetricsCalculator",
    "build_grade_point_tier",
    "build_candidate_record",
]

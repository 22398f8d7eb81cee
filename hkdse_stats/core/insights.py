"""
Dashboard insight generation.

Each insight is a pre-formatted display fact. Significance levels are editorial
and assigned per insight here; they are not computed from the data.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from hkdse_stats.core.calculators.metrics import safe_percentage
from hkdse_stats.core.models import CandidateRecord, DashboardInsight, SubjectRecord

logger = logging.getLogger(__name__)


@dataclass
class HeadlineCounts:
    """Single-figure counts read from tables 3A and 3B"""

    university_eligible: Optional[int] = None
    five_star_star: Optional[int] = None


def _find(subjects: List[SubjectRecord], code: str) -> Optional[SubjectRecord]:
    return next((s for s in subjects if s.subject_code == code), None)


def generate_dashboard_insights(
    candidate: Optional[CandidateRecord],
    subjects: List[SubjectRecord],
    headline: Optional[HeadlineCounts] = None,
) -> List[DashboardInsight]:
    """
    Build hero stats, key findings and demographic insights

    Insights whose inputs are missing are left out.
    """
    headline = headline or HeadlineCounts()
    insights: List[DashboardInsight] = []

    if candidate is not None:
        insights.append(DashboardInsight(
            category="hero_stats",
            key="total_candidates",
            title="Total DSE Candidates",
            value=f"{candidate.total_candidates:,}",
            description=f"Total number of candidates who sat for HKDSE {candidate.year}",
            significance_level="critical",
            source_tables="candidates",
            calculation_method="Direct extraction from Table 3A",
        ))

        if headline.university_eligible is not None:
            rate = safe_percentage(headline.university_eligible, candidate.total_candidates, 1)
            insights.append(DashboardInsight(
                category="hero_stats",
                key="university_eligible",
                title="University Eligible",
                value=f"{rate:.1f}",
                unit="%",
                description="Percentage meeting basic university admission requirements (332A)",
                significance_level="critical",
                source_tables="candidates",
                calculation_method="Level 2+ in Chinese, English, Math + Attained in CSD",
            ))

        if headline.five_star_star is not None:
            rate = safe_percentage(headline.five_star_star, candidate.total_candidates)
            insights.append(DashboardInsight(
                category="hero_stats",
                key="elite_performers",
                title="Elite Performers",
                value=f"{rate:.2f}",
                unit="%",
                description="Candidates achieving 5** in five subjects",
                significance_level="notable",
                source_tables="candidates",
                calculation_method="Based on Table 3B high achiever statistics",
            ))

    english = _find(subjects, "ENGL")
    chinese = _find(subjects, "CHIN")

    if english is not None:
        insights.append(DashboardInsight(
            category="key_findings",
            key="english_challenge",
            title="English Language Challenge",
            value=f"{english.mean_score:.2f}",
            unit="/7",
            description="Mean English Language level achieved by all candidates",
            significance_level="important",
            source_tables="subject_performance",
            calculation_method="Cross-tabulation analysis from Table 3I",
        ))

    if chinese is not None and english is not None:
        gap = chinese.distinction_rate - english.distinction_rate
        insights.append(DashboardInsight(
            category="key_findings",
            key="language_gap",
            title="Chinese-English Performance Gap",
            value=f"{gap:.1f}",
            unit="pp",
            description="Difference in distinction rates between Chinese and English Language",
            significance_level="important",
            trend_direction="advantage_chinese" if gap > 0 else "advantage_english",
            source_tables="subject_performance",
            calculation_method="Distinction rate differential (Level 5+ percentage)",
        ))

    if candidate is not None and candidate.gender_ratio > 0:
        balance = (candidate.gender_ratio - 1) * 100
        insights.append(DashboardInsight(
            category="demographics",
            key="gender_balance",
            title="Gender Balance",
            value=f"{abs(balance):.1f}",
            unit="% more female" if candidate.gender_ratio > 1 else "% more male",
            description=f"Gender distribution among DSE {candidate.year} candidates",
            significance_level="notable",
            source_tables="candidates",
            calculation_method="Female to male ratio calculation",
        ))

    logger.info(f"💡 Generated {len(insights)} dashboard insights")
    return insights


__all__ = ["HeadlineCounts", "generate_dashboard_insights"]

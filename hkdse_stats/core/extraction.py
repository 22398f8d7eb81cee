"""
EXTRACTION PIPELINE - Result-table CSVs to validated HKDSE records
Reader -> Coercer -> Indexer(profile) -> Deriver -> records ready for the SQL emitter

DATA SOURCES:
✅ Table 3A - Candidate counts by school type and gender, 332A attainment
✅ Table 3B - High achievers (five level 5**)
✅ Table 3F - Aggregate grade-point bands
✅ Table 3I - Chinese x English cross-tabulation
✅ Table 3J - Mathematics Compulsory x Extended cross-tabulation

VALIDATION STRATEGY:
1. Parse errors (unterminated quotes) abort the run with the line number
2. Missing rows/columns abort only the record being built; siblings proceed
3. Every skipped record is listed in ExtractionResult.errors
4. Records validate their own invariants on construction

Dependencies: pandas (via SourceTable), pydantic record models
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from hkdse_stats.core.calculators.metrics import (
    SubjectMetricsCalculator,
    build_candidate_record,
    build_grade_point_tier,
)
from hkdse_stats.core.csv_reader import parse_rows
from hkdse_stats.core.indexer import SourceTable
from hkdse_stats.core.insights import HeadlineCounts, generate_dashboard_insights
from hkdse_stats.core.models import (
    CandidateRecord,
    DashboardInsight,
    GradePointTier,
    SubjectRecord,
)
from hkdse_stats.core.profiles import (
    CANDIDATE_COLUMNS,
    CANDIDATE_ROW_MARKER,
    CORE_SUBJECT_PROFILES,
    DESCRIPTION_COLUMN,
    FIVE_STAR_STAR_MARKER,
    GRADE_LABELS,
    NUMBER_TYPE,
    PUBLISHED_CONSTANTS,
    SOURCE_TOKENS,
    TIER_COLUMNS,
    TIER_ROW_MARKER,
    TOTAL_LABEL,
    TYPE_COLUMN,
    UNIVERSITY_ELIGIBLE_MARKER,
    SubjectProfile,
    apply_published_constants,
)
from hkdse_stats.exceptions import (
    ExpectationError,
    MissingExpectedRowError,
    MissingInputFileError,
    RecordValidationError,
)

logger = logging.getLogger(__name__)

# "35/34/33 grade points" -> max 35, min 33
GRADE_POINT_PATTERN = re.compile(r"(\d+)/(\d+)/(\d+)")


@dataclass
class ExtractionResult:
    """Everything one extraction run produced, plus what it had to skip"""

    year: int
    candidate: Optional[CandidateRecord] = None
    subjects: List[SubjectRecord] = field(default_factory=list)
    tiers: List[GradePointTier] = field(default_factory=list)
    insights: List[DashboardInsight] = field(default_factory=list)
    headline: HeadlineCounts = field(default_factory=HeadlineCounts)
    sources: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def record_count(self) -> int:
        return (
            (1 if self.candidate else 0)
            + len(self.subjects)
            + len(self.tiers)
            + len(self.insights)
        )

    def subject(self, code: str) -> Optional[SubjectRecord]:
        for record in self.subjects:
            if record.subject_code == code:
                return record
        return None

    def generate_validation_report(self) -> str:
        """Human-readable summary of records and skipped items"""
        lines = [
            f"📋 HKDSE {self.year} EXTRACTION REPORT",
            "=" * 60,
            f"Sources: {', '.join(self.sources) or 'none'}",
            f"Candidates: {'1 record' if self.candidate else 'No data'}",
            f"Subjects: {len(self.subjects)} records",
            f"University Readiness: {len(self.tiers)} records",
            f"Dashboard Insights: {len(self.insights)} records",
        ]
        if self.errors:
            lines.append(f"❌ Skipped ({len(self.errors)}):")
            lines.extend(f"  - {error}" for error in self.errors)
        if self.warnings:
            lines.append(f"⚠️ Warnings ({len(self.warnings)}):")
            lines.extend(f"  - {warning}" for warning in self.warnings)
        return "\n".join(lines)


def locate_source(names: Iterable[str], token: str) -> Optional[str]:
    """First file name containing the table token (e.g. 'table3i')"""
    for name in sorted(names):
        if token in Path(name).name:
            return name
    return None


def load_sources(csv_dir) -> Dict[str, str]:
    """
    Read every CSV file in a directory

    Returns:
        Mapping of file name -> UTF-8 text

    Raises:
        MissingInputFileError: directory absent or holding no CSV files
    """
    directory = Path(csv_dir)
    if not directory.is_dir():
        raise MissingInputFileError(directory, "CSV directory not found")

    files = sorted(directory.glob("*.csv"))
    if not files:
        raise MissingInputFileError(directory, "no CSV files")

    logger.info(f"📊 Loading {len(files)} CSV files from: {directory}")
    return {path.name: path.read_text(encoding="utf-8-sig") for path in files}


def _discriminator(table: SourceTable) -> Dict[str, str]:
    """Restrict to count rows when the table carries a Type column"""
    if table.has_column(TYPE_COLUMN):
        return {TYPE_COLUMN: NUMBER_TYPE}
    return {}


class StatisticsExtractor:
    """Run the parameterized extraction over a set of source CSV texts"""

    def __init__(
        self,
        sources: Mapping[str, str],
        year: int,
        profiles: Optional[List[SubjectProfile]] = None,
        use_published_constants: bool = False,
        tier_bases: Optional[Tuple[int, int]] = None,
    ):
        """
        Args:
            sources: File name -> CSV text; names must contain the table token
            year: Examination year
            profiles: Subject profiles, defaults to the four core subjects
            use_published_constants: Apply hand-entered published figures for this year
            tier_bases: Explicit (day school, all) denominators for tier percentages
        """
        self.sources = dict(sources)
        self.year = year
        self.tier_bases = tier_bases

        profiles = list(profiles if profiles is not None else CORE_SUBJECT_PROFILES)
        if use_published_constants:
            constants = PUBLISHED_CONSTANTS.get(year)
            if constants is None:
                logger.warning(f"⚠️ No published constants for {year}; computing from data")
            else:
                profiles = apply_published_constants(profiles, constants)
                if self.tier_bases is None:
                    self.tier_bases = constants.tier_bases
        self.profiles = profiles

        self.tables: Dict[str, SourceTable] = {}
        self.result = ExtractionResult(year=year)

    def run(self) -> ExtractionResult:
        """Parse every source and build all records"""
        logger.info(f"🔍 EXTRACTING HKDSE {self.year} STATISTICS")
        self._parse_tables()

        self.result.candidate = self._extract_candidates()
        self.result.headline = self._extract_headline_counts()
        self.result.subjects = self._extract_subjects()
        self.result.tiers = self._extract_tiers()
        self.result.insights = generate_dashboard_insights(
            self.result.candidate, self.result.subjects, self.result.headline
        )

        logger.info(
            f"✅ Extracted {len(self.result.subjects)} subjects, {len(self.result.tiers)} tiers, "
            f"{len(self.result.insights)} insights ({len(self.result.errors)} skipped)"
        )
        return self.result

    def _parse_tables(self):
        for key, token in SOURCE_TOKENS.items():
            name = locate_source(self.sources, token)
            if name is None:
                self.result.warnings.append(f"No source file for {token}")
                continue
            rows = parse_rows(self.sources[name], source=name)
            self.tables[key] = SourceTable(token, rows)
            self.result.sources.append(name)
            logger.info(f"  📄 {name}: {len(rows)} rows")

    def _table(self, key: str) -> SourceTable:
        table = self.tables.get(key)
        if table is None:
            raise MissingExpectedRowError(SOURCE_TOKENS[key], "a source file")
        return table

    def _skip(self, what: str, error: Exception):
        message = f"{what}: {error}"
        self.result.errors.append(message)
        logger.warning(f"⚠️ Skipping {message}")

    def _extract_candidates(self) -> Optional[CandidateRecord]:
        try:
            table = self._table("candidates")
            row = table.find_row(contains={DESCRIPTION_COLUMN: CANDIDATE_ROW_MARKER})
            counts = {key: table.count(row, column) for key, column in CANDIDATE_COLUMNS.items()}
            return build_candidate_record(self.year, **counts)
        except (ExpectationError, RecordValidationError) as e:
            self._skip("candidate record", e)
            return None

    def _extract_headline_counts(self) -> HeadlineCounts:
        headline = HeadlineCounts()
        all_total = CANDIDATE_COLUMNS["all_total"]
        try:
            table = self._table("candidates")
            row = table.find_row(contains={DESCRIPTION_COLUMN: UNIVERSITY_ELIGIBLE_MARKER})
            headline.university_eligible = table.count(row, all_total)
        except ExpectationError as e:
            self._skip("university eligibility count", e)
        try:
            table = self._table("high_achievers")
            row = table.find_row(contains={DESCRIPTION_COLUMN: FIVE_STAR_STAR_MARKER})
            headline.five_star_star = table.count(row, all_total)
        except ExpectationError as e:
            self._skip("five level 5** count", e)
        return headline

    def _subject_levels(self, profile: SubjectProfile) -> Dict[str, int]:
        table = self._table(profile.source)
        discriminator = _discriminator(table)
        if profile.mode == "row_labels":
            return table.row_label_counts(
                profile.label_column,
                profile.value_column,
                labels=GRADE_LABELS,
                equals=discriminator,
            )
        criteria = dict(discriminator)
        criteria[profile.label_column] = TOTAL_LABEL
        total_row = table.find_row(equals=criteria)
        return table.column_suffix_counts(profile.column_prefix, total_row, labels=GRADE_LABELS)

    def _extract_subjects(self) -> List[SubjectRecord]:
        calculator = SubjectMetricsCalculator(self.year)
        records: Dict[str, SubjectRecord] = {}

        for profile in self.profiles:
            try:
                levels = self._subject_levels(profile)

                participation_base = None
                if profile.participation_base:
                    reference = records.get(profile.participation_base)
                    if reference is None:
                        raise MissingExpectedRowError(
                            "subjects", f"reference subject {profile.participation_base}"
                        )
                    participation_base = reference.total_candidates

                record = calculator.build_subject_record(
                    subject_code=profile.code,
                    subject_name=profile.name,
                    category=profile.category,
                    levels=levels,
                    mean_mode=profile.mean_mode,
                    supplied_mean=profile.supplied_mean,
                    supplied_total=profile.supplied_total,
                    participation_base=participation_base,
                    difficulty_index=profile.difficulty_index,
                )
            except (ExpectationError, RecordValidationError) as e:
                self._skip(f"subject {profile.code}", e)
                continue

            if record.total_candidates < profile.minimum_total:
                message = (
                    f"subject {profile.code}: {record.total_candidates} candidates "
                    f"below minimum {profile.minimum_total}"
                )
                self.result.warnings.append(message)
                logger.info(f"  ⏭️ Omitting {message}")
                continue

            records[profile.code] = record

        for line in calculator.calculation_log:
            logger.info(f"  {line}")
        return list(records.values())

    def _extract_tiers(self) -> List[GradePointTier]:
        try:
            table = self._table("grade_points")
            rows = table.find_rows(
                equals=_discriminator(table),
                contains={DESCRIPTION_COLUMN: TIER_ROW_MARKER},
            )
        except ExpectationError as e:
            self._skip("grade point tiers", e)
            return []

        bands = []
        for row in rows:
            match = GRADE_POINT_PATTERN.search(str(row[DESCRIPTION_COLUMN]))
            if not match:
                continue
            try:
                counts = {key: table.count(row, column) for key, column in TIER_COLUMNS.items()}
            except ExpectationError as e:
                self._skip(f"grade point band '{row[DESCRIPTION_COLUMN]}'", e)
                continue
            bands.append((int(match.group(3)), int(match.group(1)), counts))

        if not bands:
            return []

        bases = self.tier_bases
        if bases is None:
            # the widest cumulative figures cover every band
            bases = (
                max(counts["cumulative_day_school"] for _, _, counts in bands),
                max(counts["cumulative_all"] for _, _, counts in bands),
            )

        tiers = []
        for range_min, range_max, counts in bands:
            try:
                tiers.append(
                    build_grade_point_tier(self.year, range_min, range_max, bases=bases, **counts)
                )
            except RecordValidationError as e:
                self._skip(f"grade point band {range_min}-{range_max}", e)
        return tiers


def run_extraction(
    sources: Mapping[str, str],
    year: int,
    profiles: Optional[List[SubjectProfile]] = None,
    use_published_constants: bool = False,
    tier_bases: Optional[Tuple[int, int]] = None,
) -> ExtractionResult:
    """Extract every record type from CSV texts keyed by file name"""
    extractor = StatisticsExtractor(
        sources,
        year,
        profiles=profiles,
        use_published_constants=use_published_constants,
        tier_bases=tier_bases,
    )
    return extractor.run()


__all__ = [
    "ExtractionResult",
    "StatisticsExtractor",
    "locate_source",
    "load_sources",
    "run_extraction",
]

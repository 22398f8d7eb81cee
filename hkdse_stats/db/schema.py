"""
Relational layout of the imported statistics.

Tables are keyed by year plus a natural key and carry no foreign keys; each
import replaces one year's rows. The same Table objects drive the SQL emitter
(column order, literal rendering) and the API's SELECTs.
"""

import sqlalchemy as sa

metadata = sa.MetaData()

candidates = sa.Table(
    "candidates",
    metadata,
    sa.Column("year", sa.Integer, primary_key=True),
    sa.Column("total_candidates", sa.Integer, nullable=False),
    sa.Column("day_school_male", sa.Integer, nullable=False),
    sa.Column("day_school_female", sa.Integer, nullable=False),
    sa.Column("day_school_total", sa.Integer, nullable=False),
    sa.Column("private_male", sa.Integer, nullable=False),
    sa.Column("private_female", sa.Integer, nullable=False),
    sa.Column("private_total", sa.Integer, nullable=False),
    sa.Column("gender_ratio", sa.Float, nullable=False),
    sa.Column("day_school_percentage", sa.Float, nullable=False),
)

subject_performance = sa.Table(
    "subject_performance",
    metadata,
    sa.Column("year", sa.Integer, primary_key=True),
    sa.Column("subject_code", sa.String(16), primary_key=True),
    sa.Column("subject_name", sa.String(255), nullable=False),
    sa.Column("category", sa.String(32), nullable=False),
    sa.Column("total_candidates", sa.Integer, nullable=False),
    sa.Column("level_5_star_star", sa.Integer, nullable=False),
    sa.Column("level_5_star", sa.Integer, nullable=False),
    sa.Column("level_5", sa.Integer, nullable=False),
    sa.Column("level_4", sa.Integer, nullable=False),
    sa.Column("level_3", sa.Integer, nullable=False),
    sa.Column("level_2", sa.Integer, nullable=False),
    sa.Column("level_1", sa.Integer, nullable=False),
    sa.Column("unclassified", sa.Integer, nullable=False),
    sa.Column("mean_score", sa.Float, nullable=False),
    sa.Column("difficulty_index", sa.Float, nullable=True),
    sa.Column("distinction_rate", sa.Float, nullable=False),
    sa.Column("pass_rate", sa.Float, nullable=False),
    sa.Column("participation_rate", sa.Float, nullable=False),
)

university_readiness = sa.Table(
    "university_readiness",
    metadata,
    sa.Column("year", sa.Integer, primary_key=True),
    sa.Column("grade_point_range", sa.String(16), primary_key=True),
    sa.Column("grade_point_min", sa.Integer, nullable=False),
    sa.Column("grade_point_max", sa.Integer, nullable=False),
    sa.Column("day_school_candidates", sa.Integer, nullable=False),
    sa.Column("all_candidates", sa.Integer, nullable=False),
    sa.Column("cumulative_day_school", sa.Integer, nullable=False),
    sa.Column("cumulative_all", sa.Integer, nullable=False),
    sa.Column("percentage_day_school", sa.Float, nullable=False),
    sa.Column("percentage_all", sa.Float, nullable=False),
    sa.Column("cumulative_percentage_day_school", sa.Float, nullable=False),
    sa.Column("cumulative_percentage_all", sa.Float, nullable=False),
    sa.Column("top_tier_universities", sa.Boolean, nullable=False),
    sa.Column("competitive_programs", sa.Boolean, nullable=False),
    sa.Column("general_admission", sa.Boolean, nullable=False),
    sa.Column("international_recognition", sa.Boolean, nullable=False),
)

dashboard_insights = sa.Table(
    "dashboard_insights",
    metadata,
    sa.Column("year", sa.Integer, primary_key=True),
    sa.Column("insight_category", sa.String(64), primary_key=True),
    sa.Column("insight_key", sa.String(64), primary_key=True),
    sa.Column("display_title", sa.String(255), nullable=False),
    sa.Column("display_value", sa.String(64), nullable=False),
    sa.Column("display_unit", sa.String(32), nullable=False),
    sa.Column("description", sa.Text, nullable=False),
    sa.Column("significance_level", sa.String(32), nullable=False),
    sa.Column("trend_direction", sa.String(64), nullable=False),
    sa.Column("source_tables", sa.String(255), nullable=False),
    sa.Column("calculation_method", sa.Text, nullable=False),
)


__all__ = [
    "metadata",
    "candidates",
    "subject_performance",
    "university_readiness",
    "dashboard_insights",
]

"""
Statistics Routes

Read-only JSON views over the imported tables. Every endpoint accepts an
optional ``year`` filter and answers ``{success, data, count}``.
"""

import logging
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hkdse_stats.db.schema import (
    candidates,
    dashboard_insights,
    subject_performance,
    university_readiness,
)
from hkdse_stats.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Statistics"])

YearFilter = Annotated[
    Optional[int], Query(ge=2012, le=2100, description="Restrict to one examination year")
]


def envelope(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"success": True, "data": rows, "count": len(rows)}


async def fetch_all(db: AsyncSession, statement) -> Dict[str, Any]:
    result = await db.execute(statement)
    return envelope([dict(row._mapping) for row in result])


def _for_year(statement, table, year: Optional[int]):
    if year is not None:
        statement = statement.where(table.c.year == year)
    return statement


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Turn a failed query into the 500 error envelope"""
    logger.error(f"Query failed for {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


@router.get("/candidates")
async def get_candidates(year: YearFilter = None, db: AsyncSession = Depends(get_db)):
    """Candidate counts by school type and gender"""
    statement = _for_year(select(candidates), candidates, year).order_by(candidates.c.year.desc())
    return await fetch_all(db, statement)


@router.get("/performance")
async def get_performance(year: YearFilter = None, db: AsyncSession = Depends(get_db)):
    """Subject grade distributions, largest entry first"""
    statement = _for_year(select(subject_performance), subject_performance, year).order_by(
        subject_performance.c.total_candidates.desc()
    )
    return await fetch_all(db, statement)


@router.get("/subjects")
async def get_subjects(year: YearFilter = None, db: AsyncSession = Depends(get_db)):
    """Distinct subject list"""
    statement = (
        _for_year(
            select(
                subject_performance.c.subject_code,
                subject_performance.c.subject_name,
                subject_performance.c.category,
            ),
            subject_performance,
            year,
        )
        .distinct()
        .order_by(subject_performance.c.subject_code)
    )
    return await fetch_all(db, statement)


@router.get("/subjects/performance")
async def get_subject_rankings(
    year: YearFilter = None, db: AsyncSession = Depends(get_db)
):
    """Subjects ranked by distinction rate"""
    statement = _for_year(select(subject_performance), subject_performance, year).order_by(
        subject_performance.c.distinction_rate.desc(),
        subject_performance.c.subject_code,
    )
    return await fetch_all(db, statement)


@router.get("/university/readiness")
async def get_university_readiness(
    year: YearFilter = None, db: AsyncSession = Depends(get_db)
):
    """Grade-point bands, highest band first"""
    statement = _for_year(select(university_readiness), university_readiness, year).order_by(
        university_readiness.c.year.desc(),
        university_readiness.c.grade_point_min.desc(),
    )
    return await fetch_all(db, statement)


@router.get("/insights")
async def get_insights(year: YearFilter = None, db: AsyncSession = Depends(get_db)):
    """Pre-formatted dashboard facts"""
    statement = _for_year(select(dashboard_insights), dashboard_insights, year).order_by(
        dashboard_insights.c.year.desc(),
        dashboard_insights.c.insight_category,
        dashboard_insights.c.insight_key,
    )
    return await fetch_all(db, statement)


@router.get("/analysis")
async def get_analysis(year: YearFilter = None, db: AsyncSession = Depends(get_db)):
    """Per-year, per-category averages across subjects"""
    sp = subject_performance
    statement = (
        _for_year(
            select(
                sp.c.year,
                sp.c.category,
                func.count().label("subject_count"),
                func.sum(sp.c.total_candidates).label("total_entries"),
                func.round(func.avg(sp.c.mean_score), 2).label("average_mean_score"),
                func.round(func.avg(sp.c.distinction_rate), 2).label("average_distinction_rate"),
                func.round(func.avg(sp.c.pass_rate), 2).label("average_pass_rate"),
            ),
            sp,
            year,
        )
        .group_by(sp.c.year, sp.c.category)
        .order_by(sp.c.year.desc(), sp.c.category)
    )
    return await fetch_all(db, statement)

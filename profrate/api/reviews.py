"""
Public review feed and site statistics.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from profrate.db import schemas
from profrate.db.database import get_db
from profrate.db.repositories import reviews as reviews_repo
from profrate.db.repositories import stats as stats_repo

router = APIRouter(prefix="/api", tags=["reviews"])


def with_doctor_name(rows) -> List[schemas.ReviewWithDoctor]:
    return [
        schemas.ReviewWithDoctor.model_validate(review).model_copy(update={"doctor_name": doctor_name})
        for review, doctor_name in rows
    ]


@router.get("/reviews", response_model=List[schemas.ReviewWithDoctor])
def list_recent_reviews_endpoint(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return with_doctor_name(reviews_repo.get_reviews_with_doctor(db, limit=limit))


@router.get("/stats", response_model=schemas.Stats)
def get_stats_endpoint(db: Session = Depends(get_db)):
    return stats_repo.get_stats(db)

from __future__ import annotations

from typing import Any

from prospector.core import database
from prospector.core.celery_app import celery_app
from prospector.scoring.service import scoring_recalculator


@celery_app.task(name="prospector.tasks.recalculate_scores")
def recalculate_scores() -> dict[str, Any]:
    session = database.SessionLocal()
    try:
        result = scoring_recalculator.recalculate(session)
    finally:
        session.close()
    return result.model_dump(mode="json")

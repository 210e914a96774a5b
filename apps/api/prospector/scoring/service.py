from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.orm import Session

from prospector.core.config import Settings, get_settings
from prospector.errors import ScoringRunError
from prospector.metrics import observe_scoring_run
from prospector.otel import mark_span_failed
from prospector.prospects.models import Prospect
from prospector.scoring.schemas import ScoringRunRead

logger = logging.getLogger("prospector.scoring")
tracer = trace.get_tracer("prospector.scoring")

STAGE_P1 = "P1"
STAGE_NURTURE = "nurture"
STAGE_RESEARCH = "research"
STAGE_HOLD = "hold"

SCORE_MIN = 0
SCORE_MAX = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def days_since(last_contacted_at: datetime, now: datetime) -> int:
    return (_as_utc(now) - _as_utc(last_contacted_at)) // timedelta(days=1)


def decay_score(
    score: int,
    last_contacted_at: datetime | None,
    now: datetime,
    *,
    after_days: int = 3,
    points: int = 2,
) -> int:
    bounded = min(SCORE_MAX, max(SCORE_MIN, int(score or 0)))
    if last_contacted_at is None:
        return bounded
    if days_since(last_contacted_at, now) >= after_days:
        return max(SCORE_MIN, bounded - points)
    return bounded


def stage_for_score(score: int, *, p1_threshold: int = 80, nurture_threshold: int = 60) -> str:
    if score >= p1_threshold:
        return STAGE_P1
    if score >= nurture_threshold:
        return STAGE_NURTURE
    return STAGE_RESEARCH


@dataclass(slots=True)
class ScoringRecalculator:
    settings: Settings | None = None

    def recalculate(self, session: Session, now: datetime | None = None) -> ScoringRunRead:
        """Decay and re-stage every prospect of every tenant in one transaction.

        Any failure rolls the whole run back; the next scheduled trigger starts
        over from the stored values.
        """
        settings = self.settings or get_settings()
        run_at = _as_utc(now) if now is not None else utcnow()
        started = time.perf_counter()
        chunk_size = max(1, settings.commit_flush_chunk_size)

        with tracer.start_as_current_span("scoring.recalculate") as span:
            logger.info("scoring.started", extra={"status": "Running"})
            processed = decayed = stage_changed = 0
            try:
                prospects = session.scalars(select(Prospect).order_by(Prospect.tenant_id, Prospect.id)).all()
                for prospect in prospects:
                    previous_score = prospect.score
                    previous_stage = prospect.stage
                    score = decay_score(
                        previous_score,
                        prospect.last_contacted_at,
                        run_at,
                        after_days=settings.scoring_decay_after_days,
                        points=settings.scoring_decay_points,
                    )
                    if settings.scoring_preserve_hold and previous_stage == STAGE_HOLD:
                        stage = STAGE_HOLD
                    else:
                        stage = stage_for_score(
                            score,
                            p1_threshold=settings.scoring_p1_threshold,
                            nurture_threshold=settings.scoring_nurture_threshold,
                        )

                    prospect.score = score
                    prospect.stage = stage
                    prospect.updated_at = run_at
                    processed += 1
                    if score != previous_score:
                        decayed += 1
                    if stage != previous_stage:
                        stage_changed += 1
                    if processed % chunk_size == 0:
                        session.flush()
                session.commit()
            except Exception as exc:
                session.rollback()
                duration = time.perf_counter() - started
                observe_scoring_run("failed", duration)
                mark_span_failed(span, exc)
                logger.exception(
                    "scoring.failed",
                    extra={"status": "Failed", "error": str(exc), "duration_ms": round(duration * 1000, 2)},
                )
                raise ScoringRunError(f"scoring run failed: {exc}") from exc

            duration = time.perf_counter() - started
            observe_scoring_run("succeeded", duration, updated_count=processed)
            span.set_attribute("processed_count", processed)
            logger.info(
                "scoring.finished",
                extra={
                    "status": "Succeeded",
                    "processed_count": processed,
                    "decayed_count": decayed,
                    "duration_ms": round(duration * 1000, 2),
                },
            )

        return ScoringRunRead(
            processed_count=processed,
            decayed_count=decayed,
            stage_changed_count=stage_changed,
            started_at=run_at,
            finished_at=utcnow(),
        )


scoring_recalculator = ScoringRecalculator()

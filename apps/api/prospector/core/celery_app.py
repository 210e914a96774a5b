from celery import Celery
from celery.schedules import crontab

from prospector.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "prospector",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["prospector.scoring.tasks"],
)
celery_app.conf.timezone = settings.scoring_timezone
celery_app.conf.beat_schedule = {
    "recalculate-prospect-scores": {
        "task": "prospector.tasks.recalculate_scores",
        "schedule": crontab(hour=settings.scoring_schedule_hour, minute=settings.scoring_schedule_minute),
    },
}

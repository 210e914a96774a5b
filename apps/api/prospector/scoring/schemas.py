from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ScoringRunRead(BaseModel):
    processed_count: int
    decayed_count: int
    stage_changed_count: int
    started_at: datetime
    finished_at: datetime

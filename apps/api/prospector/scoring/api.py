from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from prospector.api.errors import prospector_error_response
from prospector.core.auth import AuthUser
from prospector.core.database import get_db
from prospector.core.rbac import require_any_role
from prospector.errors import ScoringRunError
from prospector.scoring.schemas import ScoringRunRead
from prospector.scoring.service import scoring_recalculator

router = APIRouter(prefix="/api/scoring", tags=["scoring"])


@router.post("/recalculate", response_model=ScoringRunRead)
def recalculate_scores(
    request: Request,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(require_any_role("admin", "prospects.scoring.run")),
) -> ScoringRunRead | JSONResponse:
    try:
        return scoring_recalculator.recalculate(db)
    except ScoringRunError as exc:
        return prospector_error_response(request, exc, code_prefix="scoring_run")

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from prospector.api.errors import error_response, prospector_error_response
from prospector.core.auth import AuthUser, get_current_user
from prospector.core.database import get_db
from prospector.errors import AuthorizationError, FieldError, ProspectorError, ValidationError
from prospector.prospects.schemas import ImportResult, ProspectDetailRead
from prospector.prospects.service import ImportService

router = APIRouter(prefix="/api", tags=["prospects"])
import_service = ImportService()


async def _read_import_body(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return None
    content_type = request.headers.get("content-type", "").lower()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationError([FieldError(None, "$", "body must be UTF-8 text")]) from exc
    if "json" in content_type:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValidationError([FieldError(None, "$", f"invalid JSON: {exc.msg}")]) from exc
    return text


@router.post("/prospects/import", response_model=ImportResult)
async def import_prospects(
    request: Request,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> ImportResult | JSONResponse:
    try:
        if not user.is_authenticated:
            raise AuthorizationError("authenticated caller required")
        body = await _read_import_body(request)
        return await run_in_threadpool(import_service.import_batch, db, user.sub, body)
    except ProspectorError as exc:
        return prospector_error_response(request, exc, code_prefix="prospect_import")


@router.get("/tenants/{tenant_id}/prospects/{prospect_id}", response_model=ProspectDetailRead)
def get_prospect(
    request: Request,
    tenant_id: str,
    prospect_id: str,
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> ProspectDetailRead | JSONResponse:
    if not user.is_authenticated:
        return prospector_error_response(request, AuthorizationError("authenticated caller required"), code_prefix="prospect")
    detail = import_service.get_prospect(db, tenant_id, prospect_id)
    if detail is None:
        return error_response(
            request,
            status_code=status.HTTP_404_NOT_FOUND,
            code="prospect_not_found",
            message="prospect not found",
        )
    return detail

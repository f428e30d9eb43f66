from fastapi import APIRouter, Depends
from sqlalchemy import text

from ..db import get_session
from ..jobs import known_job_types


router = APIRouter(tags=["status"])


@router.get("/status", response_model=dict)
def get_status():
    return {"status": "ok", "job_types": known_job_types()}


@router.get("/status/db", response_model=dict)
def db_status(session=Depends(get_session)):
    details = {"backend": session.get_bind().dialect.name}
    try:
        session.exec(text("SELECT 1"))
        ok = True
    except Exception as e:  # noqa: BLE001
        ok = False
        details["error"] = str(e)
    return {"ok": ok, "details": details}

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from famifirst.core.clock import Clock
from famifirst.core.config import settings
from famifirst.core.db import get_db
from famifirst.core.deps import get_clock
from famifirst.schemas.recurrence import GenerationCycleResponse
from famifirst.services.recurrence import run_generation_cycle

router = APIRouter(prefix="/v1/admin/recurrence", tags=["admin"])


def _require_internal_token(x_internal_admin_token: str | None) -> None:
    if not x_internal_admin_token or x_internal_admin_token != settings.internal_admin_token:
        raise HTTPException(status_code=401, detail="invalid internal admin token")


@router.post("/run", response_model=GenerationCycleResponse)
def run_recurrence_cycle(
    window_days: int | None = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    x_internal_admin_token: str | None = Header(default=None, alias="X-Internal-Admin-Token"),
):
    """Called by the worker's daily beat schedule."""
    _require_internal_token(x_internal_admin_token)
    if window_days is not None and window_days < 1:
        raise HTTPException(status_code=400, detail="window_days must be positive")
    stats = run_generation_cycle(db, clock.now(), window_days=window_days)
    return GenerationCycleResponse(
        templates=stats.templates,
        instances_created=stats.instances_created,
        duplicates_skipped=stats.duplicates_skipped,
        failed_occurrences=stats.failed_occurrences,
        failed_templates=stats.failed_templates,
    )

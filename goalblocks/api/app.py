"""FastAPI web application for goalblocks."""

import logging
from contextlib import asynccontextmanager
import datetime as dt
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from goalblocks.auth.dependencies import get_current_user
from goalblocks.database.database import get_db, init_db
from goalblocks.database.schedule_repository import ScheduleRepository
from goalblocks.models.block import BlockInstance, BlockTemplate
from goalblocks.models.mutation import OccurrenceMutation
from goalblocks.models.recurrence import RecurrenceRule
from goalblocks.models.schedule import ScheduleDocument
from goalblocks.models.user import User
from goalblocks.recurrence.dates import parse_date_str
from goalblocks.recurrence.errors import (
    NotFoundError,
    PartialWriteError,
    ScopeRequiredError,
    ValidationError,
)
from goalblocks.recurrence.scope import MutationResult, build_resolver
from goalblocks.recurrence.series import (
    SeriesWriteResult,
    create_recurring_series,
    extend_series,
    list_recurring_instances,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="goalblocks API",
    description="Goal-driven daily schedules with recurring time blocks",
    version="0.1.0",
    lifespan=lifespan,
)


# Request models
class SeriesCreateRequest(BaseModel):
    template: BlockTemplate
    rule: RecurrenceRule
    start_date: str = Field(..., description="First date to generate from (YYYY-MM-DD)")
    lookahead_days: Optional[int] = Field(None, description="Generation window in days (default 90)")


class SeriesExtendRequest(BaseModel):
    through_date: str = Field(..., description="Materialize occurrences up to this date (YYYY-MM-DD)")


class ScheduleUpsertRequest(BaseModel):
    blocks: List[BlockInstance]


# Response models
class DateCount(BaseModel):
    date: str
    added: int


class SeriesWriteResponse(BaseModel):
    series_id: str
    dates_written: int
    instances_added: int
    details: List[DateCount]
    failures: Dict[str, str] = Field(default_factory=dict)


class MutationResponse(BaseModel):
    action: str
    scope: Optional[str]
    instance_id: str
    series_id: Optional[str]
    dates_updated: List[str]
    instances_affected: int
    failures: Dict[str, str] = Field(default_factory=dict)


class BlockResponse(BaseModel):
    date: str
    block: BlockInstance


class RecurringInstanceEntry(BaseModel):
    date: str
    id: str
    title: str
    recurring: bool
    series_id: Optional[str]
    original_date: Optional[dt.date]
    completed: bool


class RecurringDiagnosticResponse(BaseModel):
    total_schedules: int
    recurring_found: int
    instances: List[RecurringInstanceEntry]


def _series_response(result: SeriesWriteResult) -> SeriesWriteResponse:
    summary = result.summary
    return SeriesWriteResponse(
        series_id=result.series_id,
        dates_written=len(summary.dates_written),
        instances_added=summary.instances_added,
        details=[DateCount(**d) for d in summary.details()],
        failures=summary.failures,
    )


def _mutation_response(result: MutationResult) -> MutationResponse:
    return MutationResponse(
        action=result.action,
        scope=result.scope,
        instance_id=result.instance_id,
        series_id=result.series_id,
        dates_updated=result.dates_updated,
        instances_affected=result.instances_affected,
        failures=result.failures,
    )


def _scope_required(e: ScopeRequiredError) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={
            "error": "scope_required",
            "message": str(e),
            "instance_id": e.instance_id,
            "series_id": e.series_id,
            "choices": ["single", "all"],
        },
    )


def _multi_status(body: BaseModel) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_207_MULTI_STATUS, content=body.model_dump(mode="json"))


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


@app.get("/schedule/{date}", response_model=ScheduleDocument)
def get_schedule(
    date: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get one day's schedule (empty when nothing was written for that date)."""
    try:
        parse_date_str(date)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    doc = ScheduleRepository(db).get(current_user.id, date)
    return doc or ScheduleDocument(user_id=current_user.id, date=date, blocks=[])


@app.put("/schedule/{date}", response_model=ScheduleDocument)
def put_schedule(
    date: str,
    request: ScheduleUpsertRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Replace one day's blocks (one-off blocks and manual reordering).

    Recurring instances can be reordered or completed here; removing or editing one needs
    POST /schedule/occurrences/mutate with a scope.
    """
    try:
        return build_resolver(db).replace_day(current_user.id, date, request.blocks)
    except ScopeRequiredError as e:
        raise _scope_required(e)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/schedule/recurring", response_model=SeriesWriteResponse, status_code=201)
def create_recurring(
    request: SeriesCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a recurring series and write its occurrences into the user's schedules."""
    try:
        result = create_recurring_series(
            db,
            user_id=current_user.id,
            template=request.template,
            rule=request.rule,
            start_date=request.start_date,
            lookahead_days=request.lookahead_days,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PartialWriteError as e:
        logger.warning(f"Recurring series partially written for user {current_user.id}: {e}")
        return _multi_status(_series_response(e.outcome))
    return _series_response(result)


@app.post("/schedule/series/{series_id}/extend", response_model=SeriesWriteResponse)
def extend_recurring(
    series_id: str,
    request: SeriesExtendRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Materialize an existing series further into the future."""
    try:
        result = extend_series(db, user_id=current_user.id, series_id=series_id, through_date=request.through_date)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PartialWriteError as e:
        return _multi_status(_series_response(e.outcome))
    return _series_response(result)


@app.post("/schedule/occurrences/mutate", response_model=MutationResponse)
def mutate_occurrence(
    request: OccurrenceMutation,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit or delete a block; recurring blocks require scope 'single' or 'all'."""
    try:
        result = build_resolver(db).resolve(current_user.id, request)
    except ScopeRequiredError as e:
        raise _scope_required(e)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PartialWriteError as e:
        logger.warning(f"Occurrence mutation partially applied for user {current_user.id}: {e}")
        return _multi_status(_mutation_response(e.outcome))
    return _mutation_response(result)


@app.post("/schedule/{date}/blocks/{block_id}/toggle-complete", response_model=BlockResponse)
def toggle_complete(
    date: str,
    block_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Flip a block's completion flag."""
    try:
        block = build_resolver(db).toggle_completion(current_user.id, date, block_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BlockResponse(date=date, block=block)


@app.get("/debug/recurring", response_model=RecurringDiagnosticResponse)
def debug_recurring(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Read-only view of every recurring instance, for checking series integrity."""
    instances = list_recurring_instances(db, current_user.id)
    return RecurringDiagnosticResponse(
        total_schedules=len(ScheduleRepository(db).get_all(current_user.id)),
        recurring_found=len(instances),
        instances=[RecurringInstanceEntry(**i) for i in instances],
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

"""Operational endpoints.

- POST /admin/auto-close/run - run one auto-close sweep now
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from orderflow.api.identity import get_actor
from orderflow.api.schemas import ErrorResponse, SweepFailureSchema, SweepResponse
from orderflow.application.access import require_sweep_trigger
from orderflow.application.auto_close import AutoCloseSweeper, get_auto_close_sweeper
from orderflow.domain.base import utc_now
from orderflow.domain.value_objects import Actor

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/auto-close/run",
    response_model=SweepResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    summary="Run auto-close sweep",
    description="Close every CONFIRM_PENDING order whose working-hours SLA has elapsed.",
)
async def run_auto_close(
    actor: Annotated[Actor, Depends(get_actor)],
    sweeper: Annotated[AutoCloseSweeper, Depends(get_auto_close_sweeper)],
) -> SweepResponse:
    """Run the auto-close sweep as of now.

    Per-order failures are reported in ``failed``; the call itself only
    fails for callers without the manager role.
    """
    require_sweep_trigger(actor)
    result = await sweeper.run(utc_now())
    return SweepResponse(
        ran_at=result.ran_at,
        checked=result.checked,
        closed=result.closed,
        failed=[
            SweepFailureSchema(order_id=f.order_id, error=f.error, error_code=f.error_code)
            for f in result.failed
        ],
    )

"""
Scheduled job trigger endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from .dependencies import LoanAccountingSystem, get_system
from ..exceptions import AuthorizationError, FatalRunError


router = APIRouter()


@router.post("/quarterly-interest")
def trigger_quarterly_interest(
    authorization: Optional[str] = Header(default=None),
    system: LoanAccountingSystem = Depends(get_system)
):
    """
    Run quarterly interest for the current fiscal quarter.

    Called by the scheduler at 18:30 UTC on the 1st of Jan/Apr/Jul/Oct. A run
    with per-customer errors still answers 200; the counts are in the body.
    """
    try:
        result = system.quarterly_job.trigger(authorization)
    except AuthorizationError:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})
    except FatalRunError as e:
        return JSONResponse(status_code=500, content={"error": str(e)})

    return JSONResponse(status_code=200, content=result)

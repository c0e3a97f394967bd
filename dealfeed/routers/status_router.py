# dealfeed/routers/status_router.py
from typing import Optional, Union

from fastapi import APIRouter, Depends, Header, HTTPException

from dealfeed import schemas
from dealfeed.controllers import status_controller
from dealfeed.dependencies import get_store
from dealfeed.services.deal_store import DealStore

router = APIRouter()


@router.get(
    "/status",
    response_model=Union[schemas.StatusSummary, schemas.PublicStatus, schemas.StatusError],
)
def get_status(
    admin: bool = False,
    authorization: Optional[str] = Header(default=None),
    store: DealStore = Depends(get_store),
):
    # Only checks that a bearer token is present; real auth lives in front of this service
    if admin and (not authorization or not authorization.startswith("Bearer ")):
        raise HTTPException(status_code=401, detail="Unauthorized")

    if admin:
        return status_controller.get_health_summary(store)
    return status_controller.get_public_status(store)

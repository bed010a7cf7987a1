from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from qyou.api.profile import serialize_profile
from qyou.dependencies import get_current_account, get_ledger
from qyou.services.claims import ClaimLedger
from qyou.services.errors import ValidationError

router = APIRouter(prefix="/api", tags=["claims"])


class ClaimRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str | None = None
    account_id: str | None = Field(default=None, alias="accountId")


@router.get("/claim-status")
def claim_status(code: str | None = Query(default=None), ledger: ClaimLedger = Depends(get_ledger)):
    """Is this bracelet still free? Read-only, safe to call on every scan."""
    return ledger.check_status(code).to_dict()


@router.post("/claim")
def claim_code(
    data: ClaimRequest,
    account_id: str = Depends(get_current_account),
    ledger: ClaimLedger = Depends(get_ledger),
):
    """
    Bind a code to the signed-in account.
    Also how an account left unbound by a failed registration gets its bracelet.
    """
    if not data.code or not data.account_id:
        raise ValidationError("code and accountId are required")

    if data.account_id != account_id:
        raise HTTPException(status_code=403, detail="You can only claim codes for your own account")

    profile = ledger.claim(data.code, account_id)

    return {
        "ok": True,
        "message": "Code claimed successfully",
        "record": serialize_profile(profile),
    }

"""Account management endpoints."""

from fastapi import APIRouter, status, Depends, Security
from typing import Optional
from datetime import date
from pydantic import BaseModel

from accounts import AccountManager
from auth import get_current_user, Claims
from errors import StorefrontError
from api.errors import http_error, internal_error

router = APIRouter(
    prefix="/accounts",
    tags=["Accounts"]
)

class AccountUpdate(BaseModel):
    """Model for partial account updates."""
    username: Optional[str] = None
    name: Optional[str] = None
    shop_name: Optional[str] = None
    mobile_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    country: Optional[str] = None
    security_question: Optional[str] = None
    security_answer: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    shipping_country: Optional[str] = None

def get_account_manager() -> AccountManager:
    return AccountManager()

@router.get("/{account_id}")
async def get_account(
    account_id: int,
    claims: Claims = Security(get_current_user),
    accounts: AccountManager = Depends(get_account_manager)
):
    """Get an account by id."""
    try:
        return await accounts.get_account(account_id)
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

@router.patch("/{account_id}")
async def update_account(
    account_id: int,
    update: AccountUpdate,
    claims: Claims = Security(get_current_user),
    accounts: AccountManager = Depends(get_account_manager)
):
    """Update profile and shipping attributes of an account."""
    try:
        return await accounts.update_account(
            account_id,
            update.model_dump(exclude_unset=True)
        )
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

@router.delete("/{account_id}")
async def delete_account(
    account_id: int,
    claims: Claims = Security(get_current_user),
    accounts: AccountManager = Depends(get_account_manager)
):
    """Delete an account."""
    try:
        await accounts.delete_account(account_id)
        return {"success": True}
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

# Export the router
__all__ = ['router']

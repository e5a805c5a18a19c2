"""Authentication API endpoints."""

from fastapi import APIRouter, status, Depends, Security
from typing import Optional
from datetime import date
from pydantic import BaseModel, EmailStr

from accounts import AccountManager
from auth import manager, get_current_user, Claims
from errors import StorefrontError
from api.errors import http_error, internal_error

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)

class ShippingAddress(BaseModel):
    """Shipping address stored on the account."""
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None

class RegisterRequest(BaseModel):
    """Request model for registering an account."""
    email: EmailStr
    password: str
    account_type: str = "buyer"
    username: Optional[str] = None
    name: Optional[str] = None
    shop_name: Optional[str] = None
    mobile_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    country: Optional[str] = None
    security_question: Optional[str] = None
    security_answer: Optional[str] = None
    shipping_address: Optional[ShippingAddress] = None

class RegisterResponse(BaseModel):
    """Response model for registration."""
    id: int
    message: str

class LoginRequest(BaseModel):
    """Request model for login."""
    email: EmailStr
    password: str

class LoginResponse(BaseModel):
    """Response model for login."""
    token: str
    subject_id: int
    role: str
    expires_at: str

def get_account_manager() -> AccountManager:
    return AccountManager()

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    accounts: AccountManager = Depends(get_account_manager)
):
    """Register a buyer or shop account."""
    profile = request.model_dump(
        exclude={"email", "password", "account_type", "shipping_address"},
        exclude_none=True
    )
    if request.shipping_address:
        address = request.shipping_address.model_dump(exclude_none=True)
        if "country" in address:
            address["shipping_country"] = address.pop("country")
        profile.update(address)
    try:
        account = await accounts.register(
            request.email,
            request.password,
            account_type=request.account_type,
            **profile
        )
        return {"id": account["id"], "message": "Account created successfully"}
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest):
    """Verify credentials and issue a bearer token."""
    try:
        return await manager.login(request.email, request.password)
    except StorefrontError as e:
        raise http_error(e)
    except Exception as e:
        raise internal_error(e)

@router.get("/verify")
async def verify_token(claims: Claims = Security(get_current_user)):
    """Verify the current token."""
    return {
        "valid": True,
        "subject_id": claims.account_id,
        "email": claims.email,
        "role": claims.role
    }

# Export the router
__all__ = ['router']

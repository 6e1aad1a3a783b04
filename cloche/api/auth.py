"""
Authentication API endpoints for customer and boutique accounts
Handles signup, login, token verification and plan changes
"""

from fastapi import APIRouter, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, EmailStr
from typing import Optional
import logging

from cloche.utils.database import get_db
from cloche.services.account_store import account_store
from cloche.utils.errors import AuthenticationError, NotFound, ValidationError
from cloche.utils.security import create_access_token, verify_token
from cloche.config.plan_limits import resolve_plan_tier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])
security = HTTPBearer()

ROLE_USER = "user"
ROLE_PARTNER = "partner"

# Pydantic models
class SignupRequest(BaseModel):
    account_type: Optional[str] = None
    # Customer fields
    name: Optional[str] = None
    # Shared
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    # Partner fields
    boutique_name: Optional[str] = None
    owner_name: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None

class PartnerLoginRequest(BaseModel):
    email: Optional[str] = None  # email address or phone number
    phone: Optional[str] = None
    password: Optional[str] = None
    account_type: Optional[str] = None

class UserLoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class UpgradePlanRequest(BaseModel):
    boutiqueId: Optional[int] = None
    plan: Optional[str] = None
    billingCycle: Optional[str] = None
    paymentId: Optional[str] = None

class AuthAccount(BaseModel):
    id: int
    role: str
    email: str
    name: str
    plan: Optional[str] = None


@router.post("/signup", status_code=201)
async def signup(
    signup_data: SignupRequest,
    db: AsyncSession = Depends(get_db)
):
    """Create a customer (user) or boutique (partner) account"""
    account_type = str(signup_data.account_type or "").strip().lower()
    if not account_type:
        raise ValidationError("Account type required")

    if account_type == ROLE_USER:
        user = await account_store.create_user(
            signup_data.name,
            signup_data.email,
            signup_data.password,
            db
        )
        return {
            "success": True,
            "role": ROLE_USER,
            "userId": user.id,
            "message": "User account created successfully"
        }

    if account_type == ROLE_PARTNER:
        boutique = await account_store.create_boutique(
            signup_data.boutique_name,
            signup_data.owner_name,
            signup_data.email,
            signup_data.phone,
            signup_data.city,
            signup_data.password,
            db
        )
        return {
            "success": True,
            "role": ROLE_PARTNER,
            "boutiqueId": boutique.id,
            "message": "Boutique account created successfully"
        }

    raise ValidationError("Invalid account type")


@router.post("/login")
async def login(
    login_data: PartnerLoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Authenticate a boutique by email or phone"""
    if login_data.account_type and login_data.account_type.strip().lower() != ROLE_PARTNER:
        raise ValidationError("Invalid account type for this route")

    identifier = login_data.email or login_data.phone
    boutique = await account_store.authenticate_boutique(identifier, login_data.password, db)
    if not boutique:
        logger.info("Partner login rejected")
        raise AuthenticationError("Invalid credentials")

    token_data = {
        "sub": str(boutique.id),
        "role": ROLE_PARTNER,
        "type": "access"
    }

    return {
        "success": True,
        "access_token": create_access_token(token_data),
        "token_type": "bearer",
        "boutiqueId": boutique.id,
        "boutiqueName": boutique.boutique_name,
        "ownerName": boutique.owner_name,
        "plan": resolve_plan_tier(boutique.plan).value
    }


@router.post("/login-user")
async def login_user(
    login_data: UserLoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Authenticate a customer by email"""
    user = await account_store.authenticate_user(login_data.email, login_data.password, db)
    if not user:
        raise AuthenticationError("Invalid credentials")

    token_data = {
        "sub": str(user.id),
        "role": ROLE_USER,
        "type": "access"
    }

    return {
        "success": True,
        "access_token": create_access_token(token_data),
        "token_type": "bearer",
        "userId": user.id,
        "name": user.name,
        "email": user.email,
        "created_at": user.created_at
    }


@router.get("/verify", response_model=AuthAccount)
async def verify_current_account(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
):
    """Verify the bearer token and return the account it belongs to"""
    payload = verify_token(credentials.credentials)

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    try:
        account_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token")

    try:
        if payload.get("role") == ROLE_PARTNER:
            boutique = await account_store.get_boutique(account_id, db)
            return AuthAccount(
                id=boutique.id,
                role=ROLE_PARTNER,
                email=boutique.email,
                name=boutique.boutique_name,
                plan=resolve_plan_tier(boutique.plan).value
            )

        user = await account_store.get_user(account_id, db)
        return AuthAccount(id=user.id, role=ROLE_USER, email=user.email, name=user.name)
    except NotFound:
        raise AuthenticationError("Account not found")


@router.post("/upgrade-plan")
async def upgrade_plan(
    request: UpgradePlanRequest,
    db: AsyncSession = Depends(get_db)
):
    """Activate a plan after payment has been confirmed by the client"""
    plan_tier = await account_store.update_plan(request.boutiqueId, request.plan, db)

    return {
        "success": True,
        "message": "Subscription activated successfully",
        "plan": plan_tier.value,
        "billingCycle": request.billingCycle or "monthly",
        "paymentId": request.paymentId
    }


@router.post("/update-plan")
async def update_plan(
    request: UpgradePlanRequest,
    db: AsyncSession = Depends(get_db)
):
    plan_tier = await account_store.update_plan(request.boutiqueId, request.plan, db)
    return {"success": True, "plan": plan_tier.value}

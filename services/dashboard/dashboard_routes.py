"""
=====================================================
Voice Lead Agent - Dashboard API Routes
=====================================================
Owner login and the lead dashboard.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel
from loguru import logger

from services.context import AppContext, get_app_context
from services.database import DatabaseUnavailableError
from services.dashboard.lead_report import render_lead_dashboard, render_unavailable


# =====================================================
# ROUTER SETUP
# =====================================================

router = APIRouter(prefix="/api", tags=["dashboard"])


# =====================================================
# REQUEST MODELS
# =====================================================

class LoginRequest(BaseModel):
    email: str
    password: str


# =====================================================
# AUTH HELPERS
# =====================================================

def get_client_ip(request: Request) -> str:
    """Get client IP address from request"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_session_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, else the session cookie"""
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get("session_token")


async def get_current_user(request: Request) -> Optional[dict]:
    token = get_session_token(request)
    if not token:
        return None
    ctx: AppContext = get_app_context(request)
    try:
        return await ctx.auth.validate_session(token)
    except DatabaseUnavailableError as e:
        logger.error(f"Auth: Cannot validate session: {e}")
        raise HTTPException(status_code=503, detail="Authentication service unavailable")


async def require_auth(request: Request) -> dict:
    """Dependency that requires an owner session"""
    user = await get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def scoped_business_id(user: dict) -> Optional[str]:
    """Business the user may see; None means all (superuser)"""
    if user.get('is_superuser'):
        return None
    return user.get('business_id')


# =====================================================
# AUTH ENDPOINTS
# =====================================================

@router.post("/auth/login")
async def login(request: Request, login_data: LoginRequest, ctx: AppContext = Depends(get_app_context)):
    """Email/password login; returns a session token"""
    ip_address = get_client_ip(request)
    allowed, wait_seconds = ctx.auth.check_rate_limit(ip_address)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=f"Too many login attempts. Try again in {wait_seconds} seconds.",
        )

    try:
        success, user, error = await ctx.auth.authenticate_user(
            login_data.email,
            login_data.password,
            ip_address
        )
        if not success:
            logger.warning(f"Auth: Failed login for {login_data.email} from {ip_address}: {error}")
            raise HTTPException(status_code=401, detail=error)

        token, expires_at = await ctx.auth.create_session(
            user['id'],
            ip_address,
            request.headers.get("User-Agent", "")
        )
    except DatabaseUnavailableError as e:
        logger.error(f"Auth: Login unavailable: {e}")
        raise HTTPException(status_code=503, detail="Authentication service unavailable")

    response = JSONResponse({
        "success": True,
        "token": token,
        "expiresAt": expires_at.isoformat(),
        "businessId": user['business_id'],
    })
    response.set_cookie(
        key="session_token",
        value=token,
        httponly=True,
        secure=request.url.scheme == "https",
        samesite="lax",
        max_age=ctx.auth.session_expiry_hours * 3600,
    )
    return response


@router.post("/auth/logout")
async def logout(request: Request, ctx: AppContext = Depends(get_app_context)):
    token = get_session_token(request)
    if token:
        try:
            await ctx.auth.invalidate_session(token)
        except DatabaseUnavailableError as e:
            logger.warning(f"Auth: Logout could not reach the store: {e}")

    response = JSONResponse({"success": True})
    response.delete_cookie("session_token")
    return response


# =====================================================
# LEAD DASHBOARD
# =====================================================

@router.get("/lead-dashboard", response_class=HTMLResponse)
async def lead_dashboard(user: dict = Depends(require_auth), ctx: AppContext = Depends(get_app_context)):
    """Rendered summary of recent leads and conversations"""
    overview = await ctx.dashboard.get_lead_overview(scoped_business_id(user))
    title = f"{ctx.settings.app_name} - Lead Dashboard"
    if not overview['available']:
        return HTMLResponse(content=render_unavailable(title), status_code=503)
    return HTMLResponse(content=render_lead_dashboard(overview, title))


@router.get("/dashboard/leads")
async def lead_overview(user: dict = Depends(require_auth), ctx: AppContext = Depends(get_app_context)):
    """Same data as the dashboard page, as JSON"""
    overview = await ctx.dashboard.get_lead_overview(scoped_business_id(user))
    if not overview['available']:
        raise HTTPException(status_code=503, detail="Lead data unavailable")
    return overview

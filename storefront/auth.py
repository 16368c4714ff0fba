# storefront/auth.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings, get_settings
from .db import get_db
from .deps import CurrentUser, get_current_user, get_mailer, require_admin
from .mailer import Mailer
from .ratelimit import register_limiter, login_limiter, forgot_password_limiter
from .schemas import (
    RegisterIn, LoginIn, VerifyOtpIn, ResendOtpIn, ForgotPasswordIn, ResetPasswordIn,
    RefreshTokenIn, LogoutIn, UpdateProfileIn,
)
from .services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
) -> AuthService:
    return AuthService(db, settings, mailer)


@router.post("/register", dependencies=[Depends(register_limiter)])
async def register(payload: RegisterIn, svc: AuthService = Depends(get_auth_service)):
    return await svc.register(payload.name.strip(), payload.email, payload.password)

@router.post("/login", dependencies=[Depends(login_limiter)])
async def login(payload: LoginIn, svc: AuthService = Depends(get_auth_service)):
    return await svc.login(payload.email, payload.password)

@router.post("/verify-otp")
async def verify_otp(payload: VerifyOtpIn, svc: AuthService = Depends(get_auth_service)):
    return await svc.verify_otp(payload.email, payload.otp)

@router.post("/resend-otp")
async def resend_otp(payload: ResendOtpIn, svc: AuthService = Depends(get_auth_service)):
    return await svc.resend_otp(payload.email)

@router.put("/update")
async def update_profile(
    payload: UpdateProfileIn,
    user: CurrentUser = Depends(get_current_user),
    svc: AuthService = Depends(get_auth_service),
):
    return await svc.update_profile(user.user_id, payload.name, payload.email, payload.password)

@router.post("/forgot-password", dependencies=[Depends(forgot_password_limiter)])
async def forgot_password(payload: ForgotPasswordIn, svc: AuthService = Depends(get_auth_service)):
    return await svc.forgot_password(payload.email)

@router.post("/reset-password/{token}")
async def reset_password(token: str, payload: ResetPasswordIn, svc: AuthService = Depends(get_auth_service)):
    return await svc.reset_password(token, payload.password)

@router.post("/refresh-token")
async def refresh_token(payload: RefreshTokenIn, svc: AuthService = Depends(get_auth_service)):
    if not payload.token:
        raise HTTPException(status_code=401, detail="Refresh token required")
    return await svc.refresh(payload.token)

@router.post("/logout")
async def logout(payload: LogoutIn, svc: AuthService = Depends(get_auth_service)):
    if not payload.refresh_token:
        raise HTTPException(status_code=400, detail="Refresh token required")
    return await svc.logout(payload.refresh_token)

@router.get("/users")
async def all_users(_: CurrentUser = Depends(require_admin), svc: AuthService = Depends(get_auth_service)):
    return await svc.get_all_users()

@router.get("/user/{user_id}")
async def single_user(user_id: str, _: CurrentUser = Depends(require_admin), svc: AuthService = Depends(get_auth_service)):
    return await svc.get_single_user(user_id)

@router.get("/profile")
async def profile(user: CurrentUser = Depends(get_current_user), svc: AuthService = Depends(get_auth_service)):
    return await svc.get_profile(user.user_id)

# storefront/services/auth_service.py
import logging
from datetime import timedelta
from typing import Dict, Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from storefront import crud, tokens
from storefront.config import Settings
from storefront.errors import (
    ConflictError, Forbidden, InvalidCredentials, InvalidOtp, InvalidRefreshToken,
    InvalidToken, NotFound, ValidationError,
)
from storefront.mailer import Mailer
from storefront.models import Role, utcnow
from storefront.serializers import user_public, user_summary, order_out

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, OTP verification, sessions and password reset."""

    def __init__(self, db: AsyncSession, settings: Settings, mailer: Mailer):
        self.db = db
        self.settings = settings
        self.mailer = mailer

    def _otp_expiry(self):
        return utcnow() + timedelta(minutes=self.settings.otp_expire_minutes)

    # ---------- registration ----------
    async def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        if await crud.get_user_by_email(self.db, email):
            raise ConflictError("Email already exists")

        otp = tokens.generate_otp()
        await crud.create_user(
            self.db,
            name=name,
            email=email,
            password_hash=tokens.hash_password(password),
            otp=otp,
            otp_expires_at=self._otp_expiry(),
        )
        logger.info("[AUTH] registered %s, sending OTP", email)
        await self.mailer.send_otp_email(email, otp)
        return {"success": True, "message": "Registered. OTP sent."}

    async def verify_otp(self, email: str, otp: str) -> Dict[str, Any]:
        user = await crud.get_user_by_email(self.db, email)
        if (
            not user
            or not user.otp
            or user.otp != otp
            or user.otp_expires_at is None
            or utcnow() > user.otp_expires_at
        ):
            raise InvalidOtp()

        await crud.update_user(self.db, user.id, is_verified=True, otp=None, otp_expires_at=None)
        return {"success": True, "message": "Account verified"}

    async def resend_otp(self, email: str) -> Dict[str, Any]:
        user = await crud.get_user_by_email(self.db, email)
        if not user:
            raise NotFound("User not found")

        otp = tokens.generate_otp()
        await crud.update_user(self.db, user.id, otp=otp, otp_expires_at=self._otp_expiry())
        await self.mailer.send_otp_email(email, otp)
        return {"success": True, "message": "OTP resent"}

    # ---------- sessions ----------
    async def login(self, email: str, password: str) -> Dict[str, Any]:
        user = await crud.get_user_by_email(self.db, email)
        if not user or not user.is_verified:
            raise InvalidCredentials()
        if not tokens.verify_password(password, user.password_hash):
            raise InvalidCredentials()

        access = tokens.create_access_token(self.settings, user.id, user.role)
        refresh = tokens.create_refresh_token(self.settings, user.id, user.role)
        # one active refresh token per user
        await crud.update_user(self.db, user.id, refresh_token=refresh)
        logger.info("[AUTH] login user=%s", user.id)
        return {"success": True, "token": access, "refreshToken": refresh, "user": user_public(user)}

    async def refresh(self, token: Optional[str]) -> Dict[str, Any]:
        try:
            payload = tokens.decode_token(self.settings, token, tokens.REFRESH)
        except InvalidToken:
            raise InvalidRefreshToken("Invalid or expired refresh token")

        user = await crud.get_user_by_id(self.db, payload["sub"])
        if not user or user.refresh_token != token:
            raise InvalidRefreshToken()

        return {"success": True, "token": tokens.create_access_token(self.settings, user.id, user.role)}

    async def logout(self, refresh_token: str) -> Dict[str, Any]:
        user = await crud.get_user_by_refresh_token(self.db, refresh_token)
        if not user:
            # answered with 200, the client is logged out either way
            return {"error": "Invalid refresh token"}

        await crud.update_user(self.db, user.id, refresh_token=None)
        return {"success": True, "message": "Logout successful"}

    # ---------- password reset ----------
    async def forgot_password(self, email: Optional[str]) -> Dict[str, Any]:
        if not email:
            raise ValidationError("Email is required")

        user = await crud.get_user_by_email(self.db, email)
        if not user:
            raise ValidationError("Email not registered")
        if not user.is_verified:
            raise Forbidden("Account not verified")

        reset_token = tokens.create_reset_token(self.settings, user.id)
        await crud.update_user(self.db, user.id, reset_token=tokens.hash_reset_token(reset_token))

        link = f"{self.settings.frontend_url.rstrip('/')}/reset-password/{reset_token}"
        await self.mailer.send_reset_password_email(email, link)
        return {"success": True, "message": "Password reset link sent"}

    async def reset_password(self, token: str, password: Optional[str]) -> Dict[str, Any]:
        if not token:
            raise ValidationError("Token missing")
        if not password:
            raise ValidationError("Password is required")
        if len(password) < 6:
            raise ValidationError("Password must be at least 6 characters")

        payload = tokens.decode_token(self.settings, token, tokens.RESET)

        user = await crud.get_user_by_reset_token(
            self.db, payload["sub"], tokens.hash_reset_token(token)
        )
        if not user:
            raise InvalidToken("Invalid or expired token")

        await crud.update_user(
            self.db, user.id, password_hash=tokens.hash_password(password), reset_token=None
        )
        logger.info("[AUTH] password reset user=%s", user.id)
        return {"success": True, "message": "Password reset successful"}

    # ---------- profile ----------
    async def update_profile(self, user_id: str, name=None, email=None, password=None) -> Dict[str, Any]:
        data = {}
        if name:
            data["name"] = name
        if email:
            existing = await crud.get_user_by_email(self.db, email)
            if existing and existing.id != user_id:
                raise ConflictError("Email already exists")
            data["email"] = email
        if password:
            data["password_hash"] = tokens.hash_password(password)

        if not data:
            raise ValidationError("Nothing to update")

        user = await crud.get_user_by_id(self.db, user_id)
        if not user:
            raise NotFound("User not found")
        await crud.update_user(self.db, user_id, **data)
        user = await crud.get_user_by_id(self.db, user_id)

        out = user_public(user)
        out.pop("createdAt")
        return {"success": True, "message": "Profile updated successfully", "user": out}

    async def get_profile(self, user_id: str) -> Dict[str, Any]:
        user = await crud.get_user_by_id(self.db, user_id)
        if not user:
            raise NotFound("User not found")
        return {"success": True, "user": user_summary(user)}

    async def get_all_users(self) -> Dict[str, Any]:
        users = await crud.list_users_by_role(self.db, Role.USER)
        return {"success": True, "users": [user_summary(u) for u in users]}

    async def get_single_user(self, user_id: str) -> Dict[str, Any]:
        user = await crud.get_user_with_orders(self.db, user_id)
        if not user:
            raise NotFound("User not found")
        out = user_summary(user)
        out["orders"] = [order_out(o) for o in user.orders]
        return {"success": True, "user": out}

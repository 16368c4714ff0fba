# storefront/deps.py
from dataclasses import dataclass

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .config import Settings, get_settings
from .errors import InvalidToken, TokenExpired
from .mailer import Mailer
from .models import Role
from . import tokens

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def get_mailer(settings: Settings = Depends(get_settings)) -> Mailer:
    return Mailer(settings)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing auth token")
    try:
        payload = tokens.decode_token(settings, credentials.credentials, tokens.ACCESS)
    except TokenExpired:
        raise HTTPException(status_code=401, detail="Token expired")
    except InvalidToken:
        raise HTTPException(status_code=401, detail="Invalid token")
    return CurrentUser(user_id=payload["sub"], role=payload.get("role", Role.USER))


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Access Denied")
    return user

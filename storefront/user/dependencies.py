
from datetime import timedelta
from typing import Any, Dict, Optional
from fastapi import Depends, Request, HTTPException, status
from fastapi.security import HTTPBearer

from jose import jwt, JWTError
from storefront.config.admin_config import admin_config
from storefront.config.settings import config_settings
from storefront.common.utils import now


class Authentication(HTTPBearer):
    def __init__(self, auto_error=True):
        super().__init__(auto_error=auto_error)

    async def __call__(self, request: Request) -> Optional[Dict[str, Any]]:
        auth_creds = await super().__call__(request)
        if auth_creds is None:  # only reachable with auto_error=False
            return None
        token = auth_creds.credentials

        decoded_token = self.decode_token(token)

        if not decoded_token or not decoded_token.get("sub"):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token provided.")

        return decoded_token

    def decode_token(self, token: str):
        """To verify the signature , expiration and user claims of token"""
        try:
            token_data = jwt.decode(
                token,
                key=config_settings.JWT_SECRET,
                algorithms=[config_settings.JWT_ALGO]
            )
            return token_data
        except JWTError:
            return None


required_auth = Authentication()
optional_auth = Authentication(auto_error=False)


async def current_owner(claims: Optional[Dict[str, Any]] = Depends(optional_auth)) -> Optional[str]:
    # anonymous shoppers are allowed through as None
    if claims is None:
        return None
    return str(claims["sub"])


async def require_owner(claims: Dict[str, Any] = Depends(required_auth)) -> str:
    return str(claims["sub"])


async def require_admin(claims: Dict[str, Any] = Depends(required_auth)) -> str:
    roles = claims.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    if admin_config.ADMIN_ROLE not in roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required.")
    return str(claims["sub"])


def create_access_token(owner_id: str, roles=None, expires_in: int = 3600) -> str:
    """Token minting for local tooling and tests; production tokens come from the identity provider."""

    issued = now()
    payload = {"sub": owner_id, "roles": list(roles or []), "iat": issued, "exp": issued + timedelta(seconds=expires_in)}
    return jwt.encode(payload, config_settings.JWT_SECRET, algorithm=config_settings.JWT_ALGO)

"""
Identity resolution and authentication middleware.

Identity comes from the headers set by an authenticating reverse proxy
(oauth2-proxy style). The dependencies below are meant to be listed as
per-operation middlewares on a resource; they store the resolved identity on
``request.state.identity`` where the controller picks it up.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import Header, HTTPException, Request, status

logger = logging.getLogger("resourcekit.auth")


@dataclass(frozen=True)
class Identity:
    email: str
    name: Optional[str] = None

    @property
    def id(self) -> str:
        return self.email


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    email = email.strip().lower()
    return email or None


def resolve_identity_from_headers(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    user = x_auth_request_user or x_forwarded_user
    email = _normalize_email(x_auth_request_email or x_forwarded_email)
    return user, email


def optional_identity(
    request: Request,
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Optional[Identity]:
    name, email = resolve_identity_from_headers(
        x_auth_request_user=x_auth_request_user,
        x_auth_request_email=x_auth_request_email,
        x_forwarded_user=x_forwarded_user,
        x_forwarded_email=x_forwarded_email,
    )
    identity = Identity(email=email, name=name or email.split("@")[0]) if email else None
    request.state.identity = identity
    return identity


def require_identity(
    request: Request,
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Identity:
    identity = optional_identity(
        request,
        x_auth_request_user=x_auth_request_user,
        x_auth_request_email=x_auth_request_email,
        x_forwarded_user=x_forwarded_user,
        x_forwarded_email=x_forwarded_email,
    )
    if identity is None:
        logger.warning("auth_required: %s %s", request.method, request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return identity

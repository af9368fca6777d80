"""FastAPI dependency injection."""

import asyncio
from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException

from modcalc.core.logging import logger
from modcalc.services.ai_notes import AINotesService, get_ai_notes_service
from modcalc.services.catalog_cache import CatalogCache, get_catalog_cache
from modcalc.services.db import get_supabase_client


@dataclass
class CurrentUser:
    id: str
    email: Optional[str] = None


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _lookup_user(token: str) -> Optional[CurrentUser]:
    resp = get_supabase_client().auth.get_user(token)
    user = resp.user if resp else None
    if user is None:
        return None
    return CurrentUser(id=str(user.id), email=user.email)


async def get_current_user(
    authorization: Annotated[Optional[str], Header()] = None,
) -> Optional[CurrentUser]:
    """Resolve the Supabase user behind a bearer token, or None if anonymous.

    An invalid or expired token is treated as anonymous rather than rejected.
    """
    token = _bearer_token(authorization)
    if token is None:
        return None
    try:
        return await asyncio.to_thread(_lookup_user, token)
    except Exception as e:
        logger.warning(f"Auth lookup failed, treating caller as anonymous: {e}")
        return None


async def require_user(
    user: Annotated[Optional[CurrentUser], Depends(get_current_user)],
) -> CurrentUser:
    """Dependency for endpoints that only make sense when signed in."""
    if user is None:
        raise HTTPException(status_code=401, detail="Sign in required")
    return user


async def get_ai_notes() -> AINotesService:
    """Dependency for the AI notes service."""
    return get_ai_notes_service()


async def get_cache() -> CatalogCache:
    """Dependency for the picker cache."""
    return get_catalog_cache()

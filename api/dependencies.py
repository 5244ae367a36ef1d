import asyncio
import logging
import os
import time
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from api.permissions import permissions_for, scoped_permissions
from api.schemas.users import AuthContext
from api.utils import hash_user_id_for_logging
from services.auth_cache import AuthContextCache, get_auth_cache
from services.errors import NotFoundError
from services.mood_store import MoodStore
from services.report_store import WeeklyReportStore
from services.reports import ReportService
from services.timeline import TimelineBuilder
from services.user_directory import UserDirectory

logger = logging.getLogger("mood-api.dependencies")

__all__ = [
    "get_supabase_service_client",
    "build_report_service",
    "get_user_directory",
    "get_mood_store",
    "get_timeline_builder",
    "get_report_service",
    "get_auth_context",
    "require_permission",
    "require_scoped_permission",
    "reset_caches_for_testing",
]

_cached_service_client: Optional[AsyncClient] = None
_client_initialization_lock = asyncio.Lock()

# Sanity heuristic for truncated keys copied from the dashboard
MIN_SERVICE_KEY_LENGTH = 100


def reset_caches_for_testing():
    """
    Reset module-level caches between tests.
    Not for production code.
    """
    global _cached_service_client
    _cached_service_client = None


async def get_supabase_service_client() -> AsyncClient:
    """
    SERVICE ROLE client (bypasses RLS), created once per process.

    Every table access goes through the storage adapters, which scope
    queries by user id themselves.
    """
    global _cached_service_client
    if _cached_service_client is None:
        async with _client_initialization_lock:
            if _cached_service_client is None:  # Double-check
                url = os.getenv("SUPABASE_URL")
                service_key = os.getenv("SUPABASE_SERVICE_KEY", "").strip()

                if not url or not service_key:
                    logger.error("SUPABASE_URL or SUPABASE_SERVICE_KEY missing")
                    raise HTTPException(status_code=500, detail="Incomplete Supabase configuration")

                if len(service_key) < MIN_SERVICE_KEY_LENGTH:
                    logger.error("SERVICE KEY invalid/truncated (len=%d)", len(service_key))
                    raise HTTPException(status_code=500, detail="SUPABASE_SERVICE_KEY invalid or truncated")

                logger.info("Initializing SERVICE client key=%s...%s", service_key[:5], service_key[-5:])
                options = AsyncClientOptions(persist_session=False, auto_refresh_token=False)
                _cached_service_client = await acreate_client(url, service_key, options=options)
    return _cached_service_client


def build_report_service(client: AsyncClient) -> ReportService:
    """Wire the report service and its adapters around one client."""
    users = UserDirectory(client)
    timelines = TimelineBuilder(MoodStore(client, users))
    return ReportService(timelines, users, WeeklyReportStore(client))


def get_user_directory(
    supabase: AsyncClient = Depends(get_supabase_service_client),
) -> UserDirectory:
    return UserDirectory(supabase)


def get_mood_store(
    supabase: AsyncClient = Depends(get_supabase_service_client),
    users: UserDirectory = Depends(get_user_directory),
) -> MoodStore:
    return MoodStore(supabase, users)


def get_timeline_builder(store: MoodStore = Depends(get_mood_store)) -> TimelineBuilder:
    return TimelineBuilder(store)


def get_report_service(
    supabase: AsyncClient = Depends(get_supabase_service_client),
) -> ReportService:
    return build_report_service(supabase)


async def get_auth_context(
    authorization: str = Header(None),
    supabase: AsyncClient = Depends(get_supabase_service_client),
    cache: AuthContextCache = Depends(get_auth_cache),
) -> AuthContext:
    """
    Verify the Bearer token and resolve the caller's role and permissions.

    Steps:
      1. Check the Authorization header format.
      2. Return the cached context when present.
      3. Verify the token with Supabase ``auth.get_user``.
      4. Load the role from ``profiles`` and expand it into permissions.
    """
    start_time = time.monotonic()

    if not authorization or not authorization.lower().startswith("bearer "):
        logger.warning("Authorization missing or malformed")
        raise HTTPException(status_code=401, detail="Missing or invalid authorization token")

    token = authorization.split(" ", 1)[1].strip()
    if not token:
        logger.warning("Empty token")
        raise HTTPException(status_code=401, detail="Empty token")

    cached = await cache.get(token)
    if cached is not None:
        return cached

    try:
        user_resp = await supabase.auth.get_user(token)
        user = getattr(user_resp, "user", None)
    except Exception as e:
        logger.error("Supabase auth failure: %s", str(e)[:200])
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    if not user:
        logger.warning("No user in auth response")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    try:
        profile = await UserDirectory(supabase).get_by_id(user.id)
    except NotFoundError:
        logger.warning("Authenticated user %s has no profile", hash_user_id_for_logging(user.id))
        raise HTTPException(status_code=403, detail="Access denied")

    context = AuthContext(uid=user.id, role=profile.role, permissions=permissions_for(profile.role))
    await cache.set(token, context)

    duration_ms = (time.monotonic() - start_time) * 1000
    logger.info(
        "Auth OK: user=%s role=%s duration=%.2fms",
        hash_user_id_for_logging(user.id), profile.role.value, duration_ms
    )
    return context


def require_permission(permission: str) -> Callable:
    """Dependency factory: the caller must hold ``permission``."""

    async def dependency(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if not context.can(permission):
            logger.info(
                "Permission %s denied for user=%s role=%s",
                permission, hash_user_id_for_logging(context.uid), context.role.value
            )
            raise HTTPException(status_code=403, detail="Access denied")
        return context

    return dependency


def require_scoped_permission(base: str) -> Callable:
    """
    Dependency factory for routes with a ``user_id`` path parameter.

    ``<base>:self`` suffices when the caller is that user; otherwise
    ``<base>:any`` is required.
    """
    self_permission, any_permission = scoped_permissions(base)

    async def dependency(
        user_id: str,
        context: AuthContext = Depends(get_auth_context),
    ) -> AuthContext:
        if context.can(any_permission):
            return context
        if context.uid == user_id and context.can(self_permission):
            return context
        logger.info(
            "Permission %s denied for user=%s on target=%s",
            base, hash_user_id_for_logging(context.uid), hash_user_id_for_logging(user_id)
        )
        raise HTTPException(status_code=403, detail="Access denied")

    return dependency

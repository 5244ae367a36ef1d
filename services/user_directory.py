# services/user_directory.py
"""
Read-only access to patient profiles stored in the ``profiles`` table.
"""
import logging
from typing import List, Optional

from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import AsyncClient

from api.schemas.users import UserProfile, UserStatus
from api.utils import hash_user_id_for_logging
from services.errors import NotFoundError, UpstreamFailureError

logger = logging.getLogger("mood-api.users")

PROFILES_TABLE = "profiles"
PROFILE_COLUMNS = "id, name, email, role, status, photo_url"
DEFAULT_LIST_LIMIT = 1000


class UserDirectory:
    """Lookup of patient profiles by id or status."""

    def __init__(self, client: AsyncClient):
        self._client = client

    async def list(
        self,
        status: Optional[UserStatus] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> List[UserProfile]:
        query = self._client.table(PROFILES_TABLE).select(PROFILE_COLUMNS)
        if status is not None:
            query = query.eq("status", UserStatus(status).value)

        try:
            response = await query.limit(limit).execute()
        except APIError as e:
            logger.error(f"Failed to list profiles (status={status}): {e}")
            raise UpstreamFailureError("Failed to list users") from e

        profiles = []
        for row in response.data or []:
            try:
                profiles.append(UserProfile.model_validate(row))
            except ValidationError as e:
                # one bad row must not take down population-wide reports
                logger.warning(f"Skipping malformed profile row: {e.error_count()} error(s)")
        logger.debug(f"Listed {len(profiles)} profile(s) (status={status}, limit={limit})")
        return profiles

    async def get_by_id(self, user_id: str) -> UserProfile:
        """
        Fetch one profile.

        Raises:
            NotFoundError: no profile with this id
            UpstreamFailureError: the query failed
        """
        try:
            response = await (
                self._client.table(PROFILES_TABLE)
                .select(PROFILE_COLUMNS)
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except APIError as e:
            logger.error(f"Failed to load profile {hash_user_id_for_logging(user_id)}: {e}")
            raise UpstreamFailureError("Failed to load user") from e

        if not response.data:
            raise NotFoundError("User not found")
        try:
            return UserProfile.model_validate(response.data[0])
        except ValidationError as e:
            logger.error(f"Malformed profile {hash_user_id_for_logging(user_id)}: {e}")
            raise UpstreamFailureError("Stored profile is malformed") from e

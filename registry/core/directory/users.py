"""SCIM directory member profile lookups."""
from __future__ import annotations
import logging
from typing import Optional

from registry.core.identity import MemberProfile
from .client import ScimClient
from .exceptions import DirectoryAPIError
from .transformer import ScimTransformer

logger = logging.getLogger(__name__)


class UserService:
    """Service for reading directory user profiles."""

    def __init__(self, client: ScimClient):
        self.client = client

    def get_member_profile(self, member_id: str) -> Optional[MemberProfile]:
        """Return the profile for a group member, or None when the directory has none.

        Raises:
            DirectoryAPIError: On HTTP errors other than 404
            DirectoryUnavailableError: On connection failure or timeout
            MalformedResourceError: Response body is not a SCIM User
        """
        try:
            payload = self.client.get_json(f"/Users/{member_id}")
        except DirectoryAPIError as exc:
            if exc.status_code == 404:
                logger.info("Directory profile %s not found", member_id)
                return None
            raise
        return ScimTransformer.scim_to_profile(payload)

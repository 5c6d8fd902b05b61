"""SCIM directory group lookups."""
from __future__ import annotations
import logging
from typing import Optional

from registry.core.identity import Group
from .client import ScimClient
from .exceptions import DirectoryAPIError
from .transformer import ScimTransformer

logger = logging.getLogger(__name__)


class GroupService:
    """Service for reading directory groups."""

    def __init__(self, client: ScimClient):
        """Initialize group service.

        Args:
            client: SCIM client
        """
        self.client = client

    def get_group(self, scim_id: str, urn: Optional[str] = None) -> Optional[Group]:
        """Retrieve a group by its SCIM id.

        Args:
            scim_id: Directory group id
            urn: Full URN to attach to the result (derived from the resource otherwise)

        Returns:
            Group snapshot or None if the directory has no such group

        Raises:
            DirectoryAPIError: On HTTP errors other than 404
            DirectoryUnavailableError: On connection failure or timeout
            MalformedResourceError: Response body is not a SCIM Group
        """
        try:
            payload = self.client.get_json(f"/Groups/{scim_id}")
        except DirectoryAPIError as exc:
            if exc.status_code == 404:
                logger.info("Directory group %s not found", scim_id)
                return None
            raise
        return ScimTransformer.scim_to_group(payload, urn=urn)

    def get_all_groups(self) -> list[Group]:
        """Retrieve every group visible to the directory token."""
        payload = self.client.get_json("/Groups")
        return [ScimTransformer.scim_to_group(resource) for resource in payload.get("Resources") or []]

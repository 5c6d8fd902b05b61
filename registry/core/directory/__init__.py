"""SCIM 2.0 directory client library.

Architecture:
- client.py: HTTP client with bearer auth and timeouts
- groups.py: Group lookups
- users.py: Member profile lookups
- transformer.py: SCIM resource → registry value mapping
- exceptions.py: Typed exceptions for error handling

Usage:
    from registry.core.directory import DirectoryClient, ScimClient

    directory = DirectoryClient(ScimClient(base_url, token="..."))
    group = directory.get_group("abc")
"""
from __future__ import annotations
from typing import Optional

from registry.core.identity import Group, MemberProfile
from .client import ScimClient, REQUEST_TIMEOUT
from .exceptions import (
    DirectoryError,
    DirectoryAPIError,
    DirectoryUnavailableError,
    MalformedResourceError,
)
from .groups import GroupService
from .users import UserService
from .transformer import ScimTransformer


class DirectoryClient:
    """Facade combining group and user lookups behind one object."""

    def __init__(self, client: ScimClient):
        self.client = client
        self.groups = GroupService(client)
        self.users = UserService(client)

    @classmethod
    def from_config(cls, cfg) -> "DirectoryClient":
        return cls(ScimClient.from_config(cfg))

    def get_group(self, scim_id: str, urn: Optional[str] = None) -> Optional[Group]:
        return self.groups.get_group(scim_id, urn=urn)

    def get_all_groups(self) -> list[Group]:
        return self.groups.get_all_groups()

    def get_member_profile(self, member_id: str) -> Optional[MemberProfile]:
        return self.users.get_member_profile(member_id)


__all__ = [
    "DirectoryClient",
    "ScimClient",
    "REQUEST_TIMEOUT",
    "DirectoryError",
    "DirectoryAPIError",
    "DirectoryUnavailableError",
    "MalformedResourceError",
    "GroupService",
    "UserService",
    "ScimTransformer",
]

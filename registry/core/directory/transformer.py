"""SCIM 2.0 resource → registry value transformations.

Usage:
    group = ScimTransformer.scim_to_group(scim_group)
    profile = ScimTransformer.scim_to_profile(scim_user)
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Optional

from registry.core.identity import Group, GroupMember, MemberProfile, URN_PREFIX
from .exceptions import MalformedResourceError

SRAM_GROUP_EXTENSION = "urn:mace:surf.nl:sram:scim:extension:Group"


class ScimTransformer:
    """One-way transformer from SCIM directory resources to registry values."""

    @staticmethod
    def scim_to_group(scim_group: Dict[str, Any], urn: Optional[str] = None) -> Group:
        """Convert a SCIM Group resource (with the SRAM extension) to a Group.

        Args:
            scim_group: SCIM 2.0 Group resource
            urn: Full group URN; derived from the SRAM extension when omitted

        Returns:
            Group snapshot including its members

        Example:
            >>> group = ScimTransformer.scim_to_group({
            ...     "id": "g1",
            ...     "displayName": "Test Group",
            ...     "urn:mace:surf.nl:sram:scim:extension:Group": {
            ...         "urn": "uu:research",
            ...         "description": "Test Description",
            ...     },
            ...     "members": [{"value": "u1", "display": "Alice"}],
            ... })
            >>> group.urn
            'urn:mace:surf.nl:sram:group:uu:research'
        """
        scim_id = scim_group.get("id")
        if not scim_id:
            raise MalformedResourceError("SCIM group without id")

        info = scim_group.get(SRAM_GROUP_EXTENSION) or {}
        short_urn = info.get("urn") or ""
        links = {link.get("name"): link.get("value") for link in info.get("links") or [] if isinstance(link, dict)}

        members = [
            GroupMember(scim_id=member["value"], display_name=member.get("display") or "")
            for member in scim_group.get("members") or []
            if member.get("value")
        ]

        return Group(
            id=short_urn,
            urn=urn or (f"{URN_PREFIX}{short_urn}" if short_urn else ""),
            scim_id=scim_id,
            display_name=scim_group.get("displayName") or "",
            description=info.get("description") or "",
            external_id=scim_group.get("externalId"),
            url=links.get("sbs_url"),
            logo_url=links.get("logo"),
            created=_parse_created(scim_group.get("meta")),
            members=members,
        )

    @staticmethod
    def scim_to_profile(scim_user: Dict[str, Any]) -> MemberProfile:
        """Convert a SCIM User resource to a MemberProfile."""
        user_id = scim_user.get("id")
        if not user_id:
            raise MalformedResourceError("SCIM user without id")

        name = scim_user.get("name") or {}
        emails = scim_user.get("emails") or []
        email = None
        # Primary email first, otherwise the first listed
        for candidate in sorted(emails, key=lambda e: not e.get("primary", False)):
            if candidate.get("value"):
                email = candidate["value"]
                break

        return MemberProfile(
            id=user_id,
            external_id=scim_user.get("externalId"),
            user_name=scim_user.get("userName"),
            display_name=scim_user.get("displayName"),
            given_name=name.get("givenName"),
            family_name=name.get("familyName"),
            email=email,
        )


def _parse_created(meta: Optional[Dict[str, Any]]) -> Optional[datetime]:
    if not meta or not meta.get("created"):
        return None
    try:
        return datetime.fromisoformat(str(meta["created"]).replace("Z", "+00:00"))
    except ValueError:
        return None

"""Session identity and directory group value types.

A SessionIdentity is ephemeral: it is built from login claims, stored in the
Flask session as a plain dict and rebuilt on every request via from_dict().
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

SESSION_KEY = "UserProfile"

URN_PREFIX = "urn:mace:surf.nl:sram:group:"

DEVELOPMENT_USER_ID = "b0ee16ff-6e23-4266-b503-b93a003c1c05"
DEVELOPMENT_EMAIL = "development@sram.surf.nl"
DEVELOPMENT_ORGANISATION = "surf"
DEVELOPMENT_COLLABORATION = "development"
DEVELOPMENT_ROLE_GROUP = "conflux-cx_project_admin"


def format_group_urn(organisation: str, collaboration: str, group: Optional[str] = None) -> str:
    """Build a directory group URN from its organisation, CO and optional sub-group."""
    urn = f"{URN_PREFIX}{organisation}:{collaboration}"
    if group:
        urn = f"{urn}:{group}"
    return urn


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass
class GroupMember:
    """Member reference inside a directory group."""
    scim_id: str
    display_name: str = ""

    def to_dict(self) -> dict:
        return {"scim_id": self.scim_id, "display_name": self.display_name}

    @classmethod
    def from_dict(cls, data: dict) -> "GroupMember":
        return cls(scim_id=data["scim_id"], display_name=data.get("display_name") or "")


@dataclass
class Group:
    """Directory group snapshot (a project group or one of its role groups)."""
    scim_id: str
    display_name: str = ""
    description: str = ""
    urn: str = ""
    id: str = ""
    external_id: Optional[str] = None
    url: Optional[str] = None
    logo_url: Optional[str] = None
    created: Optional[datetime] = None
    members: list[GroupMember] = field(default_factory=list)

    @property
    def member_ids(self) -> list[str]:
        return [member.scim_id for member in self.members]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "urn": self.urn,
            "scim_id": self.scim_id,
            "display_name": self.display_name,
            "description": self.description,
            "external_id": self.external_id,
            "url": self.url,
            "logo_url": self.logo_url,
            "created": self.created.isoformat() if self.created else None,
            "members": [member.to_dict() for member in self.members],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Group":
        return cls(
            id=data.get("id") or "",
            urn=data.get("urn") or "",
            scim_id=data["scim_id"],
            display_name=data.get("display_name") or "",
            description=data.get("description") or "",
            external_id=data.get("external_id"),
            url=data.get("url"),
            logo_url=data.get("logo_url"),
            created=_parse_datetime(data.get("created")),
            members=[GroupMember.from_dict(m) for m in data.get("members") or []],
        )


@dataclass
class Collaboration:
    """One project group plus the role groups beneath it."""
    organisation: str
    group: Group
    groups: list[Group] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "organisation": self.organisation,
            "group": self.group.to_dict(),
            "groups": [group.to_dict() for group in self.groups],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Collaboration":
        return cls(
            organisation=data.get("organisation") or "",
            group=Group.from_dict(data["group"]),
            groups=[Group.from_dict(g) for g in data.get("groups") or []],
        )


@dataclass
class MemberProfile:
    """Directory user profile returned by GET /Users/{id}."""
    id: str
    external_id: Optional[str] = None
    user_name: Optional[str] = None
    display_name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    email: Optional[str] = None

    @property
    def name(self) -> str:
        return self.display_name or self.user_name or ""


@dataclass
class SessionIdentity:
    """Authenticated user as seen by the current session."""
    sram_id: str
    name: str = ""
    given_name: str = ""
    family_name: str = ""
    email: str = ""
    user_id: Optional[int] = None
    collaborations: list[Collaboration] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sram_id": self.sram_id,
            "name": self.name,
            "given_name": self.given_name,
            "family_name": self.family_name,
            "email": self.email,
            "user_id": self.user_id,
            "collaborations": [c.to_dict() for c in self.collaborations],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionIdentity":
        return cls(
            sram_id=data["sram_id"],
            name=data.get("name") or "",
            given_name=data.get("given_name") or "",
            family_name=data.get("family_name") or "",
            email=data.get("email") or "",
            user_id=data.get("user_id"),
            collaborations=[Collaboration.from_dict(c) for c in data.get("collaborations") or []],
        )


def development_identity() -> SessionIdentity:
    """Fixed identity returned while federated authentication is disabled."""
    collaboration_urn = format_group_urn(DEVELOPMENT_ORGANISATION, DEVELOPMENT_COLLABORATION)
    role_urn = format_group_urn(DEVELOPMENT_ORGANISATION, DEVELOPMENT_COLLABORATION, DEVELOPMENT_ROLE_GROUP)
    member = GroupMember(scim_id=f"{DEVELOPMENT_USER_ID}@scim.sram.surf.nl", display_name="Development User")
    return SessionIdentity(
        sram_id=f"{DEVELOPMENT_USER_ID}@sram.surf.nl",
        name="Development User",
        given_name="Development",
        family_name="User",
        email=DEVELOPMENT_EMAIL,
        collaborations=[
            Collaboration(
                organisation=DEVELOPMENT_ORGANISATION,
                group=Group(
                    id=f"{DEVELOPMENT_ORGANISATION}:{DEVELOPMENT_COLLABORATION}",
                    urn=collaboration_urn,
                    scim_id="development",
                    display_name="Development Project",
                    description="Local development collaboration",
                    members=[member],
                ),
                groups=[
                    Group(
                        id=f"{DEVELOPMENT_ORGANISATION}:{DEVELOPMENT_COLLABORATION}:{DEVELOPMENT_ROLE_GROUP}",
                        urn=role_urn,
                        scim_id="development-admin",
                        display_name="Project admin",
                        description="Development project administrators",
                        members=[member],
                    ),
                ],
            ),
        ],
    )

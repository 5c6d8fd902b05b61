"""SQLAlchemy models for projects, accounts and project roles."""
from __future__ import annotations

import enum
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import UniqueConstraint

db = SQLAlchemy()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PermissionLevel(str, enum.Enum):
    """Account-wide permission tier."""

    USER = "user"
    SYSTEM_ADMIN = "system_admin"
    SUPER_ADMIN = "super_admin"


class RoleType(str, enum.Enum):
    """Project-scoped role kinds."""

    ADMIN = "admin"
    CONTRIBUTOR = "contributor"
    USER = "user"


def role_type_from_urn(urn: str) -> RoleType:
    """Derive the role kind from the last segment of a role group URN.

    >>> role_type_from_urn("urn:mace:surf.nl:sram:group:uu:proj:conflux-admin")
    <RoleType.ADMIN: 'admin'>
    """
    suffix = (urn or "").rsplit(":", 1)[-1].lower()
    if "admin" in suffix:
        return RoleType.ADMIN
    if "contributor" in suffix:
        return RoleType.CONTRIBUTOR
    return RoleType.USER


project_users = db.Table(
    "project_users",
    db.Column("project_id", db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

user_roles = db.Table(
    "user_roles",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("project_roles.id", ondelete="CASCADE"), primary_key=True),
)


class Person(db.Model):
    """Researcher profile; may exist without an account."""

    __tablename__ = "persons"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, default="")
    given_name = db.Column(db.String(255), nullable=True)
    family_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(320), nullable=True, index=True)
    orcid = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", back_populates="person", uselist=False)

    def __repr__(self) -> str:
        return f"<Person {self.id} {self.email}>"


class User(db.Model):
    """Local account correlated with a directory user."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    scim_id = db.Column(db.String(255), nullable=False, unique=True, comment="Directory user id (permanent)")
    sram_id = db.Column(db.String(255), nullable=True, index=True, comment="Login session subject, attached on first login")
    permission_level = db.Column(
        db.Enum(PermissionLevel, name="permission_level_enum"),
        nullable=False,
        default=PermissionLevel.USER,
    )
    assigned_lectorates = db.Column(db.JSON, nullable=False, default=list)
    assigned_organisations = db.Column(db.JSON, nullable=False, default=list)
    favorite_projects = db.Column(db.JSON, nullable=False, default=list)
    recent_projects = db.Column(db.JSON, nullable=False, default=list)
    person_id = db.Column(db.Integer, db.ForeignKey("persons.id"), nullable=True, unique=True)

    person = db.relationship("Person", back_populates="user")
    roles = db.relationship("ProjectRole", secondary=user_roles, back_populates="users")
    projects = db.relationship("Project", secondary=project_users, back_populates="users")

    @property
    def email(self):
        return self.person.email if self.person else None

    def __repr__(self) -> str:
        return f"<User {self.id} scim_id={self.scim_id}>"


class Project(db.Model):
    """Research project, correlated with a directory collaboration group."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    scim_id = db.Column(db.String(255), nullable=True, unique=True, comment="Directory group id")
    title = db.Column(db.String(500), nullable=False, default="")
    description = db.Column(db.Text, nullable=True)
    start_date = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    lectorate = db.Column(db.String(255), nullable=True)
    owner_organisation = db.Column(db.String(255), nullable=True)

    users = db.relationship("User", secondary=project_users, back_populates="projects")
    roles = db.relationship("ProjectRole", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Project {self.id} scim_id={self.scim_id}>"


class ProjectRole(db.Model):
    """Role group of a project; membership grants the role type on that project."""

    __tablename__ = "project_roles"
    __table_args__ = (UniqueConstraint("project_id", "urn", name="uq_project_roles_project_urn"),)

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.Enum(RoleType, name="role_type_enum"), nullable=False, default=RoleType.USER)
    urn = db.Column(db.String(500), nullable=False)
    scim_id = db.Column(db.String(255), nullable=True)
    name = db.Column(db.String(255), nullable=False, default="")
    description = db.Column(db.Text, nullable=True)

    project = db.relationship("Project", back_populates="roles")
    users = db.relationship("User", secondary=user_roles, back_populates="roles")

    def __repr__(self) -> str:
        return f"<ProjectRole {self.id} {self.type.value} {self.urn}>"


class GroupIdConnection(db.Model):
    """Cache of directory group URN → SCIM id."""

    __tablename__ = "group_id_connections"

    urn = db.Column(db.String(500), primary_key=True)
    scim_id = db.Column(db.String(255), nullable=False)

"""Claim extraction from an authenticated OIDC principal.

Extraction never raises: extract_claims() returns a ClaimsResult whose
``missing`` list names every required claim that was absent. The caller
decides how to fail.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

ENTITLEMENT_PATTERN = re.compile(
    r"^urn:mace:surf\.nl:sram:group:([a-z1-9_]+):([a-z1-9_]+)(?::(conflux-[a-z1-9_]+))?$"
)


@dataclass(frozen=True)
class ClaimSpec:
    """Maps one identity field to the claim names that may carry it."""
    field: str
    names: tuple[str, ...]
    required: bool = False
    multi: bool = False


CLAIM_MAP: tuple[ClaimSpec, ...] = (
    ClaimSpec("sram_id", ("personIdentifier", "sub"), required=True),
    ClaimSpec("name", ("Name", "name")),
    ClaimSpec("given_name", ("given_name",)),
    ClaimSpec("family_name", ("family_name",)),
    ClaimSpec("email", ("Email", "email")),
    ClaimSpec("roles", ("Role", "eduperson_entitlement", "entitlements"), multi=True),
)


@dataclass
class ClaimsResult:
    """Outcome of claim extraction."""
    values: dict[str, Any] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing

    @property
    def error(self) -> Optional[str]:
        if self.ok:
            return None
        return f"Missing required claim(s): {', '.join(self.missing)}"


@dataclass
class CollaborationRef:
    """Collaboration named by entitlement claims, before directory lookup."""
    organisation: str
    name: str
    groups: list[str] = field(default_factory=list)


def _first_value(claims: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = claims.get(name)
        if value not in (None, "", []):
            return value
    return None


def extract_claims(claims: Mapping[str, Any], claim_map: tuple[ClaimSpec, ...] = CLAIM_MAP) -> ClaimsResult:
    """Read the fields of claim_map from a claims mapping."""
    result = ClaimsResult()
    for spec in claim_map:
        value = _first_value(claims or {}, spec.names)
        if spec.multi:
            if value is None:
                value = []
            elif isinstance(value, str):
                value = [value]
            else:
                value = [str(v) for v in value]
        elif value is not None:
            value = str(value)

        if spec.required and not value:
            result.missing.append(spec.names[0])
            continue
        result.values[spec.field] = value if value is not None else ""
    return result


def parse_collaboration_refs(entitlements: list[str]) -> list[CollaborationRef]:
    """Group entitlement URNs into collaborations with their role group names.

    Entitlements that do not match the SRAM group URN pattern are ignored.
    Order follows first appearance of each collaboration.
    """
    refs: dict[tuple[str, str], CollaborationRef] = {}
    for entitlement in entitlements or []:
        match = ENTITLEMENT_PATTERN.match(entitlement)
        if not match:
            continue
        organisation, name, group = match.group(1), match.group(2), match.group(3)
        ref = refs.setdefault((organisation, name), CollaborationRef(organisation, name))
        if group and group not in ref.groups:
            ref.groups.append(group)
    return list(refs.values())

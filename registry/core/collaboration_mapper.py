"""Turns entitlement-derived collaboration references into directory snapshots."""
from __future__ import annotations
import logging

from registry.core.claims import CollaborationRef
from registry.core.exceptions import GroupNotFound
from registry.core.identity import Collaboration, Group, format_group_urn
from registry.core.models import GroupIdConnection, db

logger = logging.getLogger(__name__)


class CollaborationMapper:
    """Resolve collaboration URNs to directory groups.

    URN → SCIM id pairs are cached in the group_id_connections table. When any
    requested URN is missing from the cache, every directory group is fetched
    once, the cache is rebuilt and the collaborations are mapped from that
    listing. Otherwise each group is fetched individually by its cached id.
    """

    def __init__(self, directory):
        self.directory = directory

    def map(self, refs: list[CollaborationRef]) -> list[Collaboration]:
        urns = []
        for ref in refs:
            urns.append(format_group_urn(ref.organisation, ref.name))
            urns.extend(format_group_urn(ref.organisation, ref.name, g) for g in ref.groups)

        if not urns:
            return []

        cached = {c.urn: c.scim_id for c in GroupIdConnection.query.filter(GroupIdConnection.urn.in_(urns))}
        if any(urn not in cached for urn in urns):
            logger.info("Group id cache miss for %d URN(s); fetching all directory groups", len(set(urns) - set(cached)))
            return self._map_from_listing(refs)

        collaborations = []
        for ref in refs:
            group = self._fetch(format_group_urn(ref.organisation, ref.name), cached)
            groups = [self._fetch(format_group_urn(ref.organisation, ref.name, g), cached) for g in ref.groups]
            collaborations.append(Collaboration(organisation=ref.organisation, group=group, groups=groups))
        return collaborations

    def _fetch(self, urn: str, cached: dict[str, str]) -> Group:
        group = self.directory.get_group(cached[urn], urn=urn)
        if group is None:
            raise GroupNotFound(urn)
        return group

    def _map_from_listing(self, refs: list[CollaborationRef]) -> list[Collaboration]:
        by_urn: dict[str, Group] = {}
        for group in self.directory.get_all_groups():
            if group.urn:
                by_urn[group.urn] = group
        self._rebuild_cache(by_urn)

        def lookup(urn: str) -> Group:
            try:
                return by_urn[urn]
            except KeyError:
                raise GroupNotFound(urn)

        collaborations = []
        for ref in refs:
            group = lookup(format_group_urn(ref.organisation, ref.name))
            groups = [lookup(format_group_urn(ref.organisation, ref.name, g)) for g in ref.groups]
            collaborations.append(Collaboration(organisation=ref.organisation, group=group, groups=groups))
        return collaborations

    def _rebuild_cache(self, by_urn: dict[str, Group]) -> None:
        GroupIdConnection.query.delete()
        for urn, group in by_urn.items():
            db.session.add(GroupIdConnection(urn=urn, scim_id=group.scim_id))
        db.session.commit()
        logger.info("Group id cache rebuilt with %d entries", len(by_urn))

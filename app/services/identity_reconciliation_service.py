"""
Identity reconciliation engine.

Given an email and/or phone number, find every contact connected to them,
collapse competing primaries into the oldest one, record the request as a new
secondary if it carries an identifier the cluster has not seen, and return
the consolidated view of the cluster.

Linkage is depth-1: secondaries always point straight at their primary, so a
cluster is "primary row + rows whose linked_id is the primary". Merges re-point
rows instead of chaining them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from fastapi import status

from app.errors import MISSING_IDENTIFIER_MSG, ContactIntegrityError, raise_app_error
from app.models.contact import LinkPrecedence
from app.services.contact_store import ContactSnapshot, ContactStore
from app.utils.time import ensure_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityResult:
    primary_contact_id: int
    emails: List[str]
    phone_numbers: List[str]
    secondary_contact_ids: List[int]


def identity_lock_keys(email: Optional[str], phone_number: Optional[str]) -> List[str]:
    """Lock keys for the identifiers submitted with a request."""
    keys = []
    if email:
        keys.append(f"email:{email}")
    if phone_number:
        keys.append(f"phone:{phone_number}")
    return keys


def cluster_lock_keys(primary_ids: Iterable[int]) -> List[str]:
    return [f"contact:{pid}" for pid in sorted(set(primary_ids))]


def survivor_sort_key(contact: ContactSnapshot) -> Tuple[datetime, int]:
    """Oldest first; equal timestamps fall back to the lower id."""
    return ensure_utc(contact.created_at), contact.id


class IdentityReconciliationService:
    """Resolve, merge and extend contact clusters for one identify request."""

    def __init__(self, store: ContactStore, use_locks: bool = True):
        self.store = store
        self.use_locks = use_locks

    async def identify(self, email: Optional[str], phone_number: Optional[str]) -> IdentityResult:
        if not email and not phone_number:
            raise_app_error(status.HTTP_400_BAD_REQUEST, MISSING_IDENTIFIER_MSG)

        if self.use_locks:
            await self.store.lock_identities(identity_lock_keys(email, phone_number))

        matched = await self.store.find_by_identifier(email, phone_number)
        if not matched:
            return await self._create_primary(email, phone_number)

        primary_ids = await self._resolve_primary_ids(email, phone_number, matched)
        working = await self._fetch_clusters(primary_ids)

        primaries = [c for c in working if c.is_primary]
        if len(primaries) > 1:
            main_primary = await self._merge(primaries, working)
            working = await self._fetch_clusters({main_primary.id})
        else:
            main_primary = primaries[0]

        created = await self._insert_if_novel(main_primary.id, email, phone_number, working)
        if created is not None:
            working.append(created)
        else:
            logger.debug("Identify matched primary %s with no new information", main_primary.id)

        return self._assemble(main_primary.id, working)

    async def _create_primary(self, email: Optional[str], phone_number: Optional[str]) -> IdentityResult:
        now = utc_now()
        new_id = await self.store.insert(
            {
                "email": email,
                "phone_number": phone_number,
                "link_precedence": LinkPrecedence.PRIMARY.value,
                "linked_id": None,
                "created_at": now,
                "updated_at": now,
            }
        )
        logger.info("Created primary contact %s", new_id)
        return IdentityResult(
            primary_contact_id=new_id,
            emails=[email] if email else [],
            phone_numbers=[phone_number] if phone_number else [],
            secondary_contact_ids=[],
        )

    async def _resolve_primary_ids(
        self,
        email: Optional[str],
        phone_number: Optional[str],
        matched: List[ContactSnapshot],
    ) -> Set[int]:
        """Collect the distinct primaries behind the matched rows.

        With locking on, every involved primary is locked and the match is
        re-read until the set is stable, so a merge committed by another
        request while we waited is observed.

        Transaction-scoped advisory locks cannot be released early, so a
        later pass may lock a key that sorts before one already held. Two
        requests doing that against each other deadlock; PostgreSQL aborts
        one, and the router reports it as a retryable lock conflict.
        """
        primary_ids = {c.primary_id for c in matched}
        if not self.use_locks:
            return primary_ids

        locked: Set[int] = set()
        while not primary_ids <= locked:
            await self.store.lock_identities(cluster_lock_keys(primary_ids - locked))
            locked |= primary_ids
            matched = await self.store.find_by_identifier(email, phone_number)
            primary_ids = {c.primary_id for c in matched}
        return primary_ids

    async def _fetch_clusters(self, primary_ids: Iterable[int]) -> List[ContactSnapshot]:
        """Union of the clusters for `primary_ids`, de-duplicated by id."""
        by_id: Dict[int, ContactSnapshot] = {}
        for pid in sorted(primary_ids):
            cluster = await self.store.find_cluster(pid)
            head = next((c for c in cluster if c.id == pid), None)
            if head is None:
                raise ContactIntegrityError(
                    f"Contact {pid} is referenced as a primary but does not exist",
                    {"contact_id": pid},
                )
            if not head.is_primary:
                raise ContactIntegrityError(
                    f"Contacts are linked to secondary contact {pid}",
                    {"contact_id": pid, "linked_id": head.linked_id},
                )
            for contact in cluster:
                by_id.setdefault(contact.id, contact)
        return list(by_id.values())

    async def _merge(self, primaries: List[ContactSnapshot], working: List[ContactSnapshot]) -> ContactSnapshot:
        """Keep the oldest primary and fold every other cluster into it."""
        ordered = sorted(primaries, key=survivor_sort_key)
        main_primary, to_secondary = ordered[0], ordered[1:]

        for demoted in to_secondary:
            await self.store.update(
                demoted.id,
                {"link_precedence": LinkPrecedence.SECONDARY.value, "linked_id": main_primary.id},
            )
            for contact in working:
                if contact.linked_id == demoted.id:
                    await self.store.update(contact.id, {"linked_id": main_primary.id})

        logger.info(
            "Merged primaries %s into %s",
            [c.id for c in to_secondary],
            main_primary.id,
        )
        return main_primary

    async def _insert_if_novel(
        self,
        primary_id: int,
        email: Optional[str],
        phone_number: Optional[str],
        working: List[ContactSnapshot],
    ) -> Optional[ContactSnapshot]:
        """Add a secondary when the request carries an unseen identifier."""
        known_emails = {c.email for c in working if c.email}
        known_phones = {c.phone_number for c in working if c.phone_number}

        novel = (email and email not in known_emails) or (phone_number and phone_number not in known_phones)
        if not novel:
            return None

        now = utc_now()
        fields = {
            "email": email,
            "phone_number": phone_number,
            "link_precedence": LinkPrecedence.SECONDARY.value,
            "linked_id": primary_id,
            "created_at": now,
            "updated_at": now,
        }
        new_id = await self.store.insert(fields)
        logger.info("Created secondary contact %s linked to %s", new_id, primary_id)
        return ContactSnapshot(id=new_id, **fields)

    @staticmethod
    def _assemble(primary_id: int, working: List[ContactSnapshot]) -> IdentityResult:
        """Primary first, then the rest oldest-first; values de-duplicated in that order."""
        primary = [c for c in working if c.id == primary_id]
        others = sorted((c for c in working if c.id != primary_id), key=survivor_sort_key)
        ordered = primary + others

        emails: List[str] = []
        phone_numbers: List[str] = []
        for contact in ordered:
            if contact.email and contact.email not in emails:
                emails.append(contact.email)
            if contact.phone_number and contact.phone_number not in phone_numbers:
                phone_numbers.append(contact.phone_number)

        return IdentityResult(
            primary_contact_id=primary_id,
            emails=emails,
            phone_numbers=phone_numbers,
            secondary_contact_ids=[c.id for c in ordered if not c.is_primary],
        )

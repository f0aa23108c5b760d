"""
recipients.py - Mapping extracted names to known recipients.

Two separate strategies:
- ExactAliasMatcher: used while parsing an SMS. A name resolves only on an
  exact (case-insensitive) name or alias hit.
- FuzzyNameMatcher: used by the duplicate-recipient merge screen. Allows
  small typos via Levenshtein distance.

The fuzzy rule is never applied during SMS parsing.
"""

from __future__ import annotations

from typing import Iterable, Optional

from rapidfuzz.distance import Levenshtein

from logging_config import get_logger
from models import DuplicatePair, Recipient

logger = get_logger(__name__)

# Duplicate detection thresholds.
MAX_TYPO_DISTANCE = 2
MAX_FUZZY_NAME_LENGTH = 15

# Contact fields filled from the secondary recipient on merge.
MERGE_FILL_FIELDS: tuple[str, ...] = (
    "email",
    "phone",
    "till_number",
    "paybill",
    "account_number",
    "description",
)


def _key(name: Optional[str]) -> str:
    return (name or "").strip().lower()


class ExactAliasMatcher:
    """Exact name first, then alias; first hit in list order wins each pass."""

    def find(self, name: Optional[str], recipients: Iterable[Recipient]) -> Optional[Recipient]:
        wanted = _key(name)
        if not wanted:
            return None

        pool = list(recipients)
        for recipient in pool:
            if _key(recipient.name) == wanted:
                logger.debug(
                    "recipient_resolved | by=name | name=%r | recipient_id=%s",
                    name,
                    recipient.id,
                )
                return recipient

        for recipient in pool:
            if wanted in recipient.alias_list:
                logger.debug(
                    "recipient_resolved | by=alias | name=%r | recipient_id=%s",
                    name,
                    recipient.id,
                )
                return recipient

        logger.debug("recipient_unresolved | name=%r | pool_size=%s", name, len(pool))
        return None


class FuzzyNameMatcher:
    """Loose duplicate check: equal names, or short names a typo or two apart.

    NOTE: names only. Phone, till, paybill and email are shared legitimately
    between recipients and are never compared.
    """

    def __init__(
        self,
        max_distance: int = MAX_TYPO_DISTANCE,
        max_length: int = MAX_FUZZY_NAME_LENGTH,
    ) -> None:
        self.max_distance = max_distance
        self.max_length = max_length

    def distance(self, first: str, second: str) -> int:
        return levenshtein_distance(_key(first), _key(second))

    def is_similar(self, first: str, second: str) -> bool:
        a, b = _key(first), _key(second)
        if a == b:
            return True
        return (
            levenshtein_distance(a, b) <= self.max_distance
            and max(len(a), len(b)) <= self.max_length
        )


_exact_matcher = ExactAliasMatcher()


def levenshtein_distance(first: str, second: str) -> int:
    """Edit distance (insert, delete, substitute all cost 1)."""
    return int(Levenshtein.distance(first, second))


def find_recipient(name: Optional[str], recipients: Iterable[Recipient]) -> Optional[Recipient]:
    """Recipient whose name, or failing that one of whose aliases, equals `name`."""
    return _exact_matcher.find(name, recipients)


def resolve_recipient(name: Optional[str], recipients: Iterable[Recipient]) -> Optional[int]:
    """Id of the recipient `name` refers to, or None when nothing matches."""
    recipient = find_recipient(name, recipients)
    return recipient.id if recipient is not None else None


def find_all_duplicate_pairs(
    recipients: Iterable[Recipient],
    matcher: Optional[FuzzyNameMatcher] = None,
) -> list[DuplicatePair]:
    """Pair each recipient with later-processed recipients whose names are similar.

    A recipient that was already claimed as someone's duplicate is not
    reconsidered, neither as primary nor as another duplicate.
    """
    matcher = matcher or FuzzyNameMatcher()
    pool = list(recipients)
    pairs: list[DuplicatePair] = []
    processed: set[int] = set()

    for recipient in pool:
        if recipient.id in processed:
            continue

        for other in pool:
            if other.id == recipient.id or other.id in processed:
                continue
            if matcher.is_similar(recipient.name, other.name):
                pairs.append(
                    DuplicatePair(
                        primary=recipient,
                        duplicate=other,
                        distance=matcher.distance(recipient.name, other.name),
                    )
                )
                processed.add(other.id)

        processed.add(recipient.id)

    logger.info(
        "duplicate_scan_complete | recipients=%s | pairs=%s",
        len(pool),
        len(pairs),
    )
    return pairs


def combine_aliases(primary: Recipient, secondary: Recipient) -> str:
    """Primary's aliases plus any new ones from secondary, joined with '; '."""
    combined = list(primary.alias_list)
    for alias in secondary.alias_list:
        if alias not in combined:
            combined.append(alias)
    return "; ".join(combined)


def merge_recipient_fields(primary: Recipient, secondary: Recipient) -> Recipient:
    """Primary with its empty contact fields filled from secondary.

    Only the merged record is produced here; repointing transactions and
    deleting the secondary are up to the persistence layer.
    """
    updates: dict[str, object] = {"aliases": combine_aliases(primary, secondary) or None}
    for field_name in MERGE_FILL_FIELDS:
        if not getattr(primary, field_name):
            updates[field_name] = getattr(secondary, field_name)

    merged = primary.model_copy(update=updates)
    logger.info(
        "recipient_merge_preview | primary_id=%s | secondary_id=%s | aliases=%r",
        primary.id,
        secondary.id,
        merged.aliases,
    )
    return merged

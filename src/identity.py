"""Lookup structures over the member record set (by id, by normalized name)."""

from collections.abc import Iterable, Mapping
import logging

from config import NamedMember
from models import MemberRecord

logger = logging.getLogger(__name__)

NAME_SEPARATOR = "_"


def normalize_name(first: str | None, last: str | None) -> str:
    """Lowercase, trim and join a first/last name pair into an index key."""
    return f"{(first or '').strip().lower()}{NAME_SEPARATOR}{(last or '').strip().lower()}"


def _name_matches(record: MemberRecord, first: str, last: str) -> bool:
    return (record.first_name or "").strip().lower() == first.strip().lower() and (
        record.last_name or ""
    ).strip().lower() == last.strip().lower()


class IdentityIndex:
    """
    Pure lookup index built once per resolution pass.

    Records sharing a name are not distinguished: the first record in input
    order wins `lookup_by_name`. `duplicate_names` exposes the ambiguity so it
    can be reported instead of silently ignored.
    """

    def __init__(
        self,
        records: list[MemberRecord],
        by_id: dict[str, MemberRecord],
        by_name: dict[str, MemberRecord],
        name_counts: dict[str, int],
        duplicate_ids: list[str],
    ):
        self.records = records
        self.by_id = by_id
        self.by_name = by_name
        self._name_counts = name_counts
        self.duplicate_ids = duplicate_ids

    @classmethod
    def build(
        cls, records: Iterable[MemberRecord], aliases: Mapping[str, str] | None = None
    ) -> "IdentityIndex":
        """
        Build the index from a record collection.

        Args:
            records: The member records, in input order
            aliases: Optional id -> "First Last" table; each alias is registered
                as an extra name key for that id (never replacing a real name)

        Returns:
            An IdentityIndex; records with an id already seen are dropped
        """
        unique: list[MemberRecord] = []
        by_id: dict[str, MemberRecord] = {}
        by_name: dict[str, MemberRecord] = {}
        name_counts: dict[str, int] = {}
        duplicate_ids: list[str] = []

        for record in records:
            if record.id in by_id:
                duplicate_ids.append(record.id)
                logger.warning("Duplicate member id %s; keeping the first record", record.id)
                continue
            by_id[record.id] = record
            unique.append(record)

            key = normalize_name(record.first_name, record.last_name)
            if key == NAME_SEPARATOR:
                continue
            name_counts[key] = name_counts.get(key, 0) + 1
            # First match wins
            by_name.setdefault(key, record)

        for member_id, canonical in (aliases or {}).items():
            record = by_id.get(member_id)
            if record is None:
                logger.debug("Alias for unknown id %s ignored", member_id)
                continue
            first, _, last = canonical.strip().partition(" ")
            by_name.setdefault(normalize_name(first, last), record)

        return cls(unique, by_id, by_name, name_counts, duplicate_ids)

    def lookup_by_id(self, member_id: str | None) -> MemberRecord | None:
        if not member_id:
            return None
        return self.by_id.get(member_id)

    def lookup_by_name(self, first: str | None, last: str | None) -> MemberRecord | None:
        """Exact normalized-name lookup; None when either name part is missing."""
        if not (first or "").strip() or not (last or "").strip():
            return None
        return self.by_name.get(normalize_name(first, last))

    def scan_by_name(
        self, first: str, last: str, exclude_id: str | None = None
    ) -> MemberRecord | None:
        """Linear fallback: compare trimmed, lowercased names record by record."""
        for record in self.records:
            if record.id == exclude_id:
                continue
            if _name_matches(record, first, last):
                return record
        return None

    def lookup_ref(self, ref: NamedMember | None) -> MemberRecord | None:
        """Resolve a configured member reference: exact id first, then name."""
        if ref is None:
            return None
        record = self.lookup_by_id(ref.id)
        if record is not None:
            return record
        for record in self.records:
            if ref.matches(record):
                return record
        return None

    def duplicate_names(self) -> list[str]:
        """Normalized names carried by more than one record."""
        return sorted(key for key, count in self._name_counts.items() if count > 1)

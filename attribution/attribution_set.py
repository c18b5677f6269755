"""
Attribution Sets — who is responsible for a unit of work.

An AttributionSet holds two kinds of attribution:

    Flat entries — (id, optional name) records, unique by id and kept in
                   ascending id order
    Chains       — multi-hop AttributionChains, in insertion order

Comparison semantics:
    diff()  — legacy change detection. Looks at flat entries only. Two sets
              with the same entries and different chains do NOT diff.
    ==      — full structural equality, chains included.

The two must stay separate. Change-detection call sites written before
chains existed rely on diff() being chain-blind.

Ownership:
    A set owns its chains. set(), add() and copy() clone chains taken from
    another set, so no chain object is ever shared between two sets.
    create_chain() hands out the set's own live chain.
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from dataclasses import dataclass
from typing import Optional, Union

from .chain import AttributionChain
from .codec import (
    MIN_CHAIN_BYTES,
    MIN_ENTRY_BYTES,
    DecodeError,
    MessageReader,
    MessageWriter,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttributionEntry:
    """A flat attribution record. A missing name is None."""
    id: int
    name: Optional[str] = None


class AttributionSet:
    """
    Ordered flat entries plus ordered attribution chains.

    Mutable, but hashable: the hash covers entries and chains, so a set must
    not be mutated while it is used as a dict key.
    """

    def __init__(self, id: Optional[int] = None, name: Optional[str] = None):
        self._entries: list[AttributionEntry] = []
        self._chains: list[AttributionChain] = []
        if id is not None:
            if not isinstance(id, int):
                raise TypeError(
                    f"AttributionSet() expects an int id, got {type(id).__name__}"
                )
            self._entries.append(AttributionEntry(id, name))

    @classmethod
    def _from_entries(cls, entries: list[AttributionEntry]) -> AttributionSet:
        result = cls()
        result._entries = list(entries)
        return result

    # =========================================================================
    # FLAT ENTRIES
    # =========================================================================

    def _find(self, id: int) -> int:
        return bisect_left(self._entries, id, key=lambda entry: entry.id)

    def _insert(self, entry: AttributionEntry) -> bool:
        """Insert keeping id order. Existing ids are left as they are."""
        index = self._find(entry.id)
        if index < len(self._entries) and self._entries[index].id == entry.id:
            return False
        self._entries.insert(index, entry)
        return True

    def size(self) -> int:
        return len(self._entries)

    def get(self, index: int) -> int:
        return self._entries[index].id

    def get_name(self, index: int) -> Optional[str]:
        return self._entries[index].name

    def get_entries(self) -> list[AttributionEntry]:
        return list(self._entries)

    def get_attribution_id(self) -> int:
        """
        The id that work should be charged to.

        The first flat entry wins; otherwise the originator of the first
        chain. -1 when the set is empty.
        """
        if self._entries:
            return self._entries[0].id
        if self._chains:
            return self._chains[0].get_attribution_id()
        return -1

    # =========================================================================
    # CHAINS
    # =========================================================================

    def create_chain(self) -> AttributionChain:
        """
        Append a new empty chain and return it.

        The returned chain is the set's own: nodes added through it are
        visible in this set.
        """
        chain = AttributionChain()
        self._chains.append(chain)
        return chain

    def get_chains(self) -> list[AttributionChain]:
        """Snapshot of the chain list. The chains themselves are live."""
        return list(self._chains)

    # =========================================================================
    # MUTATION
    # =========================================================================

    def add(self, source: Union[int, AttributionSet], name: Optional[str] = None) -> bool:
        """
        Add a flat entry, or merge another set into this one.

        add(id[, name]) inserts an entry unless the id is already present.
        add(other) merges the other set's entries by id and appends copies of
        its chains that this set does not already hold, in their order.
        A name only goes with an int id.

        Returns:
            True if this set changed
        """
        if isinstance(source, AttributionSet):
            if name is not None:
                raise TypeError("add() takes a name only with an int id")
            return self._merge(source, None)
        if not isinstance(source, int):
            raise TypeError(
                f"add() expects an int id or AttributionSet, got {type(source).__name__}"
            )
        return self._insert(AttributionEntry(source, name))

    def _merge(
        self,
        other: AttributionSet,
        added: Optional[list[AttributionEntry]],
    ) -> bool:
        changed = False
        for entry in list(other._entries):
            if self._insert(entry):
                changed = True
                if added is not None:
                    added.append(entry)

        for chain in list(other._chains):
            if chain not in self._chains:
                self._chains.append(chain.copy())
                changed = True

        if changed:
            logger.debug("Merged attribution set into %r", self)
        return changed

    def add_returning_new(self, other: AttributionSet) -> Optional[AttributionSet]:
        """
        Merge `other` into this set and report the flat entries it added.

        Returns:
            A set holding only the newly added entries, or None if no
            entries were added. Chains are merged but not reported.
        """
        added: list[AttributionEntry] = []
        self._merge(other, added)
        if not added:
            return None
        return AttributionSet._from_entries(added)

    def set(self, source: Union[int, AttributionSet, None], name: Optional[str] = None) -> None:
        """
        Replace the whole content of this set.

        set(id[, name]) leaves a single flat entry and no chains.
        set(other) takes deep copies of the other set's entries and chains.
        set(None) clears the set.
        """
        if source is None:
            self.clear()
            return
        if isinstance(source, AttributionSet):
            if name is not None:
                raise TypeError("set() takes a name only with an int id")
            if source is self:
                return
            self._entries = list(source._entries)
            self._chains = [chain.copy() for chain in source._chains]
        elif isinstance(source, int):
            self._entries = [AttributionEntry(source, name)]
            self._chains = []
        else:
            raise TypeError(
                f"set() expects an int id, AttributionSet or None, got {type(source).__name__}"
            )
        logger.debug("Replaced attribution set content with %r", self)

    def set_returning_diffs(
        self,
        other: Optional[AttributionSet],
    ) -> Optional[tuple[AttributionSet, AttributionSet]]:
        """
        Replace this set with `other` and report which flat ids came and went.

        Like diff(), this looks at flat entries only.

        Returns:
            (added, removed) sets of flat entries, or None if the ids did
            not change
        """
        before = {entry.id: entry for entry in self._entries}
        self.set(other)
        after = {entry.id: entry for entry in self._entries}

        added = [entry for entry in self._entries if entry.id not in before]
        removed = [entry for entry_id, entry in before.items() if entry_id not in after]
        if not added and not removed:
            return None
        return (
            AttributionSet._from_entries(added),
            AttributionSet._from_entries(removed),
        )

    def remove(self, other: Optional[AttributionSet]) -> bool:
        """
        Remove every entry whose id is in `other`, and every chain equal to
        one of `other`'s chains.

        Returns:
            True if this set changed
        """
        if other is None:
            return False
        ids = {entry.id for entry in other._entries}
        entries = [entry for entry in self._entries if entry.id not in ids]
        chains = [chain for chain in self._chains if chain not in other._chains]

        changed = (
            len(entries) != len(self._entries)
            or len(chains) != len(self._chains)
        )
        self._entries = entries
        self._chains = chains
        return changed

    def clear(self) -> None:
        self._entries = []
        self._chains = []

    def is_empty(self) -> bool:
        return not self._entries and not self._chains

    def copy(self) -> AttributionSet:
        result = AttributionSet()
        result.set(self)
        return result

    # =========================================================================
    # COMPARISON
    # =========================================================================

    def diff(self, other: Optional[AttributionSet]) -> bool:
        """
        Legacy change check over flat entries. Chains are ignored.

        Names are only compared where both sides carry one.

        Returns:
            True if the flat entries differ
        """
        if other is None:
            return bool(self._entries)
        if len(self._entries) != len(other._entries):
            return True
        for mine, theirs in zip(self._entries, other._entries):
            if mine.id != theirs.id:
                return True
            if mine.name is not None and theirs.name is not None and mine.name != theirs.name:
                return True
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttributionSet):
            return NotImplemented
        return self._entries == other._entries and self._chains == other._chains

    def __hash__(self) -> int:
        return hash((tuple(self._entries), tuple(self._chains)))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        parts = []
        for entry in self._entries:
            if entry.name is None:
                parts.append(str(entry.id))
            else:
                parts.append(f"{entry.id} {entry.name}")
        if self._chains:
            parts.append("chains=[" + ", ".join(repr(c) for c in self._chains) + "]")
        return "AttributionSet{" + ", ".join(parts) + "}"

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def write_to(self, writer: MessageWriter) -> None:
        writer.write_uvarint(len(self._entries))
        for entry in self._entries:
            writer.write_varint(entry.id)
            writer.write_optional_string(entry.name)
        writer.write_uvarint(len(self._chains))
        for chain in self._chains:
            chain.write_to(writer)

    @classmethod
    def read_from(cls, reader: MessageReader) -> AttributionSet:
        """
        Read a set written by write_to.

        Entry ids must arrive strictly ascending; anything else means the
        input was not produced by write_to.

        Raises:
            DecodeError: If the input is truncated or malformed
        """
        entries: list[AttributionEntry] = []
        count = reader.read_count(MIN_ENTRY_BYTES, "Entry")
        for _ in range(count):
            entry_at = reader.offset
            entry_id = reader.read_varint()
            if entries and entry_id <= entries[-1].id:
                raise DecodeError(
                    f"Entry id {entry_id} is duplicated or out of order",
                    entry_at,
                )
            entries.append(AttributionEntry(entry_id, reader.read_optional_string()))

        chains = [
            AttributionChain.read_from(reader)
            for _ in range(reader.read_count(MIN_CHAIN_BYTES, "Chain"))
        ]

        result = cls._from_entries(entries)
        result._chains = chains
        return result

    def encode(self) -> bytes:
        """Encode this set as a standalone message, header included."""
        writer = MessageWriter()
        writer.write_header()
        self.write_to(writer)
        return writer.getvalue()

    @classmethod
    def decode(cls, data: bytes) -> AttributionSet:
        """
        Decode a message produced by encode().

        Raises:
            DecodeError: If the message is malformed or has trailing bytes
        """
        reader = MessageReader(data)
        try:
            reader.read_header()
            result = cls.read_from(reader)
            reader.expect_end()
        except DecodeError as e:
            logger.warning("Rejected attribution set message: %s", e)
            raise
        logger.debug("Decoded %r", result)
        return result

"""
Attribution Chains — multi-hop responsibility paths.

A chain records who did a unit of work on behalf of whom:

    AttributionChain{1001 sync, 1002, 1003 alarm}

reads as "1001 did this on behalf of 1002 on behalf of 1003". The first
node is the originator of the work.

Chains are flat ordered sequences. There is no branching, merging or cycle
detection. Nodes are appended and never removed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .codec import MIN_NODE_BYTES, MessageReader, MessageWriter


@dataclass(frozen=True)
class ChainNode:
    """One hop in a chain. A missing tag is None, never an empty string."""
    id: int
    tag: Optional[str] = None


class AttributionChain:
    """
    An ordered sequence of (id, tag) nodes.

    Equality is element-wise over the node sequence, including length and
    tag presence. The hash is derived from the same ordered sequence, so
    equal chains hash equally.
    """

    def __init__(self, source: Optional[AttributionChain] = None):
        if source is None:
            self._nodes: list[ChainNode] = []
        else:
            self._nodes = list(source._nodes)

    def add_node(self, id: int, tag: Optional[str] = None) -> AttributionChain:
        """Append a node and return this chain for fluent building."""
        self._nodes.append(ChainNode(id, tag))
        return self

    def get_size(self) -> int:
        return len(self._nodes)

    def get_ids(self) -> list[int]:
        return [node.id for node in self._nodes]

    def get_tags(self) -> list[Optional[str]]:
        return [node.tag for node in self._nodes]

    def get_nodes(self) -> list[ChainNode]:
        return list(self._nodes)

    def get_attribution_id(self) -> int:
        """Id of the originating node, or -1 for an empty chain."""
        if not self._nodes:
            return -1
        return self._nodes[0].id

    def get_attribution_tag(self) -> Optional[str]:
        """Tag of the originating node, or None for an empty chain."""
        if not self._nodes:
            return None
        return self._nodes[0].tag

    def copy(self) -> AttributionChain:
        return AttributionChain(self)

    def write_to(self, writer: MessageWriter) -> None:
        writer.write_uvarint(len(self._nodes))
        for node in self._nodes:
            writer.write_varint(node.id)
            writer.write_optional_string(node.tag)

    @classmethod
    def read_from(cls, reader: MessageReader) -> AttributionChain:
        """
        Read a chain written by write_to.

        Raises:
            DecodeError: If the input is truncated or malformed
        """
        chain = cls()
        count = reader.read_count(MIN_NODE_BYTES, "Chain node")
        for _ in range(count):
            node_id = reader.read_varint()
            chain._nodes.append(ChainNode(node_id, reader.read_optional_string()))
        return chain

    def __len__(self) -> int:
        return len(self._nodes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttributionChain):
            return NotImplemented
        return self._nodes == other._nodes

    def __hash__(self) -> int:
        return hash(tuple(self._nodes))

    def __repr__(self) -> str:
        parts = []
        for node in self._nodes:
            if node.tag is None:
                parts.append(str(node.id))
            else:
                parts.append(f"{node.id} {node.tag}")
        return "AttributionChain{" + ", ".join(parts) + "}"

"""
Small typed query builder.

Nodes render to MongoDB filter documents with ``to_mongo()``. Only the four
shapes the API needs exist: equality, case-insensitive substring, AND, OR.
"""
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any

    def to_mongo(self) -> dict:
        return {self.field: self.value}


@dataclass(frozen=True)
class Contains:
    field: str
    text: str

    def to_mongo(self) -> dict:
        return {self.field: {"$regex": re.escape(self.text), "$options": "i"}}


@dataclass(frozen=True)
class And:
    nodes: Tuple["Node", ...]

    def __init__(self, *nodes: "Node"):
        object.__setattr__(self, "nodes", tuple(nodes))

    def to_mongo(self) -> dict:
        return {"$and": [n.to_mongo() for n in self.nodes]}


@dataclass(frozen=True)
class Or:
    nodes: Tuple["Node", ...]

    def __init__(self, *nodes: "Node"):
        object.__setattr__(self, "nodes", tuple(nodes))

    def to_mongo(self) -> dict:
        return {"$or": [n.to_mongo() for n in self.nodes]}


Node = Union[Eq, Contains, And, Or]


def from_mapping(mapping: Optional[Mapping[str, Any]]) -> Optional[Node]:
    """Turn ``{"status": "active", ...}`` into Eq / And(Eq, ...)."""
    if not mapping:
        return None
    nodes = [Eq(k, v) for k, v in mapping.items()]
    if len(nodes) == 1:
        return nodes[0]
    return And(*nodes)


def search_query(base: Optional[Node], term: Optional[str], fields: Sequence[str]) -> Optional[Node]:
    """base AND (f1 ~ term OR f2 ~ term ...); either side may be absent."""
    if not term or not fields:
        return base
    matches = Or(*(Contains(f, term) for f in fields))
    if base is None:
        return matches
    return And(base, matches)


def render(node: Optional[Node]) -> dict:
    return node.to_mongo() if node is not None else {}

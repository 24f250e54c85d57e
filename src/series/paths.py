"""Key-path grammar used by the generic canonicalizer.

Two addressing modes are supported:

* dot paths such as ``main.aqi`` or ``values.0``; each segment is a
  :class:`Field` looked up on a mapping (or, for decimal segments, used as a
  list index);
* the self-array form ``[][<index>]``, a single :class:`SelfArrayIndex`
  meaning "the record itself is a list, take element ``<index>``".

Anything else containing brackets is unsupported and parses to ``None``.
"""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Optional, Union


_SELF_ARRAY_PATTERN = re.compile(r"\[\]\[(\d+)\]")


@dataclass(frozen=True)
class Field:
    name: str


@dataclass(frozen=True)
class SelfArrayIndex:
    index: int


PathSegment = Union[Field, SelfArrayIndex]
KeyPath = tuple[PathSegment, ...]


def parse_key_path(raw: object) -> Optional[KeyPath]:
    if not isinstance(raw, str) or not raw:
        return None

    self_array = _SELF_ARRAY_PATTERN.fullmatch(raw)
    if self_array:
        return (SelfArrayIndex(int(self_array.group(1))),)

    if "[" in raw or "]" in raw:
        return None

    names = raw.split(".")
    if any(not name for name in names):
        return None
    return tuple(Field(name) for name in names)


def _is_list_like(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _step(current: object, segment: PathSegment) -> object:
    if isinstance(segment, SelfArrayIndex):
        if _is_list_like(current) and segment.index < len(current):  # type: ignore[arg-type]
            return current[segment.index]  # type: ignore[index]
        return None

    if isinstance(current, Mapping):
        return current.get(segment.name)
    if _is_list_like(current) and segment.name.isdigit():
        index = int(segment.name)
        return current[index] if index < len(current) else None  # type: ignore[arg-type,index]
    return None


def extract_path(record: object, path: Optional[KeyPath]) -> object:
    if record is None or not path:
        return None
    head, *rest = path
    current = _step(record, head)
    if current is None or not rest:
        return current
    return extract_path(current, tuple(rest))

"""Generic helpers over JSON-LD value trees.

A value is ``None``, a scalar, a list of values or a mapping of string keys
to values. Nothing here knows about schema.org types.
"""

from typing import Any, Iterator, Mapping, Union

JsonScalar = Union[None, bool, int, float, str]
JsonValue = Union[JsonScalar, list["JsonValue"], dict[str, "JsonValue"]]

ID_KEY = "@id"
TYPE_KEY = "@type"
REFERENCE_KEYS = frozenset({ID_KEY, TYPE_KEY})
CONTAINER_KEYS = ("@context", "@graph")


def is_blank(value: Any) -> bool:
    """True for None, whitespace-only strings and empty containers."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def prune(value: JsonValue) -> JsonValue:
    """Recursively drop None, blank strings and containers left empty.

    Pruning is bottom-up, so a mapping whose every entry prunes away becomes
    empty and is itself dropped by its parent. Top-level input is always
    returned, even when empty.
    """
    if isinstance(value, dict):
        out: dict[str, JsonValue] = {}
        for key, child in value.items():
            pruned = prune(child)
            if not is_blank(pruned):
                out[key] = pruned
        return out
    if isinstance(value, (list, tuple)):
        return [pruned for pruned in (prune(child) for child in value) if not is_blank(pruned)]
    return value


def ref(node_id: str) -> dict[str, str]:
    return {ID_KEY: node_id}


def is_reference(value: Any) -> bool:
    """A mapping whose only keys are ``@id`` (a string) and optionally ``@type``."""
    return (
        isinstance(value, Mapping)
        and isinstance(value.get(ID_KEY), str)
        and set(value.keys()) <= REFERENCE_KEYS
    )


def iter_references(value: Any, path: str) -> Iterator[tuple[str, str]]:
    """Yield ``(target_id, path)`` for every reference inside `value`.

    Paths use ``.key`` and ``[index]`` segments appended to `path`, ending in
    ``.@id`` for the reference itself. The ``@context`` and ``@graph`` keys
    are not descended into.
    """
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            yield from iter_references(item, f"{path}[{index}]")
        return
    if not isinstance(value, Mapping):
        return
    if is_reference(value):
        yield value[ID_KEY], f"{path}.{ID_KEY}"
        return
    for key, child in value.items():
        if key in CONTAINER_KEYS:
            continue
        yield from iter_references(child, f"{path}.{key}")


def add_linked(value: Any, link: Mapping[str, Any]) -> list[Any]:
    """Append `link` to a property value, de-duplicating entries by ``@id``."""
    if is_blank(value):
        return [dict(link)]
    existing = list(value) if isinstance(value, (list, tuple)) else [value]
    existing.append(dict(link))
    seen: set[str] = set()
    unique: list[Any] = []
    for item in existing:
        if isinstance(item, Mapping) and isinstance(item.get(ID_KEY), str):
            if item[ID_KEY] in seen:
                continue
            seen.add(item[ID_KEY])
        unique.append(item)
    return unique

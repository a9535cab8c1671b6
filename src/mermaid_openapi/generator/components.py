"""Hoist repeated schemas into `components.schemas`.

Schemas are compared by a structural signature: a hash of the schema with
every `example` removed and keys sorted, computed bottom-up through
`properties` and `items`. Owners are counted over the whole document, at any
depth: an object schema whose signature is used by two or more operations
becomes a named component, and each use is replaced by a `$ref`. Rewriting is
top-down, one nesting level at a time, so components are named after their
first, outermost use.
"""

import hashlib
import json
import logging
import re
from typing import Any, Iterator, NamedTuple

logger = logging.getLogger(__name__)

REF_PREFIX = "#/components/schemas/"

_NAME_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


class _Slot(NamedTuple):
    owner: str
    holder: dict[str, Any]
    key: str
    hint: str


class SchemaSignatures:
    """Memoized structural signatures of schema dicts."""

    def __init__(self) -> None:
        # id -> (node, digest); the node is kept so its id stays unique
        self._memo: dict[int, tuple[Any, str]] = {}

    def of(self, node: Any) -> str | None:
        """Signature of a hoistable object schema, None for anything else."""
        if not is_hoistable(node):
            return None
        return self.digest(node)

    def digest(self, root: dict[str, Any]) -> str:
        stack: list[tuple[dict[str, Any], bool]] = [(root, False)]
        while stack:
            node, expanded = stack.pop()
            if id(node) in self._memo:
                continue
            if not expanded:
                stack.append((node, True))
                stack.extend((child, False) for child in _children(node))
                continue

            canonical: dict[str, Any] = {}
            for key, value in node.items():
                if key == "example":
                    continue
                if key == "properties" and isinstance(value, dict):
                    canonical[key] = {
                        name: self._memo[id(child)][1] if isinstance(child, dict) else child
                        for name, child in value.items()
                    }
                elif key == "items" and isinstance(value, dict):
                    canonical[key] = self._memo[id(value)][1]
                else:
                    canonical[key] = value
            text = json.dumps(canonical, sort_keys=True, default=str)
            self._memo[id(node)] = (node, hashlib.sha1(text.encode("utf-8")).hexdigest())

        return self._memo[id(root)][1]


def is_hoistable(node: Any) -> bool:
    return (
        isinstance(node, dict)
        and node.get("type") == "object"
        and isinstance(node.get("properties"), dict)
        and bool(node["properties"])
    )


def extract_components(doc: dict[str, Any]) -> dict[str, Any]:
    """Rewrite shared schemas in doc to $refs.

    Modifies doc in place and returns the new component schemas, in the
    order their first use was found.
    """
    signatures = SchemaSignatures()
    hoisted: dict[str, str] = {}
    schemas: dict[str, Any] = {}
    taken = set(doc.get("components", {}).get("schemas", {}))

    frontier = list(_content_slots(doc))
    owners = _count_owners(frontier, signatures)

    while frontier:
        next_frontier: list[_Slot] = []
        for slot in frontier:
            node = slot.holder[slot.key]
            signature = signatures.of(node)
            if signature is None or (signature not in hoisted and len(owners[signature]) < 2):
                next_frontier.extend(_child_slots(node, slot.owner, slot.hint))
                continue

            name = hoisted.get(signature)
            if name is None:
                name = _unique_name(slot.hint, taken)
                hoisted[signature] = name
                schemas[name] = node
                next_frontier.extend(_child_slots(node, slot.owner, name))
                logger.debug("Hoisted schema %s (first used by %s)", name, slot.owner)
            slot.holder[slot.key] = {"$ref": REF_PREFIX + name}

        frontier = next_frontier

    return schemas


def _count_owners(slots: list[_Slot], signatures: SchemaSignatures) -> dict[str, set[str]]:
    """Operations using each signature, nested uses included."""
    owners: dict[str, set[str]] = {}
    for slot in slots:
        stack = [slot.holder[slot.key]]
        while stack:
            node = stack.pop()
            if not isinstance(node, dict):
                continue
            signature = signatures.of(node)
            if signature is not None:
                owners.setdefault(signature, set()).add(slot.owner)
            stack.extend(_children(node))
    return owners


def _children(node: dict[str, Any]) -> list[dict[str, Any]]:
    children = []
    properties = node.get("properties")
    if isinstance(properties, dict):
        children.extend(child for child in properties.values() if isinstance(child, dict))
    items = node.get("items")
    if isinstance(items, dict):
        children.append(items)
    return children


def _child_slots(node: Any, owner: str, hint: str) -> list[_Slot]:
    if not isinstance(node, dict):
        return []
    slots = []
    properties = node.get("properties")
    if isinstance(properties, dict):
        for name, child in properties.items():
            if isinstance(child, dict):
                slots.append(_Slot(owner, properties, name, pascal_case(name) or hint))
    if isinstance(node.get("items"), dict):
        slots.append(_Slot(owner, node, "items", hint + "Item"))
    return slots


def _content_slots(doc: dict[str, Any]) -> Iterator[_Slot]:
    for path, path_item in doc.get("paths", {}).items():
        resource = _resource_name(path)
        for method, operation in path_item.items():
            owner = f"{method.upper()} {path}"
            request_content = operation.get("requestBody", {}).get("content", {})
            yield from _media_slots(request_content, owner, resource + "Request")
            for response in operation.get("responses", {}).values():
                yield from _media_slots(response.get("content", {}), owner, resource + "Response")


def _media_slots(content: dict[str, Any], owner: str, hint: str) -> Iterator[_Slot]:
    for media in content.values():
        if isinstance(media, dict) and isinstance(media.get("schema"), dict):
            yield _Slot(owner, media, "schema", hint)


def _resource_name(path: str) -> str:
    segments = [s for s in path.split("/") if s and not s.startswith("{")]
    if not segments:
        return "Root"
    return pascal_case(segments[-1]) or "Root"


def pascal_case(text: str) -> str:
    """`user-profiles` -> `UserProfiles`."""
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"[^A-Za-z0-9]+", text) if part)


def _unique_name(hint: str, taken: set[str]) -> str:
    base = _NAME_UNSAFE.sub("", hint) or "Schema"
    name = base
    suffix = 2
    while name in taken:
        name = f"{base}{suffix}"
        suffix += 1
    taken.add(name)
    return name

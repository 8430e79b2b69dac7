"""
Pension Kernel: State-Diff Engine v1.0

diff(before, after) -> ordered add / remove / replace operations that
turn `before` into `after`, computed by structural recursion over the
serialized situation tree.

Rules:
  - none -> value: one add at the path; value -> none: one remove
  - objects: removed members first (before order), then added and
    changed members (after order); nested objects recurse
  - arrays are never minimally diffed: remove every old index high -> low,
    then add every new index low -> high
  - scalars compare by canonical JSON text, never by tolerance

diff(after, before) is computed independently, not derived by inverting
the forward patch.
"""

from __future__ import annotations

import copy
from typing import Any, Iterable, List, Mapping, Union

from .domain_types import PatchOperation, Situation
from .hashing import canonical_json


class PatchError(ValueError):
    """Raised when a patch operation cannot be applied to a document."""


# ══════════════════════════════════════════════════════════════
# Diff
# ══════════════════════════════════════════════════════════════

def diff(before: Any, after: Any) -> List[PatchOperation]:
    """Patch operations transforming `before` into `after`."""
    operations: List[PatchOperation] = []
    _diff_values(_plain(before), _plain(after), "", operations)
    return operations


def _plain(value: Any) -> Any:
    if isinstance(value, Situation):
        return value.to_dict()
    return value


def _diff_values(before: Any, after: Any, path: str, out: List[PatchOperation]) -> None:
    if before is None and after is None:
        return
    if before is None:
        out.append(PatchOperation("add", path, copy.deepcopy(after)))
        return
    if after is None:
        out.append(PatchOperation("remove", path))
        return

    if isinstance(before, dict) and isinstance(after, dict):
        _diff_objects(before, after, path, out)
    elif isinstance(before, list) and isinstance(after, list):
        if not _equal(before, after):
            _diff_arrays(before, after, path, out)
    elif not _equal(before, after):
        out.append(PatchOperation("replace", path, copy.deepcopy(after)))


def _diff_objects(
    before: Mapping[str, Any], after: Mapping[str, Any], path: str,
    out: List[PatchOperation],
) -> None:
    for key in before:
        if key not in after:
            out.append(PatchOperation("remove", _child(path, key)))

    for key, new in after.items():
        member = _child(path, key)
        if key not in before:
            out.append(PatchOperation("add", member, copy.deepcopy(new)))
            continue
        old = before[key]
        if _equal(old, new):
            continue
        if isinstance(old, dict) and isinstance(new, dict):
            _diff_objects(old, new, member, out)
        elif isinstance(old, list) and isinstance(new, list):
            _diff_arrays(old, new, member, out)
        else:
            # null <-> value flips land here: the member stays, holding null
            out.append(PatchOperation("replace", member, copy.deepcopy(new)))


def _diff_arrays(
    before: List[Any], after: List[Any], path: str, out: List[PatchOperation],
) -> None:
    for index in range(len(before) - 1, -1, -1):
        out.append(PatchOperation("remove", f"{path}/{index}"))
    for index, item in enumerate(after):
        out.append(PatchOperation("add", f"{path}/{index}", copy.deepcopy(item)))


def _equal(a: Any, b: Any) -> bool:
    return canonical_json(a) == canonical_json(b)


def _child(path: str, key: str) -> str:
    return f"{path}/{escape_token(key)}"


def escape_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def unescape_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


# ══════════════════════════════════════════════════════════════
# Apply
# ══════════════════════════════════════════════════════════════

PatchLike = Union[PatchOperation, Mapping[str, Any]]


def apply_patch(document: Any, operations: Iterable[PatchLike]) -> Any:
    """
    Apply add / remove / replace operations to a deep copy of `document`.
    The input document is never modified.
    """
    result = copy.deepcopy(_plain(document))
    for raw in operations:
        op, path, value = _unpack(raw)
        result = _apply_one(result, op, path, value)
    return result


def _unpack(raw: PatchLike) -> tuple:
    if isinstance(raw, PatchOperation):
        return raw.op, raw.path, raw.value
    try:
        return raw["op"], raw["path"], raw.get("value")
    except KeyError as exc:
        raise PatchError(f"Patch operation missing {exc.args[0]!r}: {raw!r}") from exc


def _apply_one(document: Any, op: str, path: str, value: Any) -> Any:
    if op not in ("add", "remove", "replace"):
        raise PatchError(f"Unsupported patch op {op!r}")
    value = copy.deepcopy(value)

    if path == "":
        return None if op == "remove" else value
    if not path.startswith("/"):
        raise PatchError(f"Invalid pointer {path!r}: must start with '/'")

    tokens = [unescape_token(t) for t in path[1:].split("/")]
    parent = document
    for token in tokens[:-1]:
        parent = _step(parent, token, path)
    last = tokens[-1]

    if isinstance(parent, dict):
        if op != "add" and last not in parent:
            raise PatchError(f"Cannot {op} missing member at {path!r}")
        if op == "remove":
            del parent[last]
        else:
            parent[last] = value
    elif isinstance(parent, list):
        if op == "add" and last == "-":
            parent.append(value)
            return document
        index = _index(last, path)
        upper = len(parent) if op == "add" else len(parent) - 1
        if index > upper:
            raise PatchError(f"Index out of range at {path!r}")
        if op == "add":
            parent.insert(index, value)
        elif op == "remove":
            del parent[index]
        else:
            parent[index] = value
    else:
        raise PatchError(f"Cannot {op} at {path!r}: parent is not a container")
    return document


def _step(node: Any, token: str, path: str) -> Any:
    if isinstance(node, dict):
        if token not in node:
            raise PatchError(f"Missing member {token!r} in {path!r}")
        return node[token]
    if isinstance(node, list):
        index = _index(token, path)
        if index >= len(node):
            raise PatchError(f"Index out of range at {path!r}")
        return node[index]
    raise PatchError(f"Cannot traverse scalar at {path!r}")


def _index(token: str, path: str) -> int:
    if not token.isdigit() or (len(token) > 1 and token.startswith("0")):
        raise PatchError(f"Invalid array index {token!r} in {path!r}")
    return int(token)

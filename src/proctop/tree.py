"""Filtering and process tree construction."""

from dataclasses import replace

from proctop.models import ProcessEntry

MAX_TREE_DEPTH = 10


def filter_entries(entries: list[ProcessEntry], text: str) -> list[ProcessEntry]:
    """Case-insensitive substring match on the executable name."""
    if not text:
        return list(entries)
    needle = text.lower()
    return [entry for entry in entries if needle in entry.name.lower()]


def flatten(entries: list[ProcessEntry]) -> list[ProcessEntry]:
    """Return the entries with every tree depth reset to 0."""
    return [entry if entry.tree_depth == 0 else replace(entry, tree_depth=0) for entry in entries]


def _name_key(entry: ProcessEntry) -> str:
    return entry.name.lower()


def build_tree(entries: list[ProcessEntry], max_depth: int = MAX_TREE_DEPTH) -> list[ProcessEntry]:
    """
    Arrange entries depth-first under their parents.

    Roots are entries whose parent is 0 or absent from ``entries``. Siblings
    are ordered by name. Nodes at ``max_depth`` are emitted but not expanded,
    so cyclic or self-referential parent links cannot loop. Entries that are
    only reachable through a cycle have no root and are left out.
    """
    pids = {entry.pid for entry in entries}
    children: dict[int, list[ProcessEntry]] = {}
    roots: list[ProcessEntry] = []

    for entry in entries:
        parent = entry.parent_pid
        if parent == 0 or parent not in pids:
            roots.append(entry)
        elif parent != entry.pid:
            children.setdefault(parent, []).append(entry)

    for siblings in children.values():
        siblings.sort(key=_name_key)
    roots.sort(key=_name_key)

    result: list[ProcessEntry] = []
    stack: list[tuple[ProcessEntry, int]] = [(root, 0) for root in reversed(roots)]
    while stack:
        entry, depth = stack.pop()
        result.append(replace(entry, tree_depth=depth))
        if depth >= max_depth:
            continue
        for child in reversed(children.get(entry.pid, [])):
            stack.append((child, depth + 1))
    return result

"""Comparing two trees and describing the changes between them."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from .objects import EntryKind

_TREE_MODE = 0o040000


def _is_tree(mode):
    return mode & 0o170000 == _TREE_MODE


@dataclass(frozen=True)
class Addition:
    """An entry present only in the new tree."""

    entry_mode: int
    oid: str
    path: str

    @property
    def kind(self):
        return EntryKind.from_mode(self.entry_mode)


@dataclass(frozen=True)
class Deletion:
    """An entry present only in the old tree."""

    entry_mode: int
    oid: str
    path: str

    @property
    def kind(self):
        return EntryKind.from_mode(self.entry_mode)


@dataclass(frozen=True)
class Modification:
    """An entry present in both trees with a different id or mode."""

    previous_entry_mode: int
    previous_oid: str
    entry_mode: int
    oid: str
    path: str

    @property
    def previous_kind(self):
        return EntryKind.from_mode(self.previous_entry_mode)

    @property
    def kind(self):
        return EntryKind.from_mode(self.entry_mode)


def _keyed(entries):
    """Map entries by their sort key in tree order: trees sort as if named 'name/'."""
    return {entry.name + b"/" if _is_tree(entry.mode) else entry.name: entry for entry in entries}


def diff_trees(repo, old_tree, new_tree):
    """Return the changes from old_tree to new_tree, descending into subtrees.

    Either tree id may be None to stand for an empty tree. Changes come out
    breadth first, and in tree order within each directory.
    """
    changes = []
    queue = deque([("", old_tree, new_tree)])
    while queue:
        prefix, old, new = queue.popleft()
        old_entries = _keyed(repo.tree_entries(old)) if old else {}
        new_entries = _keyed(repo.tree_entries(new)) if new else {}
        for key in sorted(old_entries.keys() | new_entries.keys()):
            before = old_entries.get(key)
            after = new_entries.get(key)
            entry = after or before
            path = f"{prefix}/{entry.filename}" if prefix else entry.filename
            if after is None:
                changes.append(Deletion(before.mode, before.oid, path))
                if _is_tree(before.mode):
                    queue.append((path, before.oid, None))
            elif before is None:
                changes.append(Addition(after.mode, after.oid, path))
                if _is_tree(after.mode):
                    queue.append((path, None, after.oid))
            elif before.oid != after.oid or before.mode != after.mode:
                changes.append(
                    Modification(before.mode, before.oid, after.mode, after.oid, path)
                )
                if _is_tree(after.mode) and before.oid != after.oid:
                    queue.append((path, before.oid, after.oid))
    return changes


def format_change(change):
    """Return the one-line description of a change."""
    if isinstance(change, Addition):
        return f"  + {change.path} ({change.kind.value}, {change.oid})"
    if isinstance(change, Deletion):
        return f"  - {change.path} ({change.kind.value}, {change.oid})"
    if isinstance(change, Modification):
        return (
            f"  M {change.path} ({change.previous_kind.value} {change.previous_oid}"
            f" -> {change.kind.value} {change.oid})"
        )
    raise TypeError(f"not a change: {change!r}")


def format_changes(changes):
    """Return the report for a list of changes."""
    changes = list(changes)
    if not changes:
        return "No differences found between the commits."
    lines = [f"\nFound {len(changes)} changes:"]
    lines.extend(format_change(change) for change in changes)
    return "\n".join(lines)
"""Command line entry point: show and compare the latest commits of two branches."""

from __future__ import annotations

import argparse

from .diff import diff_trees, format_changes
from .objects import GitError, discover

_VERSION = "0.1.0"
_DEFAULT_BRANCH = "main"
_ERRORS = (GitError, OSError)


def _context(message, call, *args):
    try:
        return call(*args)
    except _ERRORS as exc:
        raise GitError(message) from exc


def print_branch_commit(repo, ref_name, label):
    """Print the summary of the latest commit on a reference and return that commit."""
    _context(f"Cannot find reference for {label}", repo.find_reference, ref_name)
    commit = _context("Failed to peel reference from commit", repo.peel_to_commit, ref_name)
    print(f"Latest commit on on {label}: {commit.summary()}")
    return commit


def explore_commit_tree(repo, ref_name):
    """Print the id of the tree of the commit a reference points at and return it."""
    _context("Failed to get reference", repo.find_reference, ref_name)
    commit = _context("Failed to peel to commit", repo.peel_to_commit, ref_name)
    _context("Failed to get tree from commit", repo.tree_entries, commit.tree)
    print(f"Tree ID: {commit.tree}")
    return commit.tree


def _commit_from_ref(repo, ref_name):
    _context("...", repo.find_reference, ref_name)
    return _context("Failed to peel reference from commit", repo.peel_to_commit, ref_name)


def compare_commits(repo, ref1, ref2):
    """Print the tree changes between the commits two references point at and return them."""
    commit1 = _commit_from_ref(repo, ref1)
    commit2 = _commit_from_ref(repo, ref2)
    _context("Failed to get tree from first commit", repo.tree_entries, commit1.tree)
    _context("Failed to get tree from second commit", repo.tree_entries, commit2.tree)

    print(f"\nComparing {ref1} and {ref2}:")
    print(f"Commit 1: {commit1.oid}")
    print(f"Commit 2: {commit2.oid}")

    if commit1.oid == commit2.oid:
        print("Both references point to the same commit!")
        return []

    try:
        changes = diff_trees(repo, commit1.tree, commit2.tree)
    except OSError as exc:
        raise GitError(str(exc)) from exc
    print(format_changes(changes))
    return changes


def _branch(name):
    if name is not None:
        print(f"Specified branch: {name}")
        return name
    print(f"No branch specified, using {_DEFAULT_BRANCH}")
    return _DEFAULT_BRANCH


def main(argv=None):
    """Run the command with the given arguments."""
    parser = argparse.ArgumentParser(description="Compare the latest commits of two branches.")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {_VERSION}")
    parser.add_argument("-f", "--feature", help="lhs of compare")
    parser.add_argument("-b", "--base", help="rhs of compare")
    args = parser.parse_args(argv)

    branch_1 = _branch(args.feature)
    branch_2 = _branch(args.base)

    try:
        repo = discover(".")
    except _ERRORS as exc:
        print(f"Error: Not in a git repository - {exc}")
        return 0

    try:
        print_branch_commit(repo, branch_1, "specified branch")
    except _ERRORS as exc:
        print(f"Error: {exc}")

    try:
        explore_commit_tree(repo, branch_1)
    except _ERRORS as exc:
        print(f"Error exploring tree: {exc}")

    try:
        compare_commits(repo, branch_1, branch_2)
    except _ERRORS as exc:
        print(f"Error comparing commits {exc}")

    return 0
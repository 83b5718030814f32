# gitatomizer

A small command-line tool that compares two branches of the git repository you are
standing in. It reads the repository files directly (loose objects, pack files with
version 2 indexes, loose and packed references) and needs no `git` executable.

## Installation

```
pip install .
```

## Usage

Run it from anywhere inside a git working tree:

```
gitatomizer --feature my-branch --base main
```

Options:

- `-f`, `--feature` — the first branch of the comparison (default `main`)
- `-b`, `--base` — the second branch of the comparison (default `main`)
- `-V`, `--version` — print the version and exit

In order, the tool prints:

- which branch is used for each option (`Specified branch: ...` or
  `No branch specified, using main`),
- the summary of the latest commit on the feature branch,
- the id of that commit's root tree,
- the two commit ids being compared, followed by every added, deleted and modified
  path between their trees.

Example output:

```
Specified branch: my-branch
Specified branch: main
Latest commit on on specified branch: Add parser
Tree ID: ...

Comparing my-branch and main:
Commit 1: ...
Commit 2: ...

Found 2 changes:
  + src/parser.py (Blob, ...)
  M README.md (Blob ... -> Blob ...)
```

Added paths are marked `+`, deleted paths `-`, and modified paths `M`; each line shows
the entry kind (`Blob`, `BlobExecutable`, `Tree`, `Link` or `Commit`) and object id.
Changes are listed directory by directory, breadth first, in git tree order; a changed
directory is listed itself as well as the changes inside it. When both branches point
at the same commit the tool says so. When they do not but their trees are the same, it
reports that no differences were found.

A step that fails (a missing branch, a corrupt object) prints an `Error...` line and the
tool carries on with the next step. If the current directory is not inside a
repository it prints an error and stops. The exit status is 0 in every case.

## Library use

The same pieces can be used from Python:

```python
from gitatomizer.objects import discover
from gitatomizer.diff import diff_trees, format_changes

repo = discover(".")
old = repo.peel_to_commit("main")
new = repo.peel_to_commit("my-branch")
print(format_changes(diff_trees(repo, old.tree, new.tree)))
```

- `gitatomizer.objects` — `discover`, `Repository` (`find_reference`, `read_object`,
  `commit`, `peel_to_commit`, `tree_entries`), `Commit` with `summary()`, `TreeEntry`,
  `EntryKind`, `parse_tree`, `parse_commit`, and the errors `GitError`,
  `ReferenceNotFound` and `ObjectNotFound`.
- `gitatomizer.diff` — `diff_trees` returning `Addition`, `Deletion` and `Modification`
  records, and `format_change` / `format_changes` for the text report. Either tree id
  given to `diff_trees` may be `None` to stand for an empty tree.
- `gitatomizer.cli` — `print_branch_commit`, `explore_commit_tree`, `compare_commits`
  and `main`.
- `gitatomizer.scanner` — `Scanner`, which yields the whitespace-separated words of a
  string one at a time, plus the small string helpers `first_word_from_longer`,
  `longest`, `first_word` and `longest_with_announcement`.

## What it does not do

- It compares committed trees only; the working tree and the index are not looked at.
- It reports which paths changed, not the changed lines within files.
- It does not detect renames or copies; a rename shows as a deletion and an addition.
- It only reads repositories; nothing is ever written.
- It supports SHA-1 object ids and version 2 pack indexes only.

## Running the tests

```
pip install .[test]
pytest
```
import hashlib
import struct
import zlib

import pytest

from gitatomizer.objects import (
    Commit,
    EntryKind,
    GitError,
    ObjectNotFound,
    ReferenceNotFound,
    TreeEntry,
    discover,
    parse_commit,
    parse_tree,
)


def _raw(kind, data):
    return f"{kind} {len(data)}".encode() + b"\0" + data


def hash_of(kind, data):
    return hashlib.sha1(_raw(kind, data)).hexdigest()


def write_object(git, kind, data):
    oid = hash_of(kind, data)
    path = git / "objects" / oid[:2] / oid[2:]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(zlib.compress(_raw(kind, data)))
    return oid


def tree_bytes(entries):
    return b"".join(
        f"{mode} ".encode() + name + b"\0" + bytes.fromhex(oid) for mode, name, oid in entries
    )


def commit_bytes(tree, parents, message):
    lines = [f"tree {tree}"]
    lines += [f"parent {p}" for p in parents]
    lines.append("author A U Thor <author@example.com> 0 +0000")
    lines.append("committer A U Thor <author@example.com> 0 +0000")
    return ("\n".join(lines) + "\n\n" + message).encode()


@pytest.fixture
def repo_dir(tmp_path):
    git = tmp_path / ".git"
    (git / "objects").mkdir(parents=True)
    (git / "refs" / "heads").mkdir(parents=True)
    (git / "refs" / "tags").mkdir(parents=True)
    (git / "HEAD").write_text("ref: refs/heads/main\n")
    return tmp_path


@pytest.fixture
def populated(repo_dir):
    git = repo_dir / ".git"
    blob = write_object(git, "blob", b"hello world\n")
    tree = write_object(git, "tree", tree_bytes([("100644", b"README", blob)]))
    commit = write_object(git, "commit", commit_bytes(tree, [], "Initial commit\n\nDetails here\n"))
    (git / "refs" / "heads" / "main").write_text(commit + "\n")
    return repo_dir, blob, tree, commit


@pytest.mark.parametrize(
    "mode,kind",
    [
        (0o40000, EntryKind.TREE),
        (0o100644, EntryKind.BLOB),
        (0o100755, EntryKind.BLOB_EXECUTABLE),
        (0o120000, EntryKind.LINK),
        (0o160000, EntryKind.COMMIT),
        ("40000", EntryKind.TREE),
    ],
)
def test_entry_kind_from_mode(mode, kind):
    assert EntryKind.from_mode(mode) is kind


def test_entry_kind_debug_names():
    assert repr(EntryKind.from_mode(0o100644)) == "Blob"
    assert repr(EntryKind.from_mode(0o100755)) == "BlobExecutable"


def test_entry_kind_rejects_unknown_mode():
    with pytest.raises(GitError):
        EntryKind.from_mode(0o20000)


def test_parse_tree_round_trip():
    oid_a = "a" * 40
    oid_b = "b" * 40
    data = tree_bytes([("100644", b"file.txt", oid_a), ("40000", b"src", oid_b)])
    entries = parse_tree(data)
    assert entries == [
        TreeEntry(0o100644, b"file.txt", oid_a),
        TreeEntry(0o40000, b"src", oid_b),
    ]
    assert [e.kind for e in entries] == [EntryKind.BLOB, EntryKind.TREE]
    assert entries[0].filename == "file.txt"


def test_parse_tree_empty():
    assert parse_tree(b"") == []


def test_parse_tree_truncated_raises():
    data = tree_bytes([("100644", b"file.txt", "a" * 40)])
    with pytest.raises(GitError):
        parse_tree(data[:-3])


def test_parse_commit_fields():
    tree = "c" * 40
    parents = ["d" * 40, "e" * 40]
    commit = parse_commit("f" * 40, commit_bytes(tree, parents, "Subject line\n\nBody\n"))
    assert commit.tree == tree
    assert commit.parents == tuple(parents)
    assert commit.author.startswith("A U Thor")
    assert commit.message == "Subject line\n\nBody\n"
    assert commit.summary() == "Subject line"


def test_summary_joins_first_paragraph():
    commit = Commit(oid="0" * 40, tree="1" * 40, message="Fix the\nbug\n\nMore text\n")
    assert commit.summary() == "Fix the bug"


def test_parse_commit_without_tree_raises():
    with pytest.raises(GitError):
        parse_commit("0" * 40, b"author someone\n\nmessage")


def test_discover_from_subdirectory(populated):
    root, *_ = populated
    sub = root / "a" / "b"
    sub.mkdir(parents=True)
    repo = discover(sub)
    assert repo.git_dir == (root / ".git").resolve()
    assert repo.work_tree == root.resolve()


def test_find_reference_short_and_head(populated):
    root, _, _, commit = populated
    repo = discover(root)
    assert repo.find_reference("main") == commit
    assert repo.find_reference("refs/heads/main") == commit
    assert repo.find_reference("HEAD") == commit


def test_find_reference_packed(populated):
    root, _, _, commit = populated
    (root / ".git" / "packed-refs").write_text(
        f"# pack-refs with: peeled\n{commit} refs/heads/feature\n"
    )
    repo = discover(root)
    assert repo.find_reference("feature") == commit


def test_find_reference_missing(populated):
    root, *_ = populated
    with pytest.raises(ReferenceNotFound):
        discover(root).find_reference("nope")


def test_unborn_head_is_not_found(repo_dir):
    with pytest.raises(ReferenceNotFound):
        discover(repo_dir).find_reference("HEAD")


def test_peel_to_commit_through_annotated_tag(populated):
    root, _, tree, commit = populated
    git = root / ".git"
    tag_body = f"object {commit}\ntype commit\ntag v1\ntagger T <t@example.com> 0 +0000\n\nrelease\n"
    tag = write_object(git, "tag", tag_body.encode())
    (git / "refs" / "tags" / "v1").write_text(tag + "\n")
    peeled = discover(root).peel_to_commit("v1")
    assert peeled.oid == commit
    assert peeled.tree == tree
    assert peeled.summary() == "Initial commit"


def test_peel_to_commit_rejects_blob(populated):
    root, blob, *_ = populated
    (root / ".git" / "refs" / "heads" / "blobby").write_text(blob + "\n")
    with pytest.raises(GitError):
        discover(root).peel_to_commit("blobby")


def test_tree_entries_and_read_object(populated):
    root, blob, tree, commit = populated
    repo = discover(root)
    assert repo.read_object(blob) == ("blob", b"hello world\n")
    assert repo.tree_entries(tree) == [TreeEntry(0o100644, b"README", blob)]
    assert repo.commit(commit).tree == tree


def test_commit_on_blob_raises(populated):
    root, blob, *_ = populated
    with pytest.raises(GitError):
        discover(root).commit(blob)


def test_read_missing_object(populated):
    root, *_ = populated
    with pytest.raises(ObjectNotFound):
        discover(root).read_object("0" * 40)


def test_read_invalid_object_id(populated):
    root, *_ = populated
    with pytest.raises(GitError):
        discover(root).read_object("xyz")


def _entry_header(type_num, size):
    byte = (type_num << 4) | (size & 0x0F)
    size >>= 4
    out = bytearray()
    while size:
        out.append(byte | 0x80)
        byte = size & 0x7F
        size >>= 7
    out.append(byte)
    return bytes(out)


def _ofs_encoding(distance):
    out = [distance & 0x7F]
    distance >>= 7
    while distance:
        distance -= 1
        out.insert(0, 0x80 | (distance & 0x7F))
        distance >>= 7
    return bytes(out)


def write_pack(git, base_data, ofs_delta, ref_delta):
    base_oid = hash_of("blob", base_data)
    body = bytearray(b"PACK" + struct.pack(">II", 2, 3))
    offsets = {}
    offsets[base_oid] = len(body)
    body += _entry_header(3, len(base_data)) + zlib.compress(base_data)
    ofs_target, ofs_instructions = ofs_delta
    ofs_oid = hash_of("blob", ofs_target)
    offsets[ofs_oid] = len(body)
    body += _entry_header(6, len(ofs_instructions))
    body += _ofs_encoding(offsets[ofs_oid] - offsets[base_oid])
    body += zlib.compress(ofs_instructions)
    ref_target, ref_instructions = ref_delta
    ref_oid = hash_of("blob", ref_target)
    offsets[ref_oid] = len(body)
    body += _entry_header(7, len(ref_instructions)) + bytes.fromhex(base_oid)
    body += zlib.compress(ref_instructions)
    body += hashlib.sha1(bytes(body)).digest()

    names = sorted(bytes.fromhex(oid) for oid in offsets)
    fanout = [sum(1 for n in names if n[0] <= b) for b in range(256)]
    idx = bytearray(b"\xfftOc" + struct.pack(">I", 2))
    idx += struct.pack(">256I", *fanout)
    idx += b"".join(names)
    idx += b"\0\0\0\0" * len(names)
    idx += b"".join(struct.pack(">I", offsets[n.hex()]) for n in names)
    idx += b"\0" * 40

    pack_dir = git / "objects" / "pack"
    pack_dir.mkdir(parents=True, exist_ok=True)
    (pack_dir / "pack-test.pack").write_bytes(bytes(body))
    (pack_dir / "pack-test.idx").write_bytes(bytes(idx))
    return base_oid, ofs_oid, ref_oid


def test_packed_objects_with_deltas(repo_dir):
    git = repo_dir / ".git"
    base = b"hello world\n"
    ofs_target = b"hello there world\n"
    ofs_delta = b"\x0c\x12\x90\x06\x06there \x91\x06\x06"
    ref_target = base * 2
    ref_delta = b"\x0c\x18\x90\x0c\x90\x0c"
    base_oid, ofs_oid, ref_oid = write_pack(
        git, base, (ofs_target, ofs_delta), (ref_target, ref_delta)
    )
    repo = discover(repo_dir)
    assert repo.read_object(base_oid) == ("blob", base)
    assert repo.read_object(ofs_oid) == ("blob", ofs_target)
    assert repo.read_object(ref_oid) == ("blob", ref_target)


def test_packed_delta_with_wrong_base_size_raises(repo_dir):
    git = repo_dir / ".git"
    base = b"hello world\n"
    bad_delta = b"\x05\x12\x90\x06\x06there \x91\x06\x06"
    _, ofs_oid, _ = write_pack(
        git, base, (b"hello there world\n", bad_delta), (base * 2, b"\x0c\x18\x90\x0c\x90\x0c")
    )
    with pytest.raises(GitError):
        discover(repo_dir).read_object(ofs_oid)
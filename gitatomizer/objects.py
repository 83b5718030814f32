"""Reading references and objects straight from a Git repository directory."""

from __future__ import annotations

import bisect
import enum
import re
import struct
import zlib
from dataclasses import dataclass, field
from pathlib import Path

_HEX_OID = re.compile(r"[0-9a-f]{40}")
_MAX_DEPTH = 5
_PACK_TYPES = {1: "commit", 2: "tree", 3: "blob", 4: "tag"}


class GitError(Exception):
    """Raised when the repository cannot be read as expected."""


class ReferenceNotFound(GitError):
    """Raised when a reference name does not resolve."""


class ObjectNotFound(GitError):
    """Raised when an object id is not in the object database."""


class EntryKind(enum.Enum):
    """The kind of a tree entry, as derived from its mode."""

    TREE = "Tree"
    BLOB = "Blob"
    BLOB_EXECUTABLE = "BlobExecutable"
    LINK = "Link"
    COMMIT = "Commit"

    @classmethod
    def from_mode(cls, mode):
        """Return the kind for a numeric mode or its octal text."""
        if isinstance(mode, (bytes, str)):
            try:
                mode = int(mode, 8)
            except ValueError:
                raise GitError(f"invalid entry mode {mode!r}") from None
        kinds = {0o040000: cls.TREE, 0o120000: cls.LINK, 0o160000: cls.COMMIT}
        bits = mode & 0o170000
        if bits in kinds:
            return kinds[bits]
        if bits == 0o100000:
            return cls.BLOB_EXECUTABLE if mode & 0o111 else cls.BLOB
        raise GitError(f"invalid entry mode {mode:o}")

    def __repr__(self):
        return self.value


@dataclass(frozen=True)
class TreeEntry:
    """One entry of a tree object."""

    mode: int
    name: bytes
    oid: str

    @property
    def kind(self):
        return EntryKind.from_mode(self.mode)

    @property
    def filename(self):
        return self.name.decode("utf-8", errors="replace")


def parse_tree(data):
    """Parse the raw body of a tree object into its entries."""
    data = bytes(data)
    entries = []
    pos = 0
    while pos < len(data):
        space = data.find(b" ", pos)
        nul = data.find(b"\0", space + 1) if space != -1 else -1
        if space == -1 or nul == -1 or nul + 21 > len(data):
            raise GitError(f"malformed tree entry at offset {pos}")
        try:
            mode = int(data[pos:space], 8)
        except ValueError:
            raise GitError(f"malformed tree entry mode at offset {pos}") from None
        entries.append(TreeEntry(mode, data[space + 1 : nul], data[nul + 1 : nul + 21].hex()))
        pos = nul + 21
    return entries


@dataclass(frozen=True)
class Commit:
    """A parsed commit object."""

    oid: str
    tree: str
    parents: tuple = ()
    author: str = ""
    committer: str = ""
    message: str = ""

    def summary(self):
        """Return the first paragraph of the message with its lines joined by spaces."""
        paragraph = self.message.strip().split("\n\n", 1)[0]
        return " ".join(line.strip() for line in paragraph.splitlines() if line.strip())


def parse_commit(oid, data):
    """Parse the raw body of a commit object."""
    head, _, body = bytes(data).partition(b"\n\n")
    fields = {"tree": None, "author": "", "committer": ""}
    parents = []
    for line in head.split(b"\n"):
        key, _, value = line.partition(b" ")
        text = value.decode("utf-8", errors="replace")
        if key == b"parent":
            parents.append(text)
        elif key.decode("ascii", errors="replace") in fields:
            fields[key.decode()] = text
    if fields["tree"] is None:
        raise GitError(f"commit {oid} has no tree")
    return Commit(
        oid=oid,
        tree=fields["tree"],
        parents=tuple(parents),
        author=fields["author"],
        committer=fields["committer"],
        message=body.decode("utf-8", errors="replace"),
    )


def _varint(data, pos):
    value = shift = 0
    while True:
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        shift += 7
        if not byte & 0x80:
            return value, pos


def _apply_delta(base, delta):
    try:
        source_size, pos = _varint(delta, 0)
        target_size, pos = _varint(delta, pos)
        out = bytearray()
        while pos < len(delta):
            cmd = delta[pos]
            pos += 1
            if cmd & 0x80:
                offset = size = 0
                for bit in range(7):
                    if cmd & (1 << bit):
                        value = delta[pos] << (8 * (bit % 4 if bit < 4 else bit - 4))
                        if bit < 4:
                            offset |= value
                        else:
                            size |= value
                        pos += 1
                out += base[offset : offset + (size or 0x10000)]
            elif cmd:
                out += delta[pos : pos + cmd]
                pos += cmd
            else:
                raise GitError("invalid delta opcode 0")
    except IndexError:
        raise GitError("truncated delta") from None
    if source_size != len(base) or len(out) != target_size:
        raise GitError("delta size mismatch")
    return bytes(out)


class _Pack:
    """A pack file together with its version 2 index."""

    def __init__(self, idx_path):
        self._pack_path = idx_path.with_suffix(".pack")
        self._pack = None
        raw = idx_path.read_bytes()
        if raw[:8] != b"\xfftOc\x00\x00\x00\x02":
            raise GitError(f"unsupported pack index {idx_path}")
        count = struct.unpack_from(">I", raw, 8 + 255 * 4)[0]
        start = 8 + 256 * 4
        self._names = [raw[start + 20 * i : start + 20 * (i + 1)] for i in range(count)]
        self._offsets = start + 24 * count
        self._large = self._offsets + 4 * count
        self._raw = raw

    def offset_of(self, oid_bytes):
        index = bisect.bisect_left(self._names, oid_bytes)
        if index == len(self._names) or self._names[index] != oid_bytes:
            return None
        offset = struct.unpack_from(">I", self._raw, self._offsets + 4 * index)[0]
        if offset & 0x80000000:
            offset = struct.unpack_from(">Q", self._raw, self._large + 8 * (offset & 0x7FFFFFFF))[0]
        return offset

    def read(self, offset, repo):
        if self._pack is None:
            self._pack = self._pack_path.read_bytes()
        data = self._pack
        try:
            byte = data[offset]
            type_num, size, shift, pos = (byte >> 4) & 7, byte & 0x0F, 4, offset + 1
            while byte & 0x80:
                byte = data[pos]
                pos += 1
                size |= (byte & 0x7F) << shift
                shift += 7
            if type_num == 6:
                byte = data[pos]
                pos += 1
                distance = byte & 0x7F
                while byte & 0x80:
                    byte = data[pos]
                    pos += 1
                    distance = ((distance + 1) << 7) | (byte & 0x7F)
                kind, base = self.read(offset - distance, repo)
            elif type_num == 7:
                kind, base = repo.read_object(data[pos : pos + 20].hex())
                pos += 20
            elif type_num not in _PACK_TYPES:
                raise GitError(f"invalid pack entry type {type_num}")
            body = zlib.decompressobj().decompress(data[pos:])
        except (IndexError, zlib.error) as exc:
            raise GitError(f"corrupt pack entry at {offset}: {exc}") from None
        if type_num in _PACK_TYPES:
            if len(body) != size:
                raise GitError("pack entry size mismatch")
            return _PACK_TYPES[type_num], body
        return kind, _apply_delta(base, body)


@dataclass
class Repository:
    """A Git repository read directly from its git directory."""

    git_dir: Path
    work_tree: Path | None = None
    _packs: list | None = field(init=False, default=None, repr=False)

    def __post_init__(self):
        self.git_dir = Path(self.git_dir)

    @property
    def objects_dir(self):
        return self.git_dir / "objects"

    def _read_ref(self, full_name):
        path = self.git_dir / full_name
        if path.is_file():
            content = path.read_text(errors="replace").strip()
            if content.startswith("ref:"):
                return content[4:].strip()
            if _HEX_OID.fullmatch(content):
                return content
            raise GitError(f"malformed reference {full_name!r}")
        packed = self.git_dir / "packed-refs"
        if packed.is_file():
            for line in packed.read_text(errors="replace").splitlines():
                oid, _, name = line.partition(" ")
                if not line.startswith(("#", "^")) and name.strip() == full_name:
                    return oid.strip()
        return None

    def find_reference(self, name):
        """Resolve a short or full reference name to the object id it points at."""
        for prefix in ("", "refs/", "refs/tags/", "refs/heads/", "refs/remotes/"):
            target = self._read_ref(prefix + name)
            if target is None:
                continue
            for _ in range(_MAX_DEPTH):
                if _HEX_OID.fullmatch(target):
                    return target
                followed = self._read_ref(target)
                if followed is None:
                    raise ReferenceNotFound(f"reference {name!r} points to missing {target!r}")
                target = followed
            raise GitError(f"reference {name!r} is nested too deeply")
        raise ReferenceNotFound(f"reference {name!r} not found")

    def read_object(self, oid):
        """Return the (kind, body) pair of the object with the given id."""
        if not _HEX_OID.fullmatch(oid):
            raise GitError(f"invalid object id {oid!r}")
        loose = self.objects_dir / oid[:2] / oid[2:]
        if loose.is_file():
            try:
                raw = zlib.decompress(loose.read_bytes())
            except zlib.error as exc:
                raise GitError(f"corrupt object {oid}: {exc}") from None
            header, sep, body = raw.partition(b"\0")
            kind, _, size = header.decode("ascii", errors="replace").partition(" ")
            if not sep or not size.isdigit() or int(size) != len(body):
                raise GitError(f"corrupt object header in {oid}")
            return kind, body
        if self._packs is None:
            self._packs = [_Pack(p) for p in sorted(self.objects_dir.glob("pack/*.idx"))]
        for pack in self._packs:
            offset = pack.offset_of(bytes.fromhex(oid))
            if offset is not None:
                return pack.read(offset, self)
        raise ObjectNotFound(f"object {oid} not found")

    def commit(self, oid):
        """Return the commit with the given id."""
        kind, data = self.read_object(oid)
        if kind != "commit":
            raise GitError(f"object {oid} is a {kind}, not a commit")
        return parse_commit(oid, data)

    def peel_to_commit(self, name):
        """Resolve a reference and follow tags until a commit is reached."""
        oid = self.find_reference(name)
        for _ in range(_MAX_DEPTH * 10):
            kind, data = self.read_object(oid)
            if kind == "commit":
                return parse_commit(oid, data)
            if kind != "tag" or not data.startswith(b"object "):
                raise GitError(f"reference {name!r} points to a {kind}, not a commit")
            oid = data.split(b"\n", 1)[0][7:].decode("ascii", errors="replace").strip()
        raise GitError(f"tag chain from {name!r} is too long")

    def tree_entries(self, oid):
        """Return the entries of the tree with the given id."""
        kind, data = self.read_object(oid)
        if kind != "tree":
            raise GitError(f"object {oid} is a {kind}, not a tree")
        return parse_tree(data)


def _looks_like_git_dir(path):
    return (path / "HEAD").is_file() and (path / "objects").is_dir()


def discover(path="."):
    """Find the repository containing path, searching upwards."""
    start = Path(path).resolve()
    for directory in (start, *start.parents):
        dotgit = directory / ".git"
        if dotgit.is_file():
            content = dotgit.read_text(errors="replace").strip()
            if content.startswith("gitdir:"):
                dotgit = (directory / content[7:].strip()).resolve()
        if _looks_like_git_dir(dotgit):
            return Repository(dotgit, directory)
        if _looks_like_git_dir(directory):
            return Repository(directory, None)
    raise GitError(f"not a git repository (or any of the parent directories): {path}")
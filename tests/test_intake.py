"""Tests for hashing and scanning directories into a catalogue."""

import hashlib
import io
import os

import pytest

from filecatalog.catalogue.store import Catalogue
from filecatalog.intake.hasher import hash_file, hash_stream, is_supported
from filecatalog.intake.scanner import ScanCounters, iter_files, scan


def test_hash_file_md5(tmp_path):
    f = tmp_path / "test.txt"
    f.write_text("hello world")
    h = hash_file(f)
    assert len(h) == 32
    assert h == hashlib.md5(b"hello world").hexdigest()
    assert h == hash_file(f)  # deterministic


def test_hash_different_content(tmp_path):
    f1 = tmp_path / "a.txt"
    f2 = tmp_path / "b.txt"
    f1.write_text("hello")
    f2.write_text("world")
    assert hash_file(f1) != hash_file(f2)


def test_hash_other_algorithm(tmp_path):
    f = tmp_path / "a.bin"
    f.write_bytes(b"\x00" * 200_000)
    assert hash_file(f, "sha256") == hashlib.sha256(b"\x00" * 200_000).hexdigest()


def test_hash_stream_reads_everything():
    data = b"x" * 150_000 + b"tail"
    assert hash_stream(io.BytesIO(data)) == hashlib.md5(data).hexdigest()


def test_hash_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        hash_file(tmp_path / "missing")


def test_is_supported():
    assert is_supported("md5")
    assert is_supported("sha256")
    assert not is_supported("shake_128")
    assert not is_supported("nope")


def test_scan_identical_files(tmp_path):
    (tmp_path / "a.txt").write_text("same")
    (tmp_path / "b.txt").write_text("same")

    catalogue = Catalogue.empty()
    counters = scan(tmp_path, catalogue)

    assert len(catalogue) == 1
    [fp] = catalogue.fingerprints()
    assert [loc.name for loc in catalogue.lookup(fp)] == ["a.txt", "b.txt"]
    assert counters.unique == 1
    assert counters.duplicates == 1


def test_scan_distinct_files(tmp_path):
    sub = tmp_path / "sub"
    sub.mkdir()
    (tmp_path / "one.txt").write_text("1")
    (tmp_path / "two.txt").write_text("22")
    (sub / "three.txt").write_text("333")

    catalogue = Catalogue.empty()
    counters = scan(tmp_path, catalogue)

    assert len(catalogue) == 3
    assert all(len(catalogue.lookup(fp)) == 1 for fp in catalogue.fingerprints())
    assert counters.unique == 3
    assert counters.duplicates == 0


def test_scan_location_fields(tmp_path):
    sub = tmp_path / "docs"
    sub.mkdir()
    (sub / "readme.md").write_text("# Hello World")

    catalogue = Catalogue.empty()
    scan(tmp_path, catalogue)

    [fp] = catalogue.fingerprints()
    [loc] = catalogue.lookup(fp)
    assert loc.name == "readme.md"
    assert loc.directory == str(sub.resolve())
    assert loc.size == len("# Hello World")
    assert fp == hashlib.md5(b"# Hello World").hexdigest()


def test_scan_records_root(tmp_path):
    catalogue = Catalogue.empty()
    scan(tmp_path, catalogue)
    scan(tmp_path, catalogue)
    assert catalogue.paths == [str(tmp_path.resolve())]


def test_scan_against_existing_catalogue(tmp_path):
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (first / "photo.jpg").write_bytes(b"jpeg")
    (second / "copy.jpg").write_bytes(b"jpeg")
    (second / "other.jpg").write_bytes(b"png")

    catalogue = Catalogue.empty()
    scan(first, catalogue)
    counters = scan(second, catalogue)

    assert counters.unique == 1
    assert counters.duplicates == 1
    fp = hashlib.md5(b"jpeg").hexdigest()
    assert [loc.name for loc in catalogue.lookup(fp)] == ["photo.jpg", "copy.jpg"]


def test_scan_notifies_duplicates_with_occurrence(tmp_path):
    for name in ("a", "b", "c"):
        (tmp_path / name).write_text("dup")

    seen = []
    scan(tmp_path, Catalogue.empty(), on_duplicate=lambda loc, n: seen.append((loc.name, n)))
    assert seen == [("b", 2), ("c", 3)]


def test_scan_updates_passed_counters(tmp_path):
    (tmp_path / "a").write_text("a")
    counters = ScanCounters(unique=5, duplicates=1)
    result = scan(tmp_path, Catalogue.empty(), counters=counters)
    assert result is counters
    assert counters.unique == 6
    assert counters.files == 7


def test_scan_fails_fast(tmp_path):
    for i in range(1, 6):
        (tmp_path / f"f{i}.txt").write_text(f"content {i}")

    calls = []
    error = OSError("disk on fire")

    def hasher(path):
        calls.append(path.name)
        if len(calls) == 3:
            raise error
        return f"fp-{path.name}"

    catalogue = Catalogue.empty()
    with pytest.raises(OSError) as exc_info:
        scan(tmp_path, catalogue, hasher=hasher)

    assert exc_info.value is error
    assert calls == ["f1.txt", "f2.txt", "f3.txt"]
    # no rollback inside a walk
    assert sorted(catalogue.fingerprints()) == ["fp-f1.txt", "fp-f2.txt"]


def test_scan_missing_root(tmp_path):
    catalogue = Catalogue.empty()
    with pytest.raises(FileNotFoundError):
        scan(tmp_path / "nonexistent", catalogue)
    assert catalogue.paths == []


def test_scan_single_file_root(tmp_path):
    f = tmp_path / "lonely.txt"
    f.write_text("alone")
    catalogue = Catalogue.empty()
    counters = scan(f, catalogue)
    assert counters.unique == 1
    [fp] = catalogue.fingerprints()
    assert catalogue.lookup(fp)[0].name == "lonely.txt"


def test_scan_skips_symlinks(tmp_path):
    real = tmp_path / "real.txt"
    real.write_text("real")
    os.symlink(real, tmp_path / "link.txt")
    os.symlink(tmp_path, tmp_path / "loop")

    catalogue = Catalogue.empty()
    counters = scan(tmp_path, catalogue)
    assert counters.unique == 1
    assert counters.duplicates == 0


def test_scan_skip_names(tmp_path):
    git_dir = tmp_path / ".git"
    git_dir.mkdir()
    (git_dir / "config").write_text("git config")
    (tmp_path / ".DS_Store").write_bytes(b"\x00\x00")
    (tmp_path / "real.md").write_text("real file")

    files = list(iter_files(tmp_path, skip_names=[".git", ".DS_Store"]))
    assert [f.name for f in files] == ["real.md"]


def test_iter_files_depth_first_sorted(tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "a").mkdir()
    (tmp_path / "b" / "2.txt").write_text("")
    (tmp_path / "a" / "1.txt").write_text("")
    (tmp_path / "z.txt").write_text("")

    names = [f.relative_to(tmp_path).as_posix() for f in iter_files(tmp_path)]
    assert names == ["z.txt", "a/1.txt", "b/2.txt"]

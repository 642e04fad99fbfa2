"""Tests for the duplicate summary CSV."""

import csv
import os
import sys

import pytest

from filecatalog.catalogue.report import duplicate_rows, write_duplicate_report
from filecatalog.catalogue.store import Catalogue, FileLocation
from filecatalog.intake.scanner import scan


def _catalogue():
    c = Catalogue.empty()
    c.record("abc", FileLocation("f1", "/x", 10))
    c.record("abc", FileLocation("f2", "/x", 10))
    c.record("solo", FileLocation("only.txt", "/y", 5))
    return c


def test_duplicate_rows():
    rows = duplicate_rows(_catalogue())
    assert rows == [
        {"hash": "abc", "filepath": "/x/f1", "bytes": 10, "copies": 2},
        {"hash": "abc", "filepath": "/x/f2", "bytes": 10, "copies": 2},
    ]


def test_singletons_produce_no_rows():
    c = Catalogue.empty()
    c.record("solo", FileLocation("only.txt", "/y", 5))
    assert duplicate_rows(c) == []


def test_write_report_new_file(tmp_path):
    out = tmp_path / "duplicates.csv"
    assert write_duplicate_report(_catalogue(), out) == 2

    lines = out.read_text().splitlines()
    assert lines[0] == '"hash","filepath","bytes","copies"'
    assert lines[1] == '"abc","/x/f1","10","2"'

    with open(out, newline="") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 2
    assert {r["hash"] for r in rows} == {"abc"}
    assert {r["copies"] for r in rows} == {"2"}
    assert {r["bytes"] for r in rows} == {"10"}


def test_write_report_appends_without_header(tmp_path):
    out = tmp_path / "duplicates.csv"
    write_duplicate_report(_catalogue(), out)
    write_duplicate_report(_catalogue(), out)

    lines = out.read_text().splitlines()
    assert len(lines) == 5
    assert sum(1 for line in lines if line.startswith('"hash"')) == 1


def test_write_report_empty_catalogue(tmp_path):
    out = tmp_path / "duplicates.csv"
    assert write_duplicate_report(Catalogue.empty(), out) == 0
    assert out.read_text().splitlines() == ['"hash","filepath","bytes","copies"']


@pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts non-UTF-8 names")
def test_write_report_undecodable_names(tmp_path):
    tree = tmp_path / "tree"
    tree.mkdir()
    for raw in (b"a\xff.txt", b"b\xfe.txt"):
        (tree / os.fsdecode(raw)).write_text("same")

    catalogue = Catalogue.empty()
    scan(tree, catalogue, on_duplicate=None)
    out = tmp_path / "duplicates.csv"

    assert write_duplicate_report(catalogue, out) == 2
    assert write_duplicate_report(catalogue, out) == 2

    data = out.read_bytes()
    assert b"a\xff.txt" in data
    assert b"b\xfe.txt" in data
    assert data.count(b'"hash"') == 1

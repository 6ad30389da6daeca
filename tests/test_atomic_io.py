"""Tests for atomic file operations."""

import json
import os

import pytest
from automation.atomic_io import atomic_write_fn, atomic_write_json, atomic_write_text


def test_atomic_write_text(tmp_path):
    target = str(tmp_path / "out.txt")
    atomic_write_text(target, "hello")
    with open(target) as f:
        assert f.read() == "hello"


def test_atomic_write_json(tmp_path):
    target = str(tmp_path / "out.json")
    atomic_write_json(target, {"b": 1, "a": [1, 2]})
    with open(target) as f:
        assert json.load(f) == {"a": [1, 2], "b": 1}


def test_atomic_write_fn_returns_size(tmp_path):
    target = str(tmp_path / "out.dat")

    def write_callback(tmp):
        with open(tmp, "wb") as f:
            f.write(b"x" * 42)

    assert atomic_write_fn(target, write_callback) == 42
    assert os.path.getsize(target) == 42


def test_atomic_write_fn_creates_parent_dirs(tmp_path):
    target = str(tmp_path / "sub" / "dir" / "out.txt")
    atomic_write_text(target, "nested")
    assert os.path.isfile(target)


def test_failed_write_leaves_no_files(tmp_path):
    target = str(tmp_path / "out.dat")

    def boom(tmp):
        with open(tmp, "w") as f:
            f.write("partial")
        raise RuntimeError("disk full")

    with pytest.raises(RuntimeError):
        atomic_write_fn(target, boom)
    assert os.listdir(tmp_path) == []


def test_existing_target_untouched_on_failure(tmp_path):
    target = tmp_path / "out.txt"
    target.write_text("original")

    def boom(tmp):
        raise OSError("nope")

    with pytest.raises(OSError):
        atomic_write_fn(str(target), boom)
    assert target.read_text() == "original"

import io
import zipfile

import pytest

from imagepack.archive import build_archive, extract_all, is_archive_name, list_entries, pack, walk_files
from imagepack.errors import CorruptArchive


def test_pack_round_trip(tmp_path):
    files = {
        "hero/a-xl.webp": b"\x00\x01binary",
        "hero/b-sm.webp": b"second",
        "icons/nested/deep.bin": b"deep",
        "top.txt": b"",
    }
    for rel, data in files.items():
        path = tmp_path.joinpath(*rel.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    # empty directories contribute no entries
    (tmp_path / "empty").mkdir()

    assert list_entries(pack(str(tmp_path))) == files


def test_walk_is_depth_first_and_lexical(tmp_path):
    for rel in ["b/2.txt", "b/1.txt", "a.txt", "c/x/y.txt"]:
        path = tmp_path.joinpath(*rel.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x")
    assert [p for p, _ in walk_files(str(tmp_path))] == ["a.txt", "b/1.txt", "b/2.txt", "c/x/y.txt"]


def test_build_then_list_entries():
    entries = [("one.png", b"1"), ("dir/two.png", b"22")]
    assert list_entries(build_archive(entries)) == dict(entries)


def test_extract_all_keeps_structure_and_overwrites(tmp_path):
    (tmp_path / "a.png").write_bytes(b"old")
    archive = build_archive([("a.png", b"new"), ("sub/b.gif", b"gif")])

    members = extract_all(archive, str(tmp_path))

    assert sorted(members) == ["a.png", "sub/b.gif"]
    assert (tmp_path / "a.png").read_bytes() == b"new"
    assert (tmp_path / "sub" / "b.gif").read_bytes() == b"gif"


def test_extract_all_stays_inside_destination(tmp_path):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("../escape.png", b"x")
        zf.writestr("/abs/inner.png", b"y")
    dest = tmp_path / "dest"
    dest.mkdir()

    members = extract_all(buf.getvalue(), str(dest))

    assert members == ["escape.png", "abs/inner.png"]
    assert all((dest / m).is_file() for m in members)
    assert not (tmp_path / "escape.png").exists()
    assert (dest / "escape.png").exists()


def test_corrupt_archive_raises(tmp_path):
    with pytest.raises(CorruptArchive):
        extract_all(b"PK\x03\x04 this is not really a zip", str(tmp_path))
    with pytest.raises(CorruptArchive):
        list_entries(b"nope")


def test_is_archive_name():
    assert is_archive_name("bundle.zip")
    assert is_archive_name("BUNDLE.ZIP")
    assert not is_archive_name("photo.jpg")

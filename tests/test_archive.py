from __future__ import annotations

import os
import zipfile
from pathlib import Path

import pytest

from core.image_pdf.archive import ArchiveBuilder, derive_archive_path
from core.image_pdf.errors import EmptyInputError, ReadError, UnsupportedFormatError, WriteError


def test_entries_are_basenames_in_input_order(make_image, tmp_path: Path) -> None:
    nested = tmp_path / "deep" / "folder"
    images = [make_image("b.png", folder=nested), make_image("a.jpg")]
    output = tmp_path / "out.zip"
    done: list[int] = []
    count = ArchiveBuilder().build(images, output, done.append)
    assert count == 2
    assert done == [1, 2]
    with zipfile.ZipFile(output) as archive:
        assert archive.namelist() == ["b.png", "a.jpg"]
        assert archive.read("b.png") == images[0].read_bytes()
        assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in archive.infolist())


def test_entry_timestamp_follows_source(make_image, tmp_path: Path) -> None:
    stamp = 1_600_000_000
    image = make_image("stamped.png")
    os.utime(image, (stamp, stamp))
    output = tmp_path / "stamped.zip"
    ArchiveBuilder().build([image], output)
    with zipfile.ZipFile(output) as archive:
        info = archive.getinfo("stamped.png")
    expected = zipfile.ZipInfo.from_file(image).date_time
    assert info.date_time == expected


def test_duplicate_basenames_are_both_written(make_image, tmp_path: Path) -> None:
    first = make_image("same.png", folder=tmp_path / "one")
    second = make_image("same.png", (10, 10), folder=tmp_path / "two")
    output = tmp_path / "dupes.zip"
    with pytest.warns(UserWarning):
        ArchiveBuilder().build([first, second], output)
    with zipfile.ZipFile(output) as archive:
        assert [info.filename for info in archive.infolist()] == ["same.png", "same.png"]


def test_missing_source_is_read_error(make_image, tmp_path: Path) -> None:
    output = tmp_path / "missing.zip"
    with pytest.raises(ReadError) as info:
        ArchiveBuilder().build([make_image("a.png"), tmp_path / "gone.png"], output)
    assert "gone.png" in str(info.value)
    assert not output.exists()


def test_unsupported_extension_fails_before_writing(tmp_path: Path) -> None:
    source = tmp_path / "x.tiff"
    source.write_bytes(b"x")
    with pytest.raises(UnsupportedFormatError):
        ArchiveBuilder().build([source], tmp_path / "out.zip")
    assert not (tmp_path / "out.zip").exists()


def test_unwritable_destination_is_write_error(make_image, tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(WriteError):
        ArchiveBuilder().build([make_image("a.png")], blocker / "out.zip")


def test_empty_input(tmp_path: Path) -> None:
    with pytest.raises(EmptyInputError):
        ArchiveBuilder().build([], tmp_path / "out.zip")


def test_derive_archive_path() -> None:
    assert derive_archive_path(Path("/tmp/out/report.pdf")) == Path("/tmp/out/report.zip")
    assert derive_archive_path(Path("scan"), ".cbz") == Path("scan.cbz")

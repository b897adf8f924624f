import pytest

from lohigh.exceptions import FilesystemError
from lohigh.playlist import parse_playlist, read_playlist


def test_parse_skips_comments_and_blanks():
    text = "#EXTM3U\n\nintro.wav\n  # a comment\n  loop.wav  \r\noutro.wav\n"
    assert parse_playlist(text) == ["intro.wav", "loop.wav", "outro.wav"]


def test_parse_empty():
    assert parse_playlist("") == []
    assert parse_playlist("# only comments\n\n") == []


def test_read_playlist_keeps_order(tmp_path):
    playlist = tmp_path / "set.txt"
    playlist.write_text("c.wav\na.wav\nb.wav\n", encoding="utf-8")
    assert read_playlist(str(playlist)) == ["c.wav", "a.wav", "b.wav"]


def test_read_playlist_utf8_names(tmp_path):
    playlist = tmp_path / "set.m3u"
    playlist.write_text("café.wav\nnuit.wav\n", encoding="utf-8")
    assert read_playlist(str(playlist)) == ["café.wav", "nuit.wav"]


def test_missing_playlist(tmp_path):
    with pytest.raises(FilesystemError):
        read_playlist(str(tmp_path / "nope.txt"))


def test_invalid_encoding(tmp_path):
    playlist = tmp_path / "bad.txt"
    playlist.write_bytes(b"\xff\xfe\xfa.wav\n")
    with pytest.raises(FilesystemError):
        read_playlist(str(playlist))

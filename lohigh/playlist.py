"""
Playlist files: UTF-8 text, one path per line.

Blank lines and lines starting with '#' (M3U comments included) are ignored.
"""

from typing import List

from lohigh.exceptions import FilesystemError


def parse_playlist(text: str) -> List[str]:
    """Extract file paths from playlist text."""
    files = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        files.append(line)
    return files


def read_playlist(playlist_path: str) -> List[str]:
    """
    Read a playlist file.

    Args:
        playlist_path: Path to the playlist

    Returns:
        File paths in playlist order

    Raises:
        FilesystemError: If the file cannot be read or is not valid UTF-8
    """
    try:
        with open(playlist_path, "r", encoding="utf-8") as f:
            return parse_playlist(f.read())
    except (OSError, UnicodeDecodeError) as e:
        raise FilesystemError(
            f"could not read playlist file '{playlist_path}'",
            context={"error": str(e)},
        ) from e

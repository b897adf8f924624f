import os
import random

from lohigh import ambient


def make_assets(directory, names):
    for name in names:
        (directory / name).write_bytes(b"RIFF")
    return str(directory)


def test_default_choice(tmp_path):
    assert ambient.select_ambient_file(asset_dir=str(tmp_path)) == os.path.join(str(tmp_path), "ambient.wav")


def test_named_choice_with_and_without_extension(tmp_path):
    assets = make_assets(tmp_path, ["ambient.wav", "ambient_rain.wav"])
    expected = os.path.join(assets, "ambient_rain.wav")
    assert ambient.select_ambient_file("ambient_rain", asset_dir=assets) == expected
    assert ambient.select_ambient_file("ambient_rain.wav", asset_dir=assets) == expected


def test_custom_path(tmp_path):
    assets = make_assets(tmp_path, ["ambient.wav"])
    custom = tmp_path / "mine.wav"
    custom.write_bytes(b"RIFF")
    assert ambient.select_ambient_file(str(custom), asset_dir=assets) == str(custom)


def test_unknown_falls_back_to_default(tmp_path):
    assets = make_assets(tmp_path, ["ambient.wav"])
    assert ambient.select_ambient_file("nonexistent", asset_dir=assets) == os.path.join(assets, "ambient.wav")


def test_random_picks_existing_track(tmp_path):
    assets = make_assets(tmp_path, ["ambient_cafe.wav", "ambient_night.wav"])
    picks = {ambient.select_ambient_file("random", asset_dir=assets, rng=random.Random(seed))
             for seed in range(20)}
    assert picks <= {os.path.join(assets, "ambient_cafe.wav"), os.path.join(assets, "ambient_night.wav")}
    assert picks


def test_random_without_tracks(tmp_path):
    assert ambient.select_ambient_file("random", asset_dir=str(tmp_path)) == os.path.join(str(tmp_path), "ambient.wav")


def test_asset_dir_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("LOHIGH_ASSET_DIR", str(tmp_path))
    assert ambient.get_asset_dir() == str(tmp_path)


def test_list_ambient_files(tmp_path):
    assets = make_assets(tmp_path, ["ambient.wav", "ambient_vinyl.wav", "other.wav"])
    assert ambient.list_ambient_files(assets) == ["ambient", "ambient_vinyl"]

import json
import sys
from pathlib import Path

import pytest

from animset_editor.cli import main as cli_main
from animset_editor.core import anim
from conftest import snapshot


def _run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["animset-editor", *map(str, argv)], raising=False)
    cli_main.main()


def test_cli_info(anim_tree: Path, monkeypatch):
    before = snapshot(anim_tree)
    _run(monkeypatch, "info", anim_tree / "anim" / "main_000.anim")
    _run(monkeypatch, "info", anim_tree / "SD" / "mainSD.anim", "--sprite", "2")
    assert snapshot(anim_tree) == before


def test_cli_set_ref_saves(mainsd_file: Path, monkeypatch):
    _run(monkeypatch, "set-ref", mainsd_file, 1, 0)
    assert anim.MainSd.read(mainsd_file.read_bytes()).values_or_ref(1) == anim.Ref(0)


def test_cli_dry_run_writes_nothing(anim_tree: Path, mainsd_file: Path, monkeypatch):
    before = snapshot(anim_tree)
    _run(monkeypatch, "set-ref", mainsd_file, 1, 0, "--dry-run")
    _run(monkeypatch, "set-values", mainsd_file, 0, "--variant", "hd", "--width", 3, "--dry-run")
    assert snapshot(anim_tree) == before


def test_cli_clear_ref(mainsd_file: Path, monkeypatch):
    _run(monkeypatch, "clear-ref", mainsd_file, 2)
    assert anim.MainSd.read(mainsd_file.read_bytes()).values_or_ref(2) == anim.Values(
        anim.SpriteValues(0xFFFF, 0, 0)
    )


def test_cli_set_values_hd(anim_tree: Path, monkeypatch):
    _run(
        monkeypatch,
        "set-values",
        anim_tree / "anim" / "main_001.anim",
        1,
        "--variant",
        "hd",
        "--width",
        10,
        "--unknown",
        "0x12",
    )
    saved = anim.Anim.read((anim_tree / "anim" / "main_001.anim").read_bytes())
    assert saved.sprite_values() == anim.SpriteValues(0x12, 10, 24)
    assert saved.scale == 4


def test_cli_set_textures(anim_tree: Path, mainsd_file: Path, monkeypatch, tmp_path: Path):
    (tmp_path / "body.raw").write_bytes(bytes([9]) * 4)
    manifest = tmp_path / "manifest.json"
    manifest.write_text(
        json.dumps(
            {
                "frames": [{"tex_x": 0, "tex_y": 0, "x_off": 0, "y_off": 0, "width": 2, "height": 2}],
                "textures": [{"file": "body.raw", "width": 2, "height": 2}],
            }
        ),
        encoding="utf-8",
    )
    _run(monkeypatch, "set-textures", mainsd_file, 0, "--manifest", manifest)
    mainsd = anim.MainSd.read(mainsd_file.read_bytes())
    assert mainsd.frames(0) == [anim.Frame(0, 0, 0, 0, 2, 2, 0)]
    assert mainsd.texture(0, 0).getpixel((1, 1)) == (9, 9, 9, 255)


def test_cli_export_frames(mainsd_file: Path, monkeypatch, tmp_path: Path):
    out = tmp_path / "frames"
    _run(monkeypatch, "export-frames", mainsd_file, 1, "--out", out)
    assert (out / "body_000.png").is_file()
    assert (out / "body_001.png").is_file()
    assert (out / "frame_info.txt").is_file()


def test_cli_failure_exits_nonzero(anim_tree: Path, mainsd_file: Path, monkeypatch):
    before = snapshot(anim_tree)
    with pytest.raises(SystemExit) as excinfo:
        # Sprite 2 is itself a reference
        _run(monkeypatch, "set-ref", mainsd_file, 1, 2)
    assert excinfo.value.code == 1
    assert snapshot(anim_tree) == before

    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, "set-values", mainsd_file, 2, "--width", 5)
    assert excinfo.value.code == 1

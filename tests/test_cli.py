import json

import pytest
from PIL import Image

from ekman.cli import main


@pytest.fixture
def scene(tmp_path):
    bg = Image.new("RGB", (6, 5), (0, 0, 0))
    bg.paste(Image.new("RGB", (2, 2), (200, 10, 10)), (3, 2))
    bg.save(tmp_path / "bg.png")

    Image.new("RGB", (2, 2), (200, 10, 10)).save(tmp_path / "red.png")
    Image.new("RGB", (8, 2), (0, 0, 0)).save(tmp_path / "wide.png")

    # red pixel surrounded by white: only matches with white as transparent
    framed = Image.new("RGB", (3, 3), (255, 255, 255))
    framed.putpixel((1, 1), (200, 10, 10))
    framed.save(tmp_path / "framed.png")
    return tmp_path


def test_text_output(scene, capsys):
    rc = main(["-b", str(scene / "bg.png"), "-o", str(scene / "red.png")])
    out = capsys.readouterr().out
    assert rc == 0
    assert f"Overlay: {scene / 'red.png'}" in out
    assert "Match 1: Position: (3, 2), Score: 0.00" in out


def test_json_output_with_glob_and_failures(scene, capsys):
    rc = main([
        "-b", str(scene / "bg.png"),
        "-o", str(scene / "[rw]*.png"), str(scene / "missing.png"),
        "--print-format", "json",
        "--workers", "2",
    ])
    doc = json.loads(capsys.readouterr().out)
    assert rc == 0
    names = [o["image_info"]["filename"] for o in doc["overlays"]]
    assert names == ["red.png", "wide.png", "missing.png"]
    red, wide, missing = doc["overlays"]
    assert red["matches"][0]["x"] == 3 and red["matches"][0]["y"] == 2
    assert wide["error"].startswith("OverlayTooLarge")
    assert "not found" in missing["error"]


def test_white_transparent(scene, capsys):
    args = ["-b", str(scene / "bg.png"), "-o", str(scene / "framed.png"), "--print-format", "json"]

    main(args + ["-w"])
    (m,) = json.loads(capsys.readouterr().out)["overlays"][0]["matches"]
    assert m["score"] == 0.0
    assert m["compared_pixels"] == 1
    assert (m["x"], m["y"]) == (2, 1)

    main(args)
    (m,) = json.loads(capsys.readouterr().out)["overlays"][0]["matches"]
    assert m["compared_pixels"] == 9
    assert m["score"] > 0


def test_top_k_and_sort(scene, capsys):
    main([
        "-b", str(scene / "bg.png"),
        "-o", str(scene / "wide.png"), str(scene / "red.png"),
        "--top-k", "3", "--sort", "score",
    ])
    out = capsys.readouterr().out
    assert out.index("red.png") < out.index("wide.png")
    assert "Match 3:" in out


def test_config_file_and_override(scene, capsys):
    cfg = scene / "ekman.yaml"
    cfg.write_text("format: json\ntop_k: 2\n")
    main(["-b", str(scene / "bg.png"), "-o", str(scene / "red.png"), "--config", str(cfg), "--top-k", "1"])
    doc = json.loads(capsys.readouterr().out)
    assert doc["top_k"] == 1
    assert len(doc["overlays"][0]["matches"]) == 1


def test_missing_background_is_fatal(scene, capsys):
    rc = main(["-b", str(scene / "nope.png"), "-o", str(scene / "red.png")])
    captured = capsys.readouterr()
    assert rc == 2
    assert captured.out == ""
    assert "nope.png" in captured.err


def test_bad_transparent_color(scene):
    with pytest.raises(SystemExit) as exc:
        main(["-b", str(scene / "bg.png"), "-o", str(scene / "red.png"), "--transparent", "1,2"])
    assert exc.value.code == 2


def test_debug_image(scene, capsys):
    out = scene / "debug" / "matches.png"
    rc = main(["-b", str(scene / "bg.png"), "-o", str(scene / "red.png"), "--debug-image", str(out)])
    assert rc == 0
    with Image.open(out) as im:
        assert im.size == (6, 5)


def test_unparseable_config_exits_2(scene, capsys):
    cfg = scene / "broken.yaml"
    cfg.write_text("top_k: [1\n")
    rc = main(["-b", str(scene / "bg.png"), "-o", str(scene / "red.png"), "--config", str(cfg)])
    captured = capsys.readouterr()
    assert rc == 2
    assert captured.out == ""
    assert "cannot parse config" in captured.err


def test_min_match_fraction_flag(scene, capsys):
    rc = main([
        "-b", str(scene / "bg.png"),
        "-o", str(scene / "red.png"),
        "--min-match-fraction", "0.5",
        "--print-format", "json",
    ])
    doc = json.loads(capsys.readouterr().out)
    assert rc == 0
    assert doc["min_match_fraction"] == 0.5
    best, *rest = doc["overlays"][0]["matches"]
    assert (best["x"], best["y"]) == (3, 2)
    # half-overlapping placements share two red pixels
    assert len(rest) == 4

"""Tests for the RenderWare dump CLI."""
import json
import os
import struct
import subprocess
import sys
import tempfile
import pytest

TOOLS_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, TOOLS_DIR)

from rw_extractor.dump_rw import main

VERSION = 0x1803FFFF


def chunk(tag, body, version=VERSION):
    return struct.pack("<III", tag, len(body), version) + body


def create_test_dff():
    """Create a one-frame, one-triangle model."""
    frame = struct.pack("<9f3fiI", 1, 0, 0, 0, 1, 0, 0, 0, 1, 0.0, 0.0, 0.0, -1, 0)
    frame_list = chunk(0x0E, chunk(0x01, struct.pack("<I", 1) + frame)
                       + chunk(0x03, chunk(0x0253F2FE, b"root")))

    geometry_struct = struct.pack("<Iiii", 0x02, 1, 3, 1)
    geometry_struct += struct.pack("<4H", 1, 0, 0, 2)
    geometry_struct += struct.pack("<4fII", 0.0, 0.0, 0.0, 1.0, 1, 0)
    geometry_struct += struct.pack("<9f", 0, 0, 0, 1, 0, 0, 0, 1, 0)
    material_list = chunk(0x08, chunk(0x01, struct.pack("<I", 0)))
    geometry = chunk(0x0F, chunk(0x01, geometry_struct) + material_list)
    geometry_list = chunk(0x1A, chunk(0x01, struct.pack("<I", 1)) + geometry)

    atomic = chunk(0x14, chunk(0x01, struct.pack("<iiii", 0, 0, 5, 0)))
    clump_struct = chunk(0x01, struct.pack("<III", 1, 0, 0))
    return chunk(0x10, clump_struct + frame_list + geometry_list + atomic)


def create_test_txd():
    record = struct.pack("<IBBH", 8, 6, 0x11, 0)
    record += b"brick".ljust(32, b"\x00") + b"".ljust(32, b"\x00")
    record += struct.pack("<IIHHBBBBI", 0x0500, 0, 16, 16, 32, 1, 4, 0, 0)
    native = chunk(0x15, chunk(0x01, record))
    return chunk(0x16, chunk(0x01, struct.pack("<HH", 1, 2)) + native)


def run_cli(*args):
    return subprocess.run(
        [sys.executable, "-m", "rw_extractor.dump_rw", *args],
        capture_output=True,
        text=True,
        cwd=TOOLS_DIR,
    )


def write_file(directory, name, data):
    path = os.path.join(directory, name)
    with open(path, "wb") as f:
        f.write(data)
    return path


def test_cli_help():
    """CLI should show help."""
    result = run_cli("--help")
    assert result.returncode == 0
    assert "usage" in result.stdout.lower()


def test_cli_summarize_model():
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = write_file(tmpdir, "player.dff", create_test_dff())
        result = run_cli(input_path)

        assert result.returncode == 0
        assert "Clump" in result.stdout
        assert "Frames = 1" in result.stdout
        assert "root" in result.stdout
        assert "vertices=3" in result.stdout


def test_cli_summarize_txd():
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = write_file(tmpdir, "world.txd", create_test_txd())
        result = run_cli(input_path)

        assert result.returncode == 0
        assert "brick" in result.stdout
        assert "16x16" in result.stdout


def test_cli_json_to_directory():
    """CLI should write one JSON file per decoded asset."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_dir = os.path.join(tmpdir, "assets")
        os.makedirs(input_dir)
        write_file(input_dir, "player.dff", create_test_dff())
        write_file(input_dir, "world.txd", create_test_txd())
        output_dir = os.path.join(tmpdir, "output")

        result = run_cli(input_dir, "--json", "-o", output_dir)

        assert result.returncode == 0
        assert "Decoded 2/2 files" in result.stdout
        with open(os.path.join(output_dir, "player.json")) as f:
            model = json.load(f)
        assert model["frames"][0]["name"] == "root"
        assert model["geometries"][0]["vertex_count"] == 3
        with open(os.path.join(output_dir, "world.json")) as f:
            txd = json.load(f)
        assert txd["textures"][0]["name"] == "brick"


def test_cli_tree():
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = write_file(tmpdir, "player.dff", create_test_dff())
        result = run_cli(input_path, "--tree")

        assert result.returncode == 0
        assert "CLUMP" in result.stdout
        assert "  GEOMETRY_LIST" in result.stdout
        assert "NODE_NAME" in result.stdout


def test_cli_corrupt_file_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = write_file(tmpdir, "broken.dff", create_test_dff()[:40])
        result = run_cli(input_path)

        assert result.returncode == 1
        assert "Failed" in result.stderr


def test_cli_wrong_root_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = write_file(tmpdir, "model.dff", create_test_txd())
        result = run_cli(input_path)

        assert result.returncode == 1
        assert "Expected CLUMP" in result.stderr


def test_main_missing_input(capsys):
    assert main(["/nonexistent/path.dff"]) == 1
    assert "Input not found" in capsys.readouterr().err


def test_main_unsupported_extension(capsys):
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = write_file(tmpdir, "notes.txt", b"hello")
        assert main([input_path]) == 1
    assert "unsupported extension" in capsys.readouterr().err


def test_main_empty_directory(capsys):
    with tempfile.TemporaryDirectory() as tmpdir:
        assert main([tmpdir]) == 1
    assert "No .dff or .txd files found" in capsys.readouterr().err


@pytest.mark.parametrize("name,builder", [
    ("a.dff", create_test_dff),
    ("b.txd", create_test_txd),
])
def test_main_decodes(capsys, name, builder):
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = write_file(tmpdir, name, builder())
        assert main([input_path]) == 0
    assert f"File: {input_path}" in capsys.readouterr().out


def test_main_output_dir_implies_json(capsys):
    """Passing -o alone should still write JSON files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = write_file(tmpdir, "player.dff", create_test_dff())
        output_dir = os.path.join(tmpdir, "output")

        assert main([input_path, "-o", output_dir]) == 0
        with open(os.path.join(output_dir, "player.json")) as f:
            model = json.load(f)
    assert model["atomic_count"] == 1
    assert "File:" not in capsys.readouterr().out

from __future__ import annotations

from pathlib import Path

import numpy as np
import yaml
from typer.testing import CliRunner

from pcdkit.cli.main import app
from pcdkit.core.header import DataEncoding
from pcdkit.core.points import PointXYZ, PointXYZRGBA
from pcdkit.core.reader import read_header, read_pcd


def _write_ascii_pcd(path: Path) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write("# .PCD v0.7 - Point Cloud Data file format\n")
        f.write("VERSION 0.7\nFIELDS x y z\nSIZE 4 4 4\nTYPE F F F\nCOUNT 1 1 1\n")
        f.write("WIDTH 5\nHEIGHT 1\nVIEWPOINT 0 0 0 1 0 0 0\nPOINTS 5\nDATA ascii\n")
        for row in ("0 0 0", "1 0 0", "0 1 0", "0 0 1", "1 1 1"):
            f.write(row + "\n")


def test_info_prints_header_and_records(tmp_path: Path) -> None:
    path = tmp_path / "readme.pcd"
    _write_ascii_pcd(path)

    runner = CliRunner()
    result = runner.invoke(app, ["info", str(path), "--head", "2"])

    assert result.exit_code == 0, result.stdout
    assert "FIELDS x y z" in result.stdout
    assert "POINTS 5" in result.stdout
    assert "[0] x=0.0 y=0.0 z=0.0" in result.stdout
    assert "[1] x=1.0 y=0.0 z=0.0" in result.stdout
    assert "[2]" not in result.stdout


def test_convert_flip_y_to_binary(tmp_path: Path) -> None:
    source = tmp_path / "readme.pcd"
    _write_ascii_pcd(source)
    out_path = tmp_path / "out" / "flipped.pcd"

    runner = CliRunner()
    result = runner.invoke(app, ["convert", str(source), str(out_path), "--flip-y", "--log-level", "DEBUG"])

    assert result.exit_code == 0, result.stdout
    assert read_header(out_path).encoding is DataEncoding.BINARY
    xyz = read_pcd(out_path, PointXYZ).xyz()
    np.testing.assert_array_equal(xyz[:, 1], np.array([0, 0, -1, 0, -1], dtype=np.float32))


def test_convert_rejects_compressed_output(tmp_path: Path) -> None:
    source = tmp_path / "readme.pcd"
    _write_ascii_pcd(source)
    out_path = tmp_path / "never.pcd"

    runner = CliRunner()
    result = runner.invoke(app, ["convert", str(source), str(out_path), "--encoding", "binary_compressed"])

    assert result.exit_code == 1
    assert not out_path.exists()


def test_convert_rejects_unknown_shape(tmp_path: Path) -> None:
    source = tmp_path / "readme.pcd"
    _write_ascii_pcd(source)

    runner = CliRunner()
    result = runner.invoke(app, ["convert", str(source), str(tmp_path / "o.pcd"), "--shape", "mesh"])
    assert result.exit_code != 0


def test_run_with_overrides(tmp_path: Path) -> None:
    source = tmp_path / "readme.pcd"
    _write_ascii_pcd(source)
    config = {
        "input": {"path": source.name, "shape": "xyz"},
        "output": {"path": "from_config.pcd", "encoding": "binary"},
        "transform": {"scale": [2.0, 1.0, 1.0]},
    }
    cfg_path = tmp_path / "job.yaml"
    with open(cfg_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f)

    override_path = tmp_path / "custom.pcd"
    runner = CliRunner()
    result = runner.invoke(app, ["run", str(cfg_path), "--output", str(override_path), "--encoding", "ascii"])

    assert result.exit_code == 0, result.stdout
    assert override_path.exists()
    assert read_header(override_path).encoding is DataEncoding.ASCII
    xyz = read_pcd(override_path, PointXYZ).xyz()
    np.testing.assert_array_equal(xyz[:, 0], np.array([0, 2, 0, 0, 2], dtype=np.float32))


def test_generate_command(tmp_path: Path) -> None:
    output = tmp_path / "demo.pcd"
    runner = CliRunner()
    result = runner.invoke(app, ["generate", str(output), "--preset", "rgba", "--count", "12", "--encoding", "binary"])
    assert result.exit_code == 0, result.stdout

    header = read_header(output)
    assert header.fields == ["x", "y", "z", "rgba"]
    assert header.points == 12
    cloud = read_pcd(output, PointXYZRGBA)
    assert all(p.color[3] == 255 for p in cloud)


def test_generate_organized_grid(tmp_path: Path) -> None:
    output = tmp_path / "grid.pcd"
    runner = CliRunner()
    result = runner.invoke(app, ["generate", str(output), "--preset", "grid", "--count", "10"])
    assert result.exit_code == 0, result.stdout
    header = read_header(output)
    assert (header.width, header.height, header.points) == (4, 3, 12)
    assert header.is_organized


def test_generate_unknown_preset(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["generate", str(tmp_path / "x.pcd"), "--preset", "teapot"])
    assert result.exit_code != 0

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer

from ..config import load_config
from ..core.errors import PCDError
from ..core.exporter import write_pcd
from ..core.header_codec import serialize_header
from ..core.reader import read_header, read_pcd, read_pcd_records
from ..core.transform import TransformOptions
from ..examples.synthetic import PRESETS, generate_cloud
from ..runtime.builders import build_shape
from ..sdk.run import convert_from_config

app = typer.Typer(help="PCD v0.7 point cloud utilities")


def _configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format="[%(levelname)s] %(message)s")
    logging.getLogger("pcdkit").setLevel(numeric)


def _cli_transform(
    left_to_right: bool,
    flip_y: bool,
    scale_x: float,
    scale_y: float,
    scale_z: float,
) -> Optional[TransformOptions]:
    if left_to_right and flip_y:
        raise typer.BadParameter("--left-to-right and --flip-y are mutually exclusive.", param_hint="--flip-y")
    if left_to_right:
        return TransformOptions.left_to_right_handed()
    if flip_y:
        scale_y = -scale_y
    options = TransformOptions(scale_x=scale_x, scale_y=scale_y, scale_z=scale_z)
    return options if options.needs_transformation else None


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


@app.command("info")
def info(
    path: Path = typer.Argument(..., exists=True, readable=True, dir_okay=False, help="PCD file to inspect."),
    head: int = typer.Option(5, "--head", "-n", help="Number of sample records to print (0 for none)."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Print the header of a PCD file and its first records."""

    _configure_logging(log_level)
    try:
        header = read_header(path)
        typer.echo(serialize_header(header).rstrip("\n"))
        typer.echo(f"record size: {header.record_size} bytes, organized: {header.is_organized}")
        if head > 0:
            records = read_pcd_records(path)
            for i, record in enumerate(records[:head]):
                values = " ".join(f"{k}={v}" for k, v in record.items())
                typer.echo(f"[{i}] {values}")
    except PCDError as exc:
        _fail(exc)


@app.command("convert")
def convert(
    source: Path = typer.Argument(..., exists=True, readable=True, dir_okay=False, help="Input PCD file."),
    output: Path = typer.Argument(..., help="Output PCD file."),
    encoding: str = typer.Option("binary", "--encoding", "-e", help="Output encoding: ascii or binary."),
    shape: str = typer.Option("xyz", "--shape", "-s", help="Point shape: xyz, xyzi, xyzl, xyzrgba, normal."),
    left_to_right: bool = typer.Option(False, "--left-to-right", help="Convert left-handed input to right-handed."),
    flip_y: bool = typer.Option(False, "--flip-y", help="Negate the Y axis while reading."),
    scale_x: float = typer.Option(1.0, "--scale-x", help="Scale applied to x."),
    scale_y: float = typer.Option(1.0, "--scale-y", help="Scale applied to y."),
    scale_z: float = typer.Option(1.0, "--scale-z", help="Scale applied to z."),
    strict: bool = typer.Option(False, "--strict", help="Fail on malformed ASCII records instead of skipping."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Re-encode a PCD file, optionally transforming coordinates."""

    _configure_logging(log_level)
    try:
        point_shape = build_shape(shape)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--shape") from None
    transform = _cli_transform(left_to_right, flip_y, scale_x, scale_y, scale_z)

    try:
        cloud = read_pcd(source, point_shape, transform, strict=strict)
        out = output.resolve()
        out.parent.mkdir(parents=True, exist_ok=True)
        header = write_pcd(out, cloud, point_shape, encoding)
    except PCDError as exc:
        _fail(exc)
    typer.echo(f"Converted {header.points} points ({header.encoding.value}) → {out}")


@app.command("run")
def run(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML configuration file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Override output path."),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help="Override output encoding."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Run a conversion job specified by a YAML config."""

    _configure_logging(log_level)
    try:
        cfg = load_config(config)
        result = convert_from_config(cfg, output=output, encoding=encoding)
    except (PCDError, ValueError) as exc:
        _fail(exc)
    typer.echo(f"Converted {result.points} points ({result.header.encoding.value}) → {result.output_path}")


@app.command("generate")
def generate(
    output: Path = typer.Argument(..., help="Output PCD path."),
    preset: str = typer.Option("helix", "--preset", help=f"Synthetic cloud preset ({', '.join(PRESETS)})."),
    count: int = typer.Option(100, "--count", help="Number of points (grid rounds up to a full grid)."),
    encoding: str = typer.Option("ascii", "--encoding", "-e", help="Output encoding: ascii or binary."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Write a synthetic point cloud useful for demos and tests."""

    _configure_logging(log_level)
    if count < 0:
        raise typer.BadParameter("count must be non-negative.", param_hint="--count")
    try:
        cloud = generate_cloud(preset=preset, count=count)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--preset") from None
    out = output.resolve()
    out.parent.mkdir(parents=True, exist_ok=True)
    try:
        header = write_pcd(out, cloud, encoding=encoding)
    except PCDError as exc:
        _fail(exc)
    typer.echo(f"Wrote {header.points} points ({header.width}x{header.height}) → {out}")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()

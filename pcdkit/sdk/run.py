from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..config import ConvertConfig, load_config
from ..core.header import Header
from ..core.reader import read_pcd
from ..runtime.builders import build_shape, build_transform, build_writer


@dataclass(frozen=True)
class ConvertResult:
    """Summary of a conversion driven by a configuration file."""

    points: int
    header: Header
    output_path: Path
    config: ConvertConfig


def convert_from_config(
    config: Union[str, Path, ConvertConfig],
    *,
    output: Optional[Path] = None,
    encoding: Optional[str] = None,
) -> ConvertResult:
    """Read, optionally transform, and re-write a PCD file described by a config.

    Parameters
    ----------
    config:
        Path to a YAML file or a pre-loaded :class:`~pcdkit.config.schema.ConvertConfig`.
    output:
        Optional override for the output path.
    encoding:
        Optional override for the output encoding (``ascii`` or ``binary``).

    Returns
    -------
    ConvertResult
        Point count and header written, the resolved output path, and the resolved
        configuration object used for the run.
    """

    cfg = load_config(config) if not isinstance(config, ConvertConfig) else config.model_copy(deep=True)

    if output is not None:
        cfg.output.path = Path(output).resolve()
    if encoding is not None:
        cfg.output = cfg.output.model_validate({"path": cfg.output.path, "encoding": encoding})

    shape = build_shape(cfg.input.shape)
    transform = build_transform(cfg.transform)
    cloud = read_pcd(cfg.input.path, shape, transform, strict=cfg.input.strict)

    writer = build_writer(cfg, shape)
    header = writer.write(cloud)
    return ConvertResult(points=header.points, header=header, output_path=Path(cfg.output.path), config=cfg)

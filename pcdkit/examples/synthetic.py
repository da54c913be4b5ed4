from __future__ import annotations

from typing import Tuple

import numpy as np

from ..core.pointcloud import PointCloud
from ..core.points import PointNormal, PointXYZ, PointXYZI, PointXYZRGBA
from ..core.schema import shape_of

PRESETS = ("helix", "rgba", "intensity", "grid", "sphere")


def _helix(count: int, turns: float = 3.0, radius: float = 1.0, pitch: float = 0.5) -> np.ndarray:
    t = np.linspace(0.0, 2.0 * np.pi * turns, max(count, 1), dtype=np.float64)[:count]
    return np.column_stack([radius * np.cos(t), radius * np.sin(t), pitch * t / (2.0 * np.pi)]).astype(np.float32)


def _grid_dims(count: int) -> Tuple[int, int]:
    width = max(int(np.ceil(np.sqrt(count))), 1)
    height = max(int(np.ceil(count / width)), 1)
    return width, height


def _sphere(count: int, radius: float = 1.0) -> Tuple[np.ndarray, np.ndarray]:
    # Fibonacci lattice: roughly uniform directions without randomness
    i = np.arange(count, dtype=np.float64) + 0.5
    phi = np.arccos(1.0 - 2.0 * i / max(count, 1))
    theta = np.pi * (1.0 + 5.0 ** 0.5) * i
    normals = np.column_stack([np.cos(theta) * np.sin(phi), np.sin(theta) * np.sin(phi), np.cos(phi)])
    return (normals * radius).astype(np.float32), normals.astype(np.float32)


def generate_cloud(preset: str = "helix", count: int = 100) -> PointCloud:
    """Deterministic demonstration clouds for each built-in point shape."""
    preset = preset.lower()
    if count < 0:
        raise ValueError("count must be non-negative")

    if preset == "helix":
        points = [PointXYZ(float(x), float(y), float(z)) for x, y, z in _helix(count)]
        return PointCloud(points, shape=shape_of(PointXYZ))

    if preset == "rgba":
        xyz = _helix(count, turns=2.0, radius=2.0)
        hue = np.linspace(0.0, 1.0, count, endpoint=False)
        red = (255 * np.clip(np.abs(hue * 6.0 - 3.0) - 1.0, 0.0, 1.0)).astype(np.uint8)
        green = (255 * np.clip(2.0 - np.abs(hue * 6.0 - 2.0), 0.0, 1.0)).astype(np.uint8)
        blue = (255 * np.clip(2.0 - np.abs(hue * 6.0 - 4.0), 0.0, 1.0)).astype(np.uint8)
        points = [
            PointXYZRGBA(float(x), float(y), float(z), PointXYZRGBA.pack(int(r), int(g), int(b)))
            for (x, y, z), r, g, b in zip(xyz, red, green, blue)
        ]
        return PointCloud(points, shape=shape_of(PointXYZRGBA))

    if preset == "intensity":
        xyz = _helix(count)
        intensity = np.linspace(0.0, 1.0, count, dtype=np.float32)
        points = [PointXYZI(float(x), float(y), float(z), float(i)) for (x, y, z), i in zip(xyz, intensity)]
        return PointCloud(points, shape=shape_of(PointXYZI))

    if preset == "grid":
        width, height = _grid_dims(count)
        xs, ys = np.meshgrid(np.arange(width, dtype=np.float32), np.arange(height, dtype=np.float32))
        zs = 0.1 * np.sin(xs) * np.cos(ys)
        points = [
            PointXYZ(float(x), float(y), float(z))
            for x, y, z in zip(xs.ravel(), ys.ravel(), zs.ravel())
        ]
        return PointCloud.organized(points, width, height, shape_of(PointXYZ))

    if preset == "sphere":
        xyz, normals = _sphere(count)
        points = [
            PointNormal(float(p[0]), float(p[1]), float(p[2]), float(n[0]), float(n[1]), float(n[2]), 0.0)
            for p, n in zip(xyz, normals)
        ]
        return PointCloud(points, shape=shape_of(PointNormal))

    raise ValueError(f"Unknown synthetic cloud preset '{preset}'.")

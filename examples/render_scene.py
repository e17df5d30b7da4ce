#!/usr/bin/env python3
"""Render a demo scene with the Whitted ray tracer.

The scene shows every material and surface kind: a diffuse floor plane, a
diffuse sphere, a mirror sphere, a glass sphere and a small octahedron mesh,
lit by two point lights.

Usage:
    python -m examples.render_scene [options]

Options:
    --width WIDTH       Image width in pixels (default: 640)
    --height HEIGHT     Image height in pixels (default: 480)
    --aa N              Anti-aliasing: N x N samples per pixel (default: 2)
    --max-depth DEPTH   Maximum reflection/refraction depth (default: 10)
    --output OUTPUT     Output file path (default: scene.png)
    --cpu               Force the CPU backend
    --quiet             Suppress progress output

Example:
    python -m examples.render_scene --width 320 --height 240 --aa 3
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import numpy as np
import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the demo scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=640, help="Image width in pixels (default: 640)")
    parser.add_argument(
        "--height", type=int, default=480, help="Image height in pixels (default: 480)"
    )
    parser.add_argument(
        "--aa", type=int, default=2, help="Anti-aliasing: N x N samples per pixel (default: 2)"
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=10,
        help="Maximum reflection/refraction depth (default: 10)",
    )
    parser.add_argument(
        "--output", type=str, default="scene.png", help="Output file path (default: scene.png)"
    )
    parser.add_argument("--cpu", action="store_true", help="Force the CPU backend")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def octahedron(center: tuple[float, float, float], size: float):
    """Build the triangles of an octahedron with outward-facing normals."""
    from src.facet.geometry.mesh import MeshTriangle

    c = np.asarray(center, dtype=np.float64)
    tips = [c + size * np.asarray(d, dtype=np.float64) for d in np.vstack([np.eye(3), -np.eye(3)])]
    px, py, pz, nx, ny, nz = tips

    triangles = []
    for a in (px, nx):
        for b in (py, ny):
            for d in (pz, nz):
                v0, v1, v2 = a, b, d
                # Front face is (v2 - v0) x (v1 - v0); flip to point outward
                normal = np.cross(v2 - v0, v1 - v0)
                if np.dot(normal, (v0 + v1 + v2) / 3.0 - c) < 0.0:
                    v1, v2 = v2, v1
                triangles.append(MeshTriangle(tuple(v0), tuple(v1), tuple(v2)))
    return triangles


def build_demo_scene(aa_multiplier: int = 2, max_depth: int = 10):
    """Create the demo scene.

    Returns:
        The populated Scene.
    """
    from src.facet.scene.manager import Scene, SceneOptions

    options = SceneOptions(
        camera_position=(0.0, 2.0, -6.0),
        camera_axis=(1.0, 0.0, 0.0),
        camera_angle=10.0,
        field_of_view=60.0,
        aa_multiplier=aa_multiplier,
        max_depth=max_depth,
    )
    scene = Scene(options)

    floor = scene.add_diffuse_material((0.8, 0.8, 0.75))
    red = scene.add_diffuse_material((0.9, 0.2, 0.15))
    blue = scene.add_diffuse_material((0.2, 0.35, 0.9))
    mirror = scene.add_reflective_material()
    glass = scene.add_refractive_material(refractive_index=1.5)

    scene.add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), floor)
    scene.add_sphere((-2.0, 1.0, 2.0), 1.0, red)
    scene.add_sphere((0.5, 1.2, 4.0), 1.2, mirror)
    scene.add_sphere((1.2, 0.7, 0.5), 0.7, glass)
    scene.add_mesh(octahedron((-0.6, 0.6, 0.2), 0.6), blue)

    scene.add_point_light((-4.0, 6.0, -3.0), (0.7, 0.7, 0.7))
    scene.add_point_light((5.0, 5.0, 0.0), (0.5, 0.5, 0.5))
    return scene


def render_scene(
    width: int = 640,
    height: int = 480,
    aa_multiplier: int = 2,
    max_depth: int = 10,
    output_path: str = "scene.png",
    quiet: bool = False,
) -> Path:
    """Render the demo scene and save it to a PNG file.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.facet.preview.export import ImageBuffer, save_png

    if not quiet:
        print(f"Creating demo scene ({width}x{height}, {aa_multiplier}x{aa_multiplier} AA)...")

    scene = build_demo_scene(aa_multiplier=aa_multiplier, max_depth=max_depth)
    sink = ImageBuffer(width, height)

    start_time = time.time()

    def progress_callback(rows_done: int, total_rows: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (rows_done / total_rows) * 100 if total_rows > 0 else 0
            print(
                f"\r  Progress: {rows_done}/{total_rows} rows "
                f"({progress_pct:.1f}%) - {elapsed:.1f}s",
                end="",
                flush=True,
            )

    scene.render(sink, callback=progress_callback)

    if not quiet:
        print()

    output_file = Path(output_path)
    save_png(sink, str(output_file), tone_map="none", gamma=2.2)

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cpu:
        ti.init(arch=ti.cpu)
    else:
        # Falls back to CPU when no GPU backend is available
        ti.init(arch=ti.gpu)

    try:
        render_scene(
            width=args.width,
            height=args.height,
            aa_multiplier=args.aa,
            max_depth=args.max_depth,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

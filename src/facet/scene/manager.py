"""Scene assembly, queries and rendering.

This module provides the high-level scene API. A ``Scene`` clears the
global surface, material and light storage when created, registers
primitives with their materials, and keeps a Python-side record of
everything it added so the scene can be exported to a plain dictionary and
rebuilt from one.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.facet.scene.manager import Scene, SceneOptions
    >>> scene = Scene(SceneOptions(camera_position=(0.0, 1.0, -5.0)))
    >>> white = scene.add_diffuse_material((0.8, 0.8, 0.8))
    >>> scene.add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), white)
    >>> scene.add_sphere((0.0, 1.0, 0.0), 1.0, white)
    >>> scene.add_point_light((5.0, 5.0, -5.0), (1.0, 1.0, 1.0))
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

from src.facet.camera.pinhole import setup_camera
from src.facet.geometry.mesh import MeshTriangle, compute_bounds
from src.facet.materials.material import (
    MAX_MATERIALS,
    MaterialType,
    add_material,
    clear_materials,
    get_material_count,
)
from src.facet.scene import intersection
from src.facet.scene.intersection import HitInfo, SurfaceKind
from src.facet.scene.lights import MAX_LIGHTS, add_point_light, clear_lights

_LOGGER: logging.Logger = logging.getLogger(__name__)

Vec3Tuple = tuple[float, float, float]


def _vec3(values: Sequence[float]) -> Vec3Tuple:
    if len(values) != 3:
        raise ValueError(f"Expected 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


@dataclass
class SceneOptions:
    """Camera and sampling configuration of a scene.

    Attributes:
        camera_position: Camera position in world space.
        camera_axis: Rotation axis of the camera orientation.
        camera_angle: Rotation angle around the axis, in degrees.
        field_of_view: Field of view in degrees.
        aa_multiplier: Sub-samples per pixel side (N for N x N sampling).
        max_depth: Maximum recursion depth for reflective and refractive hits.
    """

    camera_position: Vec3Tuple = (0.0, 0.0, 0.0)
    camera_axis: Vec3Tuple = (0.0, 1.0, 0.0)
    camera_angle: float = 0.0
    field_of_view: float = 60.0
    aa_multiplier: int = 1
    max_depth: int = 10

    def __post_init__(self) -> None:
        # Imported here; the integrator imports this package
        from src.facet.core.integrator import check_max_depth

        self.camera_position = _vec3(self.camera_position)
        self.camera_axis = _vec3(self.camera_axis)
        if self.aa_multiplier < 1:
            raise ValueError(f"aa_multiplier must be >= 1, got {self.aa_multiplier}")
        if not 0.0 < self.field_of_view < 180.0:
            raise ValueError(f"Field of view must be in (0, 180) degrees, got {self.field_of_view}")
        check_max_depth(self.max_depth)


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The material id.
        material_type: The kind of material.
        color: The albedo color.
        refractive_index: The index of refraction (1.0 unless refractive).
    """

    material_id: int
    material_type: MaterialType
    color: Vec3Tuple
    refractive_index: float = 1.0


@dataclass
class SurfaceInfo:
    """Information about a surface in the scene.

    Attributes:
        surface_index: The index in the surface table.
        kind: The surface kind.
        material_id: The material assigned to the surface.
        params: The geometric parameters as given when the surface was added.
    """

    surface_index: int
    kind: SurfaceKind
    material_id: int
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class LightInfo:
    """Information about a point light."""

    light_index: int
    position: Vec3Tuple
    color: Vec3Tuple


class Scene:
    """A renderable scene: surfaces, materials, point lights and a camera.

    Only one scene is live at a time; creating a Scene resets the global
    storage the render kernels read.

    Attributes:
        options: Camera and sampling configuration.
        materials: MaterialInfo for every registered material.
        surfaces: SurfaceInfo for every surface.
        lights: LightInfo for every light.
    """

    def __init__(self, options: SceneOptions | None = None) -> None:
        """Initialize an empty scene."""
        self.options = options if options is not None else SceneOptions()
        self.materials: list[MaterialInfo] = []
        self.surfaces: list[SurfaceInfo] = []
        self.lights: list[LightInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        intersection.clear_scene()
        clear_materials()
        clear_lights()
        self.materials.clear()
        self.surfaces.clear()
        self.lights.clear()

    def clear(self) -> None:
        """Remove all surfaces, materials and lights."""
        self._clear_all()
        _LOGGER.debug("Scene cleared")

    # =========================================================================
    # Material Management
    # =========================================================================

    def _add_material(
        self, material_type: MaterialType, color: Sequence[float], refractive_index: float = 1.0
    ) -> int:
        color = _vec3(color)
        material_id = add_material(material_type, color, refractive_index)
        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                color=color,
                refractive_index=refractive_index,
            )
        )
        _LOGGER.debug(f"Added {material_type.name.lower()} material {material_id}")
        return material_id

    def add_diffuse_material(self, color: Sequence[float]) -> int:
        """Add a diffuse material lit directly by the point lights.

        Returns:
            The material id.

        Raises:
            ValueError: If any color component is negative.
            RuntimeError: If the maximum number of materials is exceeded.
        """
        return self._add_material(MaterialType.DIFFUSE, color)

    def add_reflective_material(self, color: Sequence[float] = (1.0, 1.0, 1.0)) -> int:
        """Add a perfect mirror material.

        The color is recorded but does not tint the reflection.

        Returns:
            The material id.
        """
        return self._add_material(MaterialType.REFLECTIVE, color)

    def add_refractive_material(
        self, color: Sequence[float] = (1.0, 1.0, 1.0), refractive_index: float = 1.5
    ) -> int:
        """Add a dielectric material.

        Args:
            color: The albedo color (recorded, not used for shading).
            refractive_index: Index of refraction. Common values: water 1.33,
                glass 1.5, diamond 2.4.

        Returns:
            The material id.

        Raises:
            ValueError: If the refractive index is below 1.0.
        """
        return self._add_material(MaterialType.REFRACTIVE, color, refractive_index)

    def get_material_count(self) -> int:
        """Get the number of materials in the scene."""
        return get_material_count()

    def _check_material(self, material_id: int) -> None:
        if material_id < 0 or material_id >= get_material_count():
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Surface Management
    # =========================================================================

    def _check_surface_capacity(self) -> None:
        if intersection.get_surface_count() >= intersection.MAX_SURFACES:
            raise RuntimeError(
                f"Maximum number of surfaces ({intersection.MAX_SURFACES}) exceeded"
            )

    def _register(
        self, kind: SurfaceKind, index: int, material_id: int, params: dict[str, Any]
    ) -> int:
        surface_index = intersection.register_surface(kind, index, material_id)
        self.surfaces.append(
            SurfaceInfo(
                surface_index=surface_index,
                kind=kind,
                material_id=material_id,
                params=params,
            )
        )
        _LOGGER.debug(f"Added {kind.name.lower()} surface {surface_index} (material {material_id})")
        return surface_index

    def add_plane(self, center: Sequence[float], normal: Sequence[float], material_id: int) -> int:
        """Add an infinite plane through ``center``.

        The normal is normalized on insertion. Opaque planes are one-sided:
        they are only visible from the side the normal points to.

        Returns:
            The surface index.

        Raises:
            ValueError: If the normal is zero or the material id is invalid.
        """
        self._check_material(material_id)
        center = _vec3(center)
        nx, ny, nz = _vec3(normal)
        length = math.sqrt(nx * nx + ny * ny + nz * nz)
        if length == 0.0:
            raise ValueError("Plane normal must be non-zero")
        unit_normal = (nx / length, ny / length, nz / length)
        self._check_surface_capacity()

        index = intersection.add_plane(center, unit_normal)
        return self._register(
            SurfaceKind.PLANE,
            index,
            material_id,
            {"center": list(center), "normal": list(unit_normal)},
        )

    def add_sphere(self, center: Sequence[float], radius: float, material_id: int) -> int:
        """Add a sphere.

        Returns:
            The surface index.

        Raises:
            ValueError: If the radius is not positive or the material id is
                invalid.
        """
        self._check_material(material_id)
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        self._check_surface_capacity()
        center = _vec3(center)

        index = intersection.add_sphere(center, radius)
        return self._register(
            SurfaceKind.SPHERE,
            index,
            material_id,
            {"center": list(center), "radius": float(radius)},
        )

    def add_triangle(
        self,
        v0: Sequence[float],
        v1: Sequence[float],
        v2: Sequence[float],
        material_id: int,
        normals: Sequence[Sequence[float]] | None = None,
    ) -> int:
        """Add a single triangle, optionally smooth-shaded by vertex normals.

        Returns:
            The surface index.

        Raises:
            ValueError: If the material id is invalid or normals is not a
                triple of vectors.
        """
        self._check_material(material_id)
        verts = (_vec3(v0), _vec3(v1), _vec3(v2))
        vertex_normals = self._check_normals(normals)
        self._check_surface_capacity()

        index = intersection.add_triangle(*verts, normals=vertex_normals)
        params: dict[str, Any] = {"vertices": [list(v) for v in verts]}
        if vertex_normals is not None:
            params["normals"] = [list(n) for n in vertex_normals]
        return self._register(SurfaceKind.TRIANGLE, index, material_id, params)

    def add_mesh(
        self,
        triangles: Sequence[MeshTriangle],
        material_id: int,
        bounds: tuple[Sequence[float], Sequence[float]] | None = None,
    ) -> int:
        """Add a triangle mesh behind one bounding box.

        Args:
            triangles: The mesh triangles (at least one).
            material_id: The material shared by every triangle.
            bounds: Optional (min_corner, max_corner). Computed from the
                vertices when omitted.

        Returns:
            The surface index.

        Raises:
            ValueError: If the mesh is empty or the material id is invalid.
            RuntimeError: If surface, triangle or mesh capacity is exceeded.
        """
        self._check_material(material_id)
        if len(triangles) == 0:
            raise ValueError("Mesh must contain at least one triangle")
        self._check_surface_capacity()
        if intersection.num_meshes[None] >= intersection.MAX_MESHES:
            raise RuntimeError(f"Maximum number of meshes ({intersection.MAX_MESHES}) exceeded")
        if intersection.get_triangle_count() + len(triangles) > intersection.MAX_TRIANGLES:
            raise RuntimeError(
                f"Maximum number of triangles ({intersection.MAX_TRIANGLES}) exceeded"
            )

        if bounds is None:
            bounds_min, bounds_max = compute_bounds(triangles)
        else:
            bounds_min, bounds_max = _vec3(bounds[0]), _vec3(bounds[1])

        start = intersection.get_triangle_count()
        for tri in triangles:
            intersection.add_triangle(
                _vec3(tri.v0), _vec3(tri.v1), _vec3(tri.v2), normals=self._check_normals(tri.normals)
            )
        mesh_index = intersection.add_mesh(start, len(triangles), bounds_min, bounds_max, material_id)

        _LOGGER.debug(f"Mesh {mesh_index}: {len(triangles)} triangles")
        return self._register(
            SurfaceKind.MESH,
            mesh_index,
            material_id,
            {
                "triangles": [_triangle_to_dict(tri) for tri in triangles],
                "bounds": [list(bounds_min), list(bounds_max)],
            },
        )

    @staticmethod
    def _check_normals(
        normals: Sequence[Sequence[float]] | None,
    ) -> tuple[Vec3Tuple, Vec3Tuple, Vec3Tuple] | None:
        if normals is None:
            return None
        if len(normals) != 3:
            raise ValueError(f"Expected 3 vertex normals, got {len(normals)}")
        return (_vec3(normals[0]), _vec3(normals[1]), _vec3(normals[2]))

    def get_surface_count(self) -> int:
        """Get the number of surfaces in the scene."""
        return intersection.get_surface_count()

    # =========================================================================
    # Lights
    # =========================================================================

    def add_point_light(self, position: Sequence[float], color: Sequence[float]) -> int:
        """Add a point light.

        Returns:
            The light index.

        Raises:
            ValueError: If any color component is negative.
            RuntimeError: If the maximum number of lights is exceeded.
        """
        position = _vec3(position)
        color = _vec3(color)
        index = add_point_light(position, color)
        self.lights.append(LightInfo(light_index=index, position=position, color=color))
        _LOGGER.debug(f"Added point light {index} at {position}")
        return index

    # =========================================================================
    # Queries
    # =========================================================================

    def closest_hit(self, origin: Sequence[float], direction: Sequence[float]) -> HitInfo | None:
        """Find the first surface hit by a ray, or None."""
        return intersection.query_closest_hit(origin, direction)

    def line_of_sight(self, origin: Sequence[float], destination: Sequence[float]) -> bool:
        """Test whether nothing blocks the segment between two points."""
        return intersection.query_line_of_sight(origin, destination)

    def trace(self, origin: Sequence[float], direction: Sequence[float]) -> Vec3Tuple:
        """Resolve the color seen along a ray with this scene's depth limit."""
        from src.facet.core.integrator import trace

        return trace(_vec3(origin), _vec3(direction), self.options.max_depth)

    # =========================================================================
    # Rendering
    # =========================================================================

    def setup_camera(self, width: int, height: int) -> None:
        """Configure the camera for an image of the given size."""
        setup_camera(
            self.options.camera_position,
            self.options.camera_axis,
            self.options.camera_angle,
            self.options.field_of_view,
            width / height,
        )

    def render(self, sink: Any, callback: Any = None) -> None:
        """Render the scene into an image sink.

        Args:
            sink: Object exposing ``width``, ``height`` and
                ``set_pixel(x, y, color)``.
            callback: Optional progress callback receiving
                (rows_done, total_rows).
        """
        from src.facet.core.renderer import Renderer

        self.setup_camera(int(sink.width), int(sink.height))
        _LOGGER.info(
            f"Scene: {len(self.surfaces)} surfaces, {len(self.materials)} materials, "
            f"{len(self.lights)} lights"
        )
        renderer = Renderer(aa_multiplier=self.options.aa_multiplier, max_depth=self.options.max_depth)
        renderer.render(sink, callback)

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        options = asdict(self.options)
        options["camera_position"] = list(self.options.camera_position)
        options["camera_axis"] = list(self.options.camera_axis)

        return {
            "options": options,
            "materials": [
                {
                    "type": mat.material_type.name.lower(),
                    "color": list(mat.color),
                    "refractive_index": mat.refractive_index,
                }
                for mat in self.materials
            ],
            "surfaces": [
                {"kind": surf.kind.name.lower(), "material_id": surf.material_id, **surf.params}
                for surf in self.surfaces
            ],
            "lights": [
                {"position": list(light.position), "color": list(light.color)}
                for light in self.lights
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Scene":
        """Build a scene from a dictionary produced by ``to_dict``.

        Raises:
            ValueError: If the dictionary contains an unknown material type
                or surface kind, or invalid values.
        """
        scene = cls(SceneOptions(**data.get("options", {})))

        for mat in data.get("materials", []):
            mat_type = mat.get("type", "").lower()
            color = mat.get("color", [1.0, 1.0, 1.0])
            if mat_type == "diffuse":
                scene.add_diffuse_material(color)
            elif mat_type == "reflective":
                scene.add_reflective_material(color)
            elif mat_type == "refractive":
                scene.add_refractive_material(color, mat.get("refractive_index", 1.5))
            else:
                raise ValueError(f"Unknown material type: {mat_type}")

        for surf in data.get("surfaces", []):
            kind = surf.get("kind", "").lower()
            material_id = surf.get("material_id", 0)
            if kind == "plane":
                scene.add_plane(surf["center"], surf["normal"], material_id)
            elif kind == "sphere":
                scene.add_sphere(surf["center"], surf["radius"], material_id)
            elif kind == "triangle":
                v0, v1, v2 = surf["vertices"]
                scene.add_triangle(v0, v1, v2, material_id, normals=surf.get("normals"))
            elif kind == "mesh":
                triangles = [_triangle_from_dict(tri) for tri in surf["triangles"]]
                bounds = surf.get("bounds")
                scene.add_mesh(
                    triangles, material_id, bounds=(bounds[0], bounds[1]) if bounds else None
                )
            else:
                raise ValueError(f"Unknown surface kind: {kind}")

        for light in data.get("lights", []):
            scene.add_point_light(light["position"], light["color"])

        return scene

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_surfaces() -> int:
        """Get the maximum number of surfaces supported."""
        return intersection.MAX_SURFACES

    @staticmethod
    def get_max_materials() -> int:
        """Get the maximum number of materials supported."""
        return MAX_MATERIALS

    @staticmethod
    def get_max_lights() -> int:
        """Get the maximum number of lights supported."""
        return MAX_LIGHTS


def _triangle_to_dict(tri: MeshTriangle) -> dict[str, Any]:
    data: dict[str, Any] = {"vertices": [list(tri.v0), list(tri.v1), list(tri.v2)]}
    if tri.normals is not None:
        data["normals"] = [list(n) for n in tri.normals]
    return data


def _triangle_from_dict(data: dict[str, Any]) -> MeshTriangle:
    v0, v1, v2 = (_vec3(v) for v in data["vertices"])
    normals = data.get("normals")
    if normals is not None:
        normals = (_vec3(normals[0]), _vec3(normals[1]), _vec3(normals[2]))
    return MeshTriangle(v0, v1, v2, normals)

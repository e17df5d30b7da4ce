"""Taichi-based Whitted ray tracer.

This package renders scenes of planes, spheres, triangles and triangle
meshes lit by point lights, with support for:
- Diffuse shading with shadows
- Perfect mirrors
- Refraction blended with reflection by the Fresnel reflectance
- N x N supersampling anti-aliasing

Subpackages:
    core: Vector utilities, shading, render kernels and the render driver
    geometry: Shape primitives and intersection algorithms
    materials: Material registry and dielectric optics
    scene: Surface storage, ray queries and the Scene API
    camera: Pinhole camera with axis/angle orientation
    preview: Image sinks, tone mapping, PNG export and preview display
"""

__version__ = "0.1.0"

"""Models loaded from Wavefront OBJ files, split into textured meshes."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from itertools import pairwise
from pathlib import Path
from typing import Sequence

import numpy as np
from PIL import Image

from .camera import normalize
from .mesh import GLRenderer, Mesh, Renderer, Texture, Vertex

TEXTURE_TYPES = ("texture_diffuse", "texture_specular", "texture_normal", "texture_height")

_MTL_MAPS = {
    "map_kd": "texture_diffuse",
    "map_ks": "texture_specular",
    "map_bump": "texture_normal",
    "bump": "texture_normal",
    "map_ka": "texture_height",
}

_COMPONENTS = {"L": 1, "RGB": 3, "RGBA": 4}


class ModelLoadError(Exception):
    """A model or one of its textures could not be loaded."""


@dataclass
class MeshData:
    """Geometry and texture file names of one mesh read from a model file."""

    vertices: list[Vertex]
    indices: list[int]
    material: str | None = None
    textures: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class _Group:
    material: str | None = None
    faces: list[list[tuple[int, int | None, int | None]]] = field(default_factory=list)


def _floats(args: Sequence[str], count: int, lineno: int) -> list[float]:
    try:
        values = [float(a) for a in args[:count]]
    except ValueError:
        raise ModelLoadError(f"line {lineno}: bad number in {' '.join(args)!r}") from None
    if len(values) < count:
        raise ModelLoadError(f"line {lineno}: expected {count} numbers")
    return values


def _resolve(token: str, available: int, lineno: int) -> int | None:
    if token == "":
        return None
    try:
        index = int(token)
    except ValueError:
        raise ModelLoadError(f"line {lineno}: bad index {token!r}") from None
    resolved = available + index if index < 0 else index - 1
    if not 0 <= resolved < available:
        raise ModelLoadError(f"line {lineno}: index {index} out of range")
    return resolved


def _parse_mtl(path: Path) -> dict[str, dict[str, list[str]]]:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return {}
    materials: dict[str, dict[str, list[str]]] = {}
    current: dict[str, list[str]] | None = None
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        keyword, *args = line.split()
        keyword = keyword.lower()
        if keyword == "newmtl" and args:
            current = materials.setdefault(" ".join(args), {})
        elif keyword in _MTL_MAPS and args and current is not None:
            current.setdefault(_MTL_MAPS[keyword], []).append(args[-1])
    return materials


def _normalize_rows(array: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(array, axis=1, keepdims=True)
    return np.divide(array, norms, out=np.zeros_like(array), where=norms > 0)


def _build_mesh(group, positions, uvs, normals, materials) -> MeshData:
    corners = [corner for face in group.faces for corner in face]
    has_uv = all(c[1] is not None for c in corners)
    has_normals = all(c[2] is not None for c in corners)

    lookup: dict[tuple, int] = {}
    keys: list[tuple] = []
    triangles: list[tuple[int, int, int]] = []
    for face in group.faces:
        face_indices = []
        for pi, ti, ni in face:
            key = (pi, ti if has_uv else None, ni if has_normals else None)
            if key not in lookup:
                lookup[key] = len(keys)
                keys.append(key)
            face_indices.append(lookup[key])
        first = face_indices[0]
        triangles.extend((first, b, c) for b, c in pairwise(face_indices[1:]))

    count = len(keys)
    pos = np.array([positions[k[0]] for k in keys], dtype=float)
    if has_uv:
        tex = np.array([uvs[k[1]] for k in keys], dtype=float)
        tex[:, 1] = 1.0 - tex[:, 1]
    else:
        tex = np.zeros((count, 2))

    if has_normals:
        nrm = np.array([normals[k[2]] for k in keys], dtype=float)
    else:
        accumulated = np.zeros((len(positions), 3))
        for tri in triangles:
            p0, p1, p2 = pos[list(tri)]
            face_normal = normalize(np.cross(p1 - p0, p2 - p0))
            for v in tri:
                accumulated[keys[v][0]] += face_normal
        nrm = _normalize_rows(np.array([accumulated[k[0]] for k in keys]).reshape(count, 3))

    tangents = np.zeros((count, 3))
    bitangents = np.zeros((count, 3))
    if has_uv:
        for i0, i1, i2 in triangles:
            e1, e2 = pos[i1] - pos[i0], pos[i2] - pos[i0]
            d1, d2 = tex[i1] - tex[i0], tex[i2] - tex[i0]
            det = d1[0] * d2[1] - d2[0] * d1[1]
            if det == 0:
                continue
            tangent = (e1 * d2[1] - e2 * d1[1]) / det
            bitangent = (e2 * d1[0] - e1 * d2[0]) / det
            np.add.at(tangents, [i0, i1, i2], tangent)
            np.add.at(bitangents, [i0, i1, i2], bitangent)
        dots = np.sum(tangents * nrm, axis=1, keepdims=True)
        tangents = _normalize_rows(tangents - nrm * dots)
        bitangents = _normalize_rows(bitangents)

    vertices = [
        Vertex(
            position=pos[i], normal=nrm[i], tex_coords=tex[i],
            tangent=tangents[i], bitangent=bitangents[i],
        )
        for i in range(count)
    ]
    indices = [index for tri in triangles for index in tri]
    textures = materials.get(group.material, {}) if group.material is not None else {}
    return MeshData(vertices, indices, group.material, {k: list(v) for k, v in textures.items()})


def load_obj(path: str | Path) -> list[MeshData]:
    """Read a Wavefront OBJ file into triangulated meshes.

    Faces are triangulated, missing normals are generated smoothly, texture
    coordinates are flipped vertically and tangents are computed when the
    mesh is textured. Each object, group or material change starts a mesh.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise ModelLoadError(f"cannot read model {path}: {exc}") from exc

    positions: list[list[float]] = []
    uvs: list[list[float]] = []
    normals: list[list[float]] = []
    materials: dict[str, dict[str, list[str]]] = {}
    groups: list[_Group] = []
    current = _Group()

    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        keyword, *args = line.split()
        if keyword == "v":
            positions.append(_floats(args, 3, lineno))
        elif keyword == "vt":
            values = _floats(args, 1, lineno)
            uvs.append(_floats(args, 2, lineno) if len(args) >= 2 else [values[0], 0.0])
        elif keyword == "vn":
            normals.append(_floats(args, 3, lineno))
        elif keyword == "f":
            if len(args) < 3:
                raise ModelLoadError(f"line {lineno}: a face needs at least three corners")
            face = []
            for token in args:
                parts = (token.split("/") + ["", ""])[:3]
                pi = _resolve(parts[0], len(positions), lineno)
                if pi is None:
                    raise ModelLoadError(f"line {lineno}: corner without a position")
                face.append(
                    (pi, _resolve(parts[1], len(uvs), lineno), _resolve(parts[2], len(normals), lineno))
                )
            current.faces.append(face)
        elif keyword in ("o", "g"):
            if current.faces:
                groups.append(current)
                current = _Group(current.material)
        elif keyword == "usemtl":
            name = " ".join(args) or None
            if current.faces:
                groups.append(current)
                current = _Group(name)
            else:
                current.material = name
        elif keyword == "mtllib":
            for name in args:
                materials.update(_parse_mtl(path.parent / name))
    if current.faces:
        groups.append(current)
    if not groups:
        raise ModelLoadError(f"model {path} holds no faces")
    return [_build_mesh(group, positions, uvs, normals, materials) for group in groups]


def _load_texture(path: str, directory: str | Path, gamma: bool, renderer: Renderer) -> int:
    filename = Path(directory) / path
    try:
        with Image.open(filename) as image:
            image.load()
            if image.mode not in _COMPONENTS:
                image = image.convert("RGBA")
            components = _COMPONENTS[image.mode]
            width, height = image.size
            data = image.tobytes()
    except OSError as exc:
        raise ModelLoadError(f"texture failed to load at path: {path}") from exc
    return renderer.create_texture(width, height, components, data)


def texture_from_file(path: str, directory: str | Path, gamma: bool = False) -> int:
    """Load the image ``directory/path`` into a 2D texture and return its id."""
    return _load_texture(path, directory, gamma, GLRenderer())


def _translation(offset: np.ndarray) -> np.ndarray:
    matrix = np.identity(4)
    matrix[:3, 3] = offset
    return matrix


def _rotation(angle: float, axis: np.ndarray) -> np.ndarray:
    x, y, z = normalize(axis)
    c, s = math.cos(angle), math.sin(angle)
    a = np.array([x, y, z])
    skew = np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])
    matrix = np.identity(4)
    matrix[:3, :3] = c * np.identity(3) + (1.0 - c) * np.outer(a, a) + s * skew
    return matrix


def _scaling(factors: np.ndarray) -> np.ndarray:
    return np.diag([*factors, 1.0])


class Model:
    """A model file's meshes with a placement in the world."""

    def __init__(
        self,
        path: str | Path,
        pos: Sequence[float] = (0.0, 0.0, 0.0),
        rotation: float = 0.0,
        rotation_axis: Sequence[float] = (0.0, 0.0, 1.0),
        scale: Sequence[float] = (1.0, 1.0, 1.0),
        gamma: bool = False,
        renderer: Renderer | None = None,
    ) -> None:
        self.pos = np.array(pos, dtype=float)
        self.rotation = float(rotation)
        self.rotation_axis = np.array(rotation_axis, dtype=float)
        self.scale = np.array(scale, dtype=float)
        self.gamma_correction = gamma
        self.renderer: Renderer = renderer if renderer is not None else GLRenderer()
        self.textures_loaded: list[Texture] = []
        self.meshes: list[Mesh] = []
        self.directory = ""
        self._load(Path(path))

    def _load(self, path: Path) -> None:
        parts = load_obj(path)
        self.directory = str(path.parent)
        for data in parts:
            textures = [
                texture
                for type_name in TEXTURE_TYPES
                for texture in self._material_textures(data.textures.get(type_name, []), type_name)
            ]
            self.meshes.append(Mesh(data.vertices, data.indices, textures, renderer=self.renderer))

    def _material_textures(self, paths: Sequence[str], type_name: str) -> list[Texture]:
        textures = []
        for path in paths:
            loaded = next((t for t in self.textures_loaded if t.path == path), None)
            if loaded is None:
                texture_id = _load_texture(
                    path, self.directory, self.gamma_correction, self.renderer
                )
                loaded = Texture(texture_id, type_name, path)
                self.textures_loaded.append(loaded)
            textures.append(loaded)
        return textures

    def model_matrix(self) -> np.ndarray:
        """Translation, then rotation in degrees about the axis, then scale."""
        return (
            _translation(self.pos)
            @ _rotation(math.radians(self.rotation), self.rotation_axis)
            @ _scaling(self.scale)
        )

    def draw(self, shader) -> None:
        """Draw every mesh with this model's placement."""
        for mesh in self.meshes:
            shader.set_mat4("model", self.model_matrix())
            shader.set_int("matOrText", 0)
            mesh.draw(shader)

    def cleanup(self) -> None:
        """Release the GPU buffers and textures held by this model."""
        for mesh in self.meshes:
            mesh._release()
        for texture in self.textures_loaded:
            self.renderer.delete_texture(texture.id)
        self.textures_loaded.clear()
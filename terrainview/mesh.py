"""Renderable triangle meshes with interleaved vertex data and textures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Protocol, Sequence

import numpy as np

MAX_BONE_INFLUENCE = 4

VERTEX_DTYPE = np.dtype(
    [
        ("position", "<f4", (3,)),
        ("normal", "<f4", (3,)),
        ("tex_coords", "<f4", (2,)),
        ("tangent", "<f4", (3,)),
        ("bitangent", "<f4", (3,)),
        ("bone_ids", "<i4", (MAX_BONE_INFLUENCE,)),
        ("weights", "<f4", (MAX_BONE_INFLUENCE,)),
    ]
)

_SAMPLER_KINDS = ("texture_diffuse", "texture_specular", "texture_normal", "texture_height")


@dataclass(frozen=True)
class VertexAttribute:
    """One attribute of an interleaved vertex layout."""

    size: int
    offset: int
    integer: bool = False


VERTEX_ATTRIBUTES = tuple(
    VertexAttribute(
        size=VERTEX_DTYPE[name].shape[0],
        offset=VERTEX_DTYPE.fields[name][1],
        integer=VERTEX_DTYPE[name].base.kind == "i",
    )
    for name in VERTEX_DTYPE.names
)


def _components(value: Sequence[float], size: int, kind=float) -> tuple:
    values = tuple(kind(v) for v in value)
    if len(values) != size:
        raise ValueError(f"expected {size} components, got {len(values)}")
    return values


@dataclass
class Vertex:
    """A mesh vertex with its lighting, texturing and skinning attributes."""

    position: Sequence[float] = (0.0, 0.0, 0.0)
    normal: Sequence[float] = (0.0, 0.0, 0.0)
    tex_coords: Sequence[float] = (0.0, 0.0)
    tangent: Sequence[float] = (0.0, 0.0, 0.0)
    bitangent: Sequence[float] = (0.0, 0.0, 0.0)
    bone_ids: Sequence[int] = (0,) * MAX_BONE_INFLUENCE
    weights: Sequence[float] = (0.0,) * MAX_BONE_INFLUENCE

    def __post_init__(self) -> None:
        self.position = _components(self.position, 3)
        self.normal = _components(self.normal, 3)
        self.tex_coords = _components(self.tex_coords, 2)
        self.tangent = _components(self.tangent, 3)
        self.bitangent = _components(self.bitangent, 3)
        self.bone_ids = _components(self.bone_ids, MAX_BONE_INFLUENCE, int)
        self.weights = _components(self.weights, MAX_BONE_INFLUENCE)


@dataclass
class Texture:
    """A texture living on the GPU, with its sampler kind and source path."""

    id: int
    type: str
    path: str


class Renderer(Protocol):
    def upload_mesh(
        self, vertex_data: np.ndarray, indices: np.ndarray, stride: int,
        attributes: Sequence[VertexAttribute],
    ) -> Any: ...

    def draw_elements(self, handle: Any, mode: str, count: int) -> None: ...

    def bind_texture(self, unit: int, texture_id: int) -> None: ...

    def reset_texture_unit(self) -> None: ...

    def create_texture(self, width: int, height: int, components: int, data: bytes) -> int: ...

    def delete_mesh(self, handle: Any) -> None: ...

    def delete_texture(self, texture_id: int) -> None: ...


class GLRenderer:
    """Renderer that talks to the current OpenGL context through pyglet."""

    def upload_mesh(self, vertex_data, indices, stride, attributes):
        from pyglet import gl

        vao, vbo, ebo = gl.GLuint(), gl.GLuint(), gl.GLuint()
        gl.glGenVertexArrays(1, vao)
        gl.glGenBuffers(1, vbo)
        gl.glGenBuffers(1, ebo)
        gl.glBindVertexArray(vao)

        vertices = np.ascontiguousarray(vertex_data)
        gl.glBindBuffer(gl.GL_ARRAY_BUFFER, vbo)
        gl.glBufferData(gl.GL_ARRAY_BUFFER, vertices.nbytes, vertices.ctypes.data, gl.GL_STATIC_DRAW)

        elements = np.ascontiguousarray(indices, dtype=np.uint32)
        gl.glBindBuffer(gl.GL_ELEMENT_ARRAY_BUFFER, ebo)
        gl.glBufferData(
            gl.GL_ELEMENT_ARRAY_BUFFER, elements.nbytes, elements.ctypes.data, gl.GL_STATIC_DRAW
        )

        for location, attribute in enumerate(attributes):
            gl.glEnableVertexAttribArray(location)
            if attribute.integer:
                gl.glVertexAttribIPointer(
                    location, attribute.size, gl.GL_INT, stride, attribute.offset
                )
            else:
                gl.glVertexAttribPointer(
                    location, attribute.size, gl.GL_FLOAT, gl.GL_FALSE, stride, attribute.offset
                )
        gl.glBindBuffer(gl.GL_ARRAY_BUFFER, 0)
        gl.glBindVertexArray(0)
        return vao.value, vbo.value, ebo.value

    def draw_elements(self, handle, mode, count):
        from pyglet import gl

        modes = {"triangles": gl.GL_TRIANGLES, "triangle_strip": gl.GL_TRIANGLE_STRIP}
        gl.glBindVertexArray(handle[0])
        gl.glDrawElements(modes[mode], count, gl.GL_UNSIGNED_INT, 0)
        gl.glBindVertexArray(0)

    def bind_texture(self, unit, texture_id):
        from pyglet import gl

        gl.glActiveTexture(gl.GL_TEXTURE0 + unit)
        gl.glBindTexture(gl.GL_TEXTURE_2D, texture_id)

    def reset_texture_unit(self):
        from pyglet import gl

        gl.glActiveTexture(gl.GL_TEXTURE0)

    def create_texture(self, width, height, components, data):
        from pyglet import gl

        formats = {1: gl.GL_RED, 3: gl.GL_RGB, 4: gl.GL_RGBA}
        try:
            fmt = formats[components]
        except KeyError:
            raise ValueError(f"unsupported number of components: {components}") from None
        texture = gl.GLuint()
        gl.glGenTextures(1, texture)
        gl.glBindTexture(gl.GL_TEXTURE_2D, texture)
        gl.glTexImage2D(
            gl.GL_TEXTURE_2D, 0, fmt, width, height, 0, fmt, gl.GL_UNSIGNED_BYTE, data
        )
        gl.glGenerateMipmap(gl.GL_TEXTURE_2D)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_WRAP_S, gl.GL_REPEAT)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_WRAP_T, gl.GL_REPEAT)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MIN_FILTER, gl.GL_LINEAR_MIPMAP_LINEAR)
        gl.glTexParameteri(gl.GL_TEXTURE_2D, gl.GL_TEXTURE_MAG_FILTER, gl.GL_LINEAR)
        return texture.value

    def delete_mesh(self, handle):
        from pyglet import gl

        vao, vbo, ebo = handle
        gl.glDeleteVertexArrays(1, gl.GLuint(vao))
        gl.glDeleteBuffers(1, gl.GLuint(vbo))
        gl.glDeleteBuffers(1, gl.GLuint(ebo))

    def delete_texture(self, texture_id):
        from pyglet import gl

        gl.glDeleteTextures(1, gl.GLuint(texture_id))


def sampler_names(textures: Iterable[Texture]) -> list[str]:
    """Sampler uniform names for ``textures``, numbered per kind from 1."""
    counters = dict.fromkeys(_SAMPLER_KINDS, 0)
    names = []
    for texture in textures:
        if texture.type in counters:
            counters[texture.type] += 1
            names.append(f"{texture.type}{counters[texture.type]}")
        else:
            names.append(texture.type)
    return names


class Mesh:
    """Indexed triangles with textures; GPU buffers are created on first draw."""

    def __init__(
        self,
        vertices: Iterable[Vertex],
        indices: Iterable[int],
        textures: Iterable[Texture],
        renderer: Renderer | None = None,
    ) -> None:
        self.vertices = list(vertices)
        self.indices = [int(i) for i in indices]
        self.textures = list(textures)
        self.renderer: Renderer = renderer if renderer is not None else GLRenderer()
        self._handle: Any = None

    def vertex_array(self) -> np.ndarray:
        """The vertices as one interleaved structured array."""
        array = np.zeros(len(self.vertices), dtype=VERTEX_DTYPE)
        if self.vertices:
            for name in VERTEX_DTYPE.names:
                array[name] = [getattr(vertex, name) for vertex in self.vertices]
        return array

    def draw(self, shader) -> None:
        """Bind the textures to their samplers and draw the triangles."""
        for unit, (name, texture) in enumerate(zip(sampler_names(self.textures), self.textures)):
            shader.set_int(name, unit)
            self.renderer.bind_texture(unit, texture.id)
        if self._handle is None:
            self._handle = self.renderer.upload_mesh(
                self.vertex_array(),
                np.asarray(self.indices, dtype=np.uint32),
                VERTEX_DTYPE.itemsize,
                VERTEX_ATTRIBUTES,
            )
        self.renderer.draw_elements(self._handle, "triangles", len(self.indices))
        self.renderer.reset_texture_unit()

    def _release(self) -> None:
        if self._handle is not None:
            self.renderer.delete_mesh(self._handle)
            self._handle = None
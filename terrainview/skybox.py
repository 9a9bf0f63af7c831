"""A cube-mapped sky drawn behind everything else."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

SKYBOX_FACES = (
    "assets/textures/skybox/bluecloud_ft.jpg",
    "assets/textures/skybox/bluecloud_bk.jpg",
    "assets/textures/skybox/bluecloud_up.jpg",
    "assets/textures/skybox/bluecloud_dn.jpg",
    "assets/textures/skybox/bluecloud_rt.jpg",
    "assets/textures/skybox/bluecloud_lf.jpg",
)

SKYBOX_VERTICES = np.array(
    [
        -1.0, 1.0, -1.0, -1.0, -1.0, -1.0, 1.0, -1.0, -1.0,
        1.0, -1.0, -1.0, 1.0, 1.0, -1.0, -1.0, 1.0, -1.0,

        -1.0, -1.0, 1.0, -1.0, -1.0, -1.0, -1.0, 1.0, -1.0,
        -1.0, 1.0, -1.0, -1.0, 1.0, 1.0, -1.0, -1.0, 1.0,

        1.0, -1.0, -1.0, 1.0, -1.0, 1.0, 1.0, 1.0, 1.0,
        1.0, 1.0, 1.0, 1.0, 1.0, -1.0, 1.0, -1.0, -1.0,

        -1.0, -1.0, 1.0, -1.0, 1.0, 1.0, 1.0, 1.0, 1.0,
        1.0, 1.0, 1.0, 1.0, -1.0, 1.0, -1.0, -1.0, 1.0,

        -1.0, 1.0, -1.0, 1.0, 1.0, -1.0, 1.0, 1.0, 1.0,
        1.0, 1.0, 1.0, -1.0, 1.0, 1.0, -1.0, 1.0, -1.0,

        -1.0, -1.0, -1.0, -1.0, -1.0, 1.0, 1.0, -1.0, -1.0,
        1.0, -1.0, -1.0, -1.0, -1.0, 1.0, 1.0, -1.0, 1.0,
    ],
    dtype=np.float32,
).reshape(36, 3)

FaceImage = Optional[tuple[int, int, bytes]]


class SkyboxRenderer(Protocol):
    def upload_vertices(self, vertices: np.ndarray) -> Any: ...

    def create_cubemap(self, faces: Sequence[FaceImage]) -> int: ...

    def draw_skybox(self, handle: Any, texture_id: int, count: int) -> None: ...


class GLSkyboxRenderer:
    """Skybox renderer for the current OpenGL context through pyglet."""

    def upload_vertices(self, vertices):
        from pyglet import gl

        data = np.ascontiguousarray(vertices, dtype=np.float32)
        vao, vbo = gl.GLuint(), gl.GLuint()
        gl.glGenVertexArrays(1, vao)
        gl.glGenBuffers(1, vbo)
        gl.glBindVertexArray(vao)
        gl.glBindBuffer(gl.GL_ARRAY_BUFFER, vbo)
        gl.glBufferData(gl.GL_ARRAY_BUFFER, data.nbytes, data.ctypes.data, gl.GL_STATIC_DRAW)
        gl.glEnableVertexAttribArray(0)
        gl.glVertexAttribPointer(0, 3, gl.GL_FLOAT, gl.GL_FALSE, 3 * data.itemsize, 0)
        gl.glBindVertexArray(0)
        return vao.value, vbo.value

    def create_cubemap(self, faces):
        from pyglet import gl

        texture = gl.GLuint()
        gl.glGenTextures(1, texture)
        gl.glBindTexture(gl.GL_TEXTURE_CUBE_MAP, texture)
        gl.glPixelStorei(gl.GL_UNPACK_ALIGNMENT, 1)
        for i, face in enumerate(faces):
            if face is None:
                continue
            width, height, data = face
            gl.glTexImage2D(
                gl.GL_TEXTURE_CUBE_MAP_POSITIVE_X + i, 0, gl.GL_RGB, width, height, 0,
                gl.GL_RGB, gl.GL_UNSIGNED_BYTE, data,
            )
        for name, value in (
            (gl.GL_TEXTURE_MIN_FILTER, gl.GL_LINEAR),
            (gl.GL_TEXTURE_MAG_FILTER, gl.GL_LINEAR),
            (gl.GL_TEXTURE_WRAP_S, gl.GL_CLAMP_TO_EDGE),
            (gl.GL_TEXTURE_WRAP_T, gl.GL_CLAMP_TO_EDGE),
            (gl.GL_TEXTURE_WRAP_R, gl.GL_CLAMP_TO_EDGE),
        ):
            gl.glTexParameteri(gl.GL_TEXTURE_CUBE_MAP, name, value)
        return texture.value

    def draw_skybox(self, handle, texture_id, count):
        from pyglet import gl

        gl.glDepthFunc(gl.GL_LEQUAL)
        gl.glBindVertexArray(handle[0])
        gl.glActiveTexture(gl.GL_TEXTURE0)
        gl.glBindTexture(gl.GL_TEXTURE_CUBE_MAP, texture_id)
        gl.glDrawArrays(gl.GL_TRIANGLES, 0, count)
        gl.glBindVertexArray(0)
        gl.glDepthFunc(gl.GL_LESS)


def _load_face(path: str | Path) -> FaceImage:
    try:
        with Image.open(path) as image:
            rgb = image.convert("RGB")
            width, height = rgb.size
            return width, height, rgb.tobytes()
    except OSError:
        logger.warning("cubemap texture failed to load at path: %s", path)
        return None


class Skybox:
    """A cube of sky textures that follows the camera's rotation only."""

    def __init__(
        self,
        faces: Sequence[str | Path] = SKYBOX_FACES,
        renderer: SkyboxRenderer | None = None,
    ) -> None:
        self.faces = list(faces)
        self.renderer: SkyboxRenderer = renderer if renderer is not None else GLSkyboxRenderer()
        self.cubemap_texture = self.renderer.create_cubemap([_load_face(p) for p in self.faces])
        self.handle = self.renderer.upload_vertices(SKYBOX_VERTICES)

    def draw(self, shader, view, projection, camera) -> None:
        """Draw the sky; ``view`` is replaced by the camera's view without translation."""
        view = np.identity(4)
        view[:3, :3] = np.asarray(camera.view_matrix(), dtype=float)[:3, :3]
        shader.use()
        shader.set_mat4("view", view)
        shader.set_mat4("projection", projection)
        self.renderer.draw_skybox(self.handle, self.cubemap_texture, len(SKYBOX_VERTICES))
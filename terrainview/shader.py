"""Shader programs built from vertex and fragment source files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Protocol, Sequence

import numpy as np


class ShaderError(Exception):
    """A shader source could not be read, compiled or linked."""


class ShaderBackend(Protocol):
    def compile_stage(self, stage: str, source: str) -> tuple[Any, bool, str]: ...

    def link(self, stages: Sequence[Any]) -> tuple[Any, bool, str]: ...

    def delete_stage(self, handle: Any) -> None: ...

    def use(self, program: Any) -> None: ...

    def uniform(self, program: Any, name: str, kind: str, value: Any) -> None: ...


class GLBackend:
    """Backend that compiles and drives shaders through pyglet's OpenGL layer."""

    def compile_stage(self, stage: str, source: str) -> tuple[Any, bool, str]:
        from pyglet.graphics.shader import Shader as GLShader, ShaderException

        try:
            return GLShader(source, stage.lower()), True, ""
        except ShaderException as exc:
            return None, False, str(exc)

    def link(self, stages: Sequence[Any]) -> tuple[Any, bool, str]:
        from pyglet.graphics.shader import ShaderException, ShaderProgram

        try:
            return ShaderProgram(*stages), True, ""
        except ShaderException as exc:
            return None, False, str(exc)

    def delete_stage(self, handle: Any) -> None:
        if handle is not None:
            handle.delete()

    def use(self, program: Any) -> None:
        program.use()

    def uniform(self, program: Any, name: str, kind: str, value: Any) -> None:
        from pyglet.graphics.shader import ShaderException

        # A uniform the program does not declare is ignored, as OpenGL does.
        try:
            program[name] = value
        except (ShaderException, KeyError):
            pass


def read_shader_sources(vertex_path: str | Path, fragment_path: str | Path) -> tuple[str, str]:
    """Read the vertex and fragment shader source files."""
    try:
        vertex = Path(vertex_path).read_text(encoding="utf-8")
        fragment = Path(fragment_path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ShaderError(f"shader file not successfully read: {exc}") from exc
    return vertex, fragment


def _vector(args: tuple, size: int) -> tuple[float, ...]:
    if len(args) == 1:
        values = tuple(float(v) for v in args[0])
    elif len(args) == size:
        values = tuple(float(v) for v in args)
    else:
        raise TypeError(f"expected one {size}-vector or {size} numbers, got {len(args)} arguments")
    if len(values) != size:
        raise ValueError(f"expected {size} components, got {len(values)}")
    return values


def _matrix(mat: Any, size: int) -> tuple[float, ...]:
    array = np.asarray(mat, dtype=float)
    if array.shape != (size, size):
        raise ValueError(f"expected a {size}x{size} matrix, got shape {array.shape}")
    return tuple(float(v) for v in array.flatten(order="F"))


class Shader:
    """A linked shader program with typed uniform setters.

    Matrices are given in row-major mathematical form and sent column-major.
    The last value sent for each uniform is kept in ``uniforms``.
    """

    def __init__(
        self,
        vertex_path: str | Path,
        fragment_path: str | Path,
        backend: ShaderBackend | None = None,
    ) -> None:
        self.backend: ShaderBackend = backend if backend is not None else GLBackend()
        self.uniforms: dict[str, Any] = {}
        vertex_source, fragment_source = read_shader_sources(vertex_path, fragment_path)

        compiled = []
        try:
            for stage, source in (("VERTEX", vertex_source), ("FRAGMENT", fragment_source)):
                handle, ok, log = self.backend.compile_stage(stage, source)
                if not ok:
                    raise ShaderError(f"shader compilation error of type: {stage}\n{log}")
                compiled.append(handle)
            program, ok, log = self.backend.link(compiled)
            if not ok:
                raise ShaderError(f"program linking error of type: PROGRAM\n{log}")
        finally:
            for handle in compiled:
                self.backend.delete_stage(handle)
        self.program = program

    def use(self) -> None:
        """Make this program the active one."""
        self.backend.use(self.program)

    def _send(self, name: str, kind: str, value: Any) -> None:
        self.uniforms[name] = value
        self.backend.uniform(self.program, name, kind, value)

    def set_bool(self, name: str, value: bool) -> None:
        self._send(name, "1i", int(bool(value)))

    def set_int(self, name: str, value: int) -> None:
        self._send(name, "1i", int(value))

    def set_float(self, name: str, value: float) -> None:
        self._send(name, "1f", float(value))

    def set_float_array(self, name: str, values: Iterable[float]) -> None:
        self._send(name, "1fv", tuple(float(v) for v in values))

    def set_vec2(self, name: str, *args) -> None:
        self._send(name, "2f", _vector(args, 2))

    def set_vec3(self, name: str, *args) -> None:
        self._send(name, "3f", _vector(args, 3))

    def set_vec4(self, name: str, *args) -> None:
        self._send(name, "4f", _vector(args, 4))

    def set_mat2(self, name: str, mat: Any) -> None:
        self._send(name, "mat2", _matrix(mat, 2))

    def set_mat3(self, name: str, mat: Any) -> None:
        self._send(name, "mat3", _matrix(mat, 3))

    def set_mat4(self, name: str, mat: Any) -> None:
        self._send(name, "mat4", _matrix(mat, 4))
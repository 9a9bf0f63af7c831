"""Point and directional lights that feed the lighting shaders."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Sequence, Union

from .camera import Camera
from .shader import Shader

UniformValue = Union[float, tuple]

_WHITE = (1.0, 1.0, 1.0)
_SUN_AMBIENT = (0.6, 0.6, 1.0)


def _triple(value: Sequence[float]) -> tuple[float, float, float]:
    values = tuple(float(v) for v in value)
    if len(values) != 3:
        raise ValueError(f"expected 3 components, got {len(values)}")
    return values


class Light:
    """Common base of the scene's lights."""

    def uniforms(self, index: int) -> dict[str, UniformValue]:
        raise NotImplementedError

    def _send(self, shader: Shader, index: int) -> None:
        for name, value in self.uniforms(index).items():
            if isinstance(value, tuple):
                shader.set_vec3(name, value)
            else:
                shader.set_float(name, value)


@dataclass
class PointLight(Light):
    """A light at a position, attenuated with distance.

    The camera is copied, so ``viewPos`` is the camera position at creation.
    """

    camera: Camera
    color: Sequence[float] = _WHITE
    pos: Sequence[float] = _WHITE

    def __post_init__(self) -> None:
        self.camera = copy.deepcopy(self.camera)
        self.color = _triple(self.color)
        self.pos = _triple(self.pos)

    def uniforms(self, index: int) -> dict[str, UniformValue]:
        """Uniform names and values for slot ``index`` of the ``light`` array."""
        prefix = f"light[{index}]"
        return {
            f"{prefix}.ambient": self.color,
            f"{prefix}.diffuse": self.color,
            f"{prefix}.specular": _WHITE,
            f"{prefix}.position": self.pos,
            "viewPos": _triple(self.camera.position),
            "lightPower": _WHITE,
            f"{prefix}.constant": 1.0,
            f"{prefix}.linear": 0.09,
            f"{prefix}.quadratic": 0.032,
        }

    def draw(self, shader: Shader, index: int) -> None:
        """Send this light's uniforms to the current program."""
        self._send(shader, index)


@dataclass
class SunLight(Light):
    """A directional light.

    The camera is copied, so ``viewPos`` is the camera position at creation.
    """

    camera: Camera
    color: Sequence[float] = _WHITE
    rot: Sequence[float] = _WHITE

    def __post_init__(self) -> None:
        self.camera = copy.deepcopy(self.camera)
        self.color = _triple(self.color)
        self.rot = _triple(self.rot)

    def uniforms(self, index: int) -> dict[str, UniformValue]:
        """Uniform names and values for slot ``index`` of the ``dirLight`` array."""
        prefix = f"dirLight[{index}]"
        return {
            f"{prefix}.ambient": _SUN_AMBIENT,
            f"{prefix}.diffuse": self.color,
            f"{prefix}.specular": _WHITE,
            f"{prefix}.direction": self.rot,
            "viewPos": _triple(self.camera.position),
            "lightPower": _WHITE,
        }

    def draw(self, shader: Shader, index: int) -> None:
        """Activate ``shader`` and send this light's uniforms to it."""
        shader.use()
        self._send(shader, index)
"""Orbiting and free-flying camera with the matrix helpers it needs."""

from __future__ import annotations

import math
from enum import IntEnum
from typing import Sequence

import numpy as np

YAW = 0.0
PITCH = 0.0
SPEED = 1.0
SENSITIVITY = 0.1
ZOOM = 60.0

_FREE_MOVE_FACTOR = 5.0
_ORBIT_RADIUS = 1.0
_PLAYER_EYE_HEIGHT = 0.2


class CameraMovement(IntEnum):
    """Directions of keyboard movement, independent of the windowing system."""

    FORWARD = 0
    BACKWARD = 1
    LEFT = 2
    RIGHT = 3
    UP = 4


def _vec3(value: Sequence[float]) -> np.ndarray:
    array = np.array(value, dtype=float)
    if array.shape != (3,):
        raise ValueError(f"expected a 3-component vector, got shape {array.shape}")
    return array


def normalize(v: Sequence[float]) -> np.ndarray:
    """Return ``v`` scaled to unit length; a zero vector is returned unchanged."""
    array = np.asarray(v, dtype=float)
    length = float(np.linalg.norm(array))
    if length == 0.0:
        return np.zeros_like(array)
    return array / length


def look_at(eye: Sequence[float], center: Sequence[float], up: Sequence[float]) -> np.ndarray:
    """Right-handed view matrix looking from ``eye`` towards ``center``."""
    eye_v = _vec3(eye)
    f = normalize(_vec3(center) - eye_v)
    s = normalize(np.cross(f, _vec3(up)))
    u = np.cross(s, f)
    matrix = np.identity(4)
    matrix[0, :3] = s
    matrix[1, :3] = u
    matrix[2, :3] = -f
    matrix[0, 3] = -float(np.dot(s, eye_v))
    matrix[1, 3] = -float(np.dot(u, eye_v))
    matrix[2, 3] = float(np.dot(f, eye_v))
    return matrix


def perspective(fovy: float, aspect: float, near: float, far: float) -> np.ndarray:
    """Right-handed perspective projection with clip depth in [-1, 1]; ``fovy`` in radians."""
    if aspect == 0:
        raise ValueError("aspect ratio must not be zero")
    if near == far:
        raise ValueError("near and far planes must differ")
    tan_half = math.tan(fovy / 2.0)
    if tan_half == 0:
        raise ValueError("field of view must not be zero")
    matrix = np.zeros((4, 4))
    matrix[0, 0] = 1.0 / (aspect * tan_half)
    matrix[1, 1] = 1.0 / tan_half
    matrix[2, 2] = -(far + near) / (far - near)
    matrix[3, 2] = -1.0
    matrix[2, 3] = -(2.0 * far * near) / (far - near)
    return matrix


class Camera:
    """Camera that either orbits the player or flies freely using Euler angles."""

    def __init__(
        self,
        position: Sequence[float] = (0.0, 0.0, 0.0),
        up: Sequence[float] = (0.0, 1.0, 0.0),
        yaw: float = YAW,
        pitch: float = PITCH,
    ) -> None:
        self.position = _vec3(position)
        self.world_up = _vec3(up)
        self.yaw = float(yaw)
        self.pitch = float(pitch)
        self.front = np.array([0.0, 0.0, -1.0])
        self.up = np.array(self.world_up)
        self.right = np.zeros(3)
        self.player_position = np.zeros(3)
        self.movement_speed = SPEED
        self.mouse_sensitivity = SENSITIVITY
        self.zoom = ZOOM
        self._update_vectors()

    def view_matrix(self) -> np.ndarray:
        """View matrix for the current position and orientation."""
        return look_at(self.position, self.position + self.front, self.up)

    def process_keyboard(self, direction: CameraMovement, delta_time: float, player) -> None:
        """Keyboard input in player mode: the camera itself stays put and follows through ``update``."""
        CameraMovement(direction)

    def process_keyboard_free(self, direction: CameraMovement, delta_time: float) -> None:
        """Move the free camera along its own axes."""
        direction = CameraMovement(direction)
        step = self.movement_speed * delta_time * _FREE_MOVE_FACTOR
        if direction is CameraMovement.FORWARD:
            self.position = self.position + self.front * step
        elif direction is CameraMovement.BACKWARD:
            self.position = self.position - self.front * step
        elif direction is CameraMovement.LEFT:
            self.position = self.position - self.right * step
        elif direction is CameraMovement.RIGHT:
            self.position = self.position + self.right * step

    def process_mouse_movement(
        self, xoffset: float, yoffset: float, constrain_pitch: bool = True
    ) -> None:
        """Turn the orbiting camera; pitch always stays within [-89, -1] degrees."""
        self.yaw += xoffset * self.mouse_sensitivity
        self.pitch -= yoffset * self.mouse_sensitivity
        self.pitch = min(max(self.pitch, -89.0), -1.0)
        self._update_vectors_free()

    def process_mouse_movement_free(
        self, xoffset: float, yoffset: float, constrain_pitch: bool = True
    ) -> None:
        """Turn the free camera; with ``constrain_pitch`` the pitch stays within [-89, 89]."""
        self.yaw += xoffset * self.mouse_sensitivity
        self.pitch += yoffset * self.mouse_sensitivity
        if constrain_pitch:
            self.pitch = min(max(self.pitch, -89.0), 89.0)
        self._update_vectors_free()

    def process_mouse_scroll(self, yoffset: float) -> None:
        """Zoom in or out, keeping the field of view within [10, 90] degrees."""
        self.zoom -= float(yoffset)
        self.zoom = min(max(self.zoom, 10.0), 90.0)

    def update(self, delta_time: float, player: Sequence[float]) -> None:
        """Place the camera on its orbit around the player and aim at them."""
        px, py, pz = _vec3(player)
        self.player_position = np.array([px, py + _PLAYER_EYE_HEIGHT, pz])
        self._update_position()
        self._update_vectors()

    def _update_vectors(self) -> None:
        self.front = normalize(self.player_position - self.position)
        self.right = normalize(np.cross(self.front, self.world_up))
        self.up = normalize(np.cross(self.right, self.front))

    def _update_vectors_free(self) -> None:
        yaw = math.radians(self.yaw)
        pitch = math.radians(self.pitch)
        front = np.array(
            [
                math.cos(yaw) * math.cos(pitch),
                math.sin(pitch),
                math.sin(yaw) * math.cos(pitch),
            ]
        )
        self.front = normalize(front)
        self.right = normalize(np.cross(self.front, self.world_up))
        self.up = normalize(np.cross(self.right, self.front))

    def _update_position(self) -> None:
        theta = math.radians(-self.pitch)
        yaw = math.radians(self.yaw)
        target = self.player_position
        self.position = np.array(
            [
                target[0] - _ORBIT_RADIUS * math.sin(theta) * math.cos(yaw),
                target[1] + _ORBIT_RADIUS * math.cos(theta),
                target[2] - _ORBIT_RADIUS * math.sin(theta) * math.sin(yaw),
            ]
        )
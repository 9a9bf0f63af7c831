"""The walking player and its robot model."""

from __future__ import annotations

import math
from pathlib import Path

import numpy as np

from .camera import Camera, CameraMovement
from .mesh import Renderer
from .model import Model

PLAYER_MODEL_PATH = "assets/models/Robot/LilRobot.obj"

_MODEL_SCALE = (0.05, 0.05, 0.05)


class Player:
    """A player that walks in the direction the camera faces."""

    def __init__(
        self,
        camera: Camera,
        renderer: Renderer | None = None,
        model_path: str | Path = PLAYER_MODEL_PATH,
    ) -> None:
        self.camera = camera
        self.renderer = renderer
        self.model_path = model_path
        self.position = np.zeros(3)
        self.movement_speed = 100.0
        self.jump_velocity = 0.0
        self.fall_velocity = 0.0
        self.gravity = 9.8 * 2.0
        self.is_jumping = False
        self.ground_level = 0.0
        self.ground = True
        self.player_yaw = 0.0
        self.speed = 0.3
        self.models: list[Model] = []
        self.load_model()

    def load_model(self) -> None:
        """Load the player's model and add it to ``models``."""
        self.models.append(
            Model(
                self.model_path,
                (1.0, 1.0, 1.0),
                0.0,
                (0.0, 1.0, 0.0),
                (1.0, 1.0, 1.0),
                renderer=self.renderer,
            )
        )

    def process_keyboard(self, direction: CameraMovement, delta_time: float) -> None:
        """Walk relative to the camera's yaw."""
        direction = CameraMovement(direction)
        step = self.movement_speed * delta_time * self.speed
        self.player_yaw = self.camera.yaw
        angle = math.radians(self.player_yaw)
        if direction is CameraMovement.FORWARD:
            self.position[0] += math.cos(angle) * step
            self.position[2] -= math.sin(-angle) * step
        elif direction is CameraMovement.BACKWARD:
            self.position[0] -= math.cos(angle) * step
            self.position[2] += math.sin(-angle) * step
        elif direction is CameraMovement.LEFT:
            self.position[0] -= math.sin(-angle) * step
            self.position[2] -= math.cos(angle) * step
        elif direction is CameraMovement.RIGHT:
            self.position[0] += math.sin(-angle) * step
            self.position[2] += math.cos(angle) * step

    def draw(self, shader) -> None:
        """Draw the model at the player's position, turned to face its heading."""
        shader.use()
        model = self.models[0]
        model.scale = np.array(_MODEL_SCALE)
        model.pos = self.position.copy()
        model.rotation = -self.player_yaw - 90.0
        model.draw(shader)
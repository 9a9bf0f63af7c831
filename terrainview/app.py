"""The terrain viewer application: window, input handling and the frame loop."""

from __future__ import annotations

import argparse
import math
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Optional

import numpy as np

from .camera import SPEED, Camera, CameraMovement, perspective
from .lights import PointLight, SunLight
from .model import Model
from .overlay import Overlay
from .shader import Shader
from .skybox import Skybox
from .terrain import Map

SCR_WIDTH = 1500
SCR_HEIGHT = 900
WINDOW_TITLE = "OpenGL Project"
NEAR_PLANE = 0.1
FAR_PLANE = 5000.0
CLEAR_COLOR = (0.1, 0.1, 0.1, 1.0)
FAST_SPEED_BONUS = 10.0

SHADER_FILES = (
    ("Shader/VS_lightshader.glsl", "Shader/FS_lightShader.glsl"),
    ("Shader/VS_mapShader.glsl", "Shader/FS_mapShader.glsl"),
    ("Shader/VS_WaterShader.glsl", "Shader/FS_WaterShader.glsl"),
    ("Shader/VS_skyboxShader.glsl", "Shader/FS_skyboxShader.glsl"),
)
BOX_MODEL_PATH = "assets/models/Box/Box.obj"


class Key(IntEnum):
    """Key symbols, with the same values as pyglet's ``pyglet.window.key``."""

    A = 97
    C = 99
    D = 100
    O = 111
    P = 112
    S = 115
    W = 119
    Z = 122
    ESCAPE = 0xFF1B
    LSHIFT = 0xFFE1


def _pressed(keys: Any, symbol: int) -> bool:
    if hasattr(keys, "get"):
        return bool(keys.get(symbol, False))
    return symbol in keys


@dataclass
class InputState:
    """Mode switches and mouse tracking driven by keyboard and mouse events.

    ``camera_switch`` True means the camera flies freely, False that it follows
    the player; ``mouse_switch`` True means the mouse turns the camera.
    """

    camera: Camera
    camera_switch: bool = True
    mouse_switch: bool = True
    wireframe: bool = False
    should_close: bool = False
    last_x: float = SCR_WIDTH / 2.0
    last_y: float = SCR_HEIGHT / 2.0
    first_mouse: bool = True

    def on_key_press(self, symbol: int) -> None:
        """React to a key being pressed."""
        if symbol == Key.P:
            self.wireframe = True
        elif symbol == Key.O:
            self.wireframe = False
        elif symbol == Key.C:
            self.camera_switch = not self.camera_switch
        elif symbol == Key.ESCAPE:
            self.should_close = True
        elif symbol == Key.Z:
            self.mouse_switch = not self.mouse_switch

    def on_mouse_motion(self, x: float, y: float) -> tuple[float, float]:
        """Turn the camera by the cursor's movement; y grows downwards.

        Returns the offsets that were computed.
        """
        x, y = float(x), float(y)
        if self.first_mouse:
            self.last_x, self.last_y = x, y
            self.first_mouse = False
        xoffset = x - self.last_x
        yoffset = self.last_y - y
        self.last_x, self.last_y = x, y
        if self.mouse_switch:
            if self.camera_switch:
                self.camera.process_mouse_movement_free(xoffset, yoffset)
            else:
                self.camera.process_mouse_movement(xoffset, yoffset)
        return xoffset, yoffset


class Application:
    """Owns the scene and runs the render loop in a pyglet window.

    Without a window the application can still step frames, which skips
    every direct OpenGL call; shaders, models, terrain and sky are then
    supplied by the caller.
    """

    def __init__(
        self,
        window: Any = None,
        *,
        camera: Optional[Camera] = None,
        world: Any = None,
        skybox: Any = None,
        overlay: Optional[Overlay] = None,
        shader_factory: Callable[[str, str], Any] = Shader,
        model_factory: Callable[..., Any] = Model,
    ) -> None:
        self.window = window
        self.camera = camera if camera is not None else Camera((-1.0, 1.0, 0.0))
        self.input = InputState(self.camera)
        self.overlay = (
            overlay
            if overlay is not None
            else Overlay(top=(window.height if window is not None else SCR_HEIGHT) - 10)
        )
        self.keys: Any = {}
        self.view = np.identity(4)
        self.projection = np.identity(4)
        self.models: list[Any] = []
        self.sun_lights: list[SunLight] = []
        self.point_lights: list[PointLight] = []
        self.shaders: list[Any] = []
        self.delta_time = 0.0
        self.last_frame = 0.0
        self._shader_factory = shader_factory
        self._model_factory = model_factory
        self._cursor = (SCR_WIDTH / 2.0, SCR_HEIGHT / 2.0)
        self._exclusive: Optional[bool] = None
        self.world = world if world is not None else Map(self.camera)
        self.skybox = skybox if skybox is not None else Skybox()
        if window is not None:
            self._attach(window)

    def _attach(self, window: Any) -> None:
        from pyglet.window import key

        window.push_handlers(
            on_key_press=self._on_key_press,
            on_mouse_motion=self._on_mouse_motion,
            on_mouse_drag=self._on_mouse_drag,
            on_mouse_scroll=self._on_mouse_scroll,
        )
        # Pushed last so it sees key presses before the handler above stops them.
        self.keys = key.KeyStateHandler()
        window.push_handlers(self.keys)

    def _on_key_press(self, symbol: int, modifiers: int) -> bool:
        self.input.on_key_press(symbol)
        if symbol in (Key.P, Key.O):
            from pyglet import gl

            mode = gl.GL_LINE if self.input.wireframe else gl.GL_FILL
            gl.glPolygonMode(gl.GL_FRONT_AND_BACK, mode)
        return True

    def _on_mouse_motion(self, x: float, y: float, dx: float, dy: float) -> None:
        cx, cy = self._cursor
        self._cursor = (cx + dx, cy - dy)
        self.input.on_mouse_motion(*self._cursor)

    def _on_mouse_drag(self, x, y, dx, dy, buttons, modifiers) -> None:
        self._on_mouse_motion(x, y, dx, dy)

    def _on_mouse_scroll(self, x: float, y: float, scroll_x: float, scroll_y: float) -> None:
        self.on_scroll(scroll_y)

    def init(self) -> None:
        """Build the shader programs and set the fixed OpenGL state."""
        self.shaders.extend(self._shader_factory(vs, fs) for vs, fs in SHADER_FILES)
        if self.window is not None:
            self._configure_gl()

    def _configure_gl(self) -> None:
        from pyglet import gl

        gl.glEnable(gl.GL_DEPTH_TEST)
        gl.glDepthFunc(gl.GL_LESS)
        gl.glEnable(gl.GL_STENCIL_TEST)
        gl.glEnable(gl.GL_BLEND)
        gl.glBlendFunc(gl.GL_SRC_ALPHA, gl.GL_ONE_MINUS_SRC_ALPHA)
        gl.glEnable(gl.GL_CULL_FACE)
        gl.glEnable(gl.GL_MULTISAMPLE)

    def _require_shaders(self) -> None:
        if len(self.shaders) < len(SHADER_FILES):
            raise RuntimeError("init() must run before the scene is used")

    def init_objects(self) -> None:
        """Create the scene's objects and lights and tell the shaders how many lights there are."""
        self._require_shaders()
        self.shaders[0].use()
        self.models.append(
            self._model_factory(
                BOX_MODEL_PATH, (1.0, 1.0, 1.0), 0.0, (0.0, 1.0, 0.0), (1.0, 1.0, 1.0)
            )
        )
        self.sun_lights.append(SunLight(self.camera, (1.0, 1.0, 1.0), (1.0, 0.5, 0.5)))
        self.shaders[0].set_int("numberOfSun", len(self.sun_lights))
        self.shaders[1].use()
        self.shaders[1].set_int("numberOfSun", len(self.sun_lights))
        self.shaders[0].set_int("numberOfPointLight", len(self.point_lights))

    def process_input(self, keys: Any) -> None:
        """Move the player or the free camera for the keys held down."""
        moves = (
            (Key.W, CameraMovement.FORWARD),
            (Key.S, CameraMovement.BACKWARD),
            (Key.A, CameraMovement.LEFT),
            (Key.D, CameraMovement.RIGHT),
        )
        if not self.input.camera_switch:
            for symbol, direction in moves:
                if _pressed(keys, symbol):
                    self.world.player.process_keyboard(direction, self.delta_time)
            return
        fast = _pressed(keys, Key.LSHIFT)
        self.camera.movement_speed = SPEED + FAST_SPEED_BONUS if fast else SPEED
        for symbol, direction in moves:
            if _pressed(keys, symbol):
                self.camera.process_keyboard_free(direction, self.delta_time)

    def on_scroll(self, yoffset: float) -> None:
        """Zoom the camera with the scroll wheel."""
        self.camera.process_mouse_scroll(float(yoffset))

    def _clear(self) -> None:
        from pyglet import gl

        gl.glClearColor(*CLEAR_COLOR)
        gl.glClear(gl.GL_COLOR_BUFFER_BIT | gl.GL_DEPTH_BUFFER_BIT | gl.GL_STENCIL_BUFFER_BIT)

    def _set_cursor_mode(self) -> None:
        exclusive = bool(self.input.mouse_switch)
        if exclusive != self._exclusive:
            self.window.set_exclusive_mouse(exclusive)
            self._exclusive = exclusive

    def frame(self, delta_time: float) -> None:
        """Handle input, update the world and draw one frame."""
        self._require_shaders()
        self.delta_time = float(delta_time)
        fps = 1.0 / self.delta_time if self.delta_time else math.inf

        overlay = self.overlay
        overlay.begin_frame()
        overlay.text(f"FPS {fps:f}")
        overlay.text("-" * 32)
        x, y, z = (float(v) for v in self.camera.position)
        overlay.text(f"Camera Position {x:f} {y:f} {z:f}")
        overlay.text(f"Camera Yaw {self.camera.yaw:f}")

        self.process_input(self.keys)

        if self.window is not None:
            self._clear()
        if not self.input.camera_switch:
            self.camera.update(self.delta_time, self.world.player.position)
        if self.window is not None:
            self._set_cursor_mode()

        self.view = self.camera.view_matrix()
        self.projection = perspective(
            math.radians(self.camera.zoom), SCR_WIDTH / SCR_HEIGHT, NEAR_PLANE, FAR_PLANE
        )
        for shader in self.shaders:
            shader.use()
            shader.set_mat4("view", self.view)
            shader.set_mat4("projection", self.projection)

        for index, light in enumerate(self.sun_lights):
            light.draw(self.shaders[0], index)
        for index, light in enumerate(self.sun_lights):
            light.draw(self.shaders[1], index)

        self.world.update()
        self.world.draw(self.shaders[1], self.shaders[2], self.shaders[0])
        self.skybox.draw(self.shaders[3], self.view, self.projection, self.camera)

        overlay.render()

    def _closing(self) -> bool:
        return self.input.should_close or bool(getattr(self.window, "has_exit", False))

    def loop(self) -> None:
        """Render frames until the window is asked to close."""
        if self.window is None:
            raise RuntimeError("the render loop needs a window")
        start = time.perf_counter()
        self.window.switch_to()
        while not self._closing():
            current = time.perf_counter() - start
            delta = current - self.last_frame
            self.last_frame = current
            self.window.flip()
            self.window.dispatch_events()
            if self._closing():
                break
            self.frame(delta)

    def cleanup(self) -> None:
        """Close the window and release it."""
        if self.window is not None:
            self.window.close()
            self.window = None


def _create_window() -> Any:
    import pyglet

    config = pyglet.gl.Config(
        major_version=3,
        minor_version=3,
        forward_compatible=True,
        double_buffer=True,
        depth_size=24,
        stencil_size=8,
        sample_buffers=1,
        samples=4,
    )
    return pyglet.window.Window(
        width=SCR_WIDTH, height=SCR_HEIGHT, caption=WINDOW_TITLE, config=config, vsync=False
    )


def main(argv=None) -> int:
    """Open the viewer window and run until it is closed."""
    parser = argparse.ArgumentParser(
        prog="terrainview",
        description="Walk or fly over procedurally generated terrain.",
    )
    parser.parse_args(argv)
    app = Application(_create_window())
    try:
        app.init()
        app.init_objects()
        app.loop()
    finally:
        app.cleanup()
    return 0
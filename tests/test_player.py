import numpy as np
import pytest

from terrainview.camera import Camera, CameraMovement
from terrainview.player import Player

TRIANGLE = "v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 3\n"


class FakeRenderer:
    def __init__(self):
        self.draws = []

    def upload_mesh(self, vertex_data, indices, stride, attributes):
        return "mesh"

    def draw_elements(self, handle, mode, count):
        self.draws.append(count)

    def bind_texture(self, unit, texture_id):
        pass

    def reset_texture_unit(self):
        pass


class FakeShader:
    def __init__(self):
        self.used = 0
        self.mats = []

    def use(self):
        self.used += 1

    def set_mat4(self, name, mat):
        self.mats.append((name, np.array(mat)))

    def set_int(self, name, value):
        pass


@pytest.fixture
def player(tmp_path):
    path = tmp_path / "robot.obj"
    path.write_text(TRIANGLE)
    return Player(Camera(), renderer=FakeRenderer(), model_path=path)


def test_player_loads_one_model(player):
    assert len(player.models) == 1
    assert len(player.models[0].meshes) == 1


def test_missing_model_raises(tmp_path):
    from terrainview.model import ModelLoadError

    with pytest.raises(ModelLoadError):
        Player(Camera(), renderer=FakeRenderer(), model_path=tmp_path / "none.obj")


def test_forward_then_backward_returns_home(player):
    player.camera.yaw = 37.0
    player.process_keyboard(CameraMovement.FORWARD, 0.2)
    assert np.linalg.norm(player.position) > 0
    player.process_keyboard(CameraMovement.BACKWARD, 0.2)
    assert np.allclose(player.position, 0.0)


def test_step_length(player):
    player.camera.yaw = 123.0
    player.process_keyboard(CameraMovement.RIGHT, 0.05)
    expected = player.movement_speed * 0.05 * player.speed
    assert np.linalg.norm(player.position) == pytest.approx(expected)
    assert player.position[1] == 0.0


def test_forward_at_zero_yaw_moves_along_x(player):
    player.process_keyboard(CameraMovement.FORWARD, 0.1)
    assert player.position[0] > 0
    assert player.position[2] == pytest.approx(0.0)


def test_forward_at_quarter_turn_moves_along_z(player):
    player.camera.yaw = 90.0
    player.process_keyboard(CameraMovement.FORWARD, 0.1)
    assert player.position[0] == pytest.approx(0.0, abs=1e-9)
    assert player.position[2] > 0


def test_left_is_perpendicular_to_forward(player):
    player.camera.yaw = 30.0
    player.process_keyboard(CameraMovement.FORWARD, 0.1)
    forward = player.position.copy()
    player.position[:] = 0.0
    player.process_keyboard(CameraMovement.LEFT, 0.1)
    assert np.dot(forward, player.position) == pytest.approx(0.0, abs=1e-9)
    assert player.position[2] < 0 or player.position[0] != 0


def test_yaw_follows_camera(player):
    player.camera.yaw = 45.0
    player.process_keyboard(CameraMovement.LEFT, 0.0)
    assert player.player_yaw == 45.0


def test_draw_places_model_at_player(player):
    player.position[:] = (2.0, 3.0, 4.0)
    shader = FakeShader()
    player.draw(shader)
    model = player.models[0]
    assert shader.used == 1
    assert model.rotation == -90.0
    assert np.allclose(model.scale, 0.05)
    assert np.allclose(model.pos, [2.0, 3.0, 4.0])
    assert np.allclose(shader.mats[0][1][:3, 3], [2.0, 3.0, 4.0])
    assert player.renderer.draws == [3]


def test_draw_copies_position(player):
    player.draw(FakeShader())
    player.position[0] = 9.0
    assert player.models[0].pos[0] == 0.0
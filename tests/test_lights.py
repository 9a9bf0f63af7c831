import pytest

from terrainview.camera import Camera
from terrainview.lights import PointLight, SunLight
from terrainview.shader import Shader


class RecordingBackend:
    def __init__(self):
        self.calls = []

    def compile_stage(self, stage, source):
        return stage, True, ""

    def link(self, stages):
        return "program", True, ""

    def delete_stage(self, handle):
        pass

    def use(self, program):
        self.calls.append(("use", program))

    def uniform(self, program, name, kind, value):
        self.calls.append(("uniform", name, kind, value))


@pytest.fixture
def shader(tmp_path):
    vs = tmp_path / "vs.glsl"
    fs = tmp_path / "fs.glsl"
    vs.write_text("void main() {}")
    fs.write_text("void main() {}")
    return Shader(vs, fs, backend=RecordingBackend())


def test_point_light_uniform_names_for_index():
    light = PointLight(Camera((1.0, 2.0, 3.0)), (1.0, 0.0, 0.0), (4.0, 5.0, 6.0))
    u = light.uniforms(2)
    assert u["light[2].ambient"] == (1.0, 0.0, 0.0)
    assert u["light[2].diffuse"] == (1.0, 0.0, 0.0)
    assert u["light[2].position"] == (4.0, 5.0, 6.0)
    assert u["light[2].specular"] == (1.0, 1.0, 1.0)
    assert u["viewPos"] == (1.0, 2.0, 3.0)
    assert u["light[2].constant"] == 1.0
    assert u["light[2].linear"] == pytest.approx(0.09)
    assert u["light[2].quadratic"] == pytest.approx(0.032)


def test_sun_light_uniforms():
    light = SunLight(Camera(), (1.0, 1.0, 1.0), (1.0, 0.5, 0.5))
    u = light.uniforms(0)
    assert u["dirLight[0].ambient"] == (0.6, 0.6, 1.0)
    assert u["dirLight[0].direction"] == (1.0, 0.5, 0.5)
    assert u["lightPower"] == (1.0, 1.0, 1.0)
    assert set(u) == {
        "dirLight[0].ambient",
        "dirLight[0].diffuse",
        "dirLight[0].specular",
        "dirLight[0].direction",
        "viewPos",
        "lightPower",
    }


def test_camera_is_copied_at_creation():
    cam = Camera((1.0, 1.0, 1.0))
    light = SunLight(cam, (1.0, 1.0, 1.0), (0.0, -1.0, 0.0))
    cam.position[0] = 50.0
    assert light.uniforms(0)["viewPos"] == (1.0, 1.0, 1.0)


def test_sun_draw_uses_shader_and_sends_all_uniforms(shader):
    light = SunLight(Camera(), (0.2, 0.4, 0.8), (1.0, 0.5, 0.5))
    light.draw(shader, 1)
    calls = shader.backend.calls
    assert calls[0] == ("use", "program")
    sent = {name for kind, name, *_ in calls[1:]}
    assert sent == set(light.uniforms(1))
    assert shader.uniforms["dirLight[1].diffuse"] == (0.2, 0.4, 0.8)


def test_point_draw_sends_floats_and_vectors_without_use(shader):
    light = PointLight(Camera(), (0.5, 0.5, 0.5), (0.0, 10.0, 0.0))
    light.draw(shader, 0)
    calls = shader.backend.calls
    assert all(call[0] == "uniform" for call in calls)
    kinds = {call[1]: call[2] for call in calls}
    assert kinds["light[0].linear"] == "1f"
    assert kinds["light[0].position"] == "3f"
    assert shader.uniforms == light.uniforms(0)


def test_rejects_malformed_color():
    with pytest.raises(ValueError):
        PointLight(Camera(), (1.0, 1.0), (0.0, 0.0, 0.0))
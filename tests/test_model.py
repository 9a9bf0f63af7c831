import numpy as np
import pytest
from PIL import Image

from terrainview.model import Model, ModelLoadError, load_obj, texture_from_file

QUAD = """\
v 0 0 0
v 1 0 0
v 1 0 1
v 0 0 1
vt 0 0
vt 1 0
vt 1 1
vt 0 0.25
f 1/1 4/4 3/3 2/2
"""

UV_INPUT = {(0.0, 0.0, 0.0): 0.0, (1.0, 0.0, 0.0): 0.0, (1.0, 0.0, 1.0): 1.0, (0.0, 0.0, 1.0): 0.25}

TEXTURED_TRIANGLE = (
    "mtllib m.mtl\nv 0 0 0\nv 1 0 0\nv 0 1 0\nvt 0 0\nvt 1 0\nvt 0 1\nusemtl a\nf 1/1 2/2 3/3\n"
)


class FakeRenderer:
    def __init__(self):
        self.created = []
        self.deleted_textures = []
        self.deleted_meshes = []
        self.draws = []

    def create_texture(self, width, height, components, data):
        self.created.append((width, height, components, data))
        return 100 + len(self.created)

    def upload_mesh(self, vertex_data, indices, stride, attributes):
        return ("mesh", len(indices))

    def draw_elements(self, handle, mode, count):
        self.draws.append(count)

    def bind_texture(self, unit, texture_id):
        pass

    def reset_texture_unit(self):
        pass

    def delete_mesh(self, handle):
        self.deleted_meshes.append(handle)

    def delete_texture(self, texture_id):
        self.deleted_textures.append(texture_id)


class FakeShader:
    def __init__(self):
        self.mats = []
        self.ints = []

    def set_mat4(self, name, mat):
        self.mats.append((name, np.array(mat)))

    def set_int(self, name, value):
        self.ints.append((name, value))


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return path


def _textured_model(tmp_path, texture_name, renderer):
    _write(tmp_path, "m.mtl", f"newmtl a\nmap_Kd {texture_name}\n")
    return Model(_write(tmp_path, "m.obj", TEXTURED_TRIANGLE), renderer=renderer)


def test_quad_is_triangulated(tmp_path):
    (mesh,) = load_obj(_write(tmp_path, "quad.obj", QUAD))
    assert len(mesh.vertices) == 4
    assert len(mesh.indices) == 6
    assert set(mesh.indices) == {0, 1, 2, 3}


def test_texture_coordinates_are_flipped(tmp_path):
    (mesh,) = load_obj(_write(tmp_path, "quad.obj", QUAD))
    for vertex in mesh.vertices:
        assert vertex.tex_coords[1] == pytest.approx(1.0 - UV_INPUT[vertex.position])


def test_missing_normals_are_generated_perpendicular_to_plane(tmp_path):
    (mesh,) = load_obj(_write(tmp_path, "quad.obj", QUAD))
    for vertex in mesh.vertices:
        assert abs(vertex.normal[1]) == pytest.approx(1.0)
        assert vertex.normal[0] == pytest.approx(0.0)
        assert vertex.normal[2] == pytest.approx(0.0)


def test_tangents_are_unit_and_orthogonal_to_normal(tmp_path):
    (mesh,) = load_obj(_write(tmp_path, "quad.obj", QUAD))
    for vertex in mesh.vertices:
        assert np.linalg.norm(vertex.tangent) == pytest.approx(1.0)
        assert np.dot(vertex.tangent, vertex.normal) == pytest.approx(0.0, abs=1e-9)


def test_given_normals_are_kept(tmp_path):
    text = "v 0 0 0\nv 1 0 0\nv 0 1 0\nvn 0 0 1\nf 1//1 2//1 3//1\n"
    (mesh,) = load_obj(_write(tmp_path, "tri.obj", text))
    assert all(v.normal == (0.0, 0.0, 1.0) for v in mesh.vertices)
    assert all(v.tangent == (0.0, 0.0, 0.0) for v in mesh.vertices)


def test_negative_indices_match_positive(tmp_path):
    base = "v 0 0 0\nv 1 0 0\nv 0 1 0\n"
    (a,) = load_obj(_write(tmp_path, "a.obj", base + "f 1 2 3\n"))
    (b,) = load_obj(_write(tmp_path, "b.obj", base + "f -3 -2 -1\n"))
    assert [v.position for v in a.vertices] == [v.position for v in b.vertices]
    assert a.indices == b.indices


def test_objects_become_separate_meshes(tmp_path):
    text = "v 0 0 0\nv 1 0 0\nv 0 1 0\no first\nf 1 2 3\no second\nf 3 2 1\n"
    meshes = load_obj(_write(tmp_path, "two.obj", text))
    assert len(meshes) == 2


@pytest.mark.parametrize(
    "text",
    ["v 0 0 0\nv 1 0 0\nf 1 2 3\n", "v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2\n", "v 0 0 0\n"],
)
def test_bad_models_raise(tmp_path, text):
    with pytest.raises(ModelLoadError):
        load_obj(_write(tmp_path, "bad.obj", text))


def test_missing_model_file_raises(tmp_path):
    with pytest.raises(ModelLoadError):
        Model(tmp_path / "absent.obj", renderer=FakeRenderer())


def test_texture_from_file_reports_image_shape(tmp_path):
    Image.new("RGB", (2, 3), (10, 20, 30)).save(tmp_path / "tex.png")
    renderer = FakeRenderer()
    model = _textured_model(tmp_path, "tex.png", renderer)
    width, height, components, data = renderer.created[0]
    assert model.meshes[0].textures[0].id == 101
    assert (width, height, components) == (2, 3, 3)
    assert len(data) == width * height * components


def test_texture_from_file_grayscale(tmp_path):
    Image.new("L", (4, 4), 7).save(tmp_path / "grey.png")
    renderer = FakeRenderer()
    _textured_model(tmp_path, "grey.png", renderer)
    assert renderer.created[0][2] == 1


def test_texture_from_file_missing_raises(tmp_path):
    with pytest.raises(ModelLoadError):
        texture_from_file("nope.png", tmp_path, False)


def test_shared_texture_is_loaded_once(tmp_path):
    Image.new("RGBA", (2, 2)).save(tmp_path / "skin.png")
    _write(
        tmp_path,
        "mat.mtl",
        "newmtl a\nmap_Kd skin.png\nnewmtl b\nmap_Kd skin.png\nmap_Ks skin.png\n",
    )
    text = (
        "mtllib mat.mtl\nv 0 0 0\nv 1 0 0\nv 0 1 0\nvt 0 0\nvt 1 0\nvt 0 1\n"
        "usemtl a\nf 1/1 2/2 3/3\nusemtl b\nf 3/3 2/2 1/1\n"
    )
    renderer = FakeRenderer()
    model = Model(_write(tmp_path, "m.obj", text), renderer=renderer)
    assert len(renderer.created) == 1
    assert len(model.meshes) == 2
    assert [t.type for t in model.meshes[1].textures] == ["texture_diffuse", "texture_diffuse"]
    assert {t.id for m in model.meshes for t in m.textures} == {101}


def test_model_matrix_places_translation_and_scale(tmp_path):
    model = Model(
        _write(tmp_path, "quad.obj", QUAD),
        pos=(3.0, -2.0, 5.0),
        scale=(2.0, 4.0, 6.0),
        renderer=FakeRenderer(),
    )
    matrix = model.model_matrix()
    assert np.allclose(matrix[:3, 3], [3.0, -2.0, 5.0])
    assert np.allclose(np.diag(matrix)[:3], [2.0, 4.0, 6.0])


def test_model_matrix_rotation_about_y(tmp_path):
    model = Model(
        _write(tmp_path, "quad.obj", QUAD),
        rotation=90.0,
        rotation_axis=(0.0, 1.0, 0.0),
        renderer=FakeRenderer(),
    )
    moved = model.model_matrix() @ np.array([1.0, 0.0, 0.0, 1.0])
    assert np.allclose(moved, [0.0, 0.0, -1.0, 1.0])


def test_draw_sends_model_matrix_per_mesh(tmp_path):
    text = "v 0 0 0\nv 1 0 0\nv 0 1 0\no first\nf 1 2 3\no second\nf 3 2 1\n"
    renderer = FakeRenderer()
    model = Model(_write(tmp_path, "two.obj", text), pos=(1.0, 2.0, 3.0), renderer=renderer)
    shader = FakeShader()
    model.draw(shader)
    assert [name for name, _ in shader.mats] == ["model", "model"]
    assert np.allclose(shader.mats[0][1], model.model_matrix())
    assert shader.ints == [("matOrText", 0), ("matOrText", 0)]
    assert renderer.draws == [3, 3]


def test_cleanup_releases_gpu_objects(tmp_path):
    Image.new("RGB", (1, 1)).save(tmp_path / "t.png")
    renderer = FakeRenderer()
    model = _textured_model(tmp_path, "t.png", renderer)
    model.draw(FakeShader())
    model.cleanup()
    assert renderer.deleted_textures == [101]
    assert len(renderer.deleted_meshes) == 1
    assert model.textures_loaded == []
# terrainview

An interactive viewer for procedurally generated terrain. The ground is made
of height-map chunks. Each chunk samples fractal gradient noise and is drawn as
one triangle strip. A quadtree lays the chunks out and keeps the finest ones
around the camera. When the camera leaves the current quadtree node, the tree
is refined again and the chunks are rebuilt. The scene also has a flat water
plane, a cubemap skybox and a directional sun light. A player model stands on
the terrain: its height is read from the chunk under it on every frame.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Running

```
terrainview
```

The command opens a 1500×900 window. It needs an OpenGL 3.3 context. All
files are read relative to the working directory:

- the shaders from `Shader/`: `VS_lightshader.glsl`/`FS_lightShader.glsl`,
  `VS_mapShader.glsl`/`FS_mapShader.glsl`,
  `VS_WaterShader.glsl`/`FS_WaterShader.glsl` and
  `VS_skyboxShader.glsl`/`FS_skyboxShader.glsl`
- the models `assets/models/Box/Box.obj` and
  `assets/models/Robot/LilRobot.obj`
- the six skybox faces `assets/textures/skybox/bluecloud_{ft,bk,up,dn,rt,lf}.jpg`

A shader that cannot be read, compiled or linked raises `ShaderError`. A model
or texture that cannot be loaded raises `ModelLoadError`. If a skybox face is
missing, a warning is logged and that face is left empty.

## Controls

| Key            | Action                                              |
|----------------|-----------------------------------------------------|
| W / A / S / D  | Move the free camera, or walk the player in player mode |
| Left Shift     | Faster free-camera movement                         |
| C              | Switch between free camera and player camera        |
| Z              | Switch between mouse-look and a free cursor         |
| P              | Wireframe rendering                                 |
| O              | Filled rendering                                    |
| Mouse wheel    | Zoom (field of view between 10° and 90°)            |
| Escape         | Quit                                                |

The free camera starts active. In player mode the camera orbits the player,
and the mouse turns it with the pitch kept between -89° and -1°. The player
walks in the direction of the camera's yaw. A text overlay shows the frame
rate, the camera position and the camera yaw.

## Library use

The modules can also be used on their own:

- `terrainview.camera`: `Camera`, `CameraMovement`, and the matrix helpers
  `look_at`, `perspective` and `normalize`.
- `terrainview.terrain`: `Chunk` (with `height_at(x, z)`), `Quadtree`,
  `QuadtreeNode`, `Map` and `water_vertices`.
- `terrainview.model`: `load_obj` reads a Wavefront OBJ file, with its MTL
  texture maps, into triangulated meshes. `Model` places those meshes in the
  world, and `texture_from_file` loads an image into a texture.
- `terrainview.mesh`: `Vertex`, `Texture`, `Mesh` and `sampler_names`.
- `terrainview.lights`: `PointLight` and `SunLight`. Each returns its shader
  uniforms from `uniforms(index)`.
- `terrainview.shader`: `Shader`, and `read_shader_sources` for loading GLSL
  sources.
- `terrainview.skybox`: `Skybox`.
- `terrainview.overlay`: `Overlay`, the per-frame text overlay.
- `terrainview.app`: `Application`, `InputState` and `main`.

GPU work goes through small renderer objects. The classes that draw take an
optional `renderer` (or `backend` for `Shader`). Geometry is therefore built
without an OpenGL context, and is only uploaded when it is first drawn:

```python
from terrainview.terrain import Chunk, Quadtree

tree = Quadtree((-5000.0, -5000.0), 10000.0, 5)
for node in tree.leaves():
    print(node.min, node.size)

chunk = Chunk(0.0, 0.0, 100.0, subdivisions=8)
print(chunk.height_at(50.0, 50.0))
```

## Limitations

- Models can only be loaded from Wavefront OBJ files.
- `PointLight` exists, but the scene does not add any point lights.
- The player has jump and gravity fields, but nothing makes it jump or fall.
  Its height always follows the terrain.
[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "terrainview"
version = "0.1.0"
description = "Procedural terrain viewer with a quadtree of noise-generated chunks, free and third-person cameras, water and a skybox."
requires-python = ">=3.10"
keywords = ["terrain", "opengl", "quadtree", "procedural", "rendering", "camera", "obj"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: X11 Applications",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: 3D Rendering",
]
dependencies = [
    "pyglet",
    "numpy",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
terrainview = "terrainview.app:main"

[tool.hatch.build.targets.wheel]
packages = ["terrainview"]

[tool.pytest.ini_options]
addopts = "-ra"

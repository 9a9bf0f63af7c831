"""Procedural terrain: noise-driven chunks laid out by a quadtree, plus a water plane."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

import numpy as np

from .camera import Camera
from .mesh import GLRenderer, Renderer, VertexAttribute
from .player import Player

SUBDIVISIONS = 200
HEIGHT_SCALE = 300.0
NOISE_FREQUENCY = 1.0 / 2000.0
MAP_ORIGIN = (-5000.0, -5000.0)
MAP_SIZE = 10000.0
MAP_DEPTH = 5
WATER_SCALE = (10000.0, 1.0, 10000.0)

NoiseFunction = Callable[[np.ndarray, np.ndarray], Any]

_FLOAT_SIZE = 4
_CHUNK_ATTRIBUTES = (VertexAttribute(3, 0), VertexAttribute(3, 3 * _FLOAT_SIZE))
_WATER_ATTRIBUTES = (VertexAttribute(3, 0),)


class _FractalNoise:
    """Fractal Brownian motion over 2D gradient noise, values roughly in [-1, 1]."""

    _GRADIENTS = np.array(
        [[1, 1], [-1, 1], [1, -1], [-1, -1], [1, 0], [-1, 0], [0, 1], [0, -1]], dtype=float
    )

    def __init__(
        self,
        seed: int = 1,
        octaves: int = 8,
        lacunarity: float = 2.26,
        gain: float = 0.66,
        frequency: float = NOISE_FREQUENCY,
    ) -> None:
        perm = np.random.default_rng(seed).permutation(256)
        self._perm = np.concatenate([perm, perm])
        self.octaves = octaves
        self.lacunarity = lacunarity
        self.gain = gain
        self.frequency = frequency

    def _gradient(self, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        x0 = np.floor(x)
        z0 = np.floor(z)
        fx = x - x0
        fz = z - z0
        xi = x0.astype(np.int64) & 255
        zi = z0.astype(np.int64) & 255
        u = fx * fx * fx * (fx * (fx * 6.0 - 15.0) + 10.0)
        v = fz * fz * fz * (fz * (fz * 6.0 - 15.0) + 10.0)
        perm = self._perm

        def corner(dx: int, dz: int) -> np.ndarray:
            gradient = self._GRADIENTS[perm[perm[xi + dx] + zi + dz] & 7]
            return gradient[..., 0] * (fx - dx) + gradient[..., 1] * (fz - dz)

        n00, n10, n01, n11 = corner(0, 0), corner(1, 0), corner(0, 1), corner(1, 1)
        near = n00 + u * (n10 - n00)
        far = n01 + u * (n11 - n01)
        return near + v * (far - near)

    def __call__(self, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=float) * self.frequency
        z = np.asarray(z, dtype=float) * self.frequency
        total = np.zeros(np.broadcast(x, z).shape)
        amplitude, scale, norm = 1.0, 1.0, 0.0
        for _ in range(self.octaves):
            total += amplitude * self._gradient(x * scale, z * scale)
            norm += amplitude
            amplitude *= self.gain
            scale *= self.lacunarity
        return total / norm


_DEFAULT_NOISE = _FractalNoise()


def water_vertices() -> np.ndarray:
    """The unit water quad as two triangles, one row per vertex."""
    return np.array(
        [
            [-0.5, 0.0, -0.5],
            [-0.5, 0.0, 0.5],
            [0.5, 0.0, -0.5],
            [0.5, 0.0, -0.5],
            [-0.5, 0.0, 0.5],
            [0.5, 0.0, 0.5],
        ],
        dtype=np.float32,
    )


def _barycentric(p1, p2, p3, x: float, z: float) -> tuple[float, float, float]:
    denom = (p2[2] - p3[2]) * (p1[0] - p3[0]) + (p3[0] - p2[0]) * (p1[2] - p3[2])
    a = ((p2[2] - p3[2]) * (x - p3[0]) + (p3[0] - p2[0]) * (z - p3[2])) / denom
    b = ((p3[2] - p1[2]) * (x - p3[0]) + (p1[0] - p3[0]) * (z - p3[2])) / denom
    return a, b, 1.0 - a - b


class Chunk:
    """A square patch of terrain drawn as one triangle strip."""

    def __init__(
        self,
        x: float,
        z: float,
        size: float,
        subdivisions: int = SUBDIVISIONS,
        noise: NoiseFunction | None = None,
        renderer: Renderer | None = None,
    ) -> None:
        if subdivisions < 1:
            raise ValueError("a chunk needs at least one subdivision")
        if size <= 0:
            raise ValueError("chunk size must be positive")
        self.start = (float(x), float(z))
        self.size = float(size)
        self.subdivisions = int(subdivisions)
        self.step = self.size / self.subdivisions
        self.noise: NoiseFunction = noise if noise is not None else _DEFAULT_NOISE
        self.renderer: Renderer = renderer if renderer is not None else GLRenderer()
        self.vertices = np.empty((0, 6), dtype=np.float32)
        self.indices = np.empty(0, dtype=np.uint32)
        self._handle: Any = None
        self.noise_output = self._sample_noise()
        self.build()
        self.color = (random.random(), random.random(), random.random())

    def _sample_noise(self) -> np.ndarray:
        count = self.subdivisions + 3
        offsets = np.arange(count) * self.step
        xs, zs = np.meshgrid(self.start[0] + offsets, self.start[1] + offsets)
        values = np.asarray(self.noise(xs, zs), dtype=float)
        return np.broadcast_to(values, (count, count)).copy()

    def build(self) -> None:
        """Compute vertex positions, normals and strip indices from the noise."""
        s = self.subdivisions
        h = self.noise_output * HEIGHT_SCALE
        heights = h[1 : s + 2, 1 : s + 2]
        dx = h[1 : s + 2, 2 : s + 3] - h[1 : s + 2, 0 : s + 1]
        dz = h[2 : s + 3, 1 : s + 2] - h[0 : s + 1, 1 : s + 2]
        normals = np.stack([2.0 * dx, np.ones_like(dx), 2.0 * dz], axis=-1)
        normals /= np.linalg.norm(normals, axis=-1, keepdims=True)

        offsets = np.arange(s + 1) * self.step
        xs, zs = np.meshgrid(self.start[0] + offsets, self.start[1] + offsets)
        self.vertices = np.column_stack(
            [xs.ravel(), heights.ravel(), zs.ravel(), normals.reshape(-1, 3)]
        ).astype(np.float32)

        rows = np.arange(s)[:, None]
        top = np.arange(s + 1)[None, :] + (s + 1) * rows
        bottom = top + (s + 1)
        pairs = np.stack([top, bottom], axis=2).reshape(s, -1)
        bridges = np.stack([bottom[:, -1], (s + 1) * (rows[:, 0] + 1)], axis=1)
        self.indices = np.concatenate([pairs, bridges], axis=1).ravel().astype(np.uint32)
        self._release()

    def rebuild(self) -> None:
        """Rebuild the geometry and upload it again."""
        self.build()
        self._upload()

    def height_at(self, x: float, z: float) -> float:
        """Terrain height at world point (x, z) inside this chunk."""
        zero_x = x - self.start[0]
        zero_z = z - self.start[1]
        if not (0.0 <= zero_x <= self.size and 0.0 <= zero_z <= self.size):
            raise ValueError(f"point ({x}, {z}) is outside the chunk")
        s = self.subdivisions
        step = self.step
        ix = min(int(zero_x / step), s - 1)
        iz = min(int(zero_z / step), s - 1)
        rx = zero_x - ix * step
        rz = zero_z - iz * step
        grid = self.vertices[:, 1].reshape(s + 1, s + 1).astype(float)

        p1 = (0.0, grid[iz, ix], 0.0)
        p2 = (step, grid[iz, ix + 1], 0.0)
        p3 = (0.0, grid[iz + 1, ix], step)
        a, b, c = _barycentric(p1, p2, p3, rx, rz)
        if not all(0.0 <= w <= 1.0 for w in (a, b, c)):
            p1 = (step, grid[iz + 1, ix + 1], step)
            a, b, c = _barycentric(p1, p2, p3, rx, rz)
        return float(a * p1[1] + b * p2[1] + c * p3[1])

    def draw(self, shader) -> None:
        """Draw the chunk with an identity model matrix."""
        shader.use()
        shader.set_vec3("test", self.color)
        shader.set_mat4("model", np.identity(4))
        if self._handle is None:
            self._upload()
        self.renderer.draw_elements(self._handle, "triangle_strip", len(self.indices))

    def _upload(self) -> None:
        self._release()
        self._handle = self.renderer.upload_mesh(
            self.vertices, self.indices, 6 * _FLOAT_SIZE, _CHUNK_ATTRIBUTES
        )

    def _release(self) -> None:
        if self._handle is not None:
            self.renderer.delete_mesh(self._handle)
            self._handle = None


@dataclass(eq=False)
class QuadtreeNode:
    """A square region of the map, split into four children when refined."""

    min: tuple[float, float]
    size: float
    level: int
    children: list[QuadtreeNode] = field(default_factory=list)

    @property
    def center(self) -> tuple[float, float]:
        return (self.min[0] + self.size / 2.0, self.min[1] + self.size / 2.0)


def _inside(node: QuadtreeNode, point: Sequence[float]) -> bool:
    x, y = point
    return (
        node.min[0] <= x <= node.min[0] + node.size
        and node.min[1] <= y <= node.min[1] + node.size
    )


def _closest_child(node: QuadtreeNode, point: Sequence[float]) -> QuadtreeNode:
    return min(node.children, key=lambda child: math.dist(point, child.center))


class Quadtree:
    """Quadtree refined along the path towards one point, finest near it."""

    def __init__(self, origin: Sequence[float], size: float, max_depth: int) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.max_depth = int(max_depth)
        self.root = QuadtreeNode((float(origin[0]), float(origin[1])), float(size), max_depth + 1)
        self._subdivide(self.root, self.max_depth, (0.0, 0.0))
        self.current_node = self.root
        self.set_current_node((0.0, 0.0))

    def _subdivide(self, node: QuadtreeNode, level: int, point: Sequence[float]) -> None:
        while level > 1:
            half = node.size / 2.0
            x, y = node.min
            node.children = [
                QuadtreeNode((x, y), half, level),
                QuadtreeNode((x + half, y), half, level),
                QuadtreeNode((x, y + half), half, level),
                QuadtreeNode((x + half, y + half), half, level),
            ]
            node = _closest_child(node, point)
            level -= 1

    def set_current_node(self, point: Sequence[float]) -> None:
        """Remember the smallest node holding ``point``."""
        self.current_node = self.node_at(point)

    def leaves(self) -> list[QuadtreeNode]:
        """All nodes without children, depth first."""
        result: list[QuadtreeNode] = []

        def visit(node: QuadtreeNode) -> None:
            for child in node.children:
                visit(child)
            if not node.children:
                result.append(node)

        visit(self.root)
        return result

    def subdivide_update(self, point: Sequence[float]) -> None:
        """Rebuild the tree so that it is finest around ``point``."""
        self._subdivide(self.root, self.max_depth, point)

    def node_at(self, point: Sequence[float]) -> QuadtreeNode:
        """The smallest node on the path towards ``point``."""
        node = self.root
        level = self.max_depth
        while level > 1 and node.children:
            node = _closest_child(node, point)
            level -= 1
        return node


class Map:
    """The terrain around the player, with water and the player itself."""

    def __init__(
        self,
        camera: Camera,
        player=None,
        renderer: Renderer | None = None,
        noise: NoiseFunction | None = None,
        subdivisions: int = SUBDIVISIONS,
    ) -> None:
        self.camera = camera
        self.renderer: Renderer = renderer if renderer is not None else GLRenderer()
        self.noise = noise
        self.subdivisions = subdivisions
        self.player = player if player is not None else Player(camera, renderer=self.renderer)
        self.quadtree = Quadtree(MAP_ORIGIN, MAP_SIZE, MAP_DEPTH)
        self.chunks: list[Chunk] = []
        self.player_pos = (0.0, 0.0)
        self._water_handle: Any = None
        self._update_player_pos()
        self._build_chunks()

    def _update_player_pos(self) -> None:
        self.player_pos = (float(self.player.position[0]), float(self.player.position[2]))

    def _build_chunks(self) -> None:
        for chunk in self.chunks:
            chunk._release()
        self.chunks = [
            Chunk(
                node.min[0], node.min[1], node.size,
                subdivisions=self.subdivisions, noise=self.noise, renderer=self.renderer,
            )
            for node in self.quadtree.leaves()
        ]

    def update(self) -> None:
        """Refine the terrain around the camera and put the player on the ground."""
        self._update_player_pos()
        camera_pos = (float(self.camera.position[0]), float(self.camera.position[2]))
        if not _inside(self.quadtree.current_node, camera_pos):
            self.quadtree.subdivide_update(camera_pos)
            self._build_chunks()
            self.quadtree.set_current_node(camera_pos)
        self._move_player_y()

    def _move_player_y(self) -> None:
        px, pz = self.player_pos
        for chunk in self.chunks:
            sx, sz = chunk.start
            if sx <= px < sx + chunk.size and sz <= pz < sz + chunk.size:
                self.player.position[1] = chunk.height_at(px, pz)

    def draw(self, pshader, wshader, player_shader) -> None:
        """Draw the terrain, the water and the player."""
        for chunk in self.chunks:
            chunk.draw(pshader)
        self._draw_water(wshader)
        self.player.draw(player_shader)

    def _draw_water(self, shader) -> None:
        shader.use()
        shader.set_mat4("model", np.diag([*WATER_SCALE, 1.0]))
        if self._water_handle is None:
            self._water_handle = self.renderer.upload_mesh(
                water_vertices(), np.arange(6, dtype=np.uint32), 3 * _FLOAT_SIZE, _WATER_ATTRIBUTES
            )
        self.renderer.draw_elements(self._water_handle, "triangles", 6)
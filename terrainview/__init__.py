"""Procedural terrain viewer: quadtree-managed noise chunks, cameras, OBJ models, lights, water and a skybox."""

__version__ = "0.1.0"
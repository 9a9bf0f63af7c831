"""A small text overlay drawn on top of the rendered scene each frame."""

from __future__ import annotations

from typing import Callable, Optional

TextDrawer = Callable[[str], None]


class _LabelDrawer:
    """Draws the overlay text as a multi-line pyglet label in the window's top-left corner."""

    def __init__(self, x: float, top: float, width: int, font_size: float) -> None:
        self.x = x
        self.top = top
        self.width = width
        self.font_size = font_size
        self._label = None

    def __call__(self, text: str) -> None:
        import pyglet
        from pyglet import gl

        if self._label is None:
            self._label = pyglet.text.Label(
                "",
                x=self.x,
                y=self.top,
                width=self.width,
                multiline=True,
                anchor_y="top",
                font_size=self.font_size,
                color=(255, 255, 255, 255),
            )
        self._label.text = text
        gl.glDisable(gl.GL_DEPTH_TEST)
        gl.glDisable(gl.GL_CULL_FACE)
        self._label.draw()
        gl.glEnable(gl.GL_CULL_FACE)
        gl.glEnable(gl.GL_DEPTH_TEST)


class Overlay:
    """Collects lines of text during a frame and draws them when the frame ends.

    Text may only be added between ``begin_frame`` and ``render``.
    """

    def __init__(
        self,
        drawer: Optional[TextDrawer] = None,
        *,
        x: float = 10.0,
        top: float = 890.0,
        width: int = 600,
        font_size: float = 12.0,
    ) -> None:
        self._drawer: TextDrawer = (
            drawer if drawer is not None else _LabelDrawer(x, top, width, font_size)
        )
        self.lines: list[str] = []
        self._frame_open = False

    def begin_frame(self) -> None:
        """Start a new frame with no text."""
        self.lines = []
        self._frame_open = True

    def text(self, line) -> None:
        """Add one line of text to the current frame."""
        if not self._frame_open:
            raise RuntimeError("text added outside of a frame; call begin_frame() first")
        self.lines.append(str(line))

    def render(self) -> str:
        """Draw the frame's text, close the frame and return the text drawn."""
        if not self._frame_open:
            raise RuntimeError("render() called without begin_frame()")
        self._frame_open = False
        content = "\n".join(self.lines)
        self._drawer(content)
        return content
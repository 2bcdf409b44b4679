# fims/sink.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Protocol, Sequence, Type, TypeVar

RGB = tuple[int, int, int]
Align = Literal["left", "center", "right"]

BLACK: RGB = (0, 0, 0)


@dataclass(frozen=True)
class Stroke:
    color: RGB = BLACK
    width: float = 0.2


@dataclass(frozen=True)
class Font:
    name: str = "Helvetica"
    size: float = 10
    color: RGB = BLACK


# ---------- draw instructions (mm, top-left origin) ----------

@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: Stroke = Stroke()


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    stroke: Optional[Stroke] = Stroke()
    fill: Optional[RGB] = None


@dataclass(frozen=True)
class Circle:
    x: float
    y: float
    radius: float
    fill: RGB = BLACK


@dataclass(frozen=True)
class Path:
    points: tuple[tuple[float, float], ...]
    fill: Optional[RGB] = None
    fill_alpha: float = 1.0
    stroke: Optional[Stroke] = None
    closed: bool = True


@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    font: Font = Font()
    align: Align = "left"


@dataclass(frozen=True)
class Image:
    data: bytes
    x: float
    y: float
    width: float
    height: float


Instruction = Line | Rect | Circle | Path | Text | Image
I = TypeVar("I")


class PageSink(Protocol):
    """Minimal drawing surface the certificate layout writes to."""

    def new_page(self) -> None: ...

    def line(self, x1: float, y1: float, x2: float, y2: float, stroke: Stroke = Stroke()) -> None: ...

    def rect(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        stroke: Optional[Stroke] = Stroke(),
        fill: Optional[RGB] = None,
    ) -> None: ...

    def circle(self, x: float, y: float, radius: float, fill: RGB = BLACK) -> None: ...

    def path(
        self,
        points: Sequence[tuple[float, float]],
        fill: Optional[RGB] = None,
        fill_alpha: float = 1.0,
        stroke: Optional[Stroke] = None,
        closed: bool = True,
    ) -> None: ...

    def text(self, x: float, y: float, text: str, font: Font = Font(), align: Align = "left") -> None: ...

    def image(self, data: bytes, x: float, y: float, width: float, height: float) -> None: ...


class TextMetrics(Protocol):
    """Font measurement for layout, in mm. Paired with the sink that will render the text."""

    def width(self, text: str, font: Font) -> float: ...

    def split(self, text: str, font: Font, max_width: float) -> list[str]: ...


@dataclass
class Page:
    instructions: list[Instruction] = field(default_factory=list)

    def texts(self) -> list[str]:
        return [i.text for i in self.instructions if isinstance(i, Text)]

    def of_type(self, kind: Type[I]) -> list[I]:
        return [i for i in self.instructions if isinstance(i, kind)]


class PageSequence:
    """Recording sink: keeps every instruction, page by page, for replay or inspection."""

    def __init__(self) -> None:
        self.pages: list[Page] = []

    def __len__(self) -> int:
        return len(self.pages)

    def __iter__(self):
        return iter(self.pages)

    def __getitem__(self, index: int) -> Page:
        return self.pages[index]

    def _emit(self, instruction: Instruction) -> None:
        if not self.pages:
            raise RuntimeError("new_page() must be called before drawing")
        self.pages[-1].instructions.append(instruction)

    def new_page(self) -> None:
        self.pages.append(Page())

    def line(self, x1, y1, x2, y2, stroke=Stroke()):
        self._emit(Line(x1, y1, x2, y2, stroke))

    def rect(self, x, y, width, height, stroke=Stroke(), fill=None):
        self._emit(Rect(x, y, width, height, stroke, fill))

    def circle(self, x, y, radius, fill=BLACK):
        self._emit(Circle(x, y, radius, fill))

    def path(self, points, fill=None, fill_alpha=1.0, stroke=None, closed=True):
        self._emit(Path(tuple((float(x), float(y)) for x, y in points), fill, fill_alpha, stroke, closed))

    def text(self, x, y, text, font=Font(), align="left"):
        self._emit(Text(x, y, text, font, align))

    def image(self, data, x, y, width, height):
        self._emit(Image(data, x, y, width, height))

    def texts(self) -> list[str]:
        return [t for page in self.pages for t in page.texts()]

    def replay(self, sink: PageSink) -> None:
        """Re-emit every recorded page and instruction onto another sink."""
        for page in self.pages:
            sink.new_page()
            for i in page.instructions:
                _replay_one(i, sink)


def _replay_one(i: Instruction, sink: PageSink) -> None:
    if isinstance(i, Line):
        sink.line(i.x1, i.y1, i.x2, i.y2, i.stroke)
    elif isinstance(i, Rect):
        sink.rect(i.x, i.y, i.width, i.height, i.stroke, i.fill)
    elif isinstance(i, Circle):
        sink.circle(i.x, i.y, i.radius, i.fill)
    elif isinstance(i, Path):
        sink.path(i.points, i.fill, i.fill_alpha, i.stroke, i.closed)
    elif isinstance(i, Text):
        sink.text(i.x, i.y, i.text, i.font, i.align)
    elif isinstance(i, Image):
        sink.image(i.data, i.x, i.y, i.width, i.height)
    else:
        raise TypeError(f"Unknown instruction {type(i).__name__}")

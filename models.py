"""
models.py

Data models and constants for WardleySync.

Every model is a frozen dataclass holding tuples, so a published map snapshot
can never be changed in place. Mutations build new instances with
``dataclasses.replace``.

``to_dict``/``from_dict`` use the camelCase keys of the project JSON format
(``textOverlays``, ``strokeColor``, ``animationSequence`` ...).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterator, Optional, Tuple, Type


# ----------------------------
# Constants
# ----------------------------

DEFAULT_EVOLUTION: Tuple[str, ...] = ("Genesis", "Custom Built", "Product", "Commodity")
DEFAULT_STYLE = "wardley"

CATEGORY_BUILD = "build"
CATEGORY_BUY = "buy"
CATEGORY_OUTSOURCE = "outsource"
CATEGORIES = (CATEGORY_BUILD, CATEGORY_BUY, CATEGORY_OUTSOURCE)

CATEGORY_COLORS = {
    CATEGORY_BUILD: "#4A90E2",
    CATEGORY_BUY: "#7ED321",
    CATEGORY_OUTSOURCE: "#F5A623",
}
DEFAULT_COMPONENT_COLOR = "#000000"

# Overlay kinds, also used as sequence item kinds
KIND_TEXT = "text"
KIND_ICON = "icon"
KIND_IMAGE = "image"
KIND_SHAPE = "shape"
KIND_DRAWING = "drawing"
OVERLAY_KINDS = (KIND_TEXT, KIND_ICON, KIND_IMAGE, KIND_SHAPE, KIND_DRAWING)

# Map entity kinds
KIND_COMPONENT = "component"
KIND_CONNECTION = "connection"
KIND_NOTE = "note"
SEQUENCE_KINDS = (KIND_COMPONENT, KIND_CONNECTION) + OVERLAY_KINDS + (KIND_NOTE,)

# Shape type tags
SHAPE_LINE = "line"
SHAPE_RECTANGLE = "rectangle"
SHAPE_CIRCLE = "circle"
SHAPE_TRIANGLE = "triangle"


# ----------------------------
# JSON helpers
# ----------------------------

def _to_json(obj: Any, keys: Dict[str, str], skip_none: bool = True) -> Dict[str, Any]:
    """Serialize dataclass fields, renaming python names through *keys*."""
    out: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if skip_none and value is None:
            continue
        out[keys.get(f.name, f.name)] = value
    return out


def _from_json(cls: Type, d: Dict[str, Any], keys: Dict[str, str]) -> Dict[str, Any]:
    """Collect constructor kwargs for *cls* from a camelCase dict."""
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        json_key = keys.get(f.name, f.name)
        if json_key in d:
            kwargs[f.name] = d[json_key]
    return kwargs


# ----------------------------
# Map entities
# ----------------------------

@dataclass(frozen=True)
class Component:
    """A named node on the map.

    ``y`` is the value-chain position (visibility) and ``x`` the evolution
    position, both in diagram space. Identity is the name.
    """
    name: str
    x: float
    y: float
    label_dx: Optional[float] = None
    label_dy: Optional[float] = None
    category: Optional[str] = None
    inertia: bool = False
    color: Optional[str] = None

    @property
    def display_color(self) -> str:
        """Explicit color, else the category color, else black."""
        if self.color:
            return self.color
        return CATEGORY_COLORS.get(self.category or "", DEFAULT_COMPONENT_COLOR)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"name": self.name, "x": self.x, "y": self.y}
        if self.label_dx is not None and self.label_dy is not None:
            d["label"] = {"x": self.label_dx, "y": self.label_dy}
        if self.category:
            d["category"] = self.category
        if self.inertia:
            d["inertia"] = True
        if self.color:
            d["color"] = self.color
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Component":
        label = d.get("label") or {}
        return cls(
            name=d["name"],
            x=float(d["x"]),
            y=float(d["y"]),
            label_dx=label.get("x"),
            label_dy=label.get("y"),
            category=d.get("category"),
            inertia=bool(d.get("inertia", False)),
            color=d.get("color"),
        )


@dataclass(frozen=True)
class Connection:
    """A directed link between two components, referenced by name."""
    source: str
    target: str

    @property
    def key(self) -> str:
        """Identifier used by the reveal sequence, ``"from->to"``."""
        return f"{self.source}->{self.target}"

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.source, "to": self.target}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Connection":
        return cls(source=d["from"], target=d["to"])


@dataclass(frozen=True)
class Note:
    text: str
    x: float
    y: float

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Note":
        return cls(text=d["text"], x=float(d["x"]), y=float(d["y"]))


# ----------------------------
# Overlays
# ----------------------------

_TEXT_KEYS = {"font_size": "fontSize", "font_weight": "fontWeight", "selected": "isSelected"}


@dataclass(frozen=True)
class TextOverlay:
    """Free text placed by the user. ``width`` is an optional pixel box width."""
    id: str
    text: str
    x: float
    y: float
    font_size: int = 16
    color: str = "#000000"
    font_weight: str = "normal"
    opacity: int = 100
    width: Optional[float] = None
    selected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return _to_json(self, _TEXT_KEYS)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TextOverlay":
        return cls(**_from_json(cls, d, _TEXT_KEYS))


@dataclass(frozen=True)
class IconOverlay:
    """A symbol or emoji drawn centered on its anchor; ``size`` in pixels."""
    id: str
    icon: str
    x: float
    y: float
    size: float = 24.0

    def to_dict(self) -> Dict[str, Any]:
        return _to_json(self, {})

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "IconOverlay":
        return cls(**_from_json(cls, d, {}))


@dataclass(frozen=True)
class ImageOverlay:
    """An embedded raster image. ``src`` is a data URL; width/height in pixels."""
    id: str
    src: str
    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, Any]:
        return _to_json(self, {})

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ImageOverlay":
        return cls(**_from_json(cls, d, {}))


_SHAPE_KEYS = {
    "end_x": "endX",
    "end_y": "endY",
    "stroke_color": "strokeColor",
    "fill_color": "fillColor",
    "stroke_width": "strokeWidth",
    "selected": "isSelected",
}


@dataclass(frozen=True)
class ShapeOverlay:
    """Common style of every drawn shape.

    Concrete shapes are the subclasses below. Each one carries only its own
    geometry fields, so a radius can never end up on a rectangle.
    Sizes are normalized to the inner canvas extent.
    """
    id: str
    x: float
    y: float
    stroke_color: str = "#000000"
    fill_color: str = "#000000"
    stroke_width: float = 2.0
    filled: bool = False
    opacity: int = 100
    selected: bool = False

    shape_type = ""

    def to_dict(self) -> Dict[str, Any]:
        d = {"type": self.shape_type}
        d.update(_to_json(self, _SHAPE_KEYS))
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ShapeOverlay":
        shape_cls = SHAPE_CLASSES.get(d.get("type", ""))
        if shape_cls is None:
            raise ValueError(f"Unknown shape type: {d.get('type')!r}")
        return shape_cls(**_from_json(shape_cls, d, _SHAPE_KEYS))


@dataclass(frozen=True)
class LineShape(ShapeOverlay):
    end_x: float = 0.0
    end_y: float = 0.0

    shape_type = SHAPE_LINE


@dataclass(frozen=True)
class RectangleShape(ShapeOverlay):
    width: float = 0.0
    height: float = 0.0

    shape_type = SHAPE_RECTANGLE


@dataclass(frozen=True)
class CircleShape(ShapeOverlay):
    radius: float = 0.0

    shape_type = SHAPE_CIRCLE


@dataclass(frozen=True)
class TriangleShape(ShapeOverlay):
    """Isosceles triangle: apex at top-center of its box, base along the bottom."""
    width: float = 0.0
    height: float = 0.0

    shape_type = SHAPE_TRIANGLE


SHAPE_CLASSES: Dict[str, Type[ShapeOverlay]] = {
    SHAPE_LINE: LineShape,
    SHAPE_RECTANGLE: RectangleShape,
    SHAPE_CIRCLE: CircleShape,
    SHAPE_TRIANGLE: TriangleShape,
}


@dataclass(frozen=True)
class DrawingPath:
    """A freehand pen stroke; points are normalized."""
    id: str
    points: Tuple[Tuple[float, float], ...] = ()
    stroke_color: str = "#000000"
    stroke_width: float = 2.0
    opacity: int = 100

    @property
    def x(self) -> float:
        return self.points[0][0] if self.points else 0.0

    @property
    def y(self) -> float:
        return self.points[0][1] if self.points else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "points": [{"x": px, "y": py} for px, py in self.points],
            "strokeColor": self.stroke_color,
            "strokeWidth": self.stroke_width,
            "opacity": self.opacity,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DrawingPath":
        return cls(
            id=d["id"],
            points=tuple((float(p["x"]), float(p["y"])) for p in d.get("points", [])),
            stroke_color=d.get("strokeColor", "#000000"),
            stroke_width=d.get("strokeWidth", 2.0),
            opacity=d.get("opacity", 100),
        )


# Overlays attribute name per kind
_KIND_FIELDS = {
    KIND_TEXT: "texts",
    KIND_ICON: "icons",
    KIND_IMAGE: "images",
    KIND_SHAPE: "shapes",
    KIND_DRAWING: "paths",
}

# JSON key per kind
_KIND_JSON = {
    KIND_TEXT: ("textOverlays", TextOverlay),
    KIND_ICON: ("iconOverlays", IconOverlay),
    KIND_IMAGE: ("imageOverlays", ImageOverlay),
    KIND_SHAPE: ("shapeOverlays", ShapeOverlay),
    KIND_DRAWING: ("drawingPaths", DrawingPath),
}


@dataclass(frozen=True)
class Overlays:
    """All user annotations, one tuple per kind, in insertion order."""
    texts: Tuple[TextOverlay, ...] = ()
    icons: Tuple[IconOverlay, ...] = ()
    images: Tuple[ImageOverlay, ...] = ()
    shapes: Tuple[ShapeOverlay, ...] = ()
    paths: Tuple[DrawingPath, ...] = ()

    def of_kind(self, kind: str) -> tuple:
        return getattr(self, _KIND_FIELDS[kind])

    def with_kind(self, kind: str, items) -> "Overlays":
        return replace(self, **{_KIND_FIELDS[kind]: tuple(items)})

    def all_ids(self) -> Iterator[str]:
        for kind in OVERLAY_KINDS:
            for item in self.of_kind(kind):
                yield item.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            json_key: [item.to_dict() for item in self.of_kind(kind)]
            for kind, (json_key, _cls) in _KIND_JSON.items()
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Overlays":
        kwargs = {}
        for kind, (json_key, item_cls) in _KIND_JSON.items():
            kwargs[_KIND_FIELDS[kind]] = tuple(item_cls.from_dict(x) for x in d.get(json_key) or [])
        return cls(**kwargs)


# ----------------------------
# Reveal sequence
# ----------------------------

@dataclass(frozen=True)
class SequenceItem:
    kind: str
    target_id: str
    order: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, "id": self.target_id, "order": self.order}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SequenceItem":
        return cls(kind=d["type"], target_id=d["id"], order=int(d["order"]))


@dataclass(frozen=True)
class AnimationSequence:
    items: Tuple[SequenceItem, ...] = ()
    recording: bool = False

    def __len__(self) -> int:
        return len(self.items)

    def index_of(self, kind: str, target_id: str) -> int:
        """Position of (kind, id) in the sequence, or -1."""
        for i, item in enumerate(self.items):
            if item.kind == kind and item.target_id == target_id:
                return i
        return -1

    def to_dict(self) -> Dict[str, Any]:
        return {"items": [i.to_dict() for i in self.items], "isRecording": self.recording}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnimationSequence":
        items = tuple(SequenceItem.from_dict(i) for i in d.get("items") or [])
        return cls(items=items, recording=bool(d.get("isRecording", False)))


# ----------------------------
# Map root
# ----------------------------

@dataclass(frozen=True)
class WardleyMap:
    """One full map snapshot: parsed entities plus user overlays and sequence."""
    title: str = ""
    components: Tuple[Component, ...] = ()
    connections: Tuple[Connection, ...] = ()
    notes: Tuple[Note, ...] = ()
    evolution: Tuple[str, ...] = ()
    style: str = DEFAULT_STYLE
    overlays: Overlays = field(default_factory=Overlays)
    sequence: AnimationSequence = field(default_factory=AnimationSequence)

    def evolution_stages(self) -> Tuple[str, ...]:
        """Stages to draw along the x axis."""
        return self.evolution or DEFAULT_EVOLUTION

    def component(self, name: str) -> Optional[Component]:
        for comp in self.components:
            if comp.name == name:
                return comp
        return None

    def resolve(self, connection: Connection) -> Optional[Tuple[Component, Component]]:
        """Both endpoints of *connection*, or None when either is unknown."""
        a = self.component(connection.source)
        b = self.component(connection.target)
        if a is None or b is None:
            return None
        return a, b

    def merge_parsed(self, parsed: "WardleyMap") -> "WardleyMap":
        """Take the notation entities of *parsed*, keep overlays and sequence."""
        return replace(parsed, overlays=self.overlays, sequence=self.sequence)

    def with_overlays(self, overlays: Overlays) -> "WardleyMap":
        return replace(self, overlays=overlays)

    def with_sequence(self, sequence: AnimationSequence) -> "WardleyMap":
        return replace(self, sequence=sequence)

    def move_component(self, name: str, x: float, y: float) -> "WardleyMap":
        """Reposition a component; coordinates are clamped to [0, 1]."""
        x = min(1.0, max(0.0, x))
        y = min(1.0, max(0.0, y))
        comps = tuple(replace(c, x=x, y=y) if c.name == name else c for c in self.components)
        return replace(self, components=comps)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "title": self.title,
            "components": [c.to_dict() for c in self.components],
            "connections": [c.to_dict() for c in self.connections],
            "notes": [n.to_dict() for n in self.notes],
            "evolution": list(self.evolution),
            "style": self.style,
        }
        d.update(self.overlays.to_dict())
        d["animationSequence"] = self.sequence.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WardleyMap":
        return cls(
            title=d.get("title", ""),
            components=tuple(Component.from_dict(c) for c in d.get("components") or []),
            connections=tuple(Connection.from_dict(c) for c in d.get("connections") or []),
            notes=tuple(Note.from_dict(n) for n in d.get("notes") or []),
            evolution=tuple(d.get("evolution") or ()),
            style=d.get("style") or DEFAULT_STYLE,
            overlays=Overlays.from_dict(d),
            sequence=AnimationSequence.from_dict(d.get("animationSequence") or {}),
        )


# ----------------------------
# Project record
# ----------------------------

@dataclass(frozen=True)
class ProjectRecord:
    """A saved project: the notation source plus the full map snapshot."""
    name: str
    raw_text: str
    map: WardleyMap
    created_at: str
    updated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "mapText": self.raw_text,
            "map": self.map.to_dict(),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProjectRecord":
        return cls(
            name=d["name"],
            raw_text=d["mapText"],
            map=WardleyMap.from_dict(d["map"]),
            created_at=d.get("createdAt", ""),
            updated_at=d.get("updatedAt", ""),
        )

"""Point shapes and the mapping between PCD fields and shape members.

A point shape is declared once, as a static table of members, and resolved against
a header into an ordered list of :class:`FieldMapping` entries. The resolved list is
computed once per decode/encode call and shared by every record.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from operator import attrgetter
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from .errors import MalformedHeaderField
from .header import FieldType, Header
from .utils import get_logger

_log = get_logger()


class ScalarType(Enum):
    INT8 = (FieldType.SIGNED, 1)
    INT16 = (FieldType.SIGNED, 2)
    INT32 = (FieldType.SIGNED, 4)
    INT64 = (FieldType.SIGNED, 8)
    UINT8 = (FieldType.UNSIGNED, 1)
    UINT16 = (FieldType.UNSIGNED, 2)
    UINT32 = (FieldType.UNSIGNED, 4)
    UINT64 = (FieldType.UNSIGNED, 8)
    FLOAT32 = (FieldType.FLOAT, 4)
    FLOAT64 = (FieldType.FLOAT, 8)

    @property
    def field_type(self) -> FieldType:
        return self.value[0]

    @property
    def size(self) -> int:
        return self.value[1]

    @property
    def is_float(self) -> bool:
        return self.field_type is FieldType.FLOAT

    @property
    def dtype(self) -> np.dtype:
        kind = {FieldType.SIGNED: "i", FieldType.UNSIGNED: "u", FieldType.FLOAT: "f"}[self.field_type]
        return np.dtype(f"<{kind}{self.size}")

    @classmethod
    def from_pcd(cls, field_type: FieldType, size: int) -> "ScalarType":
        for member in cls:
            if member.value == (field_type, size):
                return member
        raise MalformedHeaderField(f"Unsupported field type {field_type.value}{size}")

    @classmethod
    def parse(cls, spec: Union[str, "ScalarType"]) -> "ScalarType":
        """Accept a ScalarType or a numpy-style code such as ``"f4"``, ``"u1"``, ``"int16"``."""
        if isinstance(spec, ScalarType):
            return spec
        dt = np.dtype(spec)
        kinds = {"i": FieldType.SIGNED, "u": FieldType.UNSIGNED, "f": FieldType.FLOAT}
        if dt.kind not in kinds:
            raise ValueError(f"Unsupported point member type '{spec}'")
        return cls.from_pcd(kinds[dt.kind], dt.itemsize)


@dataclass(frozen=True)
class ShapeMember:
    name: str                                 # canonical lowercase name
    scalar: ScalarType
    getter: Callable[[Any], Any]
    setter: Callable[[Any, Any], None]
    count: int = 1

    @classmethod
    def attribute(cls, attr: str, scalar: Union[str, ScalarType], count: int = 1) -> "ShapeMember":
        def _set(point: Any, value: Any) -> None:
            setattr(point, attr, value)
        return cls(attr.lower(), ScalarType.parse(scalar), attrgetter(attr), _set, count)


@dataclass(frozen=True)
class PointShape:
    """Static description of a point type: how to make one, and its members."""
    factory: Callable[[], Any]
    members: Tuple[ShapeMember, ...]
    name: str = ""

    def __post_init__(self) -> None:
        seen = set()
        for m in self.members:
            if m.name in seen:
                raise ValueError(f"Duplicate member '{m.name}' in point shape {self.name!r}")
            seen.add(m.name)

    def member(self, name: str) -> Optional[ShapeMember]:
        name = name.lower()
        for m in self.members:
            if m.name == name:
                return m
        return None


MemberSpec = Union[str, ScalarType, Tuple[Union[str, ScalarType], int]]


def point_shape(**members: MemberSpec) -> Callable[[type], type]:
    """Class decorator attaching a :class:`PointShape` built from keyword specs.

    ``@point_shape(x="f4", y="f4", z="f4", histogram=("f4", 33))``; the class must be
    constructible without arguments.
    """
    def decorate(cls: type) -> type:
        built = []
        for attr, spec in members.items():
            if isinstance(spec, tuple):
                scalar, count = spec
            else:
                scalar, count = spec, 1
            built.append(ShapeMember.attribute(attr, scalar, count))
        cls.__pcd_shape__ = PointShape(factory=cls, members=tuple(built), name=cls.__name__)
        return cls
    return decorate


def shape_of(obj: Any) -> PointShape:
    """Return the declared shape of a shape, a decorated class or an instance."""
    if isinstance(obj, PointShape):
        return obj
    shape = getattr(obj, "__pcd_shape__", None)
    if not isinstance(shape, PointShape):
        raise TypeError(f"{obj!r} has no declared point shape; use @point_shape or pass a PointShape")
    return shape


# Header field name -> member names accepted when no exact match exists.
FIELD_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "x": ("X",),
    "y": ("Y",),
    "z": ("Z",),
    "rgb": ("RGB", "RGBA"),
    "rgba": ("RGBA", "RGB"),
    "normal_x": ("NormalX", "NX"),
    "normal_y": ("NormalY", "NY"),
    "normal_z": ("NormalZ", "NZ"),
    "curvature": ("Curvature",),
    "intensity": ("Intensity",),
    "label": ("Label",),
}

FIELD_ORDER: Dict[str, int] = {
    name: i for i, name in enumerate((
        "x", "y", "z", "normal_x", "normal_y", "normal_z", "curvature",
        "rgb", "rgba", "r", "g", "b", "a", "intensity", "label",
    ))
}

_PCD_NAMES = {
    "normalx": "normal_x",
    "normaly": "normal_y",
    "normalz": "normal_z",
    "nx": "normal_x",
    "ny": "normal_y",
    "nz": "normal_z",
}


def canonical_field_name(member_name: str) -> str:
    name = member_name.lower()
    return _PCD_NAMES.get(name, name)


def field_dtype(field_type: FieldType, size: int) -> Optional[np.dtype]:
    try:
        return ScalarType.from_pcd(field_type, size).dtype
    except MalformedHeaderField:
        return None


@dataclass(frozen=True)
class FieldMapping:
    index: int
    name: str                      # as written in the header
    canonical: str                 # lowercase PCD name used for transforms
    offset: int
    size: int
    count: int
    field_type: FieldType
    dtype: Optional[np.dtype]
    member: Optional[ShapeMember] = None

    @property
    def mapped(self) -> bool:
        return self.member is not None

    @property
    def span(self) -> int:
        return self.size * self.count

    def keys(self) -> List[str]:
        """Record keys for the constructor-callback path (``name_<i>`` when count > 1)."""
        if self.count == 1:
            return [self.name]
        return [f"{self.name}_{i}" for i in range(self.count)]


def _match_member(field_name: str, shape: PointShape) -> Optional[ShapeMember]:
    member = shape.member(field_name)
    if member is not None:
        return member
    for candidate in FIELD_SYNONYMS.get(field_name, ()):
        member = shape.member(candidate)
        if member is not None:
            return member
    return None


def resolve_mappings(header: Header, shape: Optional[PointShape] = None) -> List[FieldMapping]:
    """Map every header field, in order, onto a shape member or mark it unmapped."""
    mappings: List[FieldMapping] = []
    offset = 0
    for i, (name, size, ftype, count) in enumerate(zip(header.fields, header.sizes, header.types, header.counts)):
        lowered = name.lower()
        member = _match_member(lowered, shape) if shape is not None else None
        dtype = field_dtype(ftype, size)
        if member is not None and dtype is None:
            raise MalformedHeaderField(f"Field '{name}' has unsupported type {ftype.value}{size}")
        canonical = canonical_field_name(member.name) if member is not None else lowered
        mappings.append(FieldMapping(i, name, canonical, offset, size, count, ftype, dtype, member))
        offset += size * count

    if shape is not None:
        unmapped = [m.name for m in mappings if not m.mapped]
        if unmapped:
            _log.debug("Fields without a member in %s: %s", shape.name or "shape", ", ".join(unmapped))
    return mappings


def derive_mappings(shape: PointShape) -> List[FieldMapping]:
    """Field layout written for a shape: canonical names, priority order, packed offsets."""
    ranked = sorted(
        enumerate(shape.members),
        key=lambda item: (FIELD_ORDER.get(canonical_field_name(item[1].name), len(FIELD_ORDER)), item[0]),
    )
    mappings: List[FieldMapping] = []
    offset = 0
    for i, (_, member) in enumerate(ranked):
        name = canonical_field_name(member.name)
        scalar = member.scalar
        mappings.append(FieldMapping(
            i, name, name, offset, scalar.size, member.count,
            scalar.field_type, scalar.dtype, member,
        ))
        offset += scalar.size * member.count
    return mappings


def header_fields(mappings: Iterable[FieldMapping]) -> Dict[str, list]:
    """FIELDS/SIZE/TYPE/COUNT lists for a mapping list, as Header keyword arguments."""
    mappings = list(mappings)
    return {
        "fields": [m.name for m in mappings],
        "sizes": [m.size for m in mappings],
        "types": [m.field_type for m in mappings],
        "counts": [m.count for m in mappings],
    }

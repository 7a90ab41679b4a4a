# Model/annotations.py
from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterator

from Controller.enums import Handle
from Model.coords import Point, clamp_point
from Model import measure_ops


class MeasurementKind(Enum):
    WIDTH = "width"
    HEIGHT = "height"
    DEPTH = "depth"


@dataclass
class Measurement:
    kind: MeasurementKind
    start: Point
    end: Point
    color: str
    label: str
    active: bool = False
    value: str = ""


# Fresh state for every session: (start, end, color, label)
DEFAULTS = {
    MeasurementKind.WIDTH: (Point(20, 90), Point(80, 90), "#000000", "Ancho"),
    MeasurementKind.HEIGHT: (Point(10, 20), Point(10, 80), "#000000", "Alto"),
    MeasurementKind.DEPTH: (Point(70, 70), Point(90, 85), "#000000", "Largo"),
}


class AnnotationSet:
    """
    The three measurements of one editing session.

    Keys are the members of MeasurementKind and nothing else: there is no way
    to add or remove an entry, only to (de)activate and reshape it.
    """

    def __init__(self, measurements: Dict[MeasurementKind, Measurement]):
        missing = [k for k in MeasurementKind if k not in measurements]
        if missing:
            raise ValueError(f"missing measurements: {missing}")
        self._m: Dict[MeasurementKind, Measurement] = {k: measurements[k] for k in MeasurementKind}

    @classmethod
    def defaults(cls) -> "AnnotationSet":
        return cls({
            kind: Measurement(kind=kind, start=start, end=end, color=color, label=label)
            for kind, (start, end, color, label) in DEFAULTS.items()
        })

    def __getitem__(self, kind: MeasurementKind) -> Measurement:
        return self._m[kind]

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self._m.values())

    def __len__(self) -> int:
        return len(self._m)

    def snapshot(self) -> "AnnotationSet":
        # Points are immutable tuples, a shallow dataclass copy per entry is enough
        return AnnotationSet({k: replace(m) for k, m in self._m.items()})

    def any_active(self) -> bool:
        return any(m.active for m in self._m.values())

    # ---- Mutations ----
    def toggle_active(self, kind: MeasurementKind) -> None:
        m = self._m[kind]
        m.active = not m.active

    def set_value(self, kind: MeasurementKind, text: str) -> None:
        self._m[kind].value = text

    def set_endpoint(self, kind: MeasurementKind, which: Handle, point) -> None:
        m = self._m[kind]
        p = clamp_point(point)
        if which is Handle.START:
            m.start = p
        elif which is Handle.END:
            m.end = p
        else:
            raise ValueError(f"not an endpoint: {which!r}")

    def translate_segment(self, kind: MeasurementKind, new_start) -> None:
        m = self._m[kind]
        m.start, m.end = measure_ops.translate_segment(m.start, m.end, new_start)

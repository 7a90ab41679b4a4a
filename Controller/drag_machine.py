from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from Controller.enums import DragMode, Handle
from Model.annotations import AnnotationSet, MeasurementKind
from Model.coords import Point, clamp_point
from Model.measure_ops import SNAP_THRESHOLD, snap_to_axis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DragContext:
    kind: MeasurementKind
    handle: Handle
    offset: Optional[Point] = None  # pointer - start at press time, only for whole-line drags


class DragStateMachine:
    """
    Turns one pointer gesture (press, moves, release) into edits of an AnnotationSet.

    Idle -> DragEndpoint when an endpoint handle is pressed,
    Idle -> DragSegment when the line corridor or its label is pressed,
    any -> Idle on release (wherever it happens) or cancel.
    Only one context exists at a time; a second press while dragging is ignored.
    """

    def __init__(self, annotations: AnnotationSet, snap_threshold: float = SNAP_THRESHOLD):
        self.annotations = annotations
        self.snap_threshold = snap_threshold
        self.context: DragContext | None = None

    @property
    def mode(self) -> DragMode:
        if self.context is None:
            return DragMode.IDLE
        if self.context.handle is Handle.LINE:
            return DragMode.DRAG_SEGMENT
        return DragMode.DRAG_ENDPOINT

    def press(self, kind: MeasurementKind, handle: Handle, pointer) -> bool:
        if self.context is not None:
            logger.debug("[DRAG] press ignored, %s already grabbed", self.context.kind.value)
            return False
        offset = None
        if handle is Handle.LINE:
            start = self.annotations[kind].start
            offset = Point(pointer[0] - start.x, pointer[1] - start.y)
        self.context = DragContext(kind, handle, offset)
        logger.debug("[DRAG] %s/%s grabbed at %r", kind.value, handle.value, tuple(pointer))
        return True

    def move(self, pointer) -> bool:
        ctx = self.context
        if ctx is None:
            return False

        if ctx.handle is Handle.LINE:
            new_start = Point(pointer[0] - ctx.offset.x, pointer[1] - ctx.offset.y)
            self.annotations.translate_segment(ctx.kind, new_start)
            return True

        m = self.annotations[ctx.kind]
        other = m.end if ctx.handle is Handle.START else m.start
        candidate = snap_to_axis(clamp_point(pointer), other, self.snap_threshold)
        self.annotations.set_endpoint(ctx.kind, ctx.handle, candidate)
        return True

    def release(self) -> None:
        if self.context is not None:
            logger.debug("[DRAG] %s released", self.context.kind.value)
        self.context = None

    def cancel(self) -> None:
        # Teardown path: same end state as release, kept separate for the log
        if self.context is not None:
            logger.debug("[DRAG] %s cancelled", self.context.kind.value)
        self.context = None

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from Controller.enums import SessionStatus
from Model.annotations import AnnotationSet


@dataclass
class EditorState:
    status: SessionStatus = SessionStatus.CLOSED
    source: Optional["QImage"] = None              # decoded once per session, never painted on
    annotations: Optional[AnnotationSet] = None
    version: int = 0                               # bumped per save; stale render results are dropped
    close_after_save: bool = False
    result: Optional[bytes] = None                 # last composited JPEG
    preview: Optional["QImage"] = None             # decoded last result, replaced on every save
    name: str = "image"
    released: dict = field(default_factory=lambda: {"source": 0, "preview": 0})

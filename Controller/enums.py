from enum import Enum, auto

# Which part of a measurement the pointer grabbed
class Handle(Enum):
    START = "start"
    END = "end"
    LINE = "line"

# Setting the status of the drag machine
class DragMode(Enum):
    IDLE = auto()
    DRAG_ENDPOINT = auto()
    DRAG_SEGMENT = auto()

# Lifecycle of one editing session
class SessionStatus(Enum):
    LOADING = auto()
    READY = auto()
    SAVING = auto()
    CLOSED = auto()

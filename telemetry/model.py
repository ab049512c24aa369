# telemetry/model.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class RecordKind(str, Enum):
    """Values of the ``Type`` field every simulator message carries."""
    EVENT = "Event"
    STREAM = "Stream"
    EXERCISE_START = "ExerciseStart"
    EXERCISE_END = "ExerciseEnd"


TURN_INDICATOR_LABELS = {
    -1: "left",
    0: "off",
    1: "right",
    2: "hazard",
}


@dataclass(frozen=True)
class Timestamp:
    hour: int          # simulation time of day
    minute: int
    second: int
    millisecond: int


@dataclass(frozen=True)
class ControlInput:
    steering: float    # -1.0 to 1.0
    throttle: float    # 0.0 to 1.0
    brake: float       # 0.0 to 1.0
    clutch: float      # 0.0 to 1.0


@dataclass(frozen=True)
class StreamRecord:
    timestamp: Timestamp
    speed: Optional[int]                        # km/h, None only on fallback records
    speed_limit: Optional[int]                  # km/h
    fuel_consumption: Optional[float]           # l/100km
    turn_indicator: Optional[int] = None        # see TURN_INDICATOR_LABELS
    control_input: Optional[ControlInput] = None
    type_tag: str = RecordKind.STREAM.value     # raw tag, differs on fallback
    kind: RecordKind = RecordKind.STREAM


@dataclass(frozen=True)
class EventRecord:
    timestamp: Timestamp
    event: str                                  # opaque, simulator-version dependent
    kind: RecordKind = RecordKind.EVENT


@dataclass(frozen=True)
class ExerciseStartRecord:
    timestamp: Timestamp
    exercise_name: str
    kind: RecordKind = RecordKind.EXERCISE_START


@dataclass(frozen=True)
class ExerciseEndRecord:
    timestamp: Timestamp
    kind: RecordKind = RecordKind.EXERCISE_END


Record = Union[StreamRecord, EventRecord, ExerciseStartRecord, ExerciseEndRecord]

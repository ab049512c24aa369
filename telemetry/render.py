# telemetry/render.py
"""
One display line per decoded record.
"""
from typing import Optional

from .model import (
    TURN_INDICATOR_LABELS,
    EventRecord,
    ExerciseEndRecord,
    ExerciseStartRecord,
    Record,
    StreamRecord,
    Timestamp,
)
from .protocol import DEFAULT_PROFILE, ProtocolProfile


def format_timestamp(ts: Timestamp) -> str:
    return f"{ts.hour}:{ts.minute}:{ts.second}.{ts.millisecond}"


def _or_dash(value) -> str:
    return "-" if value is None else str(value)


def _render_stream(record: StreamRecord, verbose: bool) -> str:
    fuel = "-" if record.fuel_consumption is None else f"{record.fuel_consumption:f}"
    line = (
        f"Time: {format_timestamp(record.timestamp)}"
        f"\tSpeed: {_or_dash(record.speed)}/{_or_dash(record.speed_limit)}"
        f"\tFuelConsumption: {fuel}"
    )
    if not verbose:
        return line

    if record.turn_indicator is not None:
        label = TURN_INDICATOR_LABELS.get(record.turn_indicator, str(record.turn_indicator))
        line += f"\tTurnIndicator: {label}"
    if record.control_input is not None:
        ci = record.control_input
        line += (
            f"\tSteering: {ci.steering:+.2f}"
            f"\tThrottle: {ci.throttle:.2f}"
            f"\tBrake: {ci.brake:.2f}"
            f"\tClutch: {ci.clutch:.2f}"
        )
    if record.type_tag != record.kind.value:
        line += f"\tType: {record.type_tag}"
    return line


def render_record(
    record: Record,
    verbose: bool = False,
    profile: Optional[ProtocolProfile] = None,
) -> str:
    """
    Format a record as a single line (no trailing newline).

    ``verbose`` adds turn indicator, control inputs and event descriptions.
    """
    if isinstance(record, StreamRecord):
        return _render_stream(record, verbose)

    if isinstance(record, EventRecord):
        line = f"Time: {format_timestamp(record.timestamp)}\tEvent: {record.event}"
        if verbose:
            description = (profile or DEFAULT_PROFILE).describe_event(record.event)
            if description:
                line += f" ({description})"
        return line

    if isinstance(record, ExerciseStartRecord):
        return f"Time: {format_timestamp(record.timestamp)}\tExerciseStart: {record.exercise_name}"

    if isinstance(record, ExerciseEndRecord):
        return f"Time: {format_timestamp(record.timestamp)}\tExerciseEnd"

    raise TypeError(f"Cannot render {type(record).__name__}")

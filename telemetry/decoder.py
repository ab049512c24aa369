# telemetry/decoder.py
"""
Turns one framed JSON document into a typed telemetry record.

Dispatch goes through RECORD_SCHEMAS, a total mapping from RecordKind to
the function that builds that kind's record. Tags outside RecordKind are
handled by UNKNOWN_KIND_POLICY, which decodes them as Stream data with
every payload field optional. This
keeps the simulator's observed behaviour but also silently absorbs any
message type added by a future simulator release, so each unknown tag is
logged the first time it is seen.
"""
import json
import logging
from collections import Counter
from typing import Any, Callable, Dict, Optional, Set

from .model import (
    ControlInput,
    EventRecord,
    ExerciseEndRecord,
    ExerciseStartRecord,
    Record,
    RecordKind,
    StreamRecord,
    Timestamp,
)
from .protocol import DEFAULT_PROFILE, ProtocolProfile

logger = logging.getLogger(__name__)

UNKNOWN_KIND_POLICY = RecordKind.STREAM


class DecodeError(ValueError):
    """A framed document that could not be turned into a record."""

    def __init__(self, message: str, document: bytes, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.document = document
        self.cause = cause


class _FieldError(ValueError):
    pass


# ===================== FIELD READERS =====================

_MISSING = object()


def _get(obj: Dict[str, Any], key: str, optional: bool = False):
    value = obj.get(key, _MISSING)
    if value is _MISSING:
        if optional:
            return None
        raise _FieldError(f"missing field '{key}'")
    return value


def _read_int(obj: Dict[str, Any], key: str, optional: bool = False) -> Optional[int]:
    value = _get(obj, key, optional)
    if value is None and optional:
        return None
    # bool is an int subclass; the simulator never sends booleans here
    if isinstance(value, bool) or not isinstance(value, int):
        raise _FieldError(f"field '{key}' must be an integer, got {value!r}")
    return value


def _read_float(obj: Dict[str, Any], key: str, optional: bool = False) -> Optional[float]:
    value = _get(obj, key, optional)
    if value is None and optional:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _FieldError(f"field '{key}' must be a number, got {value!r}")
    return float(value)


def _read_str(obj: Dict[str, Any], key: str) -> str:
    value = _get(obj, key)
    if not isinstance(value, str):
        raise _FieldError(f"field '{key}' must be a string, got {value!r}")
    return value


def _read_object(obj: Dict[str, Any], key: str, optional: bool = False) -> Optional[Dict[str, Any]]:
    value = _get(obj, key, optional)
    if value is None and optional:
        return None
    if not isinstance(value, dict):
        raise _FieldError(f"field '{key}' must be an object, got {value!r}")
    return value


def _read_timestamp(obj: Dict[str, Any]) -> Timestamp:
    ts = _read_object(obj, "Timestamp")
    return Timestamp(
        hour=_read_int(ts, "Hour"),
        minute=_read_int(ts, "Minute"),
        second=_read_int(ts, "Second"),
        millisecond=_read_int(ts, "Millisecond"),
    )


# ===================== SCHEMAS =====================

STREAM_PAYLOAD_FIELDS = frozenset({"Speed", "SpeedLimit", "FuelConsumption", "TurnIndicator", "Input"})


def _decode_stream(obj: Dict[str, Any], profile: ProtocolProfile, lenient: bool = False) -> StreamRecord:
    """
    ``lenient`` makes every payload field optional; used for unknown tags,
    which may carry nothing beyond the envelope.
    """
    optional = STREAM_PAYLOAD_FIELDS if lenient else profile.optional_stream_fields
    input_obj = _read_object(obj, "Input", optional="Input" in optional)
    control_input = None
    if input_obj is not None:
        control_input = ControlInput(
            steering=_read_float(input_obj, "Steering"),
            throttle=_read_float(input_obj, "Throttle"),
            brake=_read_float(input_obj, "Brake"),
            clutch=_read_float(input_obj, "Clutch"),
        )

    return StreamRecord(
        timestamp=_read_timestamp(obj),
        speed=_read_int(obj, "Speed", optional="Speed" in optional),
        speed_limit=_read_int(obj, "SpeedLimit", optional="SpeedLimit" in optional),
        fuel_consumption=_read_float(obj, "FuelConsumption", optional="FuelConsumption" in optional),
        turn_indicator=_read_int(obj, "TurnIndicator", optional="TurnIndicator" in optional),
        control_input=control_input,
        type_tag=obj["Type"],
    )


def _decode_unknown_as_stream(obj: Dict[str, Any], profile: ProtocolProfile) -> StreamRecord:
    return _decode_stream(obj, profile, lenient=True)


def _decode_event(obj: Dict[str, Any], profile: ProtocolProfile) -> EventRecord:
    return EventRecord(timestamp=_read_timestamp(obj), event=_read_str(obj, "Event"))


def _decode_exercise_start(obj: Dict[str, Any], profile: ProtocolProfile) -> ExerciseStartRecord:
    return ExerciseStartRecord(
        timestamp=_read_timestamp(obj),
        exercise_name=_read_str(obj, "ExerciseName"),
    )


def _decode_exercise_end(obj: Dict[str, Any], profile: ProtocolProfile) -> ExerciseEndRecord:
    return ExerciseEndRecord(timestamp=_read_timestamp(obj))


RECORD_SCHEMAS: Dict[RecordKind, Callable[[Dict[str, Any], ProtocolProfile], Record]] = {
    RecordKind.STREAM: _decode_stream,
    RecordKind.EVENT: _decode_event,
    RecordKind.EXERCISE_START: _decode_exercise_start,
    RecordKind.EXERCISE_END: _decode_exercise_end,
}


# ===================== DISPATCH =====================

def parse_envelope(document: bytes) -> Dict[str, Any]:
    """Parse a document and check it carries a string ``Type`` tag."""
    try:
        obj = json.loads(document)
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"Document is not valid JSON: {e}", document, e) from e

    if not isinstance(obj, dict):
        raise DecodeError("Document is not a JSON object", document)

    type_tag = obj.get("Type")
    if not isinstance(type_tag, str):
        raise DecodeError(f"Missing or non-string 'Type' field: {type_tag!r}", document)
    return obj


def resolve_kind(type_tag: str) -> Optional[RecordKind]:
    """RecordKind for a tag, or None when the tag is not one we know."""
    try:
        return RecordKind(type_tag)
    except ValueError:
        return None


def decode_record(document: bytes, profile: ProtocolProfile = DEFAULT_PROFILE) -> Record:
    """
    Decode one framed document into its record type.

    Raises DecodeError for anything that is not a well-formed message;
    unknown ``Type`` tags are decoded with UNKNOWN_KIND_POLICY instead.
    """
    obj = parse_envelope(document)
    kind = resolve_kind(obj["Type"])
    if kind is None:
        kind, schema = UNKNOWN_KIND_POLICY, _decode_unknown_as_stream
    else:
        schema = RECORD_SCHEMAS[kind]

    try:
        return schema(obj, profile)
    except _FieldError as e:
        raise DecodeError(f"Bad {kind.value} message: {e}", document, e) from e


class RecordDecoder:
    """
    decode_record() bound to a protocol profile, with bookkeeping.

    Logs each unknown tag and unknown event name once per session and
    counts decoded and failed documents.
    """

    def __init__(self, profile: ProtocolProfile = DEFAULT_PROFILE):
        self.profile = profile
        self.decoded = Counter()
        self.failed = 0
        self._seen_unknown_tags: Set[str] = set()
        self._seen_unknown_events: Set[str] = set()

    def decode(self, document: bytes) -> Record:
        try:
            record = decode_record(document, self.profile)
        except DecodeError:
            self.failed += 1
            raise

        if isinstance(record, StreamRecord) and record.type_tag != RecordKind.STREAM.value:
            if record.type_tag not in self._seen_unknown_tags:
                self._seen_unknown_tags.add(record.type_tag)
                logger.warning(
                    "Unknown message type %r, decoding it as %s",
                    record.type_tag, UNKNOWN_KIND_POLICY.value,
                )
        elif isinstance(record, EventRecord) and not self.profile.is_known_event(record.event):
            if record.event not in self._seen_unknown_events:
                self._seen_unknown_events.add(record.event)
                logger.info("Event %r is not in profile '%s'", record.event, self.profile.name)

        self.decoded[record.kind] += 1
        return record

    @property
    def total_decoded(self) -> int:
        return sum(self.decoded.values())

    def summary(self) -> str:
        parts = [f"{kind.value}={count}" for kind, count in sorted(self.decoded.items(), key=lambda kv: kv[0].value)]
        return f"decoded {self.total_decoded} ({', '.join(parts) or 'none'}), failed {self.failed}"

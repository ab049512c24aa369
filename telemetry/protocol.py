# telemetry/protocol.py
"""
Simulator protocol profiles.

Simulator releases differ only in which event names they send and which
Stream fields they include, so both are kept here as data. The decoder
treats event names as opaque strings; the vocabulary is only used to
describe events and to notice names we have never seen before.
"""
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional

logger = logging.getLogger(__name__)


# ===================== EVENT VOCABULARY =====================

# Event name -> description ("" where the simulator documents none)
SIMULATOR_EVENTS: Dict[str, str] = {
    "BlueLightsEnabled": "Turned on blue lights on vehicle",
    "BlueLightsDisabled": "Turned off blue lights on vehicle",
    "ForgotTurnIndicator": "",
    "MolestedWildlife": "Drove too fast near wildlife",
    "EncounterWildlife": "Driver encounters wildlife and should be able to react",
    "RedLightPenalty": "Did not stop for a red light",
    "BaleDamage": "",
    "GoodDistanceToFire": "",
    "MotorcadeDistance": "",
    "Roadkill": "",
    "BarrelCollision": "",
    "GoodDistanceToSmoke": "",
    "MotorcadePositioning": "",
    "RoughDriving": "",
    "BlindedOtherDrivers": "",
    "GoodsCollision": "",
    "MotorcadeRPM": "",
    "RpmWarning": "",
    "BorrowedFuel": "",
    "InspectionMisjudgement": "",
    "MoveBall": "",
    "Speeding": "",
    "BuildingMaterialCollision": "",
    "InspectionPoints": "",
    "MovePole": "",
    "SpeedingWarning": "",
    "CargoDelivered": "",
    "InspectionWrongOrder": "",
    "MovedToolUnlocked": "",
    "TooCloseToFire": "",
    "ChainInAir": "",
    "LeaveMaze": "",
    "NoSupportLegs": "",
    "TooCloseToSmoke": "",
    "ConeCollisions": "",
    "LeftExerciseArea": "",
    "NotSupportedClaw": "",
    "ToolCollision": "",
    "CurbCollision": "Drove up on the curb",
    "LeftTheTrailerBehind": "",
    "ObstacleCourseTouch": "",
    "UsingParkBrakeWhileDriving": "",
    "DamageToProperty": "",
    "LiftedLoadTooHigh": "",
    "ObstacleMoved": "",
    "VehicleDamage": "",
    "DrivingWithOpenDoors": "",
    "LogsFacingCabin": "",
    "ObstructedTraffic": "",
    "VehicleOffroad": "",
    "DrivingWithSupportLegs": "",
    "LooseCargo": "",
    "PalletMoved": "",
    "VehicleTilt_Flipped": "",
    "DroppedPipe": "",
    "MinorCollision": "",
    "PeopleCollision": "",
    "WheelInAir": "",
    "DumpTruckDamage": "",
    "MissedStation": "",
    "PerfectPlacement": "",
    "WheelOffroad": "",
    "ExcessiveSpeeding": "",
    "MissionsCompleted": "",
    "RanStopSign": "",
}


# ===================== PROFILES =====================

@dataclass(frozen=True)
class ProtocolProfile:
    """What one simulator release sends beyond the common envelope."""
    name: str
    known_events: Mapping[str, str] = field(default_factory=dict, hash=False)
    optional_stream_fields: FrozenSet[str] = frozenset({"TurnIndicator", "Input"})

    def __post_init__(self):
        # Read-only copy so a shared profile cannot be edited in place
        object.__setattr__(self, "known_events", MappingProxyType(dict(self.known_events)))

    def is_known_event(self, event: str) -> bool:
        return event in self.known_events

    def describe_event(self, event: str) -> Optional[str]:
        """Documented description of an event name, or None."""
        return self.known_events.get(event) or None

    def with_events(self, events: Mapping[str, str]) -> "ProtocolProfile":
        merged = dict(self.known_events)
        merged.update(events)
        return replace(self, known_events=merged)


DEFAULT_PROFILE = ProtocolProfile(name="default", known_events=SIMULATOR_EVENTS)


def parse_event_vocabulary(text: str) -> Dict[str, str]:
    """
    Parse a vocabulary listing.

    One event per line, either ``Name`` or ``Name: description``.
    Blank lines and lines starting with ``#`` are ignored.
    """
    events: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        name, _, description = line.partition(":")
        name = name.strip()
        if not name:
            raise ValueError(f"Vocabulary line has no event name: {line!r}")
        events[name] = description.strip()
    return events


def load_event_vocabulary(path, base: ProtocolProfile = DEFAULT_PROFILE) -> ProtocolProfile:
    """Return ``base`` extended with the events listed in ``path``."""
    path = Path(path)
    events = parse_event_vocabulary(path.read_text(encoding="utf-8"))
    logger.info("Loaded %d event names from %s", len(events), path)
    return replace(base.with_events(events), name=path.stem)

import sys
from pathlib import Path

# Ensure package import for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import json

import pytest


def make_message(type_tag, hour=0, minute=0, second=0, millisecond=0, **payload):
    """Simulator message dict with the common envelope filled in."""
    message = {
        "Type": type_tag,
        "Timestamp": {
            "Hour": hour,
            "Minute": minute,
            "Second": second,
            "Millisecond": millisecond,
        },
    }
    message.update(payload)
    return message


def encode(message) -> bytes:
    return json.dumps(message, separators=(",", ":")).encode("utf-8")


@pytest.fixture
def stream_message():
    return make_message(
        "Stream", 10, 20, 30, 400,
        Speed=72,
        SpeedLimit=50,
        FuelConsumption=6.5,
        TurnIndicator=-1,
        Input={"Steering": -0.25, "Throttle": 0.75, "Brake": 0.0, "Clutch": 0.1},
    )

#!/usr/bin/env python3
"""
Stands in for the driving simulator. Accepts one client and streams
back-to-back JSON objects (no separators) in randomly sized chunks, so
the client's framing can be exercised without the real simulator.

    python tools/dummy_simulator.py [port]
"""

import json
import random
import socket
import sys
import time

HOST, PORT = '127.0.0.1', 1534
EVENTS = ["Speeding", "CurbCollision", "RedLightPenalty", "MinorCollision", "WheelOffroad"]


def timestamp(elapsed: float) -> dict:
    ms = int(elapsed * 1000)
    return {
        "Hour": 12 + ms // 3_600_000,
        "Minute": (ms // 60_000) % 60,
        "Second": (ms // 1000) % 60,
        "Millisecond": ms % 1000,
    }


def messages(count: int):
    """Yield an exercise's worth of simulator messages."""
    t0 = time.time()
    yield {"Type": "ExerciseStart", "Timestamp": timestamp(0.0), "ExerciseName": "City driving {demo}"}
    speed = 0
    for i in range(count):
        elapsed = time.time() - t0
        speed = max(0, min(110, speed + random.randint(-5, 8)))
        yield {
            "Type": "Stream",
            "Timestamp": timestamp(elapsed),
            "Speed": speed,
            "SpeedLimit": 50,
            "FuelConsumption": round(random.uniform(4.0, 12.0), 3),
            "TurnIndicator": random.choice([-1, 0, 0, 0, 1, 2]),
            "Input": {
                "Steering": round(random.uniform(-1.0, 1.0), 3),
                "Throttle": round(random.uniform(0.0, 1.0), 3),
                "Brake": 0.0,
                "Clutch": 0.0,
            },
        }
        if speed > 50 and i % 7 == 0:
            yield {"Type": "Event", "Timestamp": timestamp(elapsed), "Event": random.choice(EVENTS)}
    yield {"Type": "ExerciseEnd", "Timestamp": timestamp(time.time() - t0)}


def main(port: int = PORT, count: int = 200):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        s.bind((HOST, port))
        s.listen(1)
        print(f'Listening on {HOST}:{port} ...')
        conn, addr = s.accept()
        with conn:
            print('Connection from', addr)
            stream = b''.join(json.dumps(m).encode('utf-8') for m in messages(count))
            sent = 0
            while sent < len(stream):
                size = random.randint(1, 300)   # deliberately not aligned to objects
                conn.sendall(stream[sent:sent + size])
                sent += size
                time.sleep(0.01)
            print(f'Sent {len(stream)} bytes, closing')


if __name__ == '__main__':
    main(int(sys.argv[1]) if len(sys.argv) > 1 else PORT)

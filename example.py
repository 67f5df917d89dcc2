#!/usr/bin/env python3
"""
Quick example demonstrating home-lighting without a broker.

Feeds retained-style messages through the classifier and serializer and
prints what would be published.

Run with: PYTHONPATH=src python3 example.py
"""

from datetime import datetime, timedelta

from home_lighting import EventBus, EventFilter, LightingEngine, PublishQueue, UpdateSerializer
from home_lighting.lighting import classify

print("=" * 60)
print("home-lighting Example")
print("=" * 60)

# Simulated wall clock: a December evening
clock_now = [datetime(2025, 12, 20, 16, 30)]

# 1. Components
print("\n1. Creating components...")
engine = LightingEngine()
publish_queue = PublishQueue(clock=lambda: clock_now[0])
bus = EventBus()
serializer = UpdateSerializer(engine, publish_queue, bus, clock=lambda: clock_now[0])
bus.subscribe(
    lambda e: print(f"   → subscribe devices/{e.device}/#"),
    EventFilter(event_type="device.discovered"),
)
bus.subscribe(
    lambda e: print(f"   → {e.region} control {e.payload['previous']} -> {e.payload['control']}"),
    EventFilter(event_type="control.changed"),
)
print("   ✓ Engine, PublishQueue, EventBus and UpdateSerializer created")


def feed(topic: str, payload: str) -> None:
    update = classify(topic, payload)
    if update is None:
        print(f"   ✗ {topic}={payload!r} discarded")
        return
    serializer.process(update)


def flush() -> None:
    while publish_queue.publish_next(
        lambda r: print(f"   publish {r.topic} = {r.payload!r}"), timeout=0
    ):
        pass


def advance(minutes: int) -> None:
    clock_now[0] += timedelta(minutes=minutes)
    print(f"\n   [{clock_now[0]:%H:%M}]")


# 2. Configure a region
print("\n2. Configuring region 'porch' (window light -> 23:00)...")
feed("lighting/enable", "true")
feed("environment/outdoor-light", "6")
feed("lighting/porch/window-start", "light")
feed("lighting/porch/window-end", "23:00")
feed("lighting/porch/devices", "porch-1,porch-2")
feed("devices/porch-1/$state", "ready")
flush()

# 3. Dusk
print("\n3. It gets dark...")
advance(30)
feed("environment/outdoor-light", "1")
flush()

# 4. Someone presses a button
print("\n4. Button press on porch-1...")
advance(60)
feed("devices/porch-1/button/button", "true")
flush()

# 5. Window closes; override expires
print("\n5. After 23:00...")
advance(6 * 60)
serializer.tick()
flush()

print("\n" + "=" * 60)
print(f"Example complete! porch control={engine.get_region('porch').control.value}")
print("=" * 60)

"""Last-known spatial state of the controlled entity and its patrol anchor."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Vec3:
    x: float
    y: float
    z: float


class PositionState:
    """Coordinates, orientation and the first-observed anchor point.

    The anchor survives reconnects so patrol stays centred on the first
    spawn point across retries.
    """

    def __init__(self, x: float = 0.0, y: float = 64.0, z: float = 0.0) -> None:
        self.x = x
        self.y = y
        self.z = z
        self.pitch = 0.0
        self.yaw = 0.0
        self._anchor: Vec3 | None = None

    @property
    def anchor(self) -> Vec3 | None:
        return self._anchor

    @property
    def coordinates(self) -> Vec3:
        return Vec3(self.x, self.y, self.z)

    def seed(self, position: Vec3) -> None:
        """Adopt a peer-supplied position; the first one also becomes the anchor."""
        self.x, self.y, self.z = position.x, position.y, position.z
        if self._anchor is None:
            self._anchor = self.coordinates

    def ensure_anchor(self) -> Vec3:
        """Pin the anchor to the current coordinates unless one was already observed."""
        if self._anchor is None:
            self._anchor = self.coordinates
        return self._anchor

    def move_to(self, x: float, y: float, z: float, *, pitch: float | None = None, yaw: float | None = None) -> None:
        self.x, self.y, self.z = x, y, z
        if pitch is not None:
            self.pitch = pitch
        if yaw is not None:
            self.yaw = yaw

    def orient(self, *, pitch: float, yaw: float) -> None:
        self.pitch = pitch
        self.yaw = yaw

    def distance_to(self, point: Vec3) -> float:
        return distance(self.coordinates, point)


def distance(a: Vec3, b: Vec3) -> float:
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2 + (a.z - b.z) ** 2)

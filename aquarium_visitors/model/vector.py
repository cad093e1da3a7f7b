"""Value-semantics vector types shared by the visitor simulation."""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class GridPosition:
    """Integer cell address. y is the floor layer (always 0 on the ground)."""
    x: int
    y: int
    z: int


@dataclass(frozen=True)
class Vector3:
    """
    Immutable 3D vector.

    Every operation returns a new instance, so positions handed between
    subsystems can never be changed behind the owner's back.
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> "Vector3":
        return Vector3(self.x * scalar, self.y * scalar, self.z * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> "Vector3":
        return Vector3(self.x / scalar, self.y / scalar, self.z / scalar)

    def __neg__(self) -> "Vector3":
        return Vector3(-self.x, -self.y, -self.z)

    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def distance_to(self, other: "Vector3") -> float:
        return (self - other).length()

    def dot(self, other: "Vector3") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def normalized(self) -> "Vector3":
        """Unit vector in the same direction; the zero vector stays zero."""
        length = self.length()
        if length == 0:
            return Vector3()
        return self / length

    def clamped(self, max_length: float) -> "Vector3":
        """Scale down to max_length if longer."""
        length = self.length()
        if length > max_length:
            return self * (max_length / length)
        return self

    def lerp(self, other: "Vector3", t: float) -> "Vector3":
        return self + (other - self) * t

    def flattened(self) -> "Vector3":
        """Copy with y dropped to 0 (steering is planar)."""
        return Vector3(self.x, 0.0, self.z)

    def with_y(self, y: float) -> "Vector3":
        return Vector3(self.x, y, self.z)

    def is_zero(self) -> bool:
        return self.x == 0 and self.y == 0 and self.z == 0

"""Enums for estimator and usage-plan constants."""

from enum import Enum


class Drivetrain(str, Enum):
    """Driven wheels. Anything unrecognized is treated as RWD."""

    FWD = "FWD"
    RWD = "RWD"
    AWD = "AWD"

    @classmethod
    def from_string(cls, value: str | None) -> "Drivetrain | None":
        """Convert string to enum, handling common variations."""
        if not value:
            return None
        value_lower = value.strip().lower()
        mappings = {
            "fwd": cls.FWD,
            "ff": cls.FWD,
            "front": cls.FWD,
            "front-wheel drive": cls.FWD,
            "front wheel drive": cls.FWD,
            "rwd": cls.RWD,
            "fr": cls.RWD,
            "mr": cls.RWD,
            "rr": cls.RWD,
            "rear": cls.RWD,
            "rear-wheel drive": cls.RWD,
            "rear wheel drive": cls.RWD,
            "awd": cls.AWD,
            "4wd": cls.AWD,
            "4x4": cls.AWD,
            "all": cls.AWD,
            "all-wheel drive": cls.AWD,
            "all wheel drive": cls.AWD,
            "four-wheel drive": cls.AWD,
        }
        return mappings.get(value_lower)


class BodyStyle(str, Enum):
    """Coarse body styles used for curb weight estimation."""

    TRUCK = "truck"
    SUV = "suv"
    VAN = "van"
    WAGON = "wagon"
    SEDAN = "sedan"
    COUPE = "coupe"
    HATCHBACK = "hatchback"
    CONVERTIBLE = "convertible"

    @classmethod
    def from_string(cls, value: str | None) -> "BodyStyle | None":
        """Convert string to enum, returning None if invalid."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Plan(str, Enum):
    """Subscription plan governing the daily prediction quota."""

    FREE = "FREE"
    PLUS = "PLUS"
    PRO = "PRO"

    @classmethod
    def from_string(cls, value: str | None) -> "Plan":
        """Convert string to enum, falling back to FREE."""
        if not value:
            return cls.FREE
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.FREE


class SpecSource(str, Enum):
    """Where stock trim figures came from."""

    OFFICIAL = "official"
    COMMUNITY = "community"
    MISSING = "missing"


# Daily prediction limits per plan
PLAN_DAILY_LIMITS: dict[Plan, int] = {
    Plan.FREE: 3,
    Plan.PLUS: 30,
    Plan.PRO: 200,
}

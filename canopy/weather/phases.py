"""Weather phases, seasons and the transition events consumers drain."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class WeatherPhase(Enum):
    """The single global weather value active at any moment.

    Thunderstorm is an escalation of Rain and is never chosen by the
    base seasonal roll.  Numeric values are stable.
    """

    CLEAR = 0
    RAIN = 1
    THUNDERSTORM = 2
    WIND = 3
    SNOW = 4


class Season(Enum):
    """Seasons in cycle order."""

    SPRING = 0
    SUMMER = 1
    AUTUMN = 2
    WINTER = 3

    def next(self) -> Season:
        """Return the season that follows this one."""
        members = list(Season)
        return members[(members.index(self) + 1) % len(members)]


class TransitionKind(Enum):
    """Whether a weather event marks a phase ending or starting."""

    ENDED = auto()
    STARTED = auto()


@dataclass(frozen=True)
class WeatherEvent:
    """One queued weather notification.

    Attributes:
        phase: The phase the notification refers to.
        kind: ENDED for the outgoing phase, STARTED for the incoming one.
    """

    phase: WeatherPhase
    kind: TransitionKind


def parse_enum(enum_cls: type[Enum], name: str) -> Enum:
    """Look up an enum member by case-insensitive name.

    Raises:
        ValueError: If ``name`` is not a member of ``enum_cls``.
    """
    try:
        return enum_cls[str(name).strip().upper()]
    except KeyError:
        valid = ", ".join(m.name.lower() for m in enum_cls)
        msg = f"unknown {enum_cls.__name__} {name!r} (expected one of: {valid})"
        raise ValueError(msg) from None

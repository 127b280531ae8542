import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Command(str, Enum):
    HELP = "HELP"
    LAST = "LAST"
    STATUS = "STATUS"
    CANCEL = "CANCEL"


@dataclass(frozen=True)
class WeightIntent:
    value: float


@dataclass(frozen=True)
class CommandIntent:
    command: Command


@dataclass(frozen=True)
class UnknownIntent:
    pass


Intent = Union[WeightIntent, CommandIntent, UnknownIntent]

# Accepts 185, 185.5, 185.0. Rejects 185.55, 185 lbs, -185, .5
_WEIGHT_RE = re.compile(r"^[0-9]+(?:\.[0-9])?$")

HELP_MESSAGE = "Send weight (185.5), LAST, STATUS, or CANCEL"
UNKNOWN_MESSAGE = "Unknown. Send weight (185.5) or try HELP, LAST, STATUS"


def parse_weight(text) -> Optional[float]:
    """
    Parse a bare positive number with at most one decimal digit.
    Anything else returns None so the message falls through to unknown.
    """
    if not isinstance(text, str):
        return None

    trimmed = text.strip()
    if not _WEIGHT_RE.match(trimmed):
        return None

    weight = float(trimmed)
    if not math.isfinite(weight) or weight <= 0:
        return None
    return weight


def classify_message(text) -> Intent:
    if not isinstance(text, str):
        return UnknownIntent()

    # exact command match wins over weight parsing
    normalized = text.strip().upper()
    if normalized in Command.__members__:
        return CommandIntent(Command(normalized))

    weight = parse_weight(text)
    if weight is not None:
        return WeightIntent(weight)

    return UnknownIntent()

"""
Rate resolution - turns org defaults and client overrides into the billing
parameters applied to one activity.

Rules are resolved field by field, not record by record: a client that only
overrides ``hourlyRate`` still inherits the org's ``minDuration`` and
``rounding``. Resolution never fails; unusable values count as absent.
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from ...shared.validators import coerce_number

ROUNDING_NONE = "none"
ROUNDING_6M = "6m"
ROUNDING_15M = "15m"

# Minutes per increment for each rounding policy
ROUNDING_INCREMENTS = {
    ROUNDING_6M: 6,
    ROUNDING_15M: 15,
}

DEFAULT_HOURLY_RATE = 150.0
DEFAULT_MIN_DURATION = 0.0


@dataclass(frozen=True)
class BillingContext:
    """Resolved hourly rate, minimum duration and rounding for one client"""

    hourly_rate: float
    min_duration: float
    rounding: str

    def to_dict(self) -> dict:
        return {
            "hourlyRate": self.hourly_rate,
            "minDuration": self.min_duration,
            "rounding": self.rounding,
        }


def _truthy_number(value: Any) -> Optional[float]:
    # A configured 0 falls through to the next layer, same as a missing value
    number = coerce_number(value)
    return number if number else None


def _rounding_policy(value: Any) -> Optional[str]:
    # "none" is not a usable override: a client cannot switch off org-level rounding
    return value if value in ROUNDING_INCREMENTS else None


def _rule_layers(*rules: Any) -> list[dict]:
    """Most specific layer first. Anything that is not a JSON object is an empty layer."""
    return [r if isinstance(r, dict) else {} for r in rules]


def first_present(layers: Iterable[dict], field: str, read: Callable[[Any], Any], default: Any) -> Any:
    """Return the first layer's usable value for ``field``, or ``default``."""
    for layer in layers:
        value = read(layer.get(field))
        if value is not None:
            return value
    return default


def resolve_billing_context(client_rules: Any, org_rules: Any) -> BillingContext:
    """Resolve client overrides over org defaults over the hard-coded fallbacks."""
    layers = _rule_layers(client_rules, org_rules)
    return BillingContext(
        hourly_rate=first_present(layers, "hourlyRate", _truthy_number, DEFAULT_HOURLY_RATE),
        min_duration=first_present(layers, "minDuration", _truthy_number, DEFAULT_MIN_DURATION),
        rounding=first_present(layers, "rounding", _rounding_policy, ROUNDING_NONE),
    )


def round_half_up(value: float) -> int:
    """Arithmetic rounding: .5 always goes up"""
    return math.floor(value + 0.5)


def adjust_minutes(minutes: float, min_duration: float, rounding: str) -> float:
    """
    Apply the minimum-duration floor, then the rounding policy.

    The floor comes first, so a 3 minute call with a 10 minute minimum and
    15m rounding bills 15 minutes. Rounding to the nearest increment can land
    back under the minimum (8 minute minimum, 6m rounding gives 6); the
    result is then moved up one increment so it never drops below the
    minimum.
    """
    adjusted = minutes
    if min_duration > 0 and adjusted < min_duration:
        adjusted = min_duration

    increment = ROUNDING_INCREMENTS.get(rounding)
    if increment:
        adjusted = round_half_up(adjusted / increment) * increment
        if min_duration > 0 and adjusted < min_duration:
            adjusted = math.ceil(min_duration / increment) * increment

    return adjusted

"""Fixed registry of integrable scalar functions.

The registry is built once at import time and exposed read-only, so every
job and worker may share it without locking. New integrands are added here,
never at runtime.
"""

from __future__ import annotations

import math
from enum import Enum
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from quadpool.core.errors import InvalidJobError


class IntegrandKind(str, Enum):
    """Selector for the integrand registry.

    Inherits from ``str`` so the value serializes directly in JSON output.
    Declaration order defines the numeric function id (0, 1, 2).
    """

    IDENTITY_TRIG = "identity-trig"
    GAUSSIAN_BELL = "gaussian-bell"
    EXPONENTIAL_DECAY_RAMP = "exponential-decay-ramp"

    @property
    def function_id(self) -> int:
        """Numeric id of this selector (its position in the registry)."""
        return list(IntegrandKind).index(self)


@runtime_checkable
class Integrand(Protocol):
    """Capability of a pure scalar function that can be integrated."""

    kind: IntegrandKind
    description: str

    def evaluate(self, x: float) -> float: ...


class Sine:
    """sin(x)."""

    kind = IntegrandKind.IDENTITY_TRIG
    description = "sin(x)"

    def evaluate(self, x: float) -> float:
        return math.sin(x)


class GaussianBell:
    """Standard normal density, exp(-x^2/2) / sqrt(2*pi)."""

    kind = IntegrandKind.GAUSSIAN_BELL
    description = "exp(-x^2/2) / sqrt(2*pi)"

    _NORM = math.sqrt(2 * math.pi)

    def evaluate(self, x: float) -> float:
        return math.exp(-(x * x) / 2) / self._NORM


class ExponentialDecayRamp:
    """Charging ramp on [0, 1) followed by exponential decay.

    0 for x < 0, 1 - exp(-5x) for 0 <= x < 1, exp(-(x - 1)) for x >= 1.
    """

    kind = IntegrandKind.EXPONENTIAL_DECAY_RAMP
    description = "1 - exp(-5x) on [0, 1), exp(-(x-1)) after"

    def evaluate(self, x: float) -> float:
        if x < 0:
            return 0.0
        if x < 1:
            return 1 - math.exp(-5 * x)
        return math.exp(-(x - 1))


INTEGRANDS: MappingProxyType[IntegrandKind, Integrand] = MappingProxyType({
    IntegrandKind.IDENTITY_TRIG: Sine(),
    IntegrandKind.GAUSSIAN_BELL: GaussianBell(),
    IntegrandKind.EXPONENTIAL_DECAY_RAMP: ExponentialDecayRamp(),
})


def resolve_kind(selector: IntegrandKind | str | int) -> IntegrandKind:
    """Map an enum member, its string value, or a numeric id to a selector.

    Raises:
        InvalidJobError: If the selector is not in the registry.
    """
    if isinstance(selector, IntegrandKind):
        return selector
    # bool is an int subclass; True/False are never meaningful ids
    if isinstance(selector, int) and not isinstance(selector, bool):
        kinds = list(IntegrandKind)
        if 0 <= selector < len(kinds):
            return kinds[selector]
        raise InvalidJobError(
            f"Integrand id {selector} out of range (0-{len(kinds) - 1})"
        )
    if isinstance(selector, str):
        text = selector.strip()
        if text.isdigit():
            return resolve_kind(int(text))
        try:
            return IntegrandKind(text)
        except ValueError:
            pass
    valid = ", ".join(k.value for k in IntegrandKind)
    raise InvalidJobError(f"Unknown integrand {selector!r} (expected one of: {valid})")


def resolve_integrand(selector: IntegrandKind | str | int) -> Integrand:
    """Look up the registered integrand for a selector."""
    return INTEGRANDS[resolve_kind(selector)]


__all__ = [
    "INTEGRANDS",
    "ExponentialDecayRamp",
    "GaussianBell",
    "Integrand",
    "IntegrandKind",
    "Sine",
    "resolve_integrand",
    "resolve_kind",
]

"""The integration job model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from quadpool.core.errors import InvalidJobError
from quadpool.core.integrands import Integrand, IntegrandKind, resolve_integrand, resolve_kind


class IntegrationJob(BaseModel):
    """One definite-integral request: ``integrand`` over a range, fixed steps.

    Immutable once built. Validation enforces ``range_end >= range_start``,
    ``num_steps >= 1`` and a selector present in the integrand registry.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    range_start: float = Field(description="Lower integration bound")
    range_end: float = Field(description="Upper integration bound (>= range_start)")
    num_steps: int = Field(ge=1, description="Number of trapezoid slices over the range")
    integrand: IntegrandKind = Field(
        description="Registry selector: enum value, its name string, or numeric id",
    )

    @field_validator("integrand", mode="before")
    @classmethod
    def _resolve_selector(cls, v: Any) -> IntegrandKind:
        try:
            return resolve_kind(v)
        except InvalidJobError as exc:
            raise ValueError(str(exc)) from None

    @model_validator(mode="after")
    def _check_range(self) -> IntegrationJob:
        if self.range_end < self.range_start:
            raise ValueError(
                f"range_end ({self.range_end:g}) must be >= range_start ({self.range_start:g})"
            )
        return self

    @classmethod
    def create(
        cls,
        range_start: float,
        range_end: float,
        num_steps: int,
        integrand: IntegrandKind | str | int,
    ) -> IntegrationJob:
        """Build a job, raising InvalidJobError instead of ValidationError."""
        try:
            return cls(
                range_start=range_start,
                range_end=range_end,
                num_steps=num_steps,
                integrand=integrand,
            )
        except ValidationError as exc:
            reasons = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'job'}: {err['msg']}"
                for err in exc.errors()
            )
            raise InvalidJobError(f"Invalid job: {reasons}") from exc

    @property
    def function(self) -> Integrand:
        """The registered integrand this job evaluates."""
        return resolve_integrand(self.integrand)

    @property
    def dx(self) -> float:
        """Global slice width."""
        return (self.range_end - self.range_start) / self.num_steps


__all__ = ["IntegrationJob"]

"""Flat fine policies keyed by media type.

New media types are supported by registering another policy; lookup of an
unregistered type falls back to the BOOK policy.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, Union

from ..money import Amount, to_decimal

DEFAULT_MEDIA_TYPE = "BOOK"


def normalize_media_type(media_type: str) -> str:
    return (media_type or "").strip().upper()


class FinePolicy(Protocol):
    """Given how late an item is, return the fine owed."""

    media_type: str

    def amount_for(self, overdue_days: int = 0) -> Decimal:
        ...


@dataclass(frozen=True)
class FlatFinePolicy:
    """Same fine regardless of how many days late."""

    media_type: str
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "media_type", normalize_media_type(self.media_type))
        object.__setattr__(self, "amount", to_decimal(self.amount))
        if not self.media_type:
            raise ValueError("media_type is required")
        if self.amount <= 0:
            raise ValueError(f"Fine amount must be positive, got {self.amount}")

    def amount_for(self, overdue_days: int = 0) -> Decimal:
        return self.amount


def default_policies() -> list[FlatFinePolicy]:
    return [
        FlatFinePolicy("BOOK", Decimal("10.00")),
        FlatFinePolicy("CD", Decimal("20.00")),
    ]


class FinePolicyRegistry:
    """Mutable mapping from media type to fine policy."""

    def __init__(self) -> None:
        self._policies: dict[str, FinePolicy] = {}
        for policy in default_policies():
            self.register(policy.media_type, policy)

    def register(self, media_type: str, policy: Union[FinePolicy, Amount]) -> FinePolicy:
        """Register or replace the policy for ``media_type``.

        Args:
            media_type: Media type tag (case-insensitive)
            policy: A policy object, or a flat amount

        Raises:
            ValueError: If the amount is not positive
        """
        key = normalize_media_type(media_type)
        if not key:
            raise ValueError("media_type is required")
        if not hasattr(policy, "amount_for"):
            policy = FlatFinePolicy(key, to_decimal(policy))
        elif policy.amount_for(0) <= 0:
            raise ValueError(f"Fine amount must be positive for {key}")
        self._policies[key] = policy
        return policy

    def policy_for(self, media_type: str) -> FinePolicy:
        return self._policies.get(
            normalize_media_type(media_type), self._policies[DEFAULT_MEDIA_TYPE]
        )

    def amount_for(self, media_type: str, overdue_days: int = 0) -> Decimal:
        """Fine owed for an overdue item of ``media_type``."""
        return to_decimal(self.policy_for(media_type).amount_for(overdue_days))

    def flat_fine(self, media_type: str) -> Decimal:
        return self.amount_for(media_type, 0)

    def is_registered(self, media_type: str) -> bool:
        return normalize_media_type(media_type) in self._policies

    def registered_media_types(self) -> list[str]:
        return sorted(self._policies)

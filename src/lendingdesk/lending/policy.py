"""Loan periods keyed by media type."""

from ..fines.policy import DEFAULT_MEDIA_TYPE, normalize_media_type

BOOK = "BOOK"
CD = "CD"

DEFAULT_LOAN_PERIODS = {
    BOOK: 28,
    CD: 7,
}


class LoanPeriodRegistry:
    """Mutable mapping from media type to loan length in days.

    Unregistered media types get the BOOK period.
    """

    def __init__(self) -> None:
        self._periods: dict[str, int] = dict(DEFAULT_LOAN_PERIODS)

    def register(self, media_type: str, days: int) -> None:
        key = normalize_media_type(media_type)
        if not key:
            raise ValueError("media_type is required")
        if days <= 0:
            raise ValueError(f"Loan period must be positive, got {days}")
        self._periods[key] = days

    def set_default_period(self, days: int) -> None:
        """Change the period of the default (BOOK) media type."""
        self.register(DEFAULT_MEDIA_TYPE, days)

    def period_for(self, media_type: str) -> int:
        return self._periods.get(
            normalize_media_type(media_type), self._periods[DEFAULT_MEDIA_TYPE]
        )

    def registered_media_types(self) -> list[str]:
        return sorted(self._periods)

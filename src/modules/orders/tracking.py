"""Tracking code value object.

Format: ``PD-BBBBBB-YYYY-CC``

- ``BBBBBB``: six random digits (leading zeros allowed).
- ``YYYY``: the year the code was issued.
- ``CC``: checksum, the sum of every digit of ``BBBBBB`` + ``YYYY``
  modulo 100, zero padded.

The checksum catches single-digit typos; it is not a forgery
protection.  Changing it would invalidate every code already issued.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from modules.orders.constants import TRACKING_CODE_PREFIX
from modules.orders.exceptions import (
    InvalidTrackingCodeFormat,
    TrackingCodeChecksumMismatch,
)

_PATTERN = re.compile(rf"^{TRACKING_CODE_PREFIX}-([0-9]{{6}})-([0-9]{{4}})-([0-9]{{2}})$")


def compute_checksum(random_number: str, year: str) -> str:
    """Two-digit checksum over the digits of ``random_number + year``."""
    total = sum(int(digit) for digit in random_number + year)
    return f"{total % 100:02d}"


@dataclass(frozen=True)
class TrackingCode:
    random_number: str
    year: int
    checksum: str

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def generate(cls, year: Optional[int] = None) -> TrackingCode:
        """Build a fresh code for ``year`` (default: current year).

        Uniqueness is not guaranteed here; callers check the store and
        retry on collision.
        """
        year = date.today().year if year is None else year
        if not 1000 <= year <= 9999:
            raise InvalidTrackingCodeFormat(
                f"Tracking code year must have four digits, got {year}."
            )
        random_number = f"{secrets.randbelow(1_000_000):06d}"
        return cls(
            random_number=random_number,
            year=year,
            checksum=compute_checksum(random_number, str(year)),
        )

    @classmethod
    def parse(cls, code: Any) -> TrackingCode:
        """Validate external input and return the value object.

        Raises:
            InvalidTrackingCodeFormat: not ``PD-######-####-##``.
            TrackingCodeChecksumMismatch: checksum digits do not match.
        """
        if not isinstance(code, str) or not code.strip():
            raise InvalidTrackingCodeFormat("Tracking code is required.")

        normalized = code.strip().upper()
        match = _PATTERN.match(normalized)
        if match is None:
            raise InvalidTrackingCodeFormat(
                "Tracking code format is invalid. Expected PD-XXXXXX-YYYY-CC."
            )

        random_number, year, checksum = match.groups()
        if compute_checksum(random_number, year) != checksum:
            raise TrackingCodeChecksumMismatch("Tracking code checksum is invalid.")

        return cls(random_number=random_number, year=int(year), checksum=checksum)

    @classmethod
    def is_valid(cls, code: Any) -> bool:
        try:
            cls.parse(code)
        except (InvalidTrackingCodeFormat, TrackingCodeChecksumMismatch):
            return False
        return True

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def is_current_year(self) -> bool:
        return self.year == date.today().year

    @property
    def value(self) -> str:
        return f"{TRACKING_CODE_PREFIX}-{self.random_number}-{self.year:04d}-{self.checksum}"

    def __str__(self) -> str:
        return self.value

"""
==============================================================================
Validation Utilities Module
==============================================================================

Validation of decoded barcode text.

This module implements:
- CodeValidator: Normalizes decoded text to digits and checks its length

Validation Rules:
----------------
- Every non-digit character is stripped ("12-34-56" -> "123456")
- The remaining digit count must be one of the accepted lengths
  (default 6 or 9)

==============================================================================
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple


class CodeValidator:
    """
    Validator for decoded barcode text.

    Example:
        >>> validator = CodeValidator({6, 9})
        >>> validator.validate("12-34-56")
        (True, '123456', None)
        >>> validator.validate("ABC123")
        (False, '123', 'Code must have 6 or 9 digits, got 3')
    """

    NON_DIGITS = re.compile(r"\D")

    DEFAULT_LENGTHS = (6, 9)

    def __init__(self, accepted_lengths: Optional[Iterable[int]] = None) -> None:
        lengths = accepted_lengths if accepted_lengths is not None else self.DEFAULT_LENGTHS
        self._accepted_lengths = frozenset(lengths)

        if not self._accepted_lengths:
            raise ValueError("At least one accepted length is required")

    @property
    def accepted_lengths(self) -> frozenset:
        """Digit counts a valid code may have."""
        return self._accepted_lengths

    @classmethod
    def normalize(cls, raw_text: str) -> str:
        """Strip everything that is not a digit."""
        if not raw_text:
            return ""
        return cls.NON_DIGITS.sub("", raw_text.strip())

    def validate(self, raw_text: str) -> Tuple[bool, str, Optional[str]]:
        """
        Normalize and validate decoded text.

        Args:
            raw_text: Text reported by the decode engine

        Returns:
            Tuple of (is_valid, normalized_code, error_message)
        """
        normalized = self.normalize(raw_text)

        if not normalized:
            return False, normalized, "Code contains no digits"

        if len(normalized) not in self._accepted_lengths:
            expected = " or ".join(str(n) for n in sorted(self._accepted_lengths))
            return False, normalized, f"Code must have {expected} digits, got {len(normalized)}"

        return True, normalized, None

    def is_valid(self, raw_text: str) -> bool:
        """Quick validation check."""
        is_valid, _, _ = self.validate(raw_text)
        return is_valid

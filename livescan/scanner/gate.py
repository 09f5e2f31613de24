"""
==============================================================================
Scan Gate Module
==============================================================================

Two-stage gate between the decode loop and accepted scans.

1. Length validity: digits-only code whose length is accepted ({6, 9})
2. Temporal debounce: the same code is suppressed until the debounce
   window (800 ms) has elapsed since it was last accepted

A barcode held in front of the camera for many frames yields exactly one
accepted event, while a different code is accepted immediately. Debounce
keys only on accepted codes; rejected decodes never move the window.

==============================================================================
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional

from livescan.utils.validators import CodeValidator

from .models import GateResult, RejectReason, ScanEvent


# Module logger
logger = logging.getLogger(__name__)


class ScanGate:
    """
    Validation and debounce for candidate scans.

    Timestamps are seconds on a monotonic clock.

    Example:
        >>> gate = ScanGate()
        >>> gate.accept(event_for("123456789"), now=0.0).accepted
        True
        >>> gate.accept(event_for("123456789"), now=0.5).accepted
        False
        >>> gate.accept(event_for("123456789"), now=0.9).accepted
        True
    """

    def __init__(
        self,
        accepted_lengths: Optional[Iterable[int]] = None,
        debounce_ms: int = 800,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._validator = CodeValidator(accepted_lengths)
        self._window = debounce_ms / 1000.0
        self._clock = clock
        self._last_code: Optional[str] = None
        self._last_time: Optional[float] = None

    @property
    def debounce_window(self) -> float:
        """Debounce window in seconds."""
        return self._window

    def accept(self, event: ScanEvent, now: Optional[float] = None) -> GateResult:
        """
        Decide whether a candidate becomes an accepted scan.

        Args:
            event: Candidate from the decode loop
            now: Monotonic time in seconds (clock reading if None)

        Returns:
            GateResult with the normalized code and, when rejected, the reason
        """
        if now is None:
            now = self._clock()

        is_valid, code, error = self._validator.validate(event.raw_text)
        if not is_valid:
            logger.debug(f"Rejected {event.raw_text!r}: {error}")
            return GateResult(
                accepted=False,
                code=code,
                reason=RejectReason.VALIDATION_FAILURE,
                message=error
            )

        if (
            self._last_code == code
            and self._last_time is not None
            and now - self._last_time < self._window
        ):
            return GateResult(accepted=False, code=code, reason=RejectReason.DUPLICATE)

        self._last_code = code
        self._last_time = now
        logger.debug(f"Accepted {code} ({event.symbology})")
        return GateResult(accepted=True, code=code)

    def reset(self) -> None:
        """Forget the last accepted code."""
        self._last_code = None
        self._last_time = None

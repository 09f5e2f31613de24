"""
==============================================================================
Barcode Decode Engine Module
==============================================================================

pyzbar backed decode engine.

Features:
---------
- Decoding restricted to configured symbologies (EAN-13/8, UPC-A/E,
  Code 128, Code 39 by default)
- Grayscale conversion before decoding
- Bounding rectangle reported for preview annotation

pyzbar needs the zbar shared library at import time, so this module is
imported only where a real engine is built.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

import cv2
import numpy as np
from pyzbar.pyzbar import ZBarSymbol, decode

from .engine import DecodeEngineFault
from .models import DecodeResult


# Module logger
logger = logging.getLogger(__name__)


class PyzbarDecodeEngine:
    """
    Decode engine using zbar through pyzbar.

    Attributes:
        symbols: ZBarSymbol values the engine looks for

    Example:
        >>> engine = PyzbarDecodeEngine(["EAN13", "CODE128"])
        >>> result = engine.try_decode(frame)
        >>> result.text, result.symbology
        ('7891234567895', 'EAN13')
    """

    def __init__(self, symbologies: Optional[Iterable[str]] = None) -> None:
        """
        Initialize the engine.

        Args:
            symbologies: Symbology names (ZBarSymbol member names); all if None

        Raises:
            ValueError: If a symbology name is unknown to zbar
        """
        self._symbols = self._resolve_symbols(symbologies)
        names = ", ".join(s.name for s in self._symbols) if self._symbols else "all"
        logger.debug(f"Decode engine created ({names})")

    @property
    def symbols(self) -> List[ZBarSymbol]:
        return list(self._symbols)

    @staticmethod
    def _resolve_symbols(symbologies: Optional[Iterable[str]]) -> List[ZBarSymbol]:
        if symbologies is None:
            return []

        symbols = []
        for name in symbologies:
            try:
                symbols.append(ZBarSymbol[name])
            except KeyError:
                raise ValueError(f"Unknown symbology: {name}") from None
        return symbols

    # =========================================================================
    # FRAME PROCESSING METHODS
    # =========================================================================

    def try_decode(self, frame: np.ndarray) -> Optional[DecodeResult]:
        """
        Decode the first symbol found on a frame.

        Args:
            frame: OpenCV image (BGR or grayscale numpy array)

        Returns:
            DecodeResult, or None when no symbol is present

        Raises:
            DecodeEngineFault: If the frame is malformed or zbar fails
        """
        if frame is None or frame.size == 0:
            raise DecodeEngineFault("Empty frame")

        try:
            gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY) if frame.ndim == 3 else frame
            barcodes = decode(gray, symbols=self._symbols or None)
        except Exception as e:
            raise DecodeEngineFault(f"Decode error: {e}") from e

        for barcode in barcodes:
            try:
                text = barcode.data.decode("utf-8")
            except UnicodeDecodeError:
                logger.debug(f"Skipping non UTF-8 {barcode.type} payload")
                continue

            rect = barcode.rect
            return DecodeResult(
                text=text,
                symbology=barcode.type,
                rect=(rect.left, rect.top, rect.width, rect.height)
            )

        return None


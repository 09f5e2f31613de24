"""
Decode engine interface.

Engines return a DecodeResult when a symbol is found, None when the frame
holds no symbol, and raise DecodeEngineFault when the frame could not be
processed at all.
"""

from typing import Optional, Protocol

import numpy as np

from .models import DecodeResult


class DecodeEngineFault(Exception):
    """Engine-level failure on a frame (distinct from "no symbol found")."""


class DecodeEngine(Protocol):

    def try_decode(self, frame: np.ndarray) -> Optional[DecodeResult]:
        ...

"""
==============================================================================
Utilities Package
==============================================================================

Utility classes for the scanning service.

Modules:
--------
- validators: Decoded code normalization and length validation
- frames: Base64 image payloads to OpenCV frames

==============================================================================
"""

from .validators import CodeValidator
from .frames import decode_base64_frame

__all__ = [
    "CodeValidator",
    "decode_base64_frame",
]

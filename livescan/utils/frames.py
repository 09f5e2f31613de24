"""
Frame decoding helpers for frames submitted over the API.
"""

import base64
import binascii
from typing import Optional

import cv2
import numpy as np


def decode_base64_frame(data: str) -> Optional[np.ndarray]:
    """
    Decode a base64 encoded image (JPEG/PNG) into an OpenCV frame.

    Accepts plain base64 or a data URL ("data:image/jpeg;base64,...").

    Returns:
        BGR frame, or None when the payload is not a readable image
    """
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]

    try:
        img_data = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return None

    nparr = np.frombuffer(img_data, np.uint8)
    if nparr.size == 0:
        return None
    return cv2.imdecode(nparr, cv2.IMREAD_COLOR)

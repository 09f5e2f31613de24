"""
==============================================================================
Device Models Module
==============================================================================

Pydantic models for capture devices and stream constraints.

==============================================================================
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CaptureDevice(BaseModel):
    """
    Video capture device seen during enumeration.

    Attributes:
        id: Opaque device identifier (OpenCV camera index as a string)
        label: Human readable device name
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Opaque device identifier")
    label: str = Field(..., description="Display label")


class StreamConstraints(BaseModel):
    """
    Requested stream properties.

    Values are ideals; providers apply what the hardware supports.
    """

    model_config = ConfigDict(frozen=True)

    device_id: Optional[str] = Field(default=None, description="Exact device to open")
    facing_mode: str = Field(default="environment", description="Preferred camera direction")
    width: int = Field(default=1280, ge=1, description="Ideal frame width")
    height: int = Field(default=720, ge=1, description="Ideal frame height")
    aspect_ratio: float = Field(default=16 / 9, gt=0, description="Ideal aspect ratio")

    def for_device(self, device_id: Optional[str]) -> "StreamConstraints":
        """Copy pinned to an exact device (or unpinned when None)."""
        return self.model_copy(update={"device_id": device_id})

"""
Image packaging component for the Face ID capture client.

Compresses captured stills and assembles the multipart payload sent to the
verification backend.

Compression:
1. Fit the image in a square bounding box (long edge capped, default 1024px),
   scaling the short edge proportionally. Smaller images are left as is.
2. Re-encode as JPEG at a fixed quality (default 0.95).

Packaging modes:
- single_frame: only the last (preview) frame is sent, as part ``image``
- multi_frame: every frame is sent, as repeated ``images`` parts, processed
  ``chunk_size`` frames at a time to bound peak memory
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import cv2
import numpy as np

from core.outcome import Route
from frontend.components.burst_capture import FrameSet
from frontend.components.enrollment_form import IdentityMetadata

logger = logging.getLogger(__name__)


class PackagingMode(Enum):
    SINGLE_FRAME = "single_frame"
    MULTI_FRAME = "multi_frame"


@dataclass(frozen=True)
class EncodedImage:
    """A compressed JPEG ready for upload."""
    data: bytes
    width: int
    height: int
    filename: str = "image.jpg"
    content_type: str = "image/jpeg"


@dataclass(frozen=True)
class Payload:
    """
    Multipart body of one submission.

    Attributes:
        route: Route the payload is meant for.
        image_field: Multipart name of the image parts ("image" or "images").
        images: Compressed images in capture order.
        fields: Scalar form fields (enrollment identity metadata).
    """
    route: Route
    image_field: str
    images: Tuple[EncodedImage, ...]
    fields: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def to_multipart(self) -> Tuple[Dict[str, str], List[Tuple[str, Tuple[str, bytes, str]]]]:
        """
        Build httpx ``data`` and ``files`` arguments.

        Returns:
            Tuple of (data, files).
        """
        files = [
            (self.image_field, (image.filename, image.data, image.content_type))
            for image in self.images
        ]
        return dict(self.fields), files


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ImagePackager:
    """
    Compresses frames and builds submission payloads.

    Args:
        config: Configuration dictionary containing:
            - max_dimension: Long-edge cap in pixels (default: 1024)
            - quality: JPEG quality between 0 and 1 (default: 0.95)
            - chunk_size: Frames per chunk in multi-frame mode (default: 3)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.max_dimension = config.get("max_dimension", 1024)
        self.quality = config.get("quality", 0.95)
        self.chunk_size = config.get("chunk_size", 3)

        if self.max_dimension < 1:
            raise ValueError(f"max_dimension must be positive, got {self.max_dimension}")
        if not 0.0 < self.quality <= 1.0:
            raise ValueError(f"quality must be within (0, 1], got {self.quality}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    def fit_dimensions(self, width: int, height: int) -> Tuple[int, int]:
        """
        Compute the output size for an image.

        The longer side is capped at ``max_dimension``; the shorter side is
        scaled by the same factor and rounded.
        """
        if width > height:
            if width > self.max_dimension:
                height = max(1, round_half_up(height * self.max_dimension / width))
                width = self.max_dimension
        else:
            if height > self.max_dimension:
                width = max(1, round_half_up(width * self.max_dimension / height))
                height = self.max_dimension
        return width, height

    def compress(self, frame: Union[bytes, np.ndarray], filename: str = "image.jpg") -> EncodedImage:
        """
        Resize and re-encode one image.

        Args:
            frame: Encoded image bytes or a BGR numpy array.
            filename: Name given to the multipart file.

        Returns:
            EncodedImage within the bounding box.

        Raises:
            ValueError: If the image can't be decoded or encoded.
        """
        if isinstance(frame, (bytes, bytearray)):
            image = cv2.imdecode(np.frombuffer(frame, np.uint8), cv2.IMREAD_COLOR)
            if image is None:
                raise ValueError("Failed to decode frame")
        else:
            image = frame

        height, width = image.shape[:2]
        new_width, new_height = self.fit_dimensions(width, height)
        if (new_width, new_height) != (width, height):
            image = cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_AREA)

        encode_param = [int(cv2.IMWRITE_JPEG_QUALITY), int(round(self.quality * 100))]
        success, buffer = cv2.imencode(".jpg", image, encode_param)
        if not success:
            raise ValueError("Failed to encode frame")

        return EncodedImage(
            data=buffer.tobytes(),
            width=new_width,
            height=new_height,
            filename=filename,
        )

    async def package(
        self,
        frames: FrameSet,
        route: Route,
        mode: PackagingMode = PackagingMode.SINGLE_FRAME,
        metadata: Optional[IdentityMetadata] = None,
    ) -> Payload:
        """
        Build the payload for one submission.

        Args:
            frames: Captured burst (must not be empty).
            route: Target route. Enrollment requires metadata,
                   authentication must not carry any.
            mode: Which frames to include.
            metadata: Identity fields for enrollment.

        Returns:
            Immutable Payload.
        """
        if frames.is_empty:
            raise ValueError("Cannot package an empty frame set")
        if route == Route.ENROLL and metadata is None:
            raise ValueError("Enrollment payloads require identity metadata")
        if route == Route.AUTHENTICATE and metadata is not None:
            raise ValueError("Authentication payloads carry no identity metadata")

        if mode == PackagingMode.SINGLE_FRAME:
            images = (self.compress(frames.preview.data, filename="user_image.jpg"),)
            image_field = "image"
        else:
            images = await self._compress_chunked(frames)
            image_field = "images"

        fields = metadata.to_form_fields() if metadata is not None else {}

        logger.info(
            f"Packaged {len(images)} image(s) for {route.value} "
            f"({mode.value}, {sum(len(i.data) for i in images) / 1024:.1f} KB)"
        )
        return Payload(
            route=route,
            image_field=image_field,
            images=images,
            fields=MappingProxyType(dict(fields)),
        )

    async def _compress_chunked(self, frames: FrameSet) -> Tuple[EncodedImage, ...]:
        images: List[EncodedImage] = []
        for start in range(0, len(frames), self.chunk_size):
            chunk = frames.frames[start:start + self.chunk_size]
            for offset, frame in enumerate(chunk):
                images.append(self.compress(frame.data, filename=f"frame_{start + offset}.jpg"))
            # Let the loop run between chunks
            await asyncio.sleep(0)
        return tuple(images)


def get_image_packager(config: Optional[Dict[str, Any]] = None) -> ImagePackager:
    """
    Factory function to create an ImagePackager.

    Args:
        config: Optional configuration dict. If None, loads from config.yaml.
    """
    if config is None:
        try:
            from core.config import get_packaging_config
            config = get_packaging_config()
        except (FileNotFoundError, KeyError):
            config = {}

    return ImagePackager(config)

"""
Burst capture component for the Face ID capture client.

Takes a fixed number of stills from a live stream at a fixed interval,
optionally after a countdown. All waits are asyncio suspensions, so the
event loop keeps serving the rest of the client while a burst runs.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Tuple

from core.errors import CaptureInterrupted
from frontend.components.device_manager import LiveStream

logger = logging.getLogger(__name__)

CountdownCallback = Callable[[int], None]


@dataclass(frozen=True)
class CapturedFrame:
    """One JPEG still from a burst."""
    index: int
    captured_at: float  # monotonic seconds
    data: bytes


@dataclass(frozen=True)
class FrameSet:
    """
    Ordered stills of one burst, in capture order.

    The last frame is the preview shown to the user and the one sent in
    single-frame mode.
    """
    frames: Tuple[CapturedFrame, ...] = ()

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[CapturedFrame]:
        return iter(self.frames)

    def __getitem__(self, index: int) -> CapturedFrame:
        return self.frames[index]

    @property
    def preview(self) -> Optional[CapturedFrame]:
        return self.frames[-1] if self.frames else None

    @property
    def is_empty(self) -> bool:
        return not self.frames


@dataclass
class BurstOptions:
    """
    Parameters of one burst.

    Attributes:
        frame_count: Number of stills to take.
        inter_frame_delay_ms: Wait after each still.
        pre_roll_seconds: Countdown length before the first still, or None
                          to start immediately.
    """
    frame_count: int = 6
    inter_frame_delay_ms: int = 50
    pre_roll_seconds: Optional[int] = None

    def __post_init__(self):
        if self.frame_count < 1:
            raise ValueError(f"frame_count must be at least 1, got {self.frame_count}")
        if self.inter_frame_delay_ms < 0:
            raise ValueError(f"inter_frame_delay_ms must be >= 0, got {self.inter_frame_delay_ms}")
        if self.pre_roll_seconds is not None and self.pre_roll_seconds < 1:
            raise ValueError(f"pre_roll_seconds must be >= 1, got {self.pre_roll_seconds}")

    @classmethod
    def for_enrollment(cls, config: Optional[Dict[str, Any]] = None) -> "BurstOptions":
        """Enrollment bursts count down before capturing."""
        config = config or {}
        return cls(
            frame_count=config.get("frame_count", 6),
            inter_frame_delay_ms=config.get("inter_frame_delay_ms", 50),
            pre_roll_seconds=config.get("enrollment_pre_roll_seconds", 3),
        )

    @classmethod
    def for_authentication(cls, config: Optional[Dict[str, Any]] = None) -> "BurstOptions":
        """Authentication bursts start at once so liveness reflects one instant."""
        config = config or {}
        return cls(
            frame_count=config.get("frame_count", 6),
            inter_frame_delay_ms=config.get("inter_frame_delay_ms", 50),
            pre_roll_seconds=None,
        )


class BurstCapturer:
    """
    Drives a countdown and a fixed-interval burst against a LiveStream.

    Args:
        config: Capture configuration containing:
            - countdown_interval_sec: Seconds per countdown tick (default: 1.0)
            - sample_quality: JPEG quality of sampled stills (default: 0.92)
        sleep: Coroutine function used for waits (default: asyncio.sleep).
        clock: Monotonic clock used to timestamp stills.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ):
        config = config or {}
        self.countdown_interval_sec = config.get("countdown_interval_sec", 1.0)
        self.sample_quality = config.get("sample_quality", 0.92)
        self._sleep = sleep
        self._clock = clock

    async def capture(
        self,
        stream: LiveStream,
        options: BurstOptions,
        on_countdown: Optional[CountdownCallback] = None,
    ) -> FrameSet:
        """
        Capture one burst.

        Args:
            stream: Open stream to sample from.
            options: Burst parameters.
            on_countdown: Called with P, P-1, ..., 1 during the countdown.

        Returns:
            FrameSet with exactly ``options.frame_count`` stills.

        Raises:
            CaptureInterrupted: If the stream becomes invalid at any point.
                                No frames are returned in that case.
        """
        if options.pre_roll_seconds:
            for remaining in range(options.pre_roll_seconds, 0, -1):
                if on_countdown is not None:
                    on_countdown(remaining)
                await self._sleep(self.countdown_interval_sec)

        frames: List[CapturedFrame] = []
        delay_sec = options.inter_frame_delay_ms / 1000.0

        try:
            for i in range(options.frame_count):
                data = stream.read_jpeg(self.sample_quality)
                frames.append(CapturedFrame(index=i, captured_at=self._clock(), data=data))
                await self._sleep(delay_sec)
        except CaptureInterrupted:
            logger.warning(f"Burst interrupted after {len(frames)}/{options.frame_count} frames")
            raise

        logger.info(f"Captured {len(frames)} frames from {stream.device.label}")
        return FrameSet(frames=tuple(frames))

"""
Frame hosts - the per-frame callback mechanism the scheduler submits to.

The scheduler never loops by itself. After each tick it asks the host for
one more frame, and stopping withdraws the pending request:

    handle = host.request_frame(scheduler.tick)
    host.cancel_frame(handle)

ManualFrameHost queues requests and runs them when pumped, which is what
tests, headless runs and the pygame launcher (once per clock tick) use.
"""

from collections import OrderedDict
from typing import Callable, Protocol, runtime_checkable

FrameCallback = Callable[[], None]


@runtime_checkable
class FrameHost(Protocol):
    """Protocol for anything that can run a callback on the next frame."""

    def request_frame(self, callback: FrameCallback) -> int:
        """Schedule `callback` for the next frame, returning a handle."""
        ...

    def cancel_frame(self, handle: int) -> None:
        """Withdraw a pending request. Unknown handles are ignored."""
        ...


class ManualFrameHost:
    """
    Frame host driven explicitly by the caller.

    Usage:
        host = ManualFrameHost()
        session = StageSession(host=host)
        session.start()
        host.step()          # Run one frame
        host.run(100)        # Run until idle or 100 frames
    """

    def __init__(self):
        self._pending: 'OrderedDict[int, FrameCallback]' = OrderedDict()
        self._next_handle = 1
        self.frames_run = 0

    def request_frame(self, callback: FrameCallback) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        """Number of callbacks waiting for the next frame."""
        return len(self._pending)

    def step(self) -> bool:
        """
        Run one frame: every callback requested before this call.

        Callbacks requested while the frame runs wait for the next one.

        Returns:
            True if any callback ran
        """
        if not self._pending:
            return False

        batch = list(self._pending.items())
        self._pending.clear()
        for _, callback in batch:
            callback()
        self.frames_run += 1
        return True

    def run(self, max_frames: int = 1000) -> int:
        """
        Pump frames until nothing is pending or `max_frames` ran.

        Returns:
            Number of frames run
        """
        frames = 0
        while frames < max_frames and self.step():
            frames += 1
        return frames

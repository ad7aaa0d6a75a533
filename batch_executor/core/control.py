"""
Cooperative pause/resume/cancel signals for one batch run

A ControlPlane is created per run and handed to the control loop. It is
checked only at suspension points: before each batch, before each item, and
while paused. An operation call already in flight always runs to completion.
"""
import asyncio
import logging

logger = logging.getLogger(__name__)


class ControlPlane:
    """
    Pause and cancel flags for a single run

    The resume event is set whenever the run is not paused, so waiting on it
    blocks only while paused. cancel() also sets it, which wakes a paused
    loop so it can observe the cancellation and unwind.
    """

    def __init__(self) -> None:
        self._cancel_requested = False
        self._resume_event = asyncio.Event()
        self._resume_event.set()  # Start unpaused

    @property
    def is_paused(self) -> bool:
        return not self._resume_event.is_set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def pause(self) -> None:
        if not self._cancel_requested:
            self._resume_event.clear()

    def resume(self) -> None:
        self._resume_event.set()

    def cancel(self) -> None:
        self._cancel_requested = True
        self._resume_event.set()

    async def wait_if_paused(self) -> None:
        """Block while paused and not cancelled; returns immediately otherwise"""
        if self.is_paused and not self._cancel_requested:
            logger.debug("Run paused, waiting for resume or cancel")
            await self._resume_event.wait()

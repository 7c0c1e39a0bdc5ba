import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], Awaitable[None]]
ExpireCallback = Callable[[], Awaitable[None]]
AliveCheck = Callable[[], bool]


class PhaseCountdown:
    """One-second countdown driving a single phase of one room.

    ``is_alive`` is evaluated before every tick; once it returns False the
    countdown stops without calling either callback.
    """

    def __init__(self, tick_seconds: float = 1.0) -> None:
        self.tick_seconds = max(0.0, tick_seconds)

    def start(
        self,
        seconds: int,
        *,
        is_alive: AliveCheck,
        on_tick: TickCallback,
        on_expire: ExpireCallback,
        name: str | None = None,
    ) -> asyncio.Task:
        return asyncio.get_running_loop().create_task(
            self._run(max(0, int(seconds)), is_alive, on_tick, on_expire),
            name=name,
        )

    async def _run(
        self,
        seconds: int,
        is_alive: AliveCheck,
        on_tick: TickCallback,
        on_expire: ExpireCallback,
    ) -> None:
        remaining = seconds
        try:
            while remaining > 0:
                await asyncio.sleep(self.tick_seconds)
                if not is_alive():
                    return
                remaining -= 1
                await on_tick(remaining)
            if not is_alive():
                return
            await on_expire()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Phase countdown failed")

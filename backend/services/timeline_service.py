"""
timeline_service.py — Challenge timeline
Snapshot of where "now" sits between the challenge start (00:00 local on the
start date) and end (23:59:59.999 local on the end date). "now" is always
passed in; the live ticker re-samples it from an injected clock.
"""

import asyncio
import inspect
import math
from datetime import datetime

from schemas import ChallengeSettings, Countdown, TimelineSnapshot
from services.calendar_utils import (
    DAY_SECONDS, challenge_tz, end_of_day, parse_local_date, start_of_day,
)


class TimelineService:
    @staticmethod
    def window(settings: ChallengeSettings, tz=None) -> tuple[datetime, datetime]:
        tz = tz or challenge_tz()
        start = start_of_day(parse_local_date(settings.start_date), tz)
        end = end_of_day(parse_local_date(settings.end_date), tz)
        return start, end

    @staticmethod
    def countdown(seconds: float) -> Countdown:
        """days/hours/minutes/seconds breakdown of a positive interval."""
        total = max(0, int(seconds))
        days, rem = divmod(total, DAY_SECONDS)
        hours, rem = divmod(rem, 3600)
        minutes, secs = divmod(rem, 60)
        return Countdown(days=days, hours=hours, minutes=minutes, seconds=secs)

    @staticmethod
    def snapshot(settings: ChallengeSettings, now: datetime, tz=None) -> TimelineSnapshot:
        start, end = TimelineService.window(settings, tz)
        # Timestamps, not aware-datetime subtraction, so DST shifts count as real time
        t_now = now.timestamp()
        t_start = start.timestamp()
        t_end = end.timestamp()

        is_future = t_now < t_start
        is_finished = t_now > t_end

        duration = t_end - t_start
        if is_future or duration <= 0:
            percent = 0.0
        else:
            percent = min(1.0, max(0.0, (t_now - t_start) / duration)) * 100

        day_number = max(0, math.floor((t_now - t_start) / DAY_SECONDS) + 1)
        days_left = max(0, math.ceil((t_end - t_now) / DAY_SECONDS))

        return TimelineSnapshot(
            is_future=is_future,
            is_finished=is_finished,
            percent_complete=percent,
            current_day_number=day_number,
            days_left=days_left,
            countdown=TimelineService.countdown(t_start - t_now) if is_future else Countdown(),
        )

    @staticmethod
    async def ticker(settings_provider, clock, interval: float = 1.0):
        """
        Yield a fresh snapshot every `interval` seconds.
        settings_provider() -> ChallengeSettings (or an awaitable of one),
        clock() -> datetime.
        Stops when the consumer closes the generator (view teardown).
        """
        while True:
            settings = settings_provider()
            if inspect.isawaitable(settings):
                settings = await settings
            yield TimelineService.snapshot(settings, clock())
            await asyncio.sleep(interval)

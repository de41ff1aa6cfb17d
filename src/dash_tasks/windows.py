"""Due-window boundaries shared by every deadline check.

Windows are computed with exact instant arithmetic: ``[now, now + days]``
where ``days`` is a whole number of 24 hour periods. Both ends are inclusive.
No consumer normalizes the upper bound to the end of a calendar day.
"""

from __future__ import annotations

import datetime as dt

DUE_SOON_DAYS = 3

Window = tuple[dt.datetime, dt.datetime]


def due_window(now: dt.datetime, days: int) -> Window:
    return now, now + dt.timedelta(days=days)


def window_end(now: dt.datetime, days: int) -> dt.datetime:
    return due_window(now, days)[1]


def in_window(instant: dt.datetime, window: Window) -> bool:
    start, end = window
    return start <= instant <= end

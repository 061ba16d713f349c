from __future__ import annotations

import os
import time
from datetime import datetime
from typing import Optional, TextIO

from . import config
from .stats import Snapshot


class OutageLogger:
    """Appends offline periods and new best online streaks to a text file."""

    def __init__(
        self, path: str, min_missed: int = config.CONSECUTIVE_OFFLINE_FOR_OUTAGE
    ):
        self.path = path
        self.min_missed = min_missed
        self.outage_open = False
        self.outage_start_ts: Optional[float] = None  # first offline event since the last online one
        self.outage_missed = 0
        self.current_streak = 0
        self.longest_streak = 0

    def _open(self) -> TextIO:
        self._maybe_rotate_log()
        return open(self.path, "a", encoding="utf-8")

    def log_outage(self, start_ts: float, end_ts: float, missed: int):
        start_str = datetime.fromtimestamp(start_ts).strftime(
            config.LOG_TIME_FORMAT
        )
        end_str = datetime.fromtimestamp(end_ts).strftime(config.LOG_TIME_FORMAT)
        duration = end_ts - start_ts
        line = f"{start_str} -> {end_str} | OUTAGE missed={missed} duration={duration:.1f}s\n"
        with self._open() as f:
            f.write(line)

    def log_longest_streak(self, count: int, ts: float):
        ts_str = datetime.fromtimestamp(ts).strftime(config.LOG_TIME_FORMAT)
        line = f"{ts_str} | LONGEST_STREAK count={count}\n"
        with self._open() as f:
            f.write(line)

    def observe(self, snapshot: Snapshot, now: Optional[float] = None):
        """Track online/offline transitions from consecutive snapshots."""
        now = time.time() if now is None else now
        if snapshot.is_online:
            self.current_streak = snapshot.current_online_streak
            if self.outage_open:
                self.log_outage(self.outage_start_ts, now, self.outage_missed)
            self._reset_outage()
            return

        if self.outage_start_ts is None:
            # An online streak just ended
            if self.current_streak > self.longest_streak:
                self.longest_streak = self.current_streak
                self.log_longest_streak(self.current_streak, now)
            self.current_streak = 0
            self.outage_start_ts = now
        self.outage_missed += 1
        if self.outage_missed >= self.min_missed:
            self.outage_open = True

    def _reset_outage(self):
        self.outage_open = False
        self.outage_start_ts = None
        self.outage_missed = 0

    def _maybe_rotate_log(self):
        # Rotate once the file has not been touched for LOG_MAX_AGE_DAYS
        try:
            last_mod_time = os.path.getmtime(self.path)
            if time.time() - last_mod_time > config.LOG_MAX_AGE_DAYS * 24 * 60 * 60:
                new_name = self.path + "." + datetime.fromtimestamp(last_mod_time).strftime("%Y%m%d%H%M%S")
                os.rename(self.path, new_name)
        except FileNotFoundError:
            pass  # file doesn't exist yet, that's ok

    def finalize(self, now: Optional[float] = None):
        now = time.time() if now is None else now
        if self.outage_open:
            # log truncated outage on shutdown
            self.log_outage(self.outage_start_ts, now, self.outage_missed)
        self._reset_outage()

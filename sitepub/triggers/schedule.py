"""Recurring schedule trigger."""

from datetime import datetime
from typing import Iterator, List, Optional, Tuple

import pendulum

from ..config import CadenceConfig, TriggerConfig
from ..models import RunRequest


class Cadence:
    """A weekly recurring firing time in UTC."""

    def __init__(self, name: str, is_draft: bool, weekdays: List[int], hour: int, minute: int = 0) -> None:
        self.name = name
        self.is_draft = is_draft
        self.weekdays = sorted(set(weekdays))
        self.hour = hour
        self.minute = minute

    @classmethod
    def from_config(cls, name: str, is_draft: bool, config: CadenceConfig) -> "Cadence":
        return cls(name, is_draft, config.weekdays, config.hour, config.minute)

    def next_fire(self, after: datetime) -> datetime:
        """First firing strictly after the given moment."""
        after = pendulum.instance(after).in_timezone("UTC")
        day = after.start_of("day")
        for offset in range(8):
            candidate = day.add(days=offset).set(hour=self.hour, minute=self.minute)
            if candidate > after and candidate.weekday() in self.weekdays:
                return candidate
        raise ValueError(f"Cadence {self.name} has no firing within a week")

    def firings_between(self, start: datetime, end: datetime) -> Iterator[datetime]:
        """Firings in the half-open interval (start, end]."""
        moment = self.next_fire(start)
        while moment <= end:
            yield moment
            moment = self.next_fire(moment)

    def request_for(self, fired_at: datetime) -> RunRequest:
        """Build the request of one firing from its trigger payload."""
        payload = {
            "time": pendulum.instance(fired_at).to_iso8601_string(),
            "isDraft": self.is_draft,
        }
        return RunRequest.from_payload(payload, source=f"schedule:{self.name}")

    def __repr__(self) -> str:
        return f"Cadence({self.name!r}, weekdays={self.weekdays}, {self.hour:02d}:{self.minute:02d} UTC)"


class ScheduleTrigger:
    """The published and draft cadences."""

    def __init__(self, cadences: List[Cadence]) -> None:
        self.cadences = cadences

    @classmethod
    def from_config(cls, config: TriggerConfig) -> "ScheduleTrigger":
        cadences = []
        if config.published.enabled:
            cadences.append(Cadence.from_config("published", False, config.published))
        if config.draft.enabled:
            cadences.append(Cadence.from_config("draft", True, config.draft))
        return cls(cadences)

    def next_fire(self, after: datetime) -> Optional[datetime]:
        """Earliest firing of any cadence after the given moment."""
        if not self.cadences:
            return None
        return min(c.next_fire(after) for c in self.cadences)

    def due(self, start: datetime, end: datetime) -> List[RunRequest]:
        """Requests for all firings in (start, end], in firing order."""
        firings: List[Tuple[datetime, Cadence]] = [
            (moment, cadence)
            for cadence in self.cadences
            for moment in cadence.firings_between(start, end)
        ]
        firings.sort(key=lambda f: f[0])
        return [cadence.request_for(moment) for moment, cadence in firings]


def seconds_until(moment: datetime, now: datetime) -> float:
    """Non-negative delay until a moment."""
    return max((moment - now).total_seconds(), 0.0)

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    STAGE = "stage"
    PROGRESS = "progress"
    RESEARCH_COMPLETE = "research_complete"
    SECTION_COMPLETE = "section_complete"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (EventType.COMPLETE, EventType.ERROR)


@dataclass
class StreamEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.event.value, "data": self.data}

    def to_ndjson(self) -> str:
        """One self-delimiting record per line."""
        return json.dumps(self.to_dict()) + "\n"

    def to_sse(self) -> dict[str, str]:
        """Shape expected by sse_starlette's EventSourceResponse."""
        return {"event": self.event.value, "data": json.dumps(self.data)}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "StreamEvent":
        data = raw.get("data")
        return cls(event=EventType(raw["event"]), data=data if isinstance(data, dict) else {})

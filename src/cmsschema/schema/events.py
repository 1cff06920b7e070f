"""Lifecycle events raised around schema creation."""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

__all__ = [
    "EventMessage",
    "SchemaCreatingEvent",
    "SchemaCreatedEvent",
    "BeforeCreateHook",
    "AfterCreateHook",
]


@dataclass
class EventMessage:
    category: str
    message: str
    level: str = "info"


@dataclass
class SchemaCreatingEvent:
    """Passed to before-create hooks. Setting cancel skips table creation."""

    messages: list[EventMessage] = field(default_factory=list)
    state: dict[str, Any] = field(default_factory=dict)
    cancel: bool = False

    def add_message(self, category: str, message: str, level: str = "info") -> None:
        self.messages.append(EventMessage(category, message, level))


@dataclass
class SchemaCreatedEvent:
    """Passed to after-create hooks; shares messages and state with the creating event."""

    messages: list[EventMessage] = field(default_factory=list)
    state: dict[str, Any] = field(default_factory=dict)
    cancelled: bool = False

    @classmethod
    def from_creating(cls, creating: SchemaCreatingEvent) -> "SchemaCreatedEvent":
        return cls(
            messages=creating.messages,
            state=creating.state,
            cancelled=creating.cancel,
        )


# A before-create hook returning False cancels creation; None or True proceeds.
BeforeCreateHook = Callable[[SchemaCreatingEvent], Optional[bool]]
AfterCreateHook = Callable[[SchemaCreatedEvent], None]

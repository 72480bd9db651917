"""Room events understood by the bot.

Protocol events are converted once, at the Matrix client boundary, into these
types. Anything the bot does not act on becomes an `IgnoredEvent`.
"""

from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class NameEvent:
    name: Optional[str]


@dataclass(frozen=True)
class TopicEvent:
    topic: Optional[str]


@dataclass(frozen=True)
class CanonicalAliasEvent:
    alias: Optional[str]


@dataclass(frozen=True)
class MemberEvent:
    """Membership change of `user_id`, sent by `sender`."""

    user_id: str
    membership: str
    sender: str = ""


@dataclass(frozen=True)
class MessageEvent:
    """A room message. `body` is None for non-text message types."""

    sender: str
    body: Optional[str]
    msgtype: str = "m.text"
    event_id: str = ""
    source: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class IgnoredEvent:
    event_type: str


StateEvent = Union[NameEvent, TopicEvent, CanonicalAliasEvent, MemberEvent]
RoomEvent = Union[StateEvent, MessageEvent, IgnoredEvent]

STATE_EVENT_TYPES = (NameEvent, TopicEvent, CanonicalAliasEvent, MemberEvent)


def is_state_event(event) -> bool:
    return isinstance(event, STATE_EVENT_TYPES)

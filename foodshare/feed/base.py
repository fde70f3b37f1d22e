"""Change-notification feed interface."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Optional


INSERT = 'INSERT'
UPDATE = 'UPDATE'
DELETE = 'DELETE'


@dataclass(frozen=True)
class ChangeEvent:
    """A row-level change on the donations table."""
    op: str
    donation_id: int
    status: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, payload):
        if isinstance(payload, bytes):
            payload = payload.decode('utf-8')
        data = json.loads(payload)
        return cls(op=data['op'], donation_id=int(data['donation_id']), status=data.get('status'))


class Subscription(ABC):
    """Handle for one listener; close it when the client goes away."""

    @abstractmethod
    def get(self, timeout: float) -> Optional[ChangeEvent]:
        """Next event, or None if nothing arrived within timeout seconds."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class ChangeFeed(ABC):

    @abstractmethod
    def publish(self, event: ChangeEvent) -> None:
        raise NotImplementedError

    @abstractmethod
    def subscribe(self) -> Subscription:
        raise NotImplementedError

"""Domain errors raised by the visa engine.

They subclass werkzeug HTTP exceptions so the application's JSON error
handler renders them with the right status code.
"""

from __future__ import annotations

from werkzeug.exceptions import BadRequest, NotFound


class EntityNotFound(NotFound):
    """A referenced trip, destination, application, rule or user is absent."""

    def __init__(self, entity: str, identifier: object):
        super().__init__(f"{entity} {identifier} not found.")
        self.entity = entity
        self.identifier = identifier


class InvalidState(BadRequest):
    """An operation is not allowed in the entity's current state."""

    def __init__(self, description: str, current: str | None = None, requested: str | None = None):
        super().__init__(description)
        self.current = current
        self.requested = requested


class UnknownReference(BadRequest):
    """A country or rule code that cannot be resolved."""

    def __init__(self, kind: str, code: object):
        super().__init__(f"Unknown {kind}: {code}")
        self.kind = kind
        self.reference = code

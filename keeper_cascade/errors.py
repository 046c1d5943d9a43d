"""Exceptions raised by the keeper engine.

Only lookups of missing entities and rejected writes raise. Expected business
outcomes (ineligible players, allocation failures) are returned as results.
"""


class KeeperEngineError(Exception):
    """Base class for keeper engine errors."""


class NotFoundError(KeeperEngineError, LookupError):
    """A referenced entity does not exist."""

    resource = "Entity"

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"{self.resource} with ID '{entity_id}' not found")


class LeagueNotFoundError(NotFoundError):
    resource = "League"


class RosterNotFoundError(NotFoundError):
    resource = "Roster"


class PlayerNotFoundError(NotFoundError):
    resource = "Player"


class KeeperNotFoundError(NotFoundError):
    resource = "Keeper"


class StoreWriteError(KeeperEngineError):
    """A batch write was rejected; nothing was written."""

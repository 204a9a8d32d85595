"""Port for deciding whether a requester acts as a record's owner."""

from abc import ABC, abstractmethod


class AuthorizationCheck(ABC):

    @abstractmethod
    def is_authorized(self, requester: str | None, owner: str | None) -> bool:
        ...

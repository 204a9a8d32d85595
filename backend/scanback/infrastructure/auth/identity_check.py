"""Owner check by plain identity-string equality."""

from scanback.application.interfaces import AuthorizationCheck


class IdentityEqualityCheck(AuthorizationCheck):
    """The requester owns the record when both identities are present and equal."""

    def is_authorized(self, requester: str | None, owner: str | None) -> bool:
        if not requester or not owner:
            return False
        return requester == owner

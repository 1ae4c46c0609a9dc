"""Domain exceptions for the membership subsystem.

All of them derive from ValueError so callers that only distinguish
business-rule failures from unexpected ones can keep catching ValueError.
"""


class MembershipError(ValueError):
    """Base class for membership and join-request failures."""


class NotFoundError(MembershipError):
    """A referenced entity does not exist."""


class CommunityNotFoundError(NotFoundError):
    def __init__(self, message: str = "Community not found"):
        super().__init__(message)


class JoinRequestNotFoundError(NotFoundError):
    def __init__(self, message: str = "Join request not found"):
        super().__init__(message)


class NoPendingJoinRequestError(NotFoundError):
    def __init__(self, message: str = "No pending join request found"):
        super().__init__(message)


class JoinRequestAlreadyPendingError(MembershipError):
    def __init__(self, message: str = "Join request already pending"):
        super().__init__(message)


class JoinRequestCooldownError(MembershipError):
    def __init__(self, cooldown_hours: int = 24):
        self.cooldown_hours = cooldown_hours
        super().__init__(
            f"You must wait {cooldown_hours} hours before requesting to join "
            "again after rejection"
        )


class JoinRequestAlreadyResolvedError(MembershipError):
    def __init__(self, message: str = "Join request has already been resolved"):
        super().__init__(message)


class PermissionDeniedError(MembershipError):
    """Acting user lacks the rights for the operation."""


class AdminLimitReachedError(MembershipError):
    def __init__(self, max_admins: int = 10):
        self.max_admins = max_admins
        super().__init__(f"Maximum {max_admins} admins allowed per community")

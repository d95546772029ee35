"""
Authorization checks against community, batch and role.

Identity itself comes from the authentication layer as a UserContext.
"""

from .exceptions import AuthorizationError
from .models import Contest, Role, UserContext


def is_community_admin(actor: UserContext, community_id: str) -> bool:
    return actor.role is Role.COMMUNITY_ADMIN and actor.community_id == community_id


def is_contest_manager(actor: UserContext, contest: Contest) -> bool:
    """Owning community admin, or the mentor assigned to the contest."""
    if is_community_admin(actor, contest.community_id):
        return True
    return (
        actor.role is Role.MENTOR
        and contest.mentor_id is not None
        and contest.mentor_id == actor.user_id
        and actor.community_id == contest.community_id
    )


def is_member(actor: UserContext, contest: Contest) -> bool:
    return actor.community_id == contest.community_id


def in_batch(actor: UserContext, contest: Contest) -> bool:
    return contest.batch is None or actor.batch == contest.batch


def can_view(actor: UserContext, contest: Contest) -> bool:
    """Members may view; students only contests of their batch."""
    if not is_member(actor, contest):
        return False
    if actor.role is Role.STUDENT:
        return in_batch(actor, contest)
    return True


def require_community_admin(actor: UserContext, community_id: str) -> None:
    if not is_community_admin(actor, community_id):
        raise AuthorizationError(
            f"user {actor.user_id} is not an admin of community {community_id}"
        )


def require_manager(actor: UserContext, contest: Contest) -> None:
    if not is_contest_manager(actor, contest):
        raise AuthorizationError(
            f"user {actor.user_id} is not authorized to manage contest {contest.contest_id}"
        )


def require_member(actor: UserContext, contest: Contest) -> None:
    if not is_member(actor, contest):
        raise AuthorizationError(
            f"user {actor.user_id} is not a member of the contest's community"
        )


def require_viewer(actor: UserContext, contest: Contest) -> None:
    require_member(actor, contest)
    if not can_view(actor, contest):
        raise AuthorizationError(
            f"user {actor.user_id} is not authorized to access this contest batch"
        )


def require_eligible(actor: UserContext, contest: Contest) -> None:
    """Joining needs the contest's community and, when set, its batch."""
    require_member(actor, contest)
    if not in_batch(actor, contest):
        raise AuthorizationError(
            f"user {actor.user_id} is not in batch {contest.batch} of contest {contest.contest_id}"
        )


def may_see_contact(requester: UserContext, contest: Contest, user_id: str) -> bool:
    """Contact fields are visible to the community admin and to the user themself."""
    return requester.user_id == user_id or is_community_admin(requester, contest.community_id)

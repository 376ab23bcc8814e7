"""
Authorization Guard

Pure predicates over the acting identity and freshly loaded rows, plus
`ensure_*` wrappers that raise ForbiddenError. Callers load the resource
first (404 before 403) and pass in whatever membership facts a rule needs.
"""
from core.exceptions import ForbiddenError
from models import Message, Rating, Run
from services.sessions import AuthUser

ADMIN_ROLE = "admin"


def is_admin(actor: AuthUser) -> bool:
    return actor.role == ADMIN_ROLE


def can_modify_run(actor: AuthUser, run: Run) -> bool:
    return actor.id == run.host_user_id


def can_access_run_chat(is_member: bool) -> bool:
    return bool(is_member)


def can_modify_message(actor: AuthUser, message: Message) -> bool:
    # Authorship only. Admins get no override on chat messages.
    return actor.id == message.from_user_id


def can_rate_run(actor: AuthUser, run: Run, is_member: bool, already_rated: bool) -> bool:
    return bool(is_member) and actor.id != run.host_user_id and not already_rated


def can_modify_rating(actor: AuthUser, rating: Rating) -> bool:
    return actor.id == rating.from_user_id or is_admin(actor)


def can_delete_user(actor: AuthUser, target_user_id: int) -> bool:
    return is_admin(actor) and target_user_id != actor.id


def ensure_admin(actor: AuthUser) -> None:
    if not is_admin(actor):
        raise ForbiddenError("Admin access required")


def ensure_can_modify_run(actor: AuthUser, run: Run) -> None:
    if not can_modify_run(actor, run):
        raise ForbiddenError("Only the host can modify this run")


def ensure_run_member(is_member: bool) -> None:
    if not can_access_run_chat(is_member):
        raise ForbiddenError("Only run members can access this run's chat")


def ensure_can_modify_message(actor: AuthUser, message: Message) -> None:
    if not can_modify_message(actor, message):
        raise ForbiddenError("You can only change your own messages")


def ensure_can_modify_rating(actor: AuthUser, rating: Rating) -> None:
    if not can_modify_rating(actor, rating):
        raise ForbiddenError("You do not have permission to change this rating")


def ensure_can_delete_user(actor: AuthUser, target_user_id: int) -> None:
    if not is_admin(actor):
        raise ForbiddenError("Admin access required")
    if target_user_id == actor.id:
        raise ForbiddenError("You cannot delete your own admin account")

# apps/core/permissions.py
from rest_framework.permissions import BasePermission

from apps.profiles.services import get_creator_by_account
from .api_exceptions import NoCreatorProfile


def principal_of(user) -> str:
    """Principal (account) id of an authenticated Django user."""
    return str(user.pk)


class HasCreatorProfile(BasePermission):
    """
    Resolve the acting creator of an authenticated request.
    On success the view finds `request.creator` (the creator document) and
    `request.principal` (its account id).
    """

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False

        principal = principal_of(user)
        creator = get_creator_by_account(principal)
        if creator is None:
            raise NoCreatorProfile()

        request.creator = creator
        request.principal = principal
        return True

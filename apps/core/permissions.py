from rest_framework.permissions import BasePermission

from apps.authentication.identity import ROLE_ADMIN, ROLE_MANAGER


class HasRole(BasePermission):
    """
    Allow access only to authenticated users holding one of `allowed_roles`
    Role comparison is case-insensitive and ignores surrounding whitespace
    """

    allowed_roles: tuple = ()
    message = "Your role is not authorized for this resource."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        role = str(getattr(user, "role", "") or "").strip().lower()
        return role in {r.lower() for r in self.allowed_roles}


class IsAdminOrManager(HasRole):
    allowed_roles = (ROLE_ADMIN, ROLE_MANAGER)
    message = "Only administrators and managers can perform this action."

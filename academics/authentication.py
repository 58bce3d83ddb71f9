from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission

from academics.identity import ADMIN_ROLES, PROFESSOR, SessionIdentity, identity_from_token
from grades.exceptions import AuthenticationError

BEARER_PREFIX = "Bearer "


class BearerTokenAuthentication(BaseAuthentication):
    """
    Authorization: Bearer <token>. Tout en-tête absent ou mal formé est refusé:
    les endpoints de l'API n'ont pas d'accès anonyme, hormis la connexion.
    """

    def authenticate(self, request):
        header = request.headers.get("Authorization", "")
        if not header.startswith(BEARER_PREFIX):
            raise AuthenticationError("Missing or invalid Authorization header")
        token = header[len(BEARER_PREFIX):].strip()
        if not token:
            raise AuthenticationError("Missing or invalid Authorization header")
        identity = identity_from_token(token)
        return identity, token

    def authenticate_header(self, request):
        return "Bearer"


class IsAdministrator(BasePermission):
    message = "Administrator role required"

    def has_permission(self, request, view):
        user = request.user
        return isinstance(user, SessionIdentity) and user.role in ADMIN_ROLES


class IsStaffMember(BasePermission):
    message = "Administrator or professor role required"

    def has_permission(self, request, view):
        user = request.user
        return isinstance(user, SessionIdentity) and (user.role in ADMIN_ROLES or user.role == PROFESSOR)

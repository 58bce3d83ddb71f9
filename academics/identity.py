"""
Résolution d'identité sur les quatre chemins de connexion:

- super_admin: utilisateur Django (`is_superuser`) via django.contrib.auth;
- administrator / professor / student: hash local comparé avec check_password
  dans la table du rôle; un étudiant peut aussi se connecter avec son code (student_id).

Les jetons bearer sont signés (django.core.signing) et portent {id, role}.
"""

import logging
from dataclasses import dataclass

from django.conf import settings
from django.contrib.auth import authenticate
from django.contrib.auth.hashers import check_password
from django.core import signing

from academics.models import Administrator, Professor, Student
from grades.exceptions import AuthenticationError, InvalidCredentials

logger = logging.getLogger(__name__)

SUPER_ADMIN = "super_admin"
ADMINISTRATOR = "administrator"
PROFESSOR = "professor"
STUDENT = "student"
ROLES = (SUPER_ADMIN, ADMINISTRATOR, PROFESSOR, STUDENT)
ADMIN_ROLES = (SUPER_ADMIN, ADMINISTRATOR)

TOKEN_SALT = "academics.session"


@dataclass(frozen=True)
class SessionIdentity:
    id: int
    role: str
    display_name: str

    # DRF's IsAuthenticated reads request.user.is_authenticated
    is_authenticated = True
    is_anonymous = False

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def as_dict(self):
        return {"id": self.id, "role": self.role, "display_name": self.display_name}


def _full_name(obj):
    return f"{obj.first_name} {obj.last_name}".strip()


def _super_admin(identifier, password):
    user = authenticate(username=identifier, password=password)
    if user is None or not user.is_active or not user.is_superuser:
        return None
    return SessionIdentity(id=user.pk, role=SUPER_ADMIN, display_name=user.get_full_name() or user.get_username())


def _local(model, role, lookup, password):
    record = model.objects.filter(**lookup).first()
    if record is None or not record.password_hash:
        return None
    if not check_password(password, record.password_hash):
        return None
    return SessionIdentity(id=record.pk, role=role, display_name=_full_name(record))


def resolve_identity(identifier: str, password: str) -> SessionIdentity:
    identifier = (identifier or "").strip()
    if not identifier or not password:
        raise InvalidCredentials()

    if "@" in identifier:
        candidates = (
            lambda: _super_admin(identifier, password),
            lambda: _local(Administrator, ADMINISTRATOR, {"email__iexact": identifier, "is_active": True}, password),
            lambda: _local(Professor, PROFESSOR, {"email__iexact": identifier}, password),
            lambda: _local(Student, STUDENT, {"email__iexact": identifier}, password),
        )
    else:
        candidates = (
            lambda: _super_admin(identifier, password),
            lambda: _local(Student, STUDENT, {"student_id__iexact": identifier}, password),
        )

    for resolve in candidates:
        identity = resolve()
        if identity is not None:
            logger.info("Login", extra={"role": identity.role, "identity_id": identity.id})
            return identity
    logger.info("Login refused", extra={"identifier": identifier})
    raise InvalidCredentials()


def issue_token(identity: SessionIdentity) -> str:
    return signing.dumps({"id": identity.id, "role": identity.role}, salt=TOKEN_SALT)


def load_identity(role: str, pk) -> SessionIdentity:
    """Recharge l'identité depuis la table du rôle; lève AuthenticationError si elle a disparu."""
    if role == SUPER_ADMIN:
        from django.contrib.auth import get_user_model

        user = get_user_model().objects.filter(pk=pk, is_active=True, is_superuser=True).first()
        if user:
            return SessionIdentity(id=user.pk, role=role, display_name=user.get_full_name() or user.get_username())
    elif role == ADMINISTRATOR:
        admin = Administrator.objects.filter(pk=pk, is_active=True).first()
        if admin:
            return SessionIdentity(id=admin.pk, role=role, display_name=_full_name(admin))
    elif role == PROFESSOR:
        professor = Professor.objects.filter(pk=pk).exclude(status="Inactive").first()
        if professor:
            return SessionIdentity(id=professor.pk, role=role, display_name=_full_name(professor))
    elif role == STUDENT:
        student = Student.objects.filter(pk=pk).first()
        if student:
            return SessionIdentity(id=student.pk, role=role, display_name=_full_name(student))
    raise AuthenticationError("Invalid or expired token")


def identity_from_token(token: str) -> SessionIdentity:
    ttl = getattr(settings, "SESSION_TOKEN_TTL_SECONDS", 3600)
    try:
        payload = signing.loads(token, salt=TOKEN_SALT, max_age=ttl)
    except signing.BadSignature:
        # SignatureExpired hérite de BadSignature
        raise AuthenticationError("Invalid or expired token")
    if not isinstance(payload, dict) or payload.get("role") not in ROLES:
        raise AuthenticationError("Invalid or expired token")
    return load_identity(payload["role"], payload.get("id"))

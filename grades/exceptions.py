from rest_framework import status
from rest_framework.exceptions import APIException


class GradePortalError(APIException):
    """
    Base des erreurs métier. `extra` est fusionné dans le corps JSON de la réponse
    (ex: modules en échec, étudiants en échec) pour permettre un nouvel essai ciblé.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Unexpected error"
    default_code = "error"

    def __init__(self, detail=None, code=None, **extra):
        super().__init__(detail=detail, code=code)
        self.extra = extra

    @property
    def message(self) -> str:
        return str(self.detail)


class AuthenticationError(GradePortalError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication failed"
    default_code = "authentication_failed"


class InvalidCredentials(AuthenticationError):
    default_detail = "Invalid credentials"
    default_code = "invalid_credentials"


class NotFoundError(GradePortalError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"
    default_code = "not_found"


class StudentNotFound(NotFoundError):
    default_detail = "Student not found"
    default_code = "student_not_found"


class ValidationError(GradePortalError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"
    default_code = "invalid"


class InvalidWeightConfiguration(ValidationError):
    default_detail = "CC and exam percentages must add up to 100"
    default_code = "invalid_weight_configuration"


class NoStudentsSelected(ValidationError):
    default_detail = "No students selected"
    default_code = "no_students_selected"


class IneligibleForPromotion(GradePortalError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Student is not eligible for promotion"
    default_code = "ineligible_for_promotion"


class PersistenceError(GradePortalError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Could not persist changes"
    default_code = "persistence_error"


class PartialFailure(GradePortalError):
    status_code = status.HTTP_207_MULTI_STATUS
    default_detail = "Some items could not be processed"
    default_code = "partial_failure"

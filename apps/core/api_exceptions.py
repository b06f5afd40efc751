# apps/core/api_exceptions.py
from rest_framework.exceptions import APIException


class NoCreatorProfile(APIException):
    status_code = 403
    default_detail = "Your account has no creator profile yet. Complete your profile to interact."
    default_code = "no_creator_profile"


class DeleteNotAllowed(APIException):
    status_code = 403
    default_detail = "Only the author or the owner of the post can delete this."
    default_code = "delete_not_allowed"

"""Database models."""

from doorstep.models.appointments import appointments
from doorstep.models.base import metadata
from doorstep.models.medical_credentials import medical_credentials
from doorstep.models.patient_medical_history import patient_medical_history
from doorstep.models.subscriptions import subscriptions
from doorstep.models.user_roles import user_roles

__all__ = [
    "appointments",
    "medical_credentials",
    "metadata",
    "patient_medical_history",
    "subscriptions",
    "user_roles",
]

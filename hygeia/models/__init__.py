# Domain Models
from .drug import (
    UNKNOWN_FAMILY, SafetyStatus, DrugIdentity, AllergyProfile, Baseline, SafetyVerdict
)
from .authenticity import (
    AuthenticityStatus, SideEffectSeverity, SideEffect, ActiveIngredient, AuthenticityReport
)
from .image import ImagePayload

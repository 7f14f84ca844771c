from clinica_dental.models.base import Base
from clinica_dental.models.user import Role, User
from clinica_dental.models.audit_log import AuditLog
from clinica_dental.models.patient import Patient, Sex
from clinica_dental.models.odontogram import Odontogram
from clinica_dental.models.treatment import Promotion, Treatment
from clinica_dental.models.quote import Quote, QuoteItem, QuoteStatus
from clinica_dental.models.doctor import Doctor
from clinica_dental.models.completed_treatment import (
    CompletedTreatment,
    CompletedTreatmentItem,
    CompletedTreatmentStatus,
    DiscountType,
    Payment,
    PaymentMethod,
    PaymentStatus,
)
from clinica_dental.models.consent_form import ConsentForm, ConsentStatus

__all__ = [
    "Base",
    "Role",
    "User",
    "AuditLog",
    "Patient",
    "Sex",
    "Odontogram",
    "Treatment",
    "Promotion",
    "Quote",
    "QuoteItem",
    "QuoteStatus",
    "Doctor",
    "CompletedTreatment",
    "CompletedTreatmentItem",
    "CompletedTreatmentStatus",
    "DiscountType",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "ConsentForm",
    "ConsentStatus",
]

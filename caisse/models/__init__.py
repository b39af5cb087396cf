from caisse.models.base import Base
from caisse.models.programmation import Programmation
from caisse.models.reference import Rubrique, Service, Signataire, SignatureType
from caisse.models.security import Alert, AuditLog, LoginAttempt
from caisse.models.transaction import Depense, Recette, TransactionKind
from caisse.models.user import User, UserRole, UserSession

__all__ = [
    "Base",
    "Alert",
    "AuditLog",
    "Depense",
    "LoginAttempt",
    "Programmation",
    "Recette",
    "Rubrique",
    "Service",
    "Signataire",
    "SignatureType",
    "TransactionKind",
    "User",
    "UserRole",
    "UserSession",
]

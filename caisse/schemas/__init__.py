from caisse.schemas.common import Amount, ApiResponse
from caisse.schemas.programmation import (
    ProgrammationCreate,
    ProgrammationResponse,
    ProgrammationUpdate,
)
from caisse.schemas.reference import (
    RubriqueCreate,
    RubriqueResponse,
    RubriqueUpdate,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
)
from caisse.schemas.report import (
    CashSheetReport,
    EtatResultat,
    LedgerRow,
    MonthlyStat,
    ProgrammationReport,
    ReportFilters,
    SummaryReport,
    SummaryRow,
)
from caisse.schemas.transaction import (
    DepenseCreate,
    DepenseResponse,
    DepenseUpdate,
    RecetteCreate,
    RecetteResponse,
    RecetteUpdate,
)
from caisse.schemas.user import LoginRequest, UserCreate, UserResponse, UserUpdate

__all__ = [
    "Amount",
    "ApiResponse",
    "CashSheetReport",
    "DepenseCreate",
    "DepenseResponse",
    "DepenseUpdate",
    "EtatResultat",
    "LedgerRow",
    "LoginRequest",
    "MonthlyStat",
    "ProgrammationCreate",
    "ProgrammationReport",
    "ProgrammationResponse",
    "ProgrammationUpdate",
    "RecetteCreate",
    "RecetteResponse",
    "RecetteUpdate",
    "ReportFilters",
    "RubriqueCreate",
    "RubriqueResponse",
    "RubriqueUpdate",
    "ServiceCreate",
    "ServiceResponse",
    "ServiceUpdate",
    "SummaryReport",
    "SummaryRow",
    "UserCreate",
    "UserResponse",
    "UserUpdate",
]

from datetime import date

from pydantic import BaseModel

from caisse.schemas.common import Amount


class ReportFilters(BaseModel):
    """Inclusive date range of a report."""

    start_date: date
    end_date: date


class LedgerRow(BaseModel):
    """One line of the cash sheet (feuille de caisse)."""

    id: int
    date: date
    sequence_number: int
    reference_code: str
    label: str
    imp: str
    rubrique_code: str | None = None
    income: Amount
    expense: Amount
    net: Amount
    running_cash: Amount
    running_balance: Amount


class SummaryRow(BaseModel):
    """One line of the per-rubric summary (sommaire)."""

    code: str
    label: str
    income: Amount
    expense: Amount
    net: Amount
    running_cash: Amount
    running_balance: Amount


class CashSheetReport(BaseModel):
    start_date: date
    end_date: date
    opening_balance: Amount
    total_income: Amount
    total_expense: Amount
    closing_balance: Amount
    rows: list[LedgerRow]


class SummaryReport(BaseModel):
    start_date: date
    end_date: date
    opening_balance: Amount
    closing_balance: Amount
    rows: list[SummaryRow]


class EtatResultat(BaseModel):
    total_income: Amount
    total_expense: Amount
    benefice_deficit: Amount
    encaisse: Amount
    opening_balance: Amount
    balance: Amount


class ProgrammationRow(BaseModel):
    sequence_number: int
    label: str
    rubrique_code: str | None = None
    amount: Amount


class ProgrammationReport(BaseModel):
    month: int
    year: int
    month_label: str
    rows: list[ProgrammationRow]
    total: Amount
    total_in_words: str


class MonthlyStat(BaseModel):
    month: int
    month_label: str
    total_income: Amount
    total_expense: Amount
    balance: Amount


class PreviousBalance(BaseModel):
    month: int
    year: int
    balance: Amount

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal, InvalidOperation

from caisse.schemas.report import (
    CashSheetReport,
    EtatResultat,
    LedgerRow,
    ProgrammationReport,
    ProgrammationRow,
    ReportFilters,
    SummaryReport,
    SummaryRow,
)
from caisse.utils.amount_words import montant_en_lettre
from caisse.utils.date_helpers import get_month_label, parse_iso_date

ZERO = Decimal("0")

OTHER_RUBRIC_CODE = "AUTRE"
OTHER_RUBRIC_LABEL = "Autres dépenses"
CARRY_FORWARD_CODE = "SP"
CARRY_FORWARD_LABEL = "Solde de clôture mois antérieur"
INCOME_TOTAL_CODE = "R"
INCOME_TOTAL_LABEL = "Total des Recettes"


def _to_amount(value, what: str = "amount") -> Decimal:
    """Coerce a stored amount to Decimal, refusing NaN/infinite values."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid {what}: {value!r}")
    try:
        dec = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid {what}: {value!r}") from e
    if not dec.is_finite():
        raise ValueError(f"{what.capitalize()} must be finite, got {value!r}")
    return dec


def _row_amount(row) -> Decimal:
    amount = _to_amount(row.amount)
    if amount < 0:
        raise ValueError(
            f"Transaction {row.sequence_number} has a negative amount ({amount})"
        )
    return amount


def _row_date(row) -> date:
    value = row.transaction_date
    if not isinstance(value, date):
        value = parse_iso_date(value)
    return value


def _date_range(filters: ReportFilters) -> tuple[date, date]:
    return parse_iso_date(filters.start_date), parse_iso_date(filters.end_date)


def _in_range(rows: Iterable, start: date, end: date) -> list:
    return [r for r in rows if start <= _row_date(r) <= end]


def reference_code(prefix: str, sequence_number: int) -> str:
    """E.g. ('REC', 7) -> 'REC-0007'."""
    return f"{prefix}-{sequence_number:04d}"


def generate_feuille_caisse(
    filters: ReportFilters,
    recettes: Iterable,
    depenses: Iterable,
    opening_balance: Decimal = ZERO,
) -> list[LedgerRow]:
    """Merge recettes and dépenses of the range into the running cash sheet.

    Rows are ordered by (date, reference code) and numbered from 1. The
    running balance starts at ``opening_balance``; cash and balance are the
    same figure.
    """
    start, end = _date_range(filters)
    opening = _to_amount(opening_balance, "opening balance")
    if start > end:
        return []

    operations = []
    for r in _in_range(recettes, start, end):
        operations.append({
            "id": r.id,
            "date": _row_date(r),
            "reference_code": reference_code("REC", r.sequence_number),
            "label": f"{r.motive} - {r.provenance}",
            "imp": "R",
            "rubrique_code": None,
            "income": _row_amount(r),
            "expense": ZERO,
        })
    for d in _in_range(depenses, start, end):
        rubrique = getattr(d, "rubrique", None)
        operations.append({
            "id": d.id,
            "date": _row_date(d),
            "reference_code": reference_code("DEP", d.sequence_number),
            "label": f"{d.motive} - {d.beneficiary}",
            "imp": "D",
            "rubrique_code": rubrique.code if rubrique is not None else None,
            "income": ZERO,
            "expense": _row_amount(d),
        })

    operations.sort(key=lambda op: (op["date"], op["reference_code"]))

    rows = []
    running_balance = opening
    for index, op in enumerate(operations, 1):
        net = op["income"] - op["expense"]
        running_balance += net
        rows.append(LedgerRow(
            sequence_number=index,
            net=net,
            running_cash=running_balance,
            running_balance=running_balance,
            **op,
        ))
    return rows


def generate_sommaire(
    filters: ReportFilters,
    recettes: Iterable,
    depenses: Iterable,
    opening_balance: Decimal = ZERO,
) -> list[SummaryRow]:
    """Total income plus one expense line per rubric, in first-seen order."""
    start, end = _date_range(filters)
    opening = _to_amount(opening_balance, "opening balance")
    if start > end:
        filtered_recettes, filtered_depenses = [], []
    else:
        filtered_recettes = _in_range(recettes, start, end)
        filtered_depenses = _in_range(depenses, start, end)

    total_income = sum((_row_amount(r) for r in filtered_recettes), ZERO)

    # dicts keep insertion order
    by_rubric: dict[str, dict] = {}
    for d in filtered_depenses:
        rubrique = getattr(d, "rubrique", None)
        code = rubrique.code if rubrique is not None else OTHER_RUBRIC_CODE
        label = rubrique.libelle if rubrique is not None else OTHER_RUBRIC_LABEL
        group = by_rubric.setdefault(code, {"label": label, "total": ZERO})
        group["total"] += _row_amount(d)

    rows = []
    if opening > 0:
        rows.append(SummaryRow(
            code=CARRY_FORWARD_CODE,
            label=CARRY_FORWARD_LABEL,
            income=opening,
            expense=ZERO,
            # Not a movement of the period
            net=ZERO,
            running_cash=opening,
            running_balance=opening,
        ))

    running_balance = opening + total_income
    rows.append(SummaryRow(
        code=INCOME_TOTAL_CODE,
        label=INCOME_TOTAL_LABEL,
        income=total_income,
        expense=ZERO,
        net=total_income,
        running_cash=running_balance,
        running_balance=running_balance,
    ))

    for code, group in by_rubric.items():
        running_balance -= group["total"]
        rows.append(SummaryRow(
            code=code,
            label=group["label"],
            income=ZERO,
            expense=group["total"],
            net=-group["total"],
            running_cash=running_balance,
            running_balance=running_balance,
        ))
    return rows


def calculate_etat_resultat(
    filters: ReportFilters,
    recettes: Iterable,
    depenses: Iterable,
    opening_balance: Decimal = ZERO,
) -> EtatResultat:
    """Income statement of the range: totals, surplus/deficit and balance."""
    start, end = _date_range(filters)
    opening = _to_amount(opening_balance, "opening balance")
    if start > end:
        total_income = total_expense = ZERO
    else:
        total_income = sum((_row_amount(r) for r in _in_range(recettes, start, end)), ZERO)
        total_expense = sum((_row_amount(d) for d in _in_range(depenses, start, end)), ZERO)
    encaisse = total_income - total_expense
    return EtatResultat(
        total_income=total_income,
        total_expense=total_expense,
        benefice_deficit=encaisse,
        encaisse=encaisse,
        opening_balance=opening,
        balance=opening + encaisse,
    )


def build_cash_sheet(
    filters: ReportFilters,
    recettes: Iterable,
    depenses: Iterable,
    opening_balance: Decimal = ZERO,
) -> CashSheetReport:
    rows = generate_feuille_caisse(filters, recettes, depenses, opening_balance)
    opening = _to_amount(opening_balance, "opening balance")
    return CashSheetReport(
        start_date=filters.start_date,
        end_date=filters.end_date,
        opening_balance=opening,
        total_income=sum((r.income for r in rows), ZERO),
        total_expense=sum((r.expense for r in rows), ZERO),
        closing_balance=rows[-1].running_balance if rows else opening,
        rows=rows,
    )


def build_summary(
    filters: ReportFilters,
    recettes: Iterable,
    depenses: Iterable,
    opening_balance: Decimal = ZERO,
) -> SummaryReport:
    rows = generate_sommaire(filters, recettes, depenses, opening_balance)
    return SummaryReport(
        start_date=filters.start_date,
        end_date=filters.end_date,
        opening_balance=_to_amount(opening_balance, "opening balance"),
        closing_balance=rows[-1].running_balance,
        rows=rows,
    )


def generate_programmation(lines: Sequence) -> list[ProgrammationRow]:
    """Programmation lines in sequence order; unnumbered lines use their position."""
    ordered = sorted(lines, key=lambda p: p.sequence_number or 0)
    rows = []
    for index, line in enumerate(ordered, 1):
        rubrique = getattr(line, "rubrique", None)
        rows.append(ProgrammationRow(
            sequence_number=line.sequence_number or index,
            label=line.designation,
            rubrique_code=rubrique.code if rubrique is not None else None,
            amount=_to_amount(line.planned_amount, "planned amount"),
        ))
    return rows


def build_programmation_report(
    month: int, year: int, lines: Sequence
) -> ProgrammationReport:
    rows = generate_programmation(lines)
    total = sum((r.amount for r in rows), ZERO)
    return ProgrammationReport(
        month=month,
        year=year,
        month_label=get_month_label(month),
        rows=rows,
        total=total,
        total_in_words=montant_en_lettre(total),
    )

"""Column layouts of the exported reports.

A ``ReportDocument`` is the renderer-neutral view of a report: the PDF and
spreadsheet writers only know how to draw one of these.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Final, Literal

from caisse.config import settings
from caisse.models.reference import SignatureType
from caisse.schemas.report import (
    CashSheetReport,
    MonthlyStat,
    ProgrammationReport,
    SummaryReport,
)
from caisse.utils.currency import format_montant
from caisse.utils.date_helpers import get_month_name

ColumnType = Literal["text", "date", "currency", "number"]


@dataclass(frozen=True)
class ExportColumn:
    header: str
    key: str
    width: int = 15  # spreadsheet character units
    type: ColumnType = "text"


@dataclass(frozen=True)
class SignatureBlock:
    title: str
    name: str = ""
    grade: str | None = None


@dataclass
class ReportDocument:
    title: str
    columns: list[ExportColumn]
    rows: list[dict]
    subtitle: str | None = None
    filename: str = "rapport"
    totals: dict | None = None
    header_lines: list[str] = field(default_factory=lambda: list(settings.REPORT_HEADER_LINES))
    footer_lines: list[str] = field(default_factory=lambda: list(settings.REPORT_FOOTER_LINES))
    watermark: str | None = settings.REPORT_WATERMARK
    signatures: list[SignatureBlock] = field(default_factory=list)
    generated_at: datetime = field(default_factory=datetime.now)


def format_cell(value, column_type: ColumnType) -> str:
    """Display text of a cell, e.g. a currency value as '1 250 000,00 FC'."""
    if value is None:
        return ""
    if column_type == "currency":
        return format_montant(value, settings.CURRENCY_SYMBOL)
    if column_type == "date":
        if isinstance(value, (date, datetime)):
            return value.strftime("%d/%m/%Y")
        return str(value)
    if column_type == "number":
        return format_montant(value, "").replace(",00", "")
    return str(value)


def _period(start: date, end: date) -> str:
    if start == end:
        return f"Date: {start:%d/%m/%Y}"
    return f"Période: du {start:%d/%m/%Y} au {end:%d/%m/%Y}"


RECETTE_COLUMNS: Final[list[ExportColumn]] = [
    ExportColumn("N° Bon", "sequence_number", 10, "number"),
    ExportColumn("Date", "transaction_date", 12, "date"),
    ExportColumn("Heure", "transaction_time", 10),
    ExportColumn("Provenance", "provenance", 20),
    ExportColumn("Motif", "motive", 25),
    ExportColumn("Montant", "amount", 15, "currency"),
    ExportColumn("Observation", "observation", 20),
]

DEPENSE_COLUMNS: Final[list[ExportColumn]] = [
    ExportColumn("N° Bon", "sequence_number", 10, "number"),
    ExportColumn("Date", "transaction_date", 12, "date"),
    ExportColumn("Heure", "transaction_time", 10),
    ExportColumn("Bénéficiaire", "beneficiary", 20),
    ExportColumn("Motif", "motive", 25),
    ExportColumn("Rubrique", "rubrique_label", 20),
    ExportColumn("Montant", "amount", 15, "currency"),
    ExportColumn("Observation", "observation", 20),
]

CASH_SHEET_COLUMNS: Final[list[ExportColumn]] = [
    ExportColumn("N°", "sequence_number", 6, "number"),
    ExportColumn("Date", "date", 12, "date"),
    ExportColumn("N° Bon", "reference_code", 12),
    ExportColumn("Libellé", "label", 40),
    ExportColumn("IMP", "imp", 6),
    ExportColumn("Recettes", "income", 18, "currency"),
    ExportColumn("Dépenses", "expense", 18, "currency"),
    ExportColumn("Solde", "running_balance", 18, "currency"),
]

SUMMARY_COLUMNS: Final[list[ExportColumn]] = [
    ExportColumn("Code", "code", 10),
    ExportColumn("Libellé", "label", 40),
    ExportColumn("Recettes", "income", 18, "currency"),
    ExportColumn("Dépenses", "expense", 18, "currency"),
    ExportColumn("Solde", "running_balance", 18, "currency"),
]

PROGRAMMATION_COLUMNS: Final[list[ExportColumn]] = [
    ExportColumn("N° Ordre", "sequence_number", 10, "number"),
    ExportColumn("Désignation", "label", 40),
    ExportColumn("Rubrique", "rubrique_code", 12),
    ExportColumn("Montant Prévu", "amount", 18, "currency"),
]

MONTHLY_COLUMNS: Final[list[ExportColumn]] = [
    ExportColumn("Mois", "month_name", 15),
    ExportColumn("Recettes", "total_income", 18, "currency"),
    ExportColumn("Dépenses", "total_expense", 18, "currency"),
    ExportColumn("Solde", "balance", 18, "currency"),
]


def transactions_document(
    kind: str, items: list, start: date | None = None, end: date | None = None
) -> ReportDocument:
    """Listing of recettes or dépenses (``kind`` is 'recettes' or 'depenses')."""
    is_recette = kind == "recettes"
    rows = [item.model_dump() for item in items]
    return ReportDocument(
        title="Liste des Recettes" if is_recette else "Liste des Dépenses",
        subtitle=_period(start, end) if start and end else None,
        filename=f"{kind}_{date.today().isoformat()}",
        columns=RECETTE_COLUMNS if is_recette else DEPENSE_COLUMNS,
        rows=rows,
        totals={"amount": sum((r["amount"] for r in rows), Decimal("0"))},
    )


def cash_sheet_document(report: CashSheetReport) -> ReportDocument:
    return ReportDocument(
        title="Feuille de Caisse",
        subtitle=(
            f"{_period(report.start_date, report.end_date)} | "
            f"Solde Initial: {format_montant(report.opening_balance)} | "
            f"Solde Final: {format_montant(report.closing_balance)}"
        ),
        filename=f"feuille_caisse_{report.start_date.isoformat()}",
        columns=CASH_SHEET_COLUMNS,
        rows=[row.model_dump() for row in report.rows],
        totals={
            "income": report.total_income,
            "expense": report.total_expense,
            "running_balance": report.closing_balance,
        },
    )


def summary_document(report: SummaryReport) -> ReportDocument:
    rows = [row.model_dump() for row in report.rows]
    return ReportDocument(
        title="Sommaire",
        subtitle=_period(report.start_date, report.end_date),
        filename=f"sommaire_{report.start_date.isoformat()}",
        columns=SUMMARY_COLUMNS,
        rows=rows,
        totals={
            "income": sum((r["income"] for r in rows), Decimal("0")),
            "expense": sum((r["expense"] for r in rows), Decimal("0")),
            "running_balance": report.closing_balance,
        },
    )


SIGNATURE_TITLES: Final = {
    SignatureType.COMPT: "Le Comptable",
    SignatureType.DAF: "Le Sous-Directeur chargé de l'Administration et des Finances",
    SignatureType.DP: "Le Directeur Provincial",
}


def signature_blocks(signataires, types) -> list[SignatureBlock]:
    """One block per signature type; an unassigned type keeps an empty name."""
    blocks = []
    for sig_type in types:
        holder = next((s for s in signataires if s.type_signature == sig_type), None)
        blocks.append(SignatureBlock(
            title=SIGNATURE_TITLES[sig_type],
            name=holder.nom if holder else "",
            grade=holder.grade if holder else None,
        ))
    return blocks


def programmation_document(report: ProgrammationReport, signataires=()) -> ReportDocument:
    return ReportDocument(
        title="Programmation des Dépenses",
        subtitle=(
            f"Période: {report.month_label} {report.year} | "
            f"Arrêtée à la somme de {report.total_in_words}"
        ),
        filename=f"programmation_{report.year}_{report.month:02d}",
        columns=PROGRAMMATION_COLUMNS,
        rows=[row.model_dump() for row in report.rows],
        totals={"amount": report.total},
        signatures=signature_blocks(signataires, (SignatureType.DAF, SignatureType.DP)),
    )


def monthly_document(year: int, stats: list[MonthlyStat]) -> ReportDocument:
    rows = []
    for stat in stats:
        row = stat.model_dump()
        row["month_name"] = get_month_name(stat.month)
        rows.append(row)
    return ReportDocument(
        title=f"Rapport Mensuel {year}",
        subtitle=f"Statistiques mensuelles de l'année {year}",
        filename=f"rapport_mensuel_{year}",
        columns=MONTHLY_COLUMNS,
        rows=rows,
        totals={
            "total_income": sum((s.total_income for s in stats), Decimal("0")),
            "total_expense": sum((s.total_expense for s in stats), Decimal("0")),
            "balance": sum((s.balance for s in stats), Decimal("0")),
        },
    )

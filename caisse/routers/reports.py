from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.config import settings
from caisse.database import get_db
from caisse.export import MEDIA_TYPES, RENDERERS, ReportDocument
from caisse.export import config as export_config
from caisse.models.transaction import TransactionKind
from caisse.models.user import User
from caisse.routers.auth import get_current_user
from caisse.schemas.common import ApiResponse
from caisse.schemas.report import (
    CashSheetReport,
    EtatResultat,
    MonthlyStat,
    PreviousBalance,
    ProgrammationReport,
    ReportFilters,
    SummaryReport,
)
from caisse.services import programmation_service, report_service, signataire_service
from caisse.services.balance_service import PreviousBalanceResolver, monthly_statistics
from caisse.services.ledger_query import LedgerRepository, to_response
from caisse.utils.cache import TTLCache, get_ledger_cache

router = APIRouter(prefix="/reports", tags=["reports"])

ExportFormat = Literal["pdf", "xlsx"]


def get_repository(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
) -> LedgerRepository:
    return LedgerRepository(db, cache)


def get_resolver(
    repo: LedgerRepository = Depends(get_repository),
) -> PreviousBalanceResolver:
    return PreviousBalanceResolver(repo, settings.BALANCE_FLOOR_YEAR)


async def _report_inputs(
    repo: LedgerRepository,
    resolver: PreviousBalanceResolver,
    filters: ReportFilters,
):
    recettes = await repo.fetch_range(
        TransactionKind.RECETTE, filters.start_date, filters.end_date
    )
    depenses = await repo.fetch_range(
        TransactionKind.DEPENSE, filters.start_date, filters.end_date
    )
    opening = await resolver.resolve_for_date(filters.start_date)
    return recettes, depenses, opening


async def _cash_sheet(repo, resolver, filters) -> CashSheetReport:
    recettes, depenses, opening = await _report_inputs(repo, resolver, filters)
    return report_service.build_cash_sheet(filters, recettes, depenses, opening)


async def _summary(repo, resolver, filters) -> SummaryReport:
    recettes, depenses, opening = await _report_inputs(repo, resolver, filters)
    return report_service.build_summary(filters, recettes, depenses, opening)


async def _programmation(db, month: int, year: int) -> ProgrammationReport:
    lines = await programmation_service.get_programmations(db, month, year)
    return report_service.build_programmation_report(month, year, lines)


def _download(doc: ReportDocument, fmt: ExportFormat) -> Response:
    content = RENDERERS[fmt](doc)
    return Response(
        content=content,
        media_type=MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{doc.filename}.{fmt}"'},
    )


@router.get("/feuille-caisse")
async def get_feuille_caisse(
    start_date: date = Query(...),
    end_date: date = Query(...),
    repo: LedgerRepository = Depends(get_repository),
    resolver: PreviousBalanceResolver = Depends(get_resolver),
    _: User = Depends(get_current_user),
) -> ApiResponse[CashSheetReport]:
    filters = ReportFilters(start_date=start_date, end_date=end_date)
    try:
        return ApiResponse.ok(await _cash_sheet(repo, resolver, filters))
    except ValueError as e:
        return ApiResponse.fail(str(e))


@router.get("/sommaire")
async def get_sommaire(
    start_date: date = Query(...),
    end_date: date = Query(...),
    repo: LedgerRepository = Depends(get_repository),
    resolver: PreviousBalanceResolver = Depends(get_resolver),
    _: User = Depends(get_current_user),
) -> ApiResponse[SummaryReport]:
    filters = ReportFilters(start_date=start_date, end_date=end_date)
    try:
        return ApiResponse.ok(await _summary(repo, resolver, filters))
    except ValueError as e:
        return ApiResponse.fail(str(e))


@router.get("/etat-financier")
async def get_etat_financier(
    start_date: date = Query(...),
    end_date: date = Query(...),
    repo: LedgerRepository = Depends(get_repository),
    resolver: PreviousBalanceResolver = Depends(get_resolver),
    _: User = Depends(get_current_user),
) -> ApiResponse[EtatResultat]:
    filters = ReportFilters(start_date=start_date, end_date=end_date)
    try:
        recettes, depenses, opening = await _report_inputs(repo, resolver, filters)
        return ApiResponse.ok(
            report_service.calculate_etat_resultat(filters, recettes, depenses, opening)
        )
    except ValueError as e:
        return ApiResponse.fail(str(e))


@router.get("/programmation")
async def get_programmation_report(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
) -> ApiResponse[ProgrammationReport]:
    return ApiResponse.ok(await _programmation(db, month, year))


@router.get("/previous-balance")
async def get_previous_balance(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    resolver: PreviousBalanceResolver = Depends(get_resolver),
    _: User = Depends(get_current_user),
) -> ApiResponse[PreviousBalance]:
    balance = await resolver.resolve_opening_balance(month, year)
    return ApiResponse.ok(PreviousBalance(month=month, year=year, balance=balance))


@router.get("/monthly")
async def get_monthly_stats(
    year: int = Query(..., ge=2000, le=2100),
    repo: LedgerRepository = Depends(get_repository),
    _: User = Depends(get_current_user),
) -> ApiResponse[list[MonthlyStat]]:
    return ApiResponse.ok(await monthly_statistics(repo, year))


# --- Exports ---


@router.get("/feuille-caisse/export")
async def export_feuille_caisse(
    start_date: date = Query(...),
    end_date: date = Query(...),
    format: ExportFormat = Query("pdf"),
    repo: LedgerRepository = Depends(get_repository),
    resolver: PreviousBalanceResolver = Depends(get_resolver),
    _: User = Depends(get_current_user),
) -> Response:
    filters = ReportFilters(start_date=start_date, end_date=end_date)
    report = await _cash_sheet(repo, resolver, filters)
    return _download(export_config.cash_sheet_document(report), format)


@router.get("/sommaire/export")
async def export_sommaire(
    start_date: date = Query(...),
    end_date: date = Query(...),
    format: ExportFormat = Query("pdf"),
    repo: LedgerRepository = Depends(get_repository),
    resolver: PreviousBalanceResolver = Depends(get_resolver),
    _: User = Depends(get_current_user),
) -> Response:
    filters = ReportFilters(start_date=start_date, end_date=end_date)
    report = await _summary(repo, resolver, filters)
    return _download(export_config.summary_document(report), format)


@router.get("/programmation/export")
async def export_programmation(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    format: ExportFormat = Query("pdf"),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
) -> Response:
    report = await _programmation(db, month, year)
    signataires = await signataire_service.get_signataires(db, active_only=True)
    return _download(export_config.programmation_document(report, signataires), format)


@router.get("/monthly/export")
async def export_monthly(
    year: int = Query(..., ge=2000, le=2100),
    format: ExportFormat = Query("pdf"),
    repo: LedgerRepository = Depends(get_repository),
    _: User = Depends(get_current_user),
) -> Response:
    stats = await monthly_statistics(repo, year)
    return _download(export_config.monthly_document(year, stats), format)


@router.get("/{kind}/export")
async def export_transactions(
    kind: Literal["recettes", "depenses"],
    start_date: date = Query(...),
    end_date: date = Query(...),
    format: ExportFormat = Query("pdf"),
    repo: LedgerRepository = Depends(get_repository),
    _: User = Depends(get_current_user),
) -> Response:
    txn_kind = TransactionKind.RECETTE if kind == "recettes" else TransactionKind.DEPENSE
    rows = await repo.fetch_range(txn_kind, start_date, end_date)
    doc = export_config.transactions_document(
        kind, [to_response(r) for r in rows], start_date, end_date
    )
    return _download(doc, format)

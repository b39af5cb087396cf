from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from caisse.models import Alert, AuditLog, Rubrique
from caisse.models.transaction import TransactionKind
from caisse.schemas.transaction import (
    DepenseCreate,
    DepenseUpdate,
    RecetteCreate,
    RecetteUpdate,
)
from caisse.services import transaction_service
from caisse.services.ledger_query import LedgerRepository, page_cache_key


@pytest.fixture
def rubrique_id(in_session):
    async def _go(db):
        rubrique = Rubrique(code="FON", libelle="Fonctionnement")
        db.add(rubrique)
        await db.flush()
        return rubrique.id

    return in_session(_go)


def _recette(amount, day=date(2025, 1, 5), **extra):
    return RecetteCreate(
        motive="Versement", provenance="Bureau Matadi",
        amount=Decimal(str(amount)), transaction_date=day, **extra,
    )


def _depense(amount, rubrique_id, day=date(2025, 1, 10)):
    return DepenseCreate(
        motive="Achat carburant", beneficiary="Station Total",
        amount=Decimal(str(amount)), rubrique_id=rubrique_id, transaction_date=day,
    )


def test_create_recette_fills_server_side_fields(in_session, cache):
    async def _go(db):
        first = await transaction_service.create_recette(db, cache, _recette(1200))
        second = await transaction_service.create_recette(db, cache, _recette(300))
        return first, second

    first, second = in_session(_go)

    assert (first.sequence_number, second.sequence_number) == (1, 2)
    assert first.month == 1 and first.year == 2025
    assert first.month_label == "JANVIER"
    assert first.month_year == "01/2025"
    assert first.amount_in_words == "Mille deux cents francs congolais"
    assert first.transaction_time.microsecond == 0
    assert second.opening_balance == Decimal("1200")
    assert second.closing_balance == Decimal("1500")


def test_explicit_amount_in_words_is_kept(in_session, cache):
    async def _go(db):
        return await transaction_service.create_recette(
            db, cache, _recette(10, amount_in_words="Dix francs")
        )

    assert in_session(_go).amount_in_words == "Dix francs"


def test_create_depense_updates_balance_and_audits(in_session, cache, rubrique_id):
    async def _go(db):
        await transaction_service.create_recette(db, cache, _recette(1000))
        depense = await transaction_service.create_depense(db, cache, _depense(400, rubrique_id))
        balance = await transaction_service.current_balance(db)
        audits = (await db.execute(select(AuditLog).order_by(AuditLog.id))).scalars().all()
        return depense, balance, audits

    depense, balance, audits = in_session(_go)

    assert depense.opening_balance == Decimal("1000")
    assert depense.closing_balance == Decimal("600")
    assert balance == Decimal("600.00")
    assert [(a.table_name, a.action) for a in audits] == [
        ("recettes", "INSERT"), ("depenses", "INSERT"),
    ]
    assert audits[1].new_data["beneficiary"] == "Station Total"


def test_create_depense_requires_active_rubrique(in_session, cache, rubrique_id):
    async def _disable(db):
        rubrique = await db.get(Rubrique, rubrique_id)
        rubrique.is_active = False

    in_session(_disable)

    async def _go(db):
        await transaction_service.create_depense(db, cache, _depense(10, rubrique_id))

    with pytest.raises(ValueError, match="introuvable ou inactive"):
        in_session(_go)


def test_unknown_service_is_rejected(in_session, cache):
    async def _go(db):
        await transaction_service.create_recette(db, cache, _recette(10, service_id=99))

    with pytest.raises(ValueError, match="Service 99"):
        in_session(_go)


@pytest.mark.parametrize(
    "amount, severity",
    [(Decimal("999999"), None), (Decimal("1000000"), "warning"), (Decimal("2500000"), "critical")],
)
def test_important_expense_alert(in_session, cache, rubrique_id, amount, severity):
    async def _go(db):
        await transaction_service.create_depense(db, cache, _depense(amount, rubrique_id))
        return (await db.execute(select(Alert))).scalars().all()

    alerts = in_session(_go)

    if severity is None:
        assert alerts == []
    else:
        assert len(alerts) == 1
        assert alerts[0].alert_type == "depense_importante"
        assert alerts[0].severity == severity


def test_writes_clear_first_page_cache(in_session, cache):
    async def _go(db):
        repo = LedgerRepository(db, cache)
        await repo.list_recettes()
        assert cache.get(page_cache_key(TransactionKind.RECETTE)) is not None
        await transaction_service.create_recette(db, cache, _recette(5))
        assert cache.get(page_cache_key(TransactionKind.RECETTE)) is None
        items, total = await repo.list_recettes()
        return items, total

    items, total = in_session(_go)
    assert total == 1
    assert items[0].date_transaction == date(2025, 1, 5)


def test_update_recalculates_words_and_records_changes(in_session, cache):
    async def _go(db):
        recette = await transaction_service.create_recette(db, cache, _recette(100))
        updated = await transaction_service.update_transaction(
            db, cache, TransactionKind.RECETTE, recette.id,
            RecetteUpdate(amount=Decimal("200"), observation="corrigé"),
        )
        audit = (
            await db.execute(select(AuditLog).where(AuditLog.action == "UPDATE"))
        ).scalar_one()
        return updated, audit

    updated, audit = in_session(_go)

    assert updated.amount_in_words == "Deux cents francs congolais"
    assert updated.closing_balance == Decimal("200")
    assert updated.sequence_number == 1
    assert set(audit.changed_fields) >= {"amount", "amount_in_words", "observation"}


def test_explicit_null_clears_optional_fields(in_session, cache):
    async def _go(db):
        recette = await transaction_service.create_recette(
            db, cache, _recette(100, observation="à vérifier", beo_number="BEO-12"),
        )
        return await transaction_service.update_transaction(
            db, cache, TransactionKind.RECETTE, recette.id,
            RecetteUpdate(observation=None, motive=None),
        )

    updated = in_session(_go)

    assert updated.observation is None
    assert updated.beo_number == "BEO-12"
    # Required columns ignore a null
    assert updated.motive == "Versement"


def test_update_missing_transaction_returns_none(in_session, cache):
    async def _go(db):
        return await transaction_service.update_transaction(
            db, cache, TransactionKind.RECETTE, 404, RecetteUpdate(motive="x")
        )

    assert in_session(_go) is None


def test_depense_rubrique_cannot_be_cleared(in_session, cache, rubrique_id):
    async def _go(db):
        depense = await transaction_service.create_depense(db, cache, _depense(10, rubrique_id))
        await transaction_service.update_transaction(
            db, cache, TransactionKind.DEPENSE, depense.id, DepenseUpdate(rubrique_id=None)
        )

    with pytest.raises(ValueError, match="rubrique"):
        in_session(_go)


def test_amount_update_can_raise_alert(in_session, cache, rubrique_id):
    async def _go(db):
        depense = await transaction_service.create_depense(db, cache, _depense(10, rubrique_id))
        await transaction_service.update_transaction(
            db, cache, TransactionKind.DEPENSE, depense.id,
            DepenseUpdate(amount=Decimal("1500000")),
        )
        return (await db.execute(select(Alert))).scalars().all()

    alerts = in_session(_go)
    assert [a.severity for a in alerts] == ["warning"]


def test_delete_transaction(in_session, cache):
    async def _go(db):
        recette = await transaction_service.create_recette(db, cache, _recette(100))
        deleted = await transaction_service.delete_transaction(
            db, cache, TransactionKind.RECETTE, recette.id
        )
        missing = await transaction_service.delete_transaction(
            db, cache, TransactionKind.RECETTE, recette.id
        )
        audit = (
            await db.execute(select(AuditLog).where(AuditLog.action == "DELETE"))
        ).scalar_one()
        return deleted, missing, audit

    deleted, missing, audit = in_session(_go)
    assert deleted is True
    assert missing is False
    assert audit.old_data["amount"] == 100.0
    assert audit.new_data is None

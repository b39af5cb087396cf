import pytest

from caisse.config import settings
from caisse.utils.permissions import DELETE_DENIED_MESSAGE
from conftest import ADMIN_PASSWORD, USER_PASSWORD, login

API = "/api/v1"
JANUARY = {"start_date": "2025-01-01", "end_date": "2025-01-31"}


def _rubrique(client, code="FON", libelle="Fonctionnement"):
    body = client.post(f"{API}/rubriques", json={"code": code, "libelle": libelle}).json()
    assert body["success"], body
    return body["data"]["id"]


def _recette(client, amount, day="2025-01-05"):
    return client.post(f"{API}/recettes", json={
        "motive": "Versement", "provenance": "Bureau Matadi",
        "amount": amount, "transaction_date": day,
    }).json()


def _depense(client, amount, rubrique_id, day="2025-01-10"):
    return client.post(f"{API}/depenses", json={
        "motive": "Carburant", "beneficiary": "Station Total",
        "amount": amount, "rubrique_id": rubrique_id, "transaction_date": day,
    }).json()


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_login_sets_session_cookie(client, users):
    response = login(client, "admin", ADMIN_PASSWORD)
    body = response.json()

    assert body["success"] is True
    assert body["data"]["user"]["role"] == "admin"
    assert response.cookies.get(settings.SESSION_COOKIE_NAME) == body["data"]["token"]

    me = client.get(f"{API}/auth/me").json()
    assert me["data"]["username"] == "admin"


def test_bearer_token_is_accepted(client, users):
    token = login(client, "guest", USER_PASSWORD).json()["data"]["token"]
    client.cookies.clear()

    response = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.json()["data"]["role"] == "observateur"


def test_bad_credentials(client, users):
    response = login(client, "admin", "nope")
    assert response.status_code == 401
    assert "4 tentative(s) restante(s)" in response.json()["detail"]


def test_lockout_is_persisted_between_requests(client, users):
    for _ in range(settings.MAX_FAILED_ATTEMPTS):
        login(client, "lumuba", "wrong")
    response = login(client, "lumuba", USER_PASSWORD)
    assert response.status_code == 423


def test_requests_without_session_are_refused(client):
    response = client.get(f"{API}/recettes")
    assert response.status_code == 401
    assert response.json()["detail"] == "Session invalide ou expirée"


def test_logout(admin_client):
    admin_client.post(f"{API}/auth/logout")
    assert admin_client.get(f"{API}/auth/me").status_code == 401


def test_observateur_cannot_write(reader_client):
    assert reader_client.get(f"{API}/recettes").status_code == 200
    response = reader_client.post(f"{API}/recettes", json={
        "motive": "x", "provenance": "y", "amount": 1,
    })
    assert response.status_code == 403


def test_instructeur_cannot_delete(writer_client):
    recette = _recette(writer_client, 100)["data"]
    depense = _depense(writer_client, 10, _rubrique(writer_client))["data"]
    line = writer_client.post(f"{API}/programmations", json={
        "month": 3, "year": 2025, "designation": "Loyer", "planned_amount": 900,
    }).json()["data"]

    for path in (
        f"recettes/{recette['id']}",
        f"depenses/{depense['id']}",
        f"programmations/{line['id']}",
    ):
        response = writer_client.delete(f"{API}/{path}")
        assert response.status_code == 403
        assert response.json()["detail"] == DELETE_DENIED_MESSAGE

    # Edits are still allowed
    updated = writer_client.put(f"{API}/recettes/{recette['id']}", json={"amount": 150})
    assert updated.json()["success"]


def test_recette_lifecycle(admin_client):
    created = _recette(admin_client, 1200)
    assert created["success"], created
    recette = created["data"]
    assert recette["sequence_number"] == 1
    assert recette["amount_in_words"] == "Mille deux cents francs congolais"
    assert recette["month_label"] == "JANVIER"
    assert recette["date_transaction"] == "2025-01-05"

    listing = admin_client.get(f"{API}/recettes").json()
    assert listing["meta"]["total"] == 1

    updated = admin_client.put(
        f"{API}/recettes/{recette['id']}", json={"amount": 1500}
    ).json()
    assert updated["data"]["amount"] == 1500.0
    # The cached first page was dropped by the update
    assert admin_client.get(f"{API}/recettes").json()["data"][0]["amount"] == 1500.0

    assert admin_client.delete(f"{API}/recettes/{recette['id']}").json()["success"]
    missing = admin_client.get(f"{API}/recettes/{recette['id']}").json()
    assert missing == {
        "success": False, "data": None,
        "error": f"Recette with id {recette['id']} not found", "meta": None,
    }


def test_negative_amount_is_rejected(admin_client):
    response = admin_client.post(f"{API}/recettes", json={
        "motive": "x", "provenance": "y", "amount": -5,
    })
    assert response.status_code == 422


def test_depense_requires_known_rubrique(admin_client):
    body = _depense(admin_client, 10, rubrique_id=999)
    assert body["success"] is False
    assert "introuvable" in body["error"]


def test_depense_range(admin_client):
    rubrique_id = _rubrique(admin_client)
    _depense(admin_client, 10, rubrique_id, day="2025-01-10")
    _depense(admin_client, 20, rubrique_id, day="2025-02-10")

    body = admin_client.get(f"{API}/depenses/range", params=JANUARY).json()
    assert [d["amount"] for d in body["data"]] == [10.0]
    assert body["data"][0]["rubrique_code"] == "FON"


def test_cash_reports(admin_client):
    rubrique_id = _rubrique(admin_client)
    _recette(admin_client, 1000)
    _depense(admin_client, 400, rubrique_id)

    sheet = admin_client.get(f"{API}/reports/feuille-caisse", params=JANUARY).json()["data"]
    assert len(sheet["rows"]) == 2
    assert sheet["closing_balance"] == 600.0

    summary = admin_client.get(f"{API}/reports/sommaire", params=JANUARY).json()["data"]
    assert [r["code"] for r in summary["rows"]] == ["R", "FON"]

    etat = admin_client.get(f"{API}/reports/etat-financier", params=JANUARY).json()["data"]
    assert etat["benefice_deficit"] == 600.0

    february = {"start_date": "2025-02-01", "end_date": "2025-02-28"}
    carried = admin_client.get(f"{API}/reports/sommaire", params=february).json()["data"]
    assert carried["rows"][0]["code"] == "SP"
    assert carried["opening_balance"] == 600.0

    previous = admin_client.get(
        f"{API}/reports/previous-balance", params={"month": 2, "year": 2025}
    ).json()["data"]
    assert previous["balance"] == 600.0

    monthly = admin_client.get(f"{API}/reports/monthly", params={"year": 2025}).json()["data"]
    assert monthly[0]["balance"] == 600.0


@pytest.mark.parametrize(
    "path, params",
    [
        ("feuille-caisse/export", JANUARY),
        ("sommaire/export", JANUARY),
        ("recettes/export", JANUARY),
        ("depenses/export", JANUARY),
        ("programmation/export", {"month": 1, "year": 2025}),
        ("monthly/export", {"year": 2025}),
    ],
)
@pytest.mark.parametrize(
    "fmt, media_type",
    [
        ("pdf", "application/pdf"),
        ("xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
    ],
)
def test_exports(reader_client, path, params, fmt, media_type):
    response = reader_client.get(f"{API}/reports/{path}", params={**params, "format": fmt})
    assert response.status_code == 200
    assert response.headers["content-type"] == media_type
    assert response.headers["content-disposition"].endswith(f'.{fmt}"')


def test_rubrique_delete_outcome(admin_client):
    rubrique_id = _rubrique(admin_client)
    _depense(admin_client, 5, rubrique_id)

    body = admin_client.delete(f"{API}/rubriques/{rubrique_id}").json()
    assert body["meta"] == {"outcome": "disabled"}
    active = admin_client.get(f"{API}/rubriques", params={"active_only": True}).json()
    assert active["data"] == []


def test_renamed_rubrique_shows_in_cached_listing(admin_client):
    rubrique_id = _rubrique(admin_client)
    _depense(admin_client, 50, rubrique_id)
    first = admin_client.get(f"{API}/depenses").json()["data"]
    assert first[0]["rubrique_label"] == "Fonctionnement"

    renamed = admin_client.put(f"{API}/rubriques/{rubrique_id}", json={"libelle": "Carburant"})
    assert renamed.json()["success"]

    listing = admin_client.get(f"{API}/depenses").json()["data"]
    assert listing[0]["rubrique_label"] == "Carburant"


def test_programmation_flow(admin_client):
    created = admin_client.post(f"{API}/programmations", json={
        "month": 3, "year": 2025, "designation": "Loyer", "planned_amount": 900,
    }).json()["data"]
    validated = admin_client.post(f"{API}/programmations/{created['id']}/validate").json()
    assert validated["data"]["is_validated"] is True

    refused = admin_client.delete(f"{API}/programmations/{created['id']}").json()
    assert refused["success"] is False

    report = admin_client.get(
        f"{API}/reports/programmation", params={"month": 3, "year": 2025}
    ).json()["data"]
    assert report["total_in_words"] == "Neuf cents francs congolais"


def test_signataire_management(admin_client):
    created = admin_client.post(f"{API}/signataires", json={
        "matricule": "DGDA-0042", "nom": "Kabila Mutombo", "type_signature": "DAF",
    }).json()
    assert created["success"], created
    signataire_id = created["data"]["id"]

    missing = admin_client.post(f"{API}/signataires", json={"matricule": "X"}).json()
    assert missing == {
        "success": False, "data": None, "error": "Matricule et nom requis", "meta": None,
    }

    updated = admin_client.put(
        f"{API}/signataires/{signataire_id}", json={"grade": "Inspecteur"}
    ).json()
    assert updated["data"]["grade"] == "Inspecteur"

    export = admin_client.get(
        f"{API}/reports/programmation/export", params={"month": 1, "year": 2025}
    )
    assert export.status_code == 200

    logs = admin_client.get(
        f"{API}/admin/audit-logs", params={"table_name": "signataires"}
    ).json()
    assert logs["meta"]["total"] == 2

    assert admin_client.delete(f"{API}/signataires/{signataire_id}").json()["success"]
    assert admin_client.get(f"{API}/signataires").json()["data"] == []


def test_signataire_writes_require_admin(writer_client):
    assert writer_client.get(f"{API}/signataires").status_code == 200
    response = writer_client.post(f"{API}/signataires", json={"matricule": "M1", "nom": "N"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Permission refusée. Rôle admin requis."
    assert writer_client.delete(f"{API}/signataires/1").status_code == 403


def test_admin_endpoints_require_admin(writer_client):
    assert writer_client.get(f"{API}/admin/users").status_code == 403


def test_admin_user_management(admin_client):
    users = admin_client.get(f"{API}/admin/users").json()["data"]
    assert {u["username"] for u in users} == {"admin", "lumuba", "guest"}

    created = admin_client.post(f"{API}/admin/users", json={
        "username": "caissier", "password": "pass1234", "role": "instructeur",
    }).json()
    assert created["success"]

    admin_id = next(u["id"] for u in users if u["username"] == "admin")
    refused = admin_client.delete(f"{API}/admin/users/{admin_id}").json()
    assert refused["success"] is False

    logs = admin_client.get(f"{API}/admin/audit-logs", params={"table_name": "local_users"}).json()
    assert logs["meta"]["total"] == 3

    dashboard = admin_client.get(f"{API}/admin/security-dashboard").json()["data"]
    assert dashboard["stats"]["successful"] >= 1


def test_important_expense_creates_alert(admin_client):
    rubrique_id = _rubrique(admin_client)
    _recette(admin_client, 5_000_000)
    _depense(admin_client, 2_000_000, rubrique_id)

    alerts = admin_client.get(f"{API}/admin/alerts").json()["data"]
    assert [a["severity"] for a in alerts] == ["critical"]

    admin_client.post(f"{API}/admin/alerts/{alerts[0]['id']}/read")
    unread = admin_client.get(f"{API}/admin/alerts", params={"unread_only": True}).json()
    assert unread["data"] == []

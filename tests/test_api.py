"""Tests API / API tests."""

from decimal import Decimal
from io import BytesIO

from openpyxl import load_workbook

from conftest import MISSION_PAYLOAD, PDF_BYTES, headers_for
from dk_automotive.models.user import UserRole


async def _create_mission(http, profile, **overrides):
    resp = await http.post("/api/missions/", json={**MISSION_PAYLOAD, **overrides}, headers=headers_for(profile))
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _deliver(http, admin, client_user, driver):
    return await _create_mission(
        http, admin, client_id=client_user.id, chauffeur_id=driver.id,
        chauffeur_price_ht="30.00", status="livre",
    )


async def test_root(http):
    resp = await http.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "running"
    assert "X-Request-ID" in resp.headers
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


async def test_register_login_refresh_me(http):
    resp = await http.post("/api/auth/register", json={
        "email": "Garage.Martin@example.com", "password": "motdepasse", "role": "client",
    })
    assert resp.status_code == 201
    assert resp.json()["token_type"] == "bearer"

    resp = await http.post("/api/auth/register", json={
        "email": "garage.martin@example.com", "password": "motdepasse",
    })
    assert resp.status_code == 409

    resp = await http.post("/api/auth/login", json={"email": "garage.martin@example.com", "password": "faux"})
    assert resp.status_code == 401

    resp = await http.post("/api/auth/login", json={"email": "garage.martin@example.com", "password": "motdepasse"})
    assert resp.status_code == 200
    tokens = resp.json()

    resp = await http.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert resp.status_code == 200
    me = resp.json()
    assert me["role"] == "client"
    assert me["profile_completed"] is False
    assert me["last_login"] is not None

    resp = await http.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200
    # Un refresh token n'est pas un access token / A refresh token is not an access token
    resp = await http.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert resp.status_code == 401


async def test_register_cannot_self_assign_admin(http):
    resp = await http.post("/api/auth/register", json={
        "email": "pirate@example.com", "password": "motdepasse", "role": "admin",
    })
    assert resp.status_code == 422


async def test_requires_authentication(http):
    resp = await http.get("/api/missions/")
    assert resp.status_code in (401, 403)
    resp = await http.get("/api/missions/", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401


async def test_complete_client_profile(http, client_user):
    resp = await http.put("/api/profiles/me/client", headers=headers_for(client_user), json={
        "company_name": "Garage Martin",
        "siret": "12345678900012",
        "billing_address": {"street": "3 rue Neuve", "city": "Lille", "postal_code": "59000"},
        "phone1": "0320000000",
    })
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["profile_completed"] is True
    assert data["client"]["company_name"] == "Garage Martin"


async def test_create_and_read_mission(http, pricing, client_user):
    mission = await _create_mission(http, client_user)
    assert mission["status"] == "en_acceptation"
    assert Decimal(mission["price_ht"]) == Decimal("50.00")
    assert Decimal(mission["price_ttc"]) == Decimal("60.00")
    assert mission["allowed_transitions"] == ["annule"]
    assert mission["can_cancel"] is True
    assert mission["can_edit"] is False
    assert mission["can_create_restitution"] is True
    assert mission["full_number"].endswith(mission["mission_number"])

    resp = await http.get(f"/api/missions/{mission['id']}", headers=headers_for(client_user))
    assert resp.status_code == 200
    assert resp.json()["client"]["id"] == client_user.id

    resp = await http.get("/api/missions/", headers=headers_for(client_user))
    assert resp.json()["total"] == 1


async def test_mission_hidden_from_other_client(http, pricing, client_user, make_profile):
    mission = await _create_mission(http, client_user)
    stranger = await make_profile(UserRole.CLIENT)
    resp = await http.get(f"/api/missions/{mission['id']}", headers=headers_for(stranger))
    assert resp.status_code == 403
    assert resp.json()["retryable"] is False
    resp = await http.get("/api/missions/", headers=headers_for(stranger))
    assert resp.json()["total"] == 0


async def test_unknown_mission_is_404(http, admin):
    resp = await http.get("/api/missions/does-not-exist", headers=headers_for(admin))
    assert resp.status_code == 404


async def test_transition_and_stale_status(http, pricing, admin, client_user):
    mission = await _create_mission(http, client_user)
    url = f"/api/missions/{mission['id']}/transition"

    resp = await http.post(url, headers=headers_for(admin), json={
        "status": "accepte", "expected_status": "en_acceptation",
    })
    assert resp.status_code == 200
    assert resp.json()["status"] == "accepte"

    # Même requête rejouée : le statut lu est périmé / Replayed request: stale status
    resp = await http.post(url, headers=headers_for(admin), json={
        "status": "accepte", "expected_status": "en_acceptation",
    })
    assert resp.status_code == 409
    assert resp.json()["retryable"] is True

    resp = await http.post(url, headers=headers_for(admin), json={"status": "termine"})
    assert resp.status_code == 409
    assert resp.json()["retryable"] is False

    resp = await http.get(f"/api/missions/{mission['id']}/history", headers=headers_for(client_user))
    assert [h["new_status"] for h in resp.json()] == ["accepte"]


async def test_client_cancel(http, pricing, client_user):
    mission = await _create_mission(http, client_user)
    resp = await http.post(f"/api/missions/{mission['id']}/cancel", headers=headers_for(client_user))
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "annule"
    assert data["allowed_transitions"] == []
    assert data["can_create_restitution"] is False


async def test_status_not_editable_through_patch(http, pricing, admin, client_user):
    mission = await _create_mission(http, client_user)
    url = f"/api/missions/{mission['id']}"

    resp = await http.patch(url, headers=headers_for(admin), json={"status": "termine"})
    assert resp.status_code == 422

    resp = await http.patch(url, headers=headers_for(client_user), json={"notes": "urgent"})
    assert resp.status_code == 403

    resp = await http.patch(url, headers=headers_for(admin), json={"notes": "urgent", "price_ht": "75"})
    assert resp.status_code == 200
    assert Decimal(resp.json()["price_ttc"]) == Decimal("90.00")


async def test_billing_flags(http, pricing, admin, client_user):
    mission = await _create_mission(http, client_user)
    resp = await http.patch(
        f"/api/missions/{mission['id']}/billing", headers=headers_for(admin), json={"client_paid": True}
    )
    assert resp.status_code == 200
    assert resp.json()["client_paid"] is True
    resp = await http.patch(
        f"/api/missions/{mission['id']}/billing", headers=headers_for(client_user), json={"client_paid": True}
    )
    assert resp.status_code == 403


async def test_restitution_route(http, pricing, client_user):
    mission = await _create_mission(http, client_user)
    resp = await http.post(f"/api/missions/{mission['id']}/restitution", headers=headers_for(client_user))
    assert resp.status_code == 201
    restitution = resp.json()
    assert restitution["mission_type"] == "RES"
    assert restitution["pickup_address"]["city"] == "Lyon"
    assert restitution["linked_mission_id"] == mission["id"]

    resp = await http.post(f"/api/missions/{mission['id']}/restitution", headers=headers_for(client_user))
    assert resp.status_code == 422


async def test_quote(http, pricing, client_user):
    resp = await http.post("/api/pricing/quote", headers=headers_for(client_user), json={
        "vehicle_category": "citadine", "distance_km": "100",
    })
    assert resp.status_code == 200
    assert Decimal(resp.json()["price_ttc"]) == Decimal("60.00")

    resp = await http.post("/api/pricing/quote", headers=headers_for(client_user), json={
        "vehicle_category": "citadine",
    })
    assert resp.status_code == 422

    resp = await http.post("/api/pricing/quote", headers=headers_for(client_user), json={
        "vehicle_category": "citadine", "distance_km": "9000",
    })
    assert resp.status_code == 404


async def test_pricing_grid_admin_only(http, admin, client_user):
    grid = {"vehicle_category": "berline", "min_distance": "0", "max_distance": "50", "price_ht": "40"}
    resp = await http.post("/api/pricing/grids", headers=headers_for(client_user), json=grid)
    assert resp.status_code == 403
    resp = await http.post("/api/pricing/grids", headers=headers_for(admin), json=grid)
    assert resp.status_code == 201
    resp = await http.post("/api/pricing/grids", headers=headers_for(admin), json={**grid, "min_distance": "60"})
    assert resp.status_code == 422


async def test_mission_pdfs(http, pricing, admin, client_user, driver):
    mission = await _create_mission(http, client_user)
    for kind in ("fiche", "devis"):
        resp = await http.get(f"/api/missions/{mission['id']}/pdf/{kind}", headers=headers_for(client_user))
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")

    resp = await http.get(f"/api/missions/{mission['id']}/pdf/facture", headers=headers_for(client_user))
    assert resp.status_code == 422

    delivered = await _deliver(http, admin, client_user, driver)
    resp = await http.get(
        f"/api/missions/{delivered['id']}/pdf/facture?archive=true", headers=headers_for(admin)
    )
    assert resp.status_code == 200
    resp = await http.get(f"/api/missions/{delivered['id']}/documents", headers=headers_for(client_user))
    docs = resp.json()
    assert [d["type"] for d in docs] == ["facture"]
    assert docs[0]["document_number"] == f"FAC-{delivered['mission_number']}"


async def test_attachment_upload_rules(http, pricing, client_user):
    mission = await _create_mission(http, client_user)
    url = f"/api/missions/{mission['id']}/attachments"

    resp = await http.post(url, headers=headers_for(client_user),
                           files={"file": ("virus.exe", b"MZ", "application/x-msdownload")})
    assert resp.status_code == 415

    resp = await http.post(url, headers=headers_for(client_user),
                           files={"file": ("vide.pdf", b"", "application/pdf")})
    assert resp.status_code == 400

    resp = await http.post(url, headers=headers_for(client_user),
                           files={"file": ("photo.png", b"\x89PNG\r\n", "image/png")})
    assert resp.status_code == 201
    path = resp.json()["storage_path"]

    resp = await http.get(f"/api/files/{path}", headers=headers_for(client_user))
    assert resp.status_code == 200
    assert resp.content == b"\x89PNG\r\n"


async def test_upload_rules_endpoint(http):
    resp = await http.get("/api/documents/upload-rules")
    assert resp.status_code == 200
    data = resp.json()
    assert data["max_size_bytes"] == 10 * 1024 * 1024
    assert "application/pdf" in data["allowed_mime_types"]


async def test_driver_invoice_flow(http, pricing, admin, client_user, driver):
    mission = await _deliver(http, admin, client_user, driver)
    url = f"/api/invoices/{mission['id']}"

    resp = await http.patch(f"{url}/paid", headers=headers_for(admin), json={"paid": True})
    assert resp.status_code == 422

    resp = await http.post(url, headers=headers_for(driver), files={"file": ("f.pdf", PDF_BYTES, "application/pdf")})
    assert resp.status_code == 201
    assert resp.json()["chauffeur_invoice"] is not None

    resp = await http.post(url, headers=headers_for(driver), files={"file": ("f.pdf", PDF_BYTES, "application/pdf")})
    assert resp.status_code == 409

    resp = await http.patch(f"{url}/paid", headers=headers_for(driver), json={"paid": True})
    assert resp.status_code == 403
    resp = await http.patch(f"{url}/paid", headers=headers_for(admin), json={"paid": True})
    assert resp.json()["chauffeur_paid"] is True

    resp = await http.get("/api/invoices/summary", headers=headers_for(driver))
    assert resp.json()["paid"]["count"] == 1
    assert Decimal(resp.json()["paid"]["amount"]) == Decimal("30.00")

    resp = await http.delete(url, headers=headers_for(driver))
    assert resp.status_code == 200
    body = resp.json()
    assert body["mission"]["chauffeur_invoice"] is None
    assert body["mission"]["chauffeur_paid"] is False
    assert body["warnings"] == []

    resp = await http.get("/api/invoices/summary/all", headers=headers_for(admin))
    assert resp.json()["global"]["no_invoice"]["count"] == 1


async def test_client_does_not_see_driver_billing(http, pricing, admin, client_user, driver):
    mission = await _deliver(http, admin, client_user, driver)
    resp = await http.post(
        f"/api/invoices/{mission['id']}", headers=headers_for(driver),
        files={"file": ("f.pdf", PDF_BYTES, "application/pdf")},
    )
    path = resp.json()["chauffeur_invoice"]
    billing = {"chauffeur_price_ht", "chauffeur_invoice", "chauffeur_paid"}

    resp = await http.get(f"/api/missions/{mission['id']}", headers=headers_for(client_user))
    assert resp.status_code == 200
    assert not billing & resp.json().keys()
    assert resp.json()["price_ht"] is not None
    resp = await http.get("/api/missions/", headers=headers_for(client_user))
    assert not billing & resp.json()["items"][0].keys()

    for profile in (admin, driver):
        resp = await http.get(f"/api/missions/{mission['id']}", headers=headers_for(profile))
        assert Decimal(resp.json()["chauffeur_price_ht"]) == Decimal("30.00")
        assert resp.json()["chauffeur_invoice"] == path
    resp = await http.get("/api/missions/", headers=headers_for(admin))
    assert billing <= resp.json()["items"][0].keys()

    resp = await http.get(f"/api/missions/{mission['id']}/documents", headers=headers_for(client_user))
    assert "driver_invoice" not in [d["type"] for d in resp.json()]
    resp = await http.get(f"/api/missions/{mission['id']}/documents", headers=headers_for(driver))
    assert "driver_invoice" in [d["type"] for d in resp.json()]

    resp = await http.get(f"/api/files/{path}", headers=headers_for(client_user))
    assert resp.status_code == 403
    resp = await http.get(f"/api/files/{path}", headers=headers_for(driver))
    assert resp.status_code == 200
    assert resp.content.startswith(b"%PDF")


async def test_dashboards_and_exports(http, pricing, admin, client_user, driver):
    await _deliver(http, admin, client_user, driver)
    await _create_mission(http, client_user)

    resp = await http.get("/api/stats/dashboard", headers=headers_for(client_user))
    data = resp.json()
    assert data["total_missions"] == 2
    assert data["status_counts"]["livre"] == 1
    assert Decimal(data["total_spent_ttc"]) == Decimal("60.00")

    resp = await http.get("/api/stats/dashboard", headers=headers_for(driver))
    assert resp.json()["total_missions"] == 1

    resp = await http.get("/api/stats/admin", headers=headers_for(client_user))
    assert resp.status_code == 403

    resp = await http.get("/api/stats/admin", headers=headers_for(admin))
    totals = resp.json()["totals"]
    assert totals["missions"] == 2
    assert totals["completed"] == 1
    assert Decimal(totals["margin_ht"]) == Decimal("20.00")

    resp = await http.get("/api/stats/admin/export?format=xlsx", headers=headers_for(admin))
    assert resp.status_code == 200
    workbook = load_workbook(BytesIO(resp.content))
    assert workbook.sheetnames == ["Totaux", "Catégories", "Mois", "Clients", "Chauffeurs"]

    resp = await http.get("/api/stats/admin/export?format=pdf", headers=headers_for(admin))
    assert resp.content.startswith(b"%PDF")

    resp = await http.get("/api/stats/missions/export?format=csv", headers=headers_for(admin))
    lines = resp.content.decode("utf-8-sig").strip().splitlines()
    assert lines[0].startswith("full_number;status")
    assert len(lines) == 3


async def test_admin_invitation_flow(http, admin, client_user):
    resp = await http.post("/api/admin/invitations", headers=headers_for(client_user),
                           json={"email": "nouvel.admin@example.com"})
    assert resp.status_code == 403

    resp = await http.post("/api/admin/invitations", headers=headers_for(admin),
                           json={"email": "nouvel.admin@example.com"})
    assert resp.status_code == 201
    token = resp.json()["token"]

    resp = await http.get(f"/api/auth/invitations/validate?token={token}")
    assert resp.json() == {"valid": True, "email": "nouvel.admin@example.com"}

    payload = {"token": token, "email": "autre@example.com", "password": "motdepasse"}
    resp = await http.post("/api/auth/register-admin", json=payload)
    assert resp.status_code == 403

    payload["email"] = "nouvel.admin@example.com"
    resp = await http.post("/api/auth/register-admin", json=payload)
    assert resp.status_code == 201

    resp = await http.post("/api/auth/register-admin", json=payload)
    assert resp.status_code == 403

    resp = await http.get(f"/api/auth/invitations/validate?token={token}")
    assert resp.json()["valid"] is False


async def test_contacts_single_primary(http, client_user):
    headers = headers_for(client_user)
    first = (await http.post("/api/contacts/", headers=headers, json={
        "first_name": "Jean", "last_name": "Dupont", "is_primary": True,
    })).json()
    second = (await http.post("/api/contacts/", headers=headers, json={
        "first_name": "Marie", "last_name": "Martin", "is_primary": True,
    })).json()
    contacts = (await http.get("/api/contacts/", headers=headers)).json()
    primary = [c["id"] for c in contacts if c["is_primary"]]
    assert primary == [second["id"]]
    assert first["full_name"] == "Jean Dupont"

    resp = await http.delete(f"/api/contacts/{first['id']}", headers=headers)
    assert resp.status_code == 204


async def test_driver_cannot_manage_contacts(http, driver):
    resp = await http.get("/api/contacts/", headers=headers_for(driver))
    assert resp.status_code == 403

"""Tests factures chauffeur et paiement / Driver invoice and payment tests."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from conftest import MISSION_PAYLOAD, PDF_BYTES
from dk_automotive.exceptions import PermissionDenied, StorageError, UploadRejected, ValidationFailed
from dk_automotive.models.document import Document, DocumentType
from dk_automotive.models.mission import Mission, MissionStatus
from dk_automotive.schemas.mission import MissionCreate
from dk_automotive.services import document_service, invoice_service, mission_service
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.stats_service import StatsService


@pytest.fixture
async def delivered(db, pricing, admin, client_user, driver):
    data = MissionCreate(
        **MISSION_PAYLOAD,
        client_id=client_user.id,
        chauffeur_id=driver.id,
        chauffeur_price_ht=Decimal("30.00"),
        status="livre",
    )
    mission = await mission_service.create_mission(db, data, AuthContext.init(admin))
    await db.commit()
    return mission


async def _upload(db, store, mission, profile, content=PDF_BYTES, name="facture.pdf", mime="application/pdf"):
    mission = await invoice_service.upload_driver_invoice(
        db, store, mission.id, AuthContext.init(profile), name, mime, content
    )
    await db.commit()
    return mission


async def test_driver_uploads_one_invoice(db, store, delivered, driver):
    mission = await _upload(db, store, delivered, driver)
    assert mission.chauffeur_invoice.startswith(f"driver_invoices/{mission.id}/")
    assert mission.chauffeur_invoice.endswith("_facture.pdf")
    assert store.exists(mission.chauffeur_invoice)

    docs = (await db.execute(select(Document).where(Document.mission_id == mission.id))).scalars().all()
    assert [d.type for d in docs] == [DocumentType.DRIVER_INVOICE]

    with pytest.raises(ValidationFailed) as exc:
        await _upload(db, store, mission, driver)
    assert exc.value.status_code == 409


async def test_invoice_requires_completed_mission(db, store, pricing, client_user, driver, admin):
    data = MissionCreate(**MISSION_PAYLOAD, client_id=client_user.id, chauffeur_id=driver.id, status="accepte")
    mission = await mission_service.create_mission(db, data, AuthContext.init(admin))
    await db.commit()
    with pytest.raises(ValidationFailed):
        await _upload(db, store, mission, driver)


async def test_invoice_must_be_pdf(db, store, delivered, driver):
    with pytest.raises(UploadRejected) as exc:
        await _upload(db, store, delivered, driver, content=b"\x89PNG", name="facture.png", mime="image/png")
    assert exc.value.status_code == 415
    assert delivered.chauffeur_invoice is None


async def test_client_cannot_upload_invoice(db, store, delivered, client_user):
    with pytest.raises(PermissionDenied):
        await _upload(db, store, delivered, client_user)


async def test_paid_requires_invoice(db, store, delivered, admin, driver):
    admin_ctx = AuthContext.init(admin)
    with pytest.raises(ValidationFailed):
        await invoice_service.set_driver_paid(db, delivered.id, True, admin_ctx)

    await _upload(db, store, delivered, driver)
    with pytest.raises(PermissionDenied):
        await invoice_service.set_driver_paid(db, delivered.id, True, AuthContext.init(driver))

    mission = await invoice_service.set_driver_paid(db, delivered.id, True, admin_ctx)
    assert mission.chauffeur_paid
    mission = await invoice_service.set_driver_paid(db, delivered.id, False, admin_ctx)
    assert not mission.chauffeur_paid


async def test_deleting_invoice_resets_paid(db, store, delivered, admin, driver):
    mission = await _upload(db, store, delivered, driver)
    path = mission.chauffeur_invoice
    await invoice_service.set_driver_paid(db, mission.id, True, AuthContext.init(admin))

    mission, warnings = await invoice_service.delete_driver_invoice(db, store, mission.id, AuthContext.init(driver))
    await db.commit()
    assert warnings == []
    assert mission.chauffeur_invoice is None
    assert mission.chauffeur_paid is False
    assert not store.exists(path)
    assert (await db.execute(select(Document).where(Document.storage_path == path))).first() is None


async def test_invoice_reference_cleared_when_blob_removal_fails(db, store, delivered, admin, driver, monkeypatch):
    mission = await _upload(db, store, delivered, driver)
    await invoice_service.set_driver_paid(db, mission.id, True, AuthContext.init(admin))

    def _fail(paths):
        raise StorageError("disk unavailable")

    monkeypatch.setattr(store, "remove", _fail)
    mission, warnings = await invoice_service.delete_driver_invoice(db, store, mission.id, AuthContext.init(admin))
    assert len(warnings) == 1
    assert mission.chauffeur_invoice is None
    assert not mission.chauffeur_paid


async def test_document_delete_keeps_invoice_coupling(db, store, delivered, admin, driver):
    mission = await _upload(db, store, delivered, driver)
    await invoice_service.set_driver_paid(db, mission.id, True, AuthContext.init(admin))
    document = (await db.execute(
        select(Document).where(Document.type == DocumentType.DRIVER_INVOICE)
    )).scalar_one()

    await document_service.delete_document(db, store, document.id, AuthContext.init(driver))
    await db.commit()
    refreshed = await db.get(Mission, mission.id)
    await db.refresh(refreshed)
    assert refreshed.chauffeur_invoice is None
    assert refreshed.chauffeur_paid is False


def test_driver_buckets():
    missions = [
        Mission(status=MissionStatus.LIVRE, chauffeur_price_ht=Decimal("30.00"),
                chauffeur_invoice="a.pdf", chauffeur_paid=True),
        Mission(status=MissionStatus.TERMINE, chauffeur_price_ht=Decimal("45.50"),
                chauffeur_invoice="b.pdf", chauffeur_paid=False),
        Mission(status=MissionStatus.LIVRE, chauffeur_price_ht=Decimal("20.00"),
                chauffeur_invoice=None, chauffeur_paid=False),
        Mission(status=MissionStatus.LIVRE, chauffeur_price_ht=None,
                chauffeur_invoice=None, chauffeur_paid=False),
        # Non réalisée : ignorée / Not completed: ignored
        Mission(status=MissionStatus.LIVRAISON, chauffeur_price_ht=Decimal("99.00"),
                chauffeur_invoice=None, chauffeur_paid=False),
    ]
    buckets = StatsService.driver_buckets(missions)
    assert buckets["paid"] == {"count": 1, "amount": Decimal("30.00")}
    assert buckets["unpaid"] == {"count": 1, "amount": Decimal("45.50")}
    assert buckets["no_invoice"] == {"count": 2, "amount": Decimal("20.00")}
    assert buckets["total"] == Decimal("95.50")


async def test_driver_revenue_from_database(db, store, delivered, driver):
    await _upload(db, store, delivered, driver)
    revenue = await StatsService.driver_revenue(db, driver.id)
    assert revenue["unpaid"]["count"] == 1
    assert revenue["total"] == Decimal("30.00")


async def test_driver_invoice_hidden_from_client(db, store, delivered, client_user, driver, admin):
    mission = await _upload(db, store, delivered, driver)
    client_ctx = AuthContext.init(client_user)

    docs = await document_service.list_mission_documents(db, mission.id, client_ctx)
    assert DocumentType.DRIVER_INVOICE not in [d.type for d in docs]
    with pytest.raises(PermissionDenied):
        await document_service.get_document_by_path(db, mission.chauffeur_invoice, client_ctx)

    for profile in (driver, admin):
        document = await document_service.get_document_by_path(db, mission.chauffeur_invoice, AuthContext.init(profile))
        assert document.type == DocumentType.DRIVER_INVOICE

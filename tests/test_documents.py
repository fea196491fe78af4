"""Tests des documents / Document tests (pièces jointes, justificatifs, suppression)."""

import pytest
from sqlalchemy import select

from conftest import MISSION_PAYLOAD, PDF_BYTES
from dk_automotive.exceptions import PermissionDenied, StorageError, ValidationFailed
from dk_automotive.models.document import Document, DocumentType
from dk_automotive.models.user import Driver, UserRole
from dk_automotive.schemas.mission import MissionCreate
from dk_automotive.services import document_service, mission_service
from dk_automotive.services.capabilities import AuthContext
from dk_automotive.services.mission_lifecycle import cancel_mission


@pytest.fixture
async def mission(db, pricing, client_user):
    created = await mission_service.create_mission(db, MissionCreate(**MISSION_PAYLOAD), AuthContext.init(client_user))
    await db.commit()
    return created


async def test_attachment_upload_and_listing(db, store, mission, client_user, make_profile):
    ctx = AuthContext.init(client_user)
    document = await document_service.upload_mission_attachment(
        db, store, mission.id, ctx, "carte grise.pdf", "application/pdf", PDF_BYTES
    )
    await db.commit()
    assert document.storage_path.startswith(f"missions/{mission.id}/")
    assert document.storage_path.endswith("_carte_grise.pdf")
    assert document.type == DocumentType.ATTACHMENT
    assert store.exists(document.storage_path)

    docs = await document_service.list_mission_documents(db, mission.id, ctx)
    assert [d.id for d in docs] == [document.id]

    stranger = AuthContext.init(await make_profile(UserRole.CLIENT))
    with pytest.raises(PermissionDenied):
        await document_service.list_mission_documents(db, mission.id, stranger)
    with pytest.raises(PermissionDenied):
        await document_service.get_document(db, document.id, stranger)


async def test_attachment_refused_on_closed_mission(db, store, mission, client_user):
    ctx = AuthContext.init(client_user)
    await cancel_mission(db, mission.id, ctx)
    with pytest.raises(ValidationFailed):
        await document_service.upload_mission_attachment(
            db, store, mission.id, ctx, "photo.png", "image/png", b"\x89PNG"
        )


async def test_archived_pdf_gets_document_number(db, store, mission, admin):
    document = await document_service.archive_generated_pdf(
        db, store, mission, DocumentType.DEVIS, PDF_BYTES, AuthContext.init(admin)
    )
    assert document.document_number == f"DEV-{mission.mission_number}"
    assert document.mime_type == "application/pdf"


async def test_driver_document_sets_profile_column(db, store, driver):
    ctx = AuthContext.init(driver)
    record = await document_service.upload_driver_document(
        db, store, ctx, "kbis", "kbis.pdf", "application/pdf", PDF_BYTES
    )
    await db.commit()
    assert record.kbis_document_path.startswith(f"driver_documents/{driver.id}/kbis_")
    assert record.kbis_document_path.endswith(".pdf")

    docs = await document_service.list_driver_documents(db, driver.id, ctx)
    assert len(docs) == 1

    warnings = await document_service.delete_document(db, store, docs[0].id, ctx)
    await db.commit()
    assert warnings == []
    assert (await db.get(Driver, driver.id)).kbis_document_path is None


async def test_driver_documents_restricted(db, store, driver, client_user, make_profile):
    with pytest.raises(PermissionDenied):
        await document_service.upload_driver_document(
            db, store, AuthContext.init(client_user), "id", "id.pdf", "application/pdf", PDF_BYTES
        )
    other = await make_profile(UserRole.CHAUFFEUR)
    with pytest.raises(PermissionDenied):
        await document_service.list_driver_documents(db, driver.id, AuthContext.init(other))
    with pytest.raises(ValidationFailed):
        await document_service.upload_driver_document(
            db, store, AuthContext.init(driver), "passport", "p.pdf", "application/pdf", PDF_BYTES
        )


async def test_reference_removed_even_if_blob_removal_fails(db, store, mission, client_user, monkeypatch):
    ctx = AuthContext.init(client_user)
    document = await document_service.upload_mission_attachment(
        db, store, mission.id, ctx, "bon.pdf", "application/pdf", PDF_BYTES
    )
    await db.commit()

    def _fail(paths):
        raise StorageError("disk unavailable")

    monkeypatch.setattr(store, "remove", _fail)
    warnings = await document_service.delete_document(db, store, document.id, ctx)
    await db.commit()
    assert len(warnings) == 1
    assert (await db.execute(select(Document).where(Document.id == document.id))).first() is None


async def test_only_uploader_or_admin_deletes(db, store, mission, client_user, admin, make_profile):
    ctx = AuthContext.init(client_user)
    document = await document_service.archive_generated_pdf(
        db, store, mission, DocumentType.FICHE_MISSION, PDF_BYTES, AuthContext.init(admin)
    )
    await db.commit()
    with pytest.raises(PermissionDenied):
        await document_service.delete_document(db, store, document.id, ctx)
    await document_service.delete_document(db, store, document.id, AuthContext.init(admin))

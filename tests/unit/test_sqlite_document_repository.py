"""Unit tests for SQLiteDocumentRepository using a temporary database."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from src.models.document import DocumentStatus, FileType, LegalDocument
from src.providers.document_store.sqlite_document_repository import SQLiteDocumentRepository
from src.utils.errors import DocumentNotFoundError


def _document(document_id: str, minutes_ago: int = 0, **overrides) -> LegalDocument:
    values = {
        "id": document_id,
        "title": f"Contract {document_id}",
        "file_name": f"{document_id}.pdf",
        "file_type": FileType.PDF,
        "source_location": f"{document_id}/{document_id}.pdf",
        "uploaded_at": datetime.now(tz=timezone.utc) - timedelta(minutes=minutes_ago),
    }
    values.update(overrides)
    return LegalDocument(**values)


@pytest_asyncio.fixture
async def repository(tmp_path) -> SQLiteDocumentRepository:
    repo = SQLiteDocumentRepository(db_path=tmp_path / "nested" / "documents.db")
    await repo.initialize()
    return repo


class TestCreateAndGet:
    @pytest.mark.asyncio
    async def test_round_trip(self, repository: SQLiteDocumentRepository) -> None:
        created = await repository.create(_document("d1", category="leases"))
        loaded = await repository.get("d1")

        assert loaded.id == created.id
        assert loaded.title == "Contract d1"
        assert loaded.file_type is FileType.PDF
        assert loaded.status is DocumentStatus.PROCESSING
        assert loaded.category == "leases"
        assert loaded.archived is False
        assert loaded.processed_at is None

    @pytest.mark.asyncio
    async def test_get_missing_raises(self, repository: SQLiteDocumentRepository) -> None:
        with pytest.raises(DocumentNotFoundError):
            await repository.get("missing")

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, repository: SQLiteDocumentRepository) -> None:
        await repository.create(_document("d1"))
        await repository.initialize()
        assert (await repository.get("d1")).id == "d1"


class TestStatus:
    @pytest.mark.asyncio
    async def test_ready_sets_processed_at_and_metadata(self, repository: SQLiteDocumentRepository) -> None:
        await repository.create(_document("d1"))

        updated = await repository.update_status("d1", DocumentStatus.READY, metadata={"page_count": 4})

        assert updated.status is DocumentStatus.READY
        assert updated.processed_at is not None
        assert updated.metadata == {"page_count": 4}

    @pytest.mark.asyncio
    async def test_failed_clears_processed_at(self, repository: SQLiteDocumentRepository) -> None:
        await repository.create(_document("d1"))
        await repository.update_status("d1", DocumentStatus.READY)

        failed = await repository.update_status("d1", DocumentStatus.FAILED)

        assert failed.status is DocumentStatus.FAILED
        assert failed.processed_at is None

    @pytest.mark.asyncio
    async def test_update_without_metadata_keeps_existing(self, repository: SQLiteDocumentRepository) -> None:
        await repository.create(_document("d1"))
        await repository.update_status("d1", DocumentStatus.READY, metadata={"page_count": 1})

        again = await repository.update_status("d1", DocumentStatus.PROCESSING)
        assert again.metadata == {"page_count": 1}

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, repository: SQLiteDocumentRepository) -> None:
        with pytest.raises(DocumentNotFoundError):
            await repository.update_status("missing", DocumentStatus.READY)


class TestListingArchiveDelete:
    @pytest.mark.asyncio
    async def test_listing_newest_first(self, repository: SQLiteDocumentRepository) -> None:
        await repository.create(_document("old", minutes_ago=30))
        await repository.create(_document("new", minutes_ago=1))
        await repository.create(_document("mid", minutes_ago=10))

        ids = [d.id for d in await repository.list_documents()]
        assert ids == ["new", "mid", "old"]

    @pytest.mark.asyncio
    async def test_archive_toggle_and_filter(self, repository: SQLiteDocumentRepository) -> None:
        await repository.create(_document("d1"))
        await repository.create(_document("d2"))

        archived = await repository.set_archived("d1", True)
        assert archived.archived is True

        active = await repository.list_documents(include_archived=False)
        assert [d.id for d in active] == ["d2"]
        assert len(await repository.list_documents()) == 2

        restored = await repository.set_archived("d1", False)
        assert restored.archived is False

    @pytest.mark.asyncio
    async def test_delete(self, repository: SQLiteDocumentRepository) -> None:
        await repository.create(_document("d1"))
        await repository.delete("d1")

        with pytest.raises(DocumentNotFoundError):
            await repository.get("d1")
        with pytest.raises(DocumentNotFoundError):
            await repository.delete("d1")

"""Tests for SQLiteConversationWindowRepository."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from threadmind.domain.entities import FileDescriptor
from threadmind.infrastructure.persistence import (
    ConversationWindowModel,
    CorruptRecordError,
    DatabaseManager,
    SQLiteConversationWindowRepository,
)


@pytest.fixture
async def db_manager() -> DatabaseManager:
    """Create an in-memory database manager."""
    manager = DatabaseManager(":memory:")
    await manager.create_tables()
    return manager


@pytest.fixture
def repository(db_manager: DatabaseManager) -> SQLiteConversationWindowRepository:
    """Create a repository instance."""
    return SQLiteConversationWindowRepository(db_manager.get_session)


@pytest.fixture
def boundary_time() -> datetime:
    """Create a boundary timestamp."""
    return datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


async def save(
    repository: SQLiteConversationWindowRepository,
    window_number: int,
    summary: str = "summary",
    channel_id: str = "C123",
    files: list[FileDescriptor] | None = None,
) -> None:
    await repository.create_or_update(
        channel_id=channel_id,
        window_number=window_number,
        summary=summary,
        files_mentioned=files or [],
        last_message_id=f"170000000{window_number}.000100",
        last_message_timestamp=datetime(2024, 1, window_number, tzinfo=timezone.utc),
    )


class TestCreateOrUpdate:
    """create_or_update tests."""

    async def test_create(
        self,
        repository: SQLiteConversationWindowRepository,
        boundary_time: datetime,
    ) -> None:
        """Test creating a window."""
        files = [FileDescriptor(name="design.pdf", size=2048, type="document")]

        window = await repository.create_or_update(
            channel_id="C123",
            window_number=1,
            summary="Kickoff",
            files_mentioned=files,
            last_message_id="1705320000.000100",
            last_message_timestamp=boundary_time,
        )

        assert window.channel_id == "C123"
        assert window.window_number == 1
        assert window.files_mentioned == files
        assert window.last_message_timestamp == boundary_time
        assert window.created_at.tzinfo is not None

    async def test_update_keeps_created_at(
        self, repository: SQLiteConversationWindowRepository
    ) -> None:
        """Test that an upsert replaces content and keeps created_at."""
        await save(repository, 1, "first")
        original = await repository.latest_by_channel("C123")

        await save(repository, 1, "second")
        updated = await repository.latest_by_channel("C123")

        assert original is not None and updated is not None
        assert updated.summary == "second"
        assert updated.created_at == original.created_at
        assert updated.updated_at >= original.updated_at
        assert len(await repository.list_by_channel("C123")) == 1

    async def test_invalid_window_number(
        self, repository: SQLiteConversationWindowRepository
    ) -> None:
        """Test that window numbers start at 1."""
        with pytest.raises(ValueError):
            await save(repository, 0)


class TestQueries:
    """Read query tests."""

    async def test_latest_by_channel(
        self, repository: SQLiteConversationWindowRepository
    ) -> None:
        """Test that the highest window number is returned."""
        await save(repository, 2, "second")
        await save(repository, 1, "first")
        await save(repository, 3, "other channel", channel_id="C999")

        latest = await repository.latest_by_channel("C123")

        assert latest is not None
        assert latest.window_number == 2
        assert latest.summary == "second"

    async def test_latest_by_channel_not_found(
        self, repository: SQLiteConversationWindowRepository
    ) -> None:
        """Test that an unknown channel has no window."""
        assert await repository.latest_by_channel("C404") is None

    async def test_list_by_channel_ascending(
        self, repository: SQLiteConversationWindowRepository
    ) -> None:
        """Test that windows are listed in ascending window number."""
        for number in (3, 1, 2):
            await save(repository, number)

        windows = await repository.list_by_channel("C123")

        assert [w.window_number for w in windows] == [1, 2, 3]

    async def test_thread_key_is_separate_channel(
        self, repository: SQLiteConversationWindowRepository
    ) -> None:
        """Test that a thread key is stored apart from its channel."""
        await save(repository, 1, channel_id="C123:1700000000.000100")

        assert await repository.list_by_channel("C123") == []
        assert len(await repository.list_by_channel("C123:1700000000.000100")) == 1

    async def test_next_window_number(
        self, repository: SQLiteConversationWindowRepository
    ) -> None:
        """Test next number computation."""
        assert await repository.next_window_number("C123") == 1

        await save(repository, 1)
        await save(repository, 4)

        assert await repository.next_window_number("C123") == 5
        assert await repository.next_window_number("C999") == 1


class TestDeleteAndIntegrity:
    """Deletion and integrity tests."""

    async def test_delete_by_channel(
        self, repository: SQLiteConversationWindowRepository
    ) -> None:
        """Test that only the given channel's windows are deleted."""
        await save(repository, 1)
        await save(repository, 2)
        await save(repository, 1, channel_id="C999")

        deleted = await repository.delete_by_channel("C123")

        assert deleted == 2
        assert await repository.list_by_channel("C123") == []
        assert len(await repository.list_by_channel("C999")) == 1

    async def test_unique_window_number(self, db_manager: DatabaseManager) -> None:
        """Test that (channel_id, window_number) is unique in the table."""
        timestamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        with pytest.raises(IntegrityError):
            async with db_manager.get_session() as session:
                for summary in ("a", "b"):
                    session.add(
                        ConversationWindowModel(
                            channel_id="C123",
                            window_number=1,
                            summary=summary,
                            last_message_id="1",
                            last_message_timestamp=timestamp,
                        )
                    )
                await session.commit()

    async def test_corrupt_files_mentioned(
        self,
        db_manager: DatabaseManager,
        repository: SQLiteConversationWindowRepository,
    ) -> None:
        """Test that an undecodable record raises CorruptRecordError."""
        async with db_manager.get_session() as session:
            session.add(
                ConversationWindowModel(
                    channel_id="C123",
                    window_number=1,
                    summary="broken",
                    files_mentioned="{not json",
                    last_message_id="1",
                    last_message_timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
                )
            )
            await session.commit()

        with pytest.raises(CorruptRecordError):
            await repository.latest_by_channel("C123")

import pytest

from src.adapter.repositories.membership_repository import MembershipRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork


@pytest.mark.asyncio
async def test_enter_binds_repositories_to_session(mock_session):
    async with SqlAlchemyUnitOfWork(mock_session) as uow:
        assert isinstance(uow.memberships, MembershipRepository)
        assert uow.memberships.session is mock_session


@pytest.mark.asyncio
async def test_commit_delegates_to_session(mock_session):
    async with SqlAlchemyUnitOfWork(mock_session) as uow:
        await uow.commit()

    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_exit_rolls_back(mock_session):
    with pytest.raises(RuntimeError):
        async with SqlAlchemyUnitOfWork(mock_session):
            raise RuntimeError("boom")

    mock_session.rollback.assert_awaited_once()

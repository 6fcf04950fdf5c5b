import pytest
from unittest.mock import AsyncMock, MagicMock


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    # Must return False to not suppress exceptions raised inside the savepoint
    session.begin_nested.return_value.__aexit__ = AsyncMock(return_value=False)
    return session

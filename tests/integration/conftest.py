import pytest


@pytest.fixture(autouse=True)
async def _database(db):
    yield db

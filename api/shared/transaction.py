"""Transaction scope shared by the feature services.

Kept apart from ``api.shared.db`` so services can be imported while the
DI container module is still loading.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_OWNER_KEY = "transaction_scope_open"


@asynccontextmanager
async def transaction(
    session: AsyncSession, *, read_only: bool = False
) -> AsyncIterator[AsyncSession]:
    """Run the block in a transaction, joining an enclosing ``transaction()``.

    The outermost block commits on success and rolls back on any exception;
    nested blocks leave both to it. Every query on the session must run
    inside a block: a transaction autobegun by a bare query would never be
    committed here, so finding one open is an error.
    """
    if session.info.get(_OWNER_KEY):
        yield session
        return

    if session.in_transaction():
        raise RuntimeError(
            "Session already has a transaction opened outside transaction(); "
            "run every query inside a transaction() block"
        )

    session.info[_OWNER_KEY] = True
    try:
        async with session.begin():
            if read_only and session.get_bind().dialect.name == "postgresql":
                await session.execute(text("SET TRANSACTION READ ONLY"))
            yield session
    finally:
        session.info.pop(_OWNER_KEY, None)

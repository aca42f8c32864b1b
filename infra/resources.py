"""Infrastructure resources: database pool and the OpenAI client.

This module is part of the infra layer and must not import from application features.
"""
from typing import Optional

from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from api.shared.exceptions import ConfigurationError
from core.settings import PLACEHOLDER_API_KEY


class DatabaseResource:
    """Database resource for dependency injection."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 0,
        echo: bool = False,
    ):
        self.database_url = str(database_url)
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.echo = echo
        self.engine = None
        self.session_factory = None

    async def init(self):
        """Initialize database connection pool."""
        engine_kwargs = {"echo": self.echo, "pool_pre_ping": True}
        if not self.database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_recycle=3600,
            )
        self.engine = create_async_engine(self.database_url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        return self

    def get_session(self) -> AsyncSession:
        """Get database session (synchronous accessor)."""
        if self.session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self.session_factory()

    async def shutdown(self):
        """Shutdown database connection."""
        if self.engine:
            await self.engine.dispose()


class OpenAIResource:
    """Shared AsyncOpenAI client; owns its own HTTP connection pool."""

    def __init__(
        self,
        api_key: str,
        timeout: float,
        max_retries: int = 2,
        base_url: Optional[str] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_url = base_url
        self.client: Optional[AsyncOpenAI] = None

    async def init(self):
        """Validate the key and build the client. Fails startup on a bad key."""
        key = (self.api_key or "").strip()
        if not key or key == PLACEHOLDER_API_KEY:
            raise ConfigurationError(
                "OpenAI API key is not configured. Set OPENAI_API_KEY environment variable."
            )
        self.client = AsyncOpenAI(
            api_key=key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=self.max_retries,
        )
        return self

    def get_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise RuntimeError("OpenAI client not initialized. Call init() first.")
        return self.client

    async def shutdown(self):
        if self.client is not None:
            await self.client.close()
            self.client = None

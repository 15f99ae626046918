"""Lazily connected Temporal client shared by the API and the worker."""

import asyncio

from loguru import logger
from temporalio.client import Client, TLSConfig
from temporalio.contrib.pydantic import pydantic_data_converter

from src.catalog.runtime.config.config_data import TemporalConfig
from src.catalog.runtime.context import get_config


class TemporalClientService:
    """Shared Temporal client connection.

    The connection is opened on first use so application startup does not
    block on the Temporal server. Payloads use the pydantic data converter, so
    ``PendingMedia`` and ``IngestionResult`` cross the boundary as JSON.

    Example:
        client = await temporal_service.get_client()
        handle = await ProcessProductMediaWorkflow.start_workflow(client, job, id=ticket)
    """

    def __init__(
        self,
        temporal_config: TemporalConfig | None = None,
        max_retry_attempts: int = 3,
        retry_delay_seconds: float = 1.0,
    ) -> None:
        self._config = temporal_config or get_config().temporal
        self._max_retry_attempts = max_retry_attempts
        self._retry_delay_seconds = retry_delay_seconds
        self._client: Client | None = None
        self._connect_lock = asyncio.Lock()

    @property
    def is_enabled(self) -> bool:
        return self._config.enabled

    @property
    def namespace(self) -> str:
        return self._config.namespace

    @property
    def task_queue(self) -> str:
        return self._config.media_queue

    @property
    def url(self) -> str:
        return self._config.url

    async def get_client(self) -> Client:
        """Return the connected client, connecting on first call.

        Raises:
            RuntimeError: Temporal is disabled in configuration.
            Exception: The last connection error once all attempts failed.
        """
        if not self._config.enabled:
            raise RuntimeError("Temporal service is disabled in configuration")

        async with self._connect_lock:
            if self._client is None:
                self._client = await self._connect()
        return self._client

    async def _connect(self) -> Client:
        tls: TLSConfig | bool = TLSConfig() if self._config.tls else False
        last_error: Exception | None = None

        for attempt in range(1, self._max_retry_attempts + 1):
            logger.info(
                "Connecting to Temporal",
                url=self._config.url,
                namespace=self._config.namespace,
                attempt=attempt,
            )
            try:
                client = await Client.connect(
                    self._config.url,
                    namespace=self._config.namespace,
                    tls=tls,
                    data_converter=pydantic_data_converter,
                )
            except Exception as e:
                last_error = e
                logger.warning(
                    "Failed to connect to Temporal",
                    error_type=type(e).__name__,
                    error=str(e),
                    attempt=attempt,
                    max_attempts=self._max_retry_attempts,
                )
                if attempt < self._max_retry_attempts:
                    await asyncio.sleep(self._retry_delay_seconds * attempt)
                continue

            logger.info("Connected to Temporal", namespace=self._config.namespace)
            return client

        logger.error(
            "Giving up on Temporal after {} attempts", self._max_retry_attempts, url=self._config.url
        )
        raise last_error or RuntimeError("Failed to connect to Temporal")

    async def health_check(self) -> bool:
        """Return True if the Temporal frontend reports itself healthy."""
        if not self._config.enabled:
            return False
        try:
            client = await self.get_client()
            return await client.service_client.check_health()
        except Exception as e:
            logger.error("Temporal health check failed", error_type=type(e).__name__, error=str(e))
            return False

    async def close(self) -> None:
        """Drop the client; the SDK closes the connection when it is released."""
        if self._client is not None:
            logger.info("Releasing Temporal client")
            self._client = None

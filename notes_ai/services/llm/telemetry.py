"""Generation Telemetry

Fire-and-forget recording of generation outcomes.

TelemetryLogger.log() schedules a detached asyncio task per record and
returns immediately. Sink failures are caught inside the task, logged
and counted; they never reach the generation caller.
"""

import asyncio
from typing import Any, Dict, Optional, Protocol, Set

import aiohttp
import structlog

from notes_ai.models.llm import TelemetryRecord
from notes_ai.observability.metrics import TELEMETRY_WRITE_FAILURES

logger = structlog.get_logger()


class TelemetrySink(Protocol):
    """Persistence target for telemetry rows."""

    async def insert(self, row: Dict[str, Any]) -> None:
        ...  # pragma: no cover - protocol


class TelemetryLogger:
    """Detached writer of telemetry records.

    Holds references to in-flight write tasks so they are not garbage
    collected mid-write; ``drain()`` awaits them.
    """

    def __init__(self, sink: Optional[TelemetrySink] = None):
        """Initialize telemetry logger.

        Args:
            sink: Persistence sink; when None, logging is a no-op
        """
        self.sink = sink
        self._pending: Set["asyncio.Task[None]"] = set()

    @property
    def pending_count(self) -> int:
        """Number of writes still in flight."""
        return len(self._pending)

    def log(self, record: TelemetryRecord) -> None:
        """Schedule one telemetry write without awaiting it.

        Args:
            record: Outcome of a generation call
        """
        if self.sink is None:
            return

        task = asyncio.get_running_loop().create_task(self._write(self.sink, record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, sink: TelemetrySink, record: TelemetryRecord) -> None:
        try:
            await sink.insert(record.to_row())
        except Exception as e:
            TELEMETRY_WRITE_FAILURES.inc()
            logger.error(
                "telemetry_write_failed",
                error=str(e),
                error_type=type(e).__name__,
                model_name=record.model_name,
                status=record.status.value,
            )

    async def drain(self) -> None:
        """Wait for all in-flight telemetry writes to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


class SupabaseTelemetrySink:
    """Inserts telemetry rows into a Supabase table via PostgREST."""

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        table: str = "llm_generations",
        timeout_seconds: float = 10.0,
    ):
        """Initialize Supabase sink.

        Args:
            supabase_url: Project URL (https://<ref>.supabase.co)
            supabase_key: API key used for both apikey and bearer headers
            table: Target table name
            timeout_seconds: Timeout for each insert
        """
        self.endpoint = f"{supabase_url.rstrip('/')}/rest/v1/{table}"
        self._key = supabase_key
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def insert(self, row: Dict[str, Any]) -> None:
        """Insert one row.

        Raises:
            RuntimeError: If the insert is rejected
            aiohttp.ClientError: On connection failure
        """
        session = await self._get_session()
        headers = {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }
        async with session.post(self.endpoint, json=row, headers=headers) as response:
            if response.status >= 300:
                detail = await response.text()
                raise RuntimeError(
                    f"Telemetry insert failed with status {response.status}: "
                    f"{detail[:200]}"
                )

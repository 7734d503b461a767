"""In-memory table registry with signed table ids."""

import asyncio
import logging
from datetime import datetime, timedelta
from random import Random
from uuid import uuid4

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from blackjack.game import (
    PacingDelays,
    RoundEngine,
    TableConfig,
    TableSnapshot,
    TurnOrchestrator,
    no_pacing,
    sleep_pacer,
)
from config import config

logger = logging.getLogger(__name__)


class SessionSigner:
    """Sign and verify table ids using itsdangerous."""

    def __init__(self, secret_key: str | None = None) -> None:
        """Initialize the signer with a secret key."""
        self._secret_key = secret_key or config.security.secret_key
        self._serializer = URLSafeTimedSerializer(self._secret_key)

    def sign(self, table_id: str) -> str:
        """Create a signed token from a table id."""
        return self._serializer.dumps(table_id)

    def unsign(self, token: str, max_age: int | None = None) -> str | None:
        """
        Verify and extract the table id from a signed token.

        Args:
            token: The signed token to verify
            max_age: Maximum age in seconds (defaults to table_ttl)

        Returns:
            The table id if valid, None otherwise
        """
        max_age = max_age or config.table_ttl
        try:
            return self._serializer.loads(token, max_age=max_age)
        except (BadSignature, SignatureExpired):
            return None


# Global signer instance
_session_signer: SessionSigner | None = None


def get_session_signer() -> SessionSigner:
    """Get or create the session signer."""
    global _session_signer
    if _session_signer is None:
        _session_signer = SessionSigner()
    return _session_signer


def pacing_delays() -> PacingDelays:
    """Build the orchestrator delays from configuration."""
    pacing = config.pacing
    return PacingDelays(
        deal_ms=pacing.deal_ms,
        ai_think_ms=pacing.ai_think_ms,
        dealer_flip_ms=pacing.dealer_flip_ms,
        dealer_hit_ms=pacing.dealer_hit_ms,
        turn_end_ms=pacing.turn_end_ms,
        settle_ms=pacing.settle_ms,
    )


class TableSession:
    """A live table: engine, orchestrator and snapshot subscribers."""

    def __init__(
        self,
        table_id: str,
        table_config: TableConfig,
        rng: Random | None = None,
        ttl: int | None = None,
    ) -> None:
        self.table_id = table_id
        self.engine = RoundEngine(table_config, rng=rng)
        self.orchestrator = TurnOrchestrator(
            self.engine,
            rng=rng,
            render=self.publish,
            pacer=sleep_pacer if config.pacing.enabled else no_pacing,
            delays=pacing_delays(),
        )
        self._ttl = ttl or config.table_ttl
        self._subscribers: list[asyncio.Queue[TableSnapshot]] = []
        self.expires_at = datetime.now()
        self.touch()

    def touch(self) -> None:
        """Push the expiry forward after activity."""
        self.expires_at = datetime.now() + timedelta(seconds=self._ttl)

    @property
    def is_expired(self) -> bool:
        return self.expires_at < datetime.now()

    def subscribe(self) -> asyncio.Queue[TableSnapshot]:
        """Register a queue that receives a snapshot after every render."""
        queue: asyncio.Queue[TableSnapshot] = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[TableSnapshot]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self) -> None:
        """Render callback: hand the current snapshot to every subscriber."""
        if not self._subscribers:
            return
        snapshot = self.engine.snapshot()
        for queue in self._subscribers:
            queue.put_nowait(snapshot)

    async def close(self) -> None:
        """Cancel the running round and drop subscribers."""
        await self.orchestrator.quit()
        self._subscribers.clear()


class TableRegistry:
    """In-memory table store keyed by signed table id."""

    def __init__(self, signer: SessionSigner | None = None) -> None:
        self._signer = signer
        self._tables: dict[str, TableSession] = {}

    @property
    def signer(self) -> SessionSigner:
        return self._signer or get_session_signer()

    def create_table_id(self) -> str:
        """Create a new signed table id."""
        return self.signer.sign(str(uuid4()))

    async def create(self, table_config: TableConfig, rng: Random | None = None) -> TableSession:
        """Open a new table, closing any that have gone idle."""
        await self.cleanup_expired()
        table_id = self.create_table_id()
        session = TableSession(table_id, table_config, rng=rng)
        self._tables[table_id] = session
        logger.info(
            "Table opened: %d seats, %s mode, %d rounds",
            len(table_config.seat_configs),
            table_config.game_mode.value,
            table_config.rounds_target,
        )
        return session

    async def get(self, table_id: str) -> TableSession | None:
        """Look up a live table. Forged, unknown or expired ids give None."""
        if self.signer.unsign(table_id) is None:
            return None
        session = self._tables.get(table_id)
        if session is None:
            return None
        if session.is_expired:
            await self.delete(table_id)
            return None
        session.touch()
        return session

    async def delete(self, table_id: str) -> None:
        """Close and forget a table."""
        session = self._tables.pop(table_id, None)
        if session is not None:
            await session.close()

    async def cleanup_expired(self) -> int:
        """Close every expired table."""
        expired = [tid for tid, s in self._tables.items() if s.is_expired]
        for table_id in expired:
            await self.delete(table_id)
        if expired:
            logger.info("Closed %d idle tables", len(expired))
        return len(expired)

    async def sweep(self, interval: float) -> None:
        """Close expired tables every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            await self.cleanup_expired()

    def __len__(self) -> int:
        return len(self._tables)


# Global registry instance
_table_registry: TableRegistry | None = None


def get_table_registry() -> TableRegistry:
    """Get or create the table registry."""
    global _table_registry
    if _table_registry is None:
        _table_registry = TableRegistry()
    return _table_registry

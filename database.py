"""
Launch Journal
SQLite record of launches and submitted transactions using aiosqlite
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional
import aiosqlite

logger = logging.getLogger(__name__)


@dataclass
class LaunchRecord:
    """Launch data model"""
    id: Optional[int]
    token_name: str
    token_symbol: str
    strategy: str
    stage: str
    token_address: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = None
    updated_at: datetime = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)
        if self.updated_at is None:
            self.updated_at = self.created_at


@dataclass
class TransactionRecord:
    """Submitted transaction data model"""
    launch_id: int
    tx_hash: str
    account: str
    kind: str  # 'create', 'buy'
    created_at: datetime = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)


class LaunchJournal:
    """Async SQLite journal of launch attempts"""

    def __init__(self, db_path: str = "launches.db"):
        self.db_path = db_path
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize database tables"""
        async with self._lock:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("""
                    CREATE TABLE IF NOT EXISTS launches (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        token_name TEXT,
                        token_symbol TEXT,
                        strategy TEXT,
                        stage TEXT,
                        token_address TEXT,
                        error TEXT,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                await db.execute("""
                    CREATE TABLE IF NOT EXISTS transactions (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        launch_id INTEGER,
                        tx_hash TEXT UNIQUE,
                        account TEXT,
                        kind TEXT,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (launch_id) REFERENCES launches (id)
                    )
                """)

                await db.execute("CREATE INDEX IF NOT EXISTS idx_transactions_launch_id ON transactions(launch_id)")

                await db.commit()
                logger.info("Launch journal initialized")

    async def record_launch(self, launch: LaunchRecord) -> int:
        """Insert a launch and return its ID"""
        async with self._lock:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute("""
                    INSERT INTO launches
                    (token_name, token_symbol, strategy, stage, token_address, error, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    launch.token_name, launch.token_symbol, launch.strategy, launch.stage,
                    launch.token_address, launch.error,
                    launch.created_at.isoformat(), launch.updated_at.isoformat()
                ))
                await db.commit()
                return cursor.lastrowid

    async def update_launch(self, launch_id: int, stage: str, token_address: Optional[str] = None,
                            error: Optional[str] = None) -> None:
        """Update launch outcome"""
        async with self._lock:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("""
                    UPDATE launches
                    SET stage = ?, token_address = COALESCE(?, token_address), error = ?, updated_at = ?
                    WHERE id = ?
                """, (stage, token_address, error, datetime.now(timezone.utc).isoformat(), launch_id))
                await db.commit()

    async def record_transaction(self, tx: TransactionRecord) -> None:
        """Insert a submitted transaction, ignoring duplicates"""
        async with self._lock:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("""
                    INSERT OR IGNORE INTO transactions (launch_id, tx_hash, account, kind, created_at)
                    VALUES (?, ?, ?, ?, ?)
                """, (tx.launch_id, tx.tx_hash, tx.account, tx.kind, tx.created_at.isoformat()))
                await db.commit()

    async def get_launch(self, launch_id: int) -> Optional[LaunchRecord]:
        """Get launch by ID"""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM launches WHERE id = ?", (launch_id,))
            row = await cursor.fetchone()

            if row:
                return LaunchRecord(
                    id=row['id'],
                    token_name=row['token_name'],
                    token_symbol=row['token_symbol'],
                    strategy=row['strategy'],
                    stage=row['stage'],
                    token_address=row['token_address'],
                    error=row['error'],
                    created_at=datetime.fromisoformat(row['created_at']),
                    updated_at=datetime.fromisoformat(row['updated_at'])
                )
            return None

    async def get_transactions(self, launch_id: int) -> List[TransactionRecord]:
        """Get transactions submitted for a launch"""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM transactions WHERE launch_id = ? ORDER BY id",
                (launch_id,)
            )
            rows = await cursor.fetchall()

            return [
                TransactionRecord(
                    launch_id=row['launch_id'],
                    tx_hash=row['tx_hash'],
                    account=row['account'],
                    kind=row['kind'],
                    created_at=datetime.fromisoformat(row['created_at'])
                )
                for row in rows
            ]

"""
랭크 카드 XP 데이터를 관리하는 모듈입니다.
SQLite DB를 통해 유저별 누적 XP를 저장/조회하고 순위를 계산합니다.
"""
import aiosqlite
import asyncio
import logging
import os
from datetime import datetime
from typing import Optional
import pytz

KST = pytz.timezone("Asia/Seoul")
db_path = "data/rank_card.db"


class XPDataManager:
    """XP 데이터 매니저 (싱글턴)"""
    _instance = None

    def __new__(cls, db_path: str = db_path):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.db_path = db_path
            cls._instance._db = None
            cls._instance._initialized = False
            cls._instance._init_lock = asyncio.Lock()
        return cls._instance

    def __init__(self, db_path: str = db_path):
        self.logger = logging.getLogger(__name__)

    async def ensure_initialized(self):
        """데이터베이스가 초기화되었는지 확인합니다."""
        if not self._initialized:
            async with self._init_lock:
                if not self._initialized:
                    await self.initialize()

    async def initialize(self):
        """데이터베이스 연결을 초기화하고 테이블을 생성합니다."""
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        if self._db is None:
            self._db = await aiosqlite.connect(self.db_path)
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS user_xp (
                    user_id INTEGER PRIMARY KEY,
                    total_xp INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL
                )
            """)
            await self._db.execute("""
                CREATE INDEX IF NOT EXISTS idx_user_xp_total
                ON user_xp (total_xp DESC)
            """)
            await self._db.commit()
            self._initialized = True

    async def close(self):
        """데이터베이스 연결을 닫습니다."""
        if self._db:
            await self._db.close()
            self._db = None
            self._initialized = False

    async def add_xp(self, user_id: int, amount: int) -> int:
        """XP를 지급하고 갱신된 누적 XP를 반환합니다."""
        if amount < 0:
            raise ValueError(f"지급 XP는 음수일 수 없습니다: {amount}")

        await self.ensure_initialized()
        now = datetime.now(KST).isoformat()
        await self._db.execute("""
            INSERT INTO user_xp (user_id, total_xp, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(user_id)
            DO UPDATE SET
                total_xp = total_xp + excluded.total_xp,
                updated_at = excluded.updated_at
        """, (user_id, amount, now))
        await self._db.commit()
        self.logger.debug(f"Added {amount} XP to user {user_id}")
        return await self.get_total_xp(user_id)

    async def get_total_xp(self, user_id: int) -> int:
        """유저의 누적 XP를 반환합니다. 기록이 없으면 0입니다."""
        await self.ensure_initialized()
        async with self._db.execute(
            "SELECT total_xp FROM user_xp WHERE user_id = ?", (user_id,)
        ) as cursor:
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def get_rank(self, user_id: int) -> Optional[int]:
        """누적 XP 내림차순 순위(1부터)를 반환합니다. 기록이 없으면 None입니다."""
        await self.ensure_initialized()
        async with self._db.execute("""
            SELECT 1 + (
                SELECT COUNT(*) FROM user_xp AS other
                WHERE other.total_xp > me.total_xp
            )
            FROM user_xp AS me
            WHERE me.user_id = ?
        """, (user_id,)) as cursor:
            row = await cursor.fetchone()
            return row[0] if row else None


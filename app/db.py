import json
import time
import aiosqlite
from pathlib import Path
from typing import Any, Dict, List, Optional

from .settings import settings

DB_FILE = settings.DB_FILE

INIT_SQL = '''
CREATE TABLE IF NOT EXISTS payment_profiles (
    payment_profile_id INTEGER PRIMARY KEY AUTOINCREMENT,
    provider_id TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    options TEXT NOT NULL                   -- JSON: {api_key, api_secret}
);
CREATE TABLE IF NOT EXISTS purchase_requests (
    request_key TEXT PRIMARY KEY,           -- mrc_order_id у BaoKim
    user_id INTEGER,
    username TEXT,
    email TEXT,
    payment_profile_id INTEGER NOT NULL,
    purchasable_type_id TEXT NOT NULL DEFAULT '',
    cost_amount TEXT NOT NULL,              -- Decimal строкой
    cost_currency TEXT NOT NULL DEFAULT 'VND',
    description TEXT NOT NULL DEFAULT '',
    return_url TEXT,
    cancel_url TEXT,
    extra_data TEXT NOT NULL DEFAULT '{}',
    status TEXT NOT NULL DEFAULT 'pending'
);
CREATE TABLE IF NOT EXISTS provider_logs (
    provider_log_id INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_request_key TEXT,
    provider_id TEXT NOT NULL,
    transaction_id TEXT NOT NULL DEFAULT '',
    subscriber_id TEXT NOT NULL DEFAULT '',
    log_type TEXT NOT NULL,
    log_message TEXT NOT NULL DEFAULT '',
    log_details TEXT NOT NULL DEFAULT '{}',
    log_date INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS ix_provider_logs_request_key ON provider_logs(purchase_request_key);
'''

PURCHASE_REQUEST_COLUMNS = (
    "request_key", "user_id", "username", "email", "payment_profile_id", "purchasable_type_id",
    "cost_amount", "cost_currency", "description", "return_url", "cancel_url", "extra_data", "status",
)


async def init_db():
    Path(DB_FILE).parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(DB_FILE) as db:
        # Выполним все стейтменты по одному
        for stmt in INIT_SQL.strip().split(';'):
            s = stmt.strip()
            if s:
                await db.execute(s + ';')
        await db.commit()


# ---- payment profiles ----

async def create_payment_profile(provider_id: str, options: Dict[str, Any], title: str = "") -> int:
    async with aiosqlite.connect(DB_FILE) as db:
        cur = await db.execute(
            "INSERT INTO payment_profiles (provider_id, title, options) VALUES (?, ?, ?)",
            (provider_id, title, json.dumps(options))
        )
        await db.commit()
        return cur.lastrowid


async def get_payment_profile(payment_profile_id: int) -> Optional[Dict[str, Any]]:
    async with aiosqlite.connect(DB_FILE) as db:
        async with db.execute(
            "SELECT payment_profile_id, provider_id, title, options FROM payment_profiles WHERE payment_profile_id = ?",
            (payment_profile_id,)
        ) as cur:
            row = await cur.fetchone()
    if not row:
        return None
    return {
        "payment_profile_id": row[0],
        "provider_id": row[1],
        "title": row[2],
        "options": json.loads(row[3] or "{}"),
    }


# ---- purchase requests ----

async def create_purchase_request(
    request_key: str,
    payment_profile_id: int,
    cost_amount: str,
    cost_currency: str = "VND",
    description: str = "",
    purchasable_type_id: str = "",
    user_id: int | None = None,
    username: str | None = None,
    email: str | None = None,
    return_url: str | None = None,
    cancel_url: str | None = None,
    extra_data: Dict[str, Any] | None = None,
):
    async with aiosqlite.connect(DB_FILE) as db:
        await db.execute(
            """
            INSERT INTO purchase_requests (
              request_key, user_id, username, email, payment_profile_id, purchasable_type_id,
              cost_amount, cost_currency, description, return_url, cancel_url, extra_data
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (request_key, user_id, username, email, payment_profile_id, purchasable_type_id,
             str(cost_amount), cost_currency, description, return_url, cancel_url,
             json.dumps(extra_data or {}))
        )
        await db.commit()


async def get_purchase_request(request_key: str) -> Optional[Dict[str, Any]]:
    async with aiosqlite.connect(DB_FILE) as db:
        async with db.execute(
            f"SELECT {', '.join(PURCHASE_REQUEST_COLUMNS)} FROM purchase_requests WHERE request_key = ?",
            (request_key,)
        ) as cur:
            row = await cur.fetchone()
    if not row:
        return None
    data = dict(zip(PURCHASE_REQUEST_COLUMNS, row))
    data["extra_data"] = json.loads(data["extra_data"] or "{}")
    return data


async def complete_purchase_request(request_key: str) -> bool:
    """
    Переводит запрос pending -> completed.
    Возвращает False, если запрос уже был завершён (повторный колбэк).
    """
    async with aiosqlite.connect(DB_FILE) as db:
        cur = await db.execute(
            "UPDATE purchase_requests SET status='completed' WHERE request_key=? AND status='pending'",
            (request_key,)
        )
        await db.commit()
        return cur.rowcount == 1


# ---- provider logs ----

async def insert_provider_log(
    provider_id: str,
    log_type: str,
    log_message: str,
    log_details: Dict[str, Any],
    purchase_request_key: str | None = None,
    transaction_id: str | None = None,
    subscriber_id: str | None = None,
) -> int:
    async with aiosqlite.connect(DB_FILE) as db:
        cur = await db.execute(
            """
            INSERT INTO provider_logs (
              purchase_request_key, provider_id, transaction_id, subscriber_id,
              log_type, log_message, log_details, log_date
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (purchase_request_key, provider_id, transaction_id or "", subscriber_id or "",
             log_type, log_message or "", json.dumps(log_details, default=str, ensure_ascii=False),
             int(time.time()))
        )
        await db.commit()
        return cur.lastrowid


async def list_provider_logs(purchase_request_key: str) -> List[Dict[str, Any]]:
    async with aiosqlite.connect(DB_FILE) as db:
        async with db.execute(
            """
            SELECT provider_log_id, purchase_request_key, provider_id, transaction_id, subscriber_id,
                   log_type, log_message, log_details, log_date
            FROM provider_logs WHERE purchase_request_key = ? ORDER BY provider_log_id
            """,
            (purchase_request_key,)
        ) as cur:
            rows = await cur.fetchall()
    return [
        {
            "provider_log_id": r[0],
            "purchase_request_key": r[1],
            "provider_id": r[2],
            "transaction_id": r[3],
            "subscriber_id": r[4],
            "log_type": r[5],
            "log_message": r[6],
            "log_details": json.loads(r[7] or "{}"),
            "log_date": r[8],
        }
        for r in rows
    ]

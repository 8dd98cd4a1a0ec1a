"""
Call Logger Core Implementation

Dual-layer logging (JSON + SQLite) for the explorer and LLM calls a
ChainSage run makes. Without a log directory it keeps counters and the
in-memory entry list only.

The logger captures:
- AI calls (operation, provider, model, tokens, timing)
- Explorer fetches (network, identifier, cache hit/miss, timing)
- Degraded parses (reply could not be read as JSON)
- Errors
"""

import itertools
import json
import logging
import sqlite3
import threading
from collections import deque
from pathlib import Path
from datetime import datetime
from typing import Deque, Dict, Any, Optional, List

from chainsage.utils.logging.types import LogCategory, LogEntry

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "info", log_file: Optional[str] = None) -> None:
    """install handlers on the package logger; safe to call more than once"""
    root = logging.getLogger("chainsage")
    numeric = getattr(logging, level.upper() if level.lower() != "warn" else "WARNING", logging.INFO)
    root.setLevel(numeric)

    for handler in list(root.handlers):
        if getattr(handler, "_chainsage", False):
            root.removeHandler(handler)
            handler.close()

    stream = logging.StreamHandler()
    stream.setFormatter(logging.Formatter(LOG_FORMAT))
    stream._chainsage = True
    root.addHandler(stream)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler._chainsage = True
        root.addHandler(file_handler)


class CallLogger:
    """
    Dual-layer call log

    Usage:
        call_log = CallLogger(log_dir="data/logs")
        call_log.log_ai_call("analyze_contract", "0xabc...", provider="openai",
                             model="gpt-4", prompt="...", response="...")
        call_log.log_fetch("get_contract", "ethereum", "0xabc...", cache_hit=False)
    """

    def __init__(self, log_dir: Optional[str] = None, to_sqlite: bool = True, ai_call_limit: int = 1000,
                 entry_limit: int = 1000):
        self.log_dir = Path(log_dir) if log_dir else None
        self.raw_dir = self.log_dir / "raw" if self.log_dir else None
        self.db_path = self.log_dir / "calls.db" if self.log_dir else None
        self.to_sqlite = bool(self.log_dir) and to_sqlite
        self.ai_call_limit = ai_call_limit

        self._count_lock = threading.Lock()
        self._ai_call_count = 0
        self._fetch_count = 0
        self._degraded_count = 0
        self._seq = itertools.count(1)
        # in-memory history keeps only the newest entries
        self.entries: Deque[LogEntry] = deque(maxlen=entry_limit)

        if self.raw_dir:
            for category in LogCategory:
                (self.raw_dir / category.value).mkdir(parents=True, exist_ok=True)

        if self.to_sqlite:
            self._init_database()

    @classmethod
    def from_config(cls, cfg) -> "CallLogger":
        return cls(log_dir=cfg.LOG_DIR)

    def _init_database(self):
        """Initialize SQLite database with tables"""
        with sqlite3.connect(str(self.db_path)) as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS ai_calls (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    target TEXT,
                    provider TEXT,
                    model TEXT,
                    prompt_tokens INTEGER,
                    output_tokens INTEGER,
                    cost REAL,
                    duration_seconds REAL,
                    success INTEGER NOT NULL,
                    metadata TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS fetches (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    network TEXT NOT NULL,
                    identifier TEXT NOT NULL,
                    cache_hit INTEGER NOT NULL,
                    duration_seconds REAL,
                    error TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS errors (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    component TEXT NOT NULL,
                    target TEXT,
                    error_type TEXT NOT NULL,
                    error_message TEXT NOT NULL,
                    context TEXT
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_ai_calls_operation ON ai_calls(operation)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_fetches_network ON fetches(network)")

            conn.commit()

    def _now(self) -> str:
        """Get current timestamp in ISO format"""
        return datetime.now().isoformat()

    def _record(self, entry: LogEntry, filename_hint: str) -> None:
        with self._count_lock:
            self.entries.append(entry)
            seq = next(self._seq)
        if not self.raw_dir:
            return
        safe_hint = "".join(c if c.isalnum() or c in "-_" else "_" for c in filename_hint)[:80]
        filename = f"{datetime.now().strftime('%Y-%m-%d')}_{safe_hint}_{seq:05d}.json"
        filepath = self.raw_dir / LogCategory(entry.category).value / filename
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(entry.to_dict(), f, indent=2, default=str)

    def _execute(self, sql: str, params: tuple) -> None:
        if not self.to_sqlite:
            return
        with sqlite3.connect(str(self.db_path)) as conn:
            conn.execute(sql, params)
            conn.commit()

    def log_ai_call(
        self,
        operation: str,
        target: Optional[str],
        provider: str,
        model: str,
        prompt: str,
        response: str,
        prompt_tokens: int = 0,
        output_tokens: int = 0,
        cost: float = 0.0,
        duration_seconds: float = 0.0,
        success: bool = True,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """
        Log an LLM call

        Saves to:
        - JSON: <log_dir>/raw/ai_calls/YYYY-MM-DD_<operation>_<seq>.json
        - SQLite: ai_calls table
        """
        with self._count_lock:
            if self._ai_call_count >= self.ai_call_limit:
                return
            self._ai_call_count += 1

        timestamp = self._now()
        entry = LogEntry(
            timestamp=timestamp,
            category=LogCategory.AI_CALL.value,
            event_type="ai_call" if success else "ai_call_failed",
            operation=operation,
            target=target,
            data={
                "provider": provider,
                "model": model,
                "prompt": prompt,
                "response": response,
                "tokens": {"prompt": prompt_tokens, "output": output_tokens},
                "cost": cost,
                "duration_seconds": duration_seconds,
            },
            metadata=metadata or {},
        )
        self._record(entry, operation)
        self._execute(
            """
            INSERT INTO ai_calls
            (timestamp, operation, target, provider, model, prompt_tokens, output_tokens,
             cost, duration_seconds, success, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                timestamp, operation, target, provider, model, prompt_tokens, output_tokens,
                cost, duration_seconds, int(success), json.dumps(metadata or {}, default=str)
            ),
        )

    def log_fetch(
        self,
        operation: str,
        network: str,
        identifier: str,
        cache_hit: bool,
        duration_seconds: float = 0.0,
        error: Optional[str] = None,
    ):
        """Log an explorer lookup, hit or miss"""
        with self._count_lock:
            self._fetch_count += 1

        timestamp = self._now()
        entry = LogEntry(
            timestamp=timestamp,
            category=LogCategory.FETCH.value,
            event_type="cache_hit" if cache_hit else ("fetch_failed" if error else "fetch"),
            operation=operation,
            target=identifier,
            data={
                "network": network,
                "cache_hit": cache_hit,
                "duration_seconds": duration_seconds,
                "error": error,
            },
        )
        self._record(entry, f"{operation}_{network}")
        self._execute(
            """
            INSERT INTO fetches
            (timestamp, operation, network, identifier, cache_hit, duration_seconds, error)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (timestamp, operation, network, identifier, int(cache_hit), duration_seconds, error),
        )

    def log_parse_degraded(self, operation: str, target: Optional[str], raw_text: str):
        """Log a reply that fell back to the degraded record"""
        with self._count_lock:
            self._degraded_count += 1

        entry = LogEntry(
            timestamp=self._now(),
            category=LogCategory.PARSE.value,
            event_type="parse_degraded",
            operation=operation,
            target=target,
            data={"raw_length": len(raw_text or ""), "raw_preview": (raw_text or "")[:500]},
        )
        self._record(entry, operation)

    def log_error(
        self,
        component: str,
        target: Optional[str],
        error_type: str,
        error_message: str,
        context: Optional[Dict[str, Any]] = None
    ):
        """Structured error sink; the message is also sent to the stdlib logger"""
        timestamp = self._now()
        entry = LogEntry(
            timestamp=timestamp,
            category=LogCategory.ERROR.value,
            event_type=error_type,
            operation=component,
            target=target,
            data={"error_message": error_message, "context": context or {}},
        )
        self._record(entry, f"{component}_error")
        self._execute(
            """
            INSERT INTO errors
            (timestamp, component, target, error_type, error_message, context)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (timestamp, component, target, error_type, error_message, json.dumps(context or {}, default=str)),
        )
        logger.error("%s failed during %s: %s", component, error_type, error_message)

    def query_costs(self) -> List[Dict[str, Any]]:
        """Query LLM usage per operation from database"""
        if not self.to_sqlite:
            return []
        with sqlite3.connect(str(self.db_path)) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT operation, SUM(cost) as total_cost, COUNT(*) as num_calls,
                       SUM(prompt_tokens), SUM(output_tokens)
                FROM ai_calls
                GROUP BY operation
            """)
            results = [
                {
                    "operation": row[0],
                    "total_cost": row[1] or 0.0,
                    "num_calls": row[2],
                    "prompt_tokens": row[3] or 0,
                    "output_tokens": row[4] or 0,
                }
                for row in cursor.fetchall()
            ]

        return results

    def stats(self) -> Dict[str, int]:
        with self._count_lock:
            return {
                "ai_calls": self._ai_call_count,
                "fetches": self._fetch_count,
                "parse_degraded": self._degraded_count,
            }

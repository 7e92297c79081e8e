"""PostgreSQL connection pool for the companion service.

One pool per process (see `get_connection_manager`). Repositories borrow a
connection per query; writes go through `transaction()`, which commits
when the block finishes and rolls back if it raises.
"""
import json
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, Optional

import boto3
from psycopg2 import pool

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "bravecall"


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass(frozen=True)
class DatabaseConfig:
    """Where the companion's tables live and how large the pool may grow."""
    host: str
    port: int = 5432
    database: str = DEFAULT_DATABASE
    username: str = ""
    password: str = ""
    min_connections: int = 2
    max_connections: int = 10
    connect_timeout: int = 10
    ssl_mode: str = "require"

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Read DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD, DB_MIN_CONN,
        DB_MAX_CONN and DB_SSL_MODE."""
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=_env_int("DB_PORT", 5432),
            database=os.getenv("DB_NAME", DEFAULT_DATABASE),
            username=os.getenv("DB_USER", ""),
            password=os.getenv("DB_PASSWORD", ""),
            min_connections=_env_int("DB_MIN_CONN", 2),
            max_connections=_env_int("DB_MAX_CONN", 10),
            ssl_mode=os.getenv("DB_SSL_MODE", "require"),
        )

    @classmethod
    def from_secrets_manager(cls, secret_arn: str, region: str = "us-east-1") -> "DatabaseConfig":
        """Credentials from a Secrets Manager secret, pool sizing from env.

        The secret uses the RDS layout: host, port, dbname, username, password.
        """
        try:
            client = boto3.client("secretsmanager", region_name=region)
            secret = json.loads(client.get_secret_value(SecretId=secret_arn)["SecretString"])
        except Exception as e:
            logger.error(
                "SECRETS_MANAGER_LOAD_FAILED",
                extra={"error": str(e), "secret_arn": secret_arn}
            )
            raise

        base = cls.from_env()
        return replace(
            base,
            host=secret.get("host", base.host),
            port=int(secret.get("port", base.port)),
            database=secret.get("dbname", base.database),
            username=secret.get("username", ""),
            password=secret.get("password", ""),
        )

    def pool_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for psycopg2's ThreadedConnectionPool."""
        return {
            "minconn": self.min_connections,
            "maxconn": self.max_connections,
            "host": self.host,
            "port": self.port,
            "dbname": self.database,
            "user": self.username,
            "password": self.password,
            "connect_timeout": self.connect_timeout,
            "sslmode": self.ssl_mode,
        }


class ConnectionManager:
    """Owns the ThreadedConnectionPool shared by every repository.

    The pool is opened on first use, or eagerly by `initialize()` at
    application startup.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._pool: Optional[pool.ThreadedConnectionPool] = None

    @property
    def is_ready(self) -> bool:
        return self._pool is not None

    def initialize(self) -> None:
        if self._pool is not None:
            return

        try:
            self._pool = pool.ThreadedConnectionPool(**self.config.pool_kwargs())
        except Exception as e:
            logger.error(
                "CONNECTION_POOL_INIT_FAILED",
                extra={"host": self.config.host, "error": str(e)}
            )
            raise

        logger.info(
            "CONNECTION_POOL_INITIALIZED",
            extra={
                "host": self.config.host,
                "database": self.config.database,
                "max_connections": self.config.max_connections,
            }
        )

    @contextmanager
    def get_connection(self) -> Iterator[Any]:
        """Borrow a pooled connection; it goes back to the pool on exit."""
        self.initialize()
        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """Borrow a connection and commit its work, or roll back on error."""
        with self.get_connection() as conn:
            try:
                yield conn
            except Exception:
                conn.rollback()
                raise
            conn.commit()

    def health_check(self) -> Dict[str, Any]:
        """Database reachability for the /ready check."""
        if self._pool is None:
            return {"status": "not_initialized", "healthy": False}

        try:
            with self.get_connection() as conn, conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
        except Exception as e:
            logger.error("DATABASE_HEALTH_CHECK_FAILED", extra={"error": str(e)})
            return {"status": "error", "healthy": False, "error": str(e)}

        return {"status": "connected", "healthy": True}

    def close(self) -> None:
        if self._pool is None:
            return
        self._pool.closeall()
        self._pool = None
        logger.info("CONNECTION_POOL_CLOSED")


_connection_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """Process-wide manager; Secrets Manager when DB_SECRET_ARN is set."""
    global _connection_manager

    if _connection_manager is None:
        secret_arn = os.getenv("DB_SECRET_ARN")
        if secret_arn:
            config = DatabaseConfig.from_secrets_manager(
                secret_arn, region=os.getenv("AWS_REGION", "us-east-1")
            )
        else:
            config = DatabaseConfig.from_env()
        _connection_manager = ConnectionManager(config)

    return _connection_manager

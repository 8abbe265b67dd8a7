"""
Snowflake database connection management.

Provides a connection context manager for Snowflake and an in-memory mock
connection for local development and tests.

Most code never touches this module directly - it goes through
VideoRepository, which handles the translation between domain models and
database rows.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from .repositories.videos import SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(key_path: str) -> bytes:
    """
    Load an unencrypted PEM private key for key-pair authentication.

    The connector wants DER-encoded PKCS8 bytes, not a path.
    """
    from cryptography.hazmat.primitives import serialization

    with open(key_path, "rb") as key_file:
        private_key = serialization.load_pem_private_key(
            key_file.read(),
            password=None,
        )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide a Snowflake connection that is closed when the block exits.

    Uses key-pair auth when private_key_path is set, password auth otherwise.

    Usage:
        with get_snowflake_connection(config) as conn:
            repo = VideoRepository(conn)
    """
    try:
        import snowflake.connector
    except ImportError:
        raise ImportError(
            "snowflake-connector-python is required. "
            "Install with: pip install snowflake-connector-python"
        )

    connect_params = {
        "account": config.account,
        "user": config.user,
        "database": config.database,
        "schema": config.schema,
        "warehouse": config.warehouse,
        "role": config.role,
    }

    if config.private_key_path:
        logger.info("Using key-pair authentication for Snowflake")
        connect_params["private_key"] = _load_private_key(config.private_key_path)
    elif config.password:
        connect_params["password"] = config.password
    else:
        raise SnowflakeConnectionError(
            "Either password or private_key_path must be provided"
        )

    try:
        conn = snowflake.connector.connect(**connect_params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}") from e

    logger.debug(
        "Established Snowflake connection",
        extra={"account": config.account, "database": config.database}
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface to support the
    statements VideoRepository issues, by matching on the statement text.
    Rows are stored as tuples in VIDEO_COLUMNS order.
    """

    def __init__(self, storage: dict[str, tuple]) -> None:
        self._storage = storage
        self._results: list[tuple] = []
        self._rowcount: int = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> "MockSnowflakeCursor":
        logger.debug(
            "Mock cursor execute",
            extra={"query": " ".join(query.split())[:100], "params": params}
        )

        query_upper = " ".join(query.upper().split())
        self._results = []
        self._rowcount = 0

        if query_upper.startswith("INSERT INTO VIDEOS"):
            self._storage[str(params[0])] = tuple(params)
            self._rowcount = 1

        elif query_upper.startswith("UPDATE VIDEOS"):
            # SET title, description, thumbnail_url, video_url, updated_at WHERE video_id
            video_id = str(params[-1])
            row = self._storage.get(video_id)
            if row is not None:
                self._storage[video_id] = (
                    row[0], row[1], params[0], params[1], params[2], params[3], row[6], params[4],
                )
                self._rowcount = 1

        elif query_upper.startswith("DELETE FROM VIDEOS"):
            if self._storage.pop(str(params[0]), None) is not None:
                self._rowcount = 1

        elif query_upper.startswith("SELECT") and "FROM VIDEOS" in query_upper:
            if "WHERE VIDEO_ID" in query_upper:
                row = self._storage.get(str(params[0]))
                self._results = [row] if row is not None else []
            elif "WHERE USER_ID" in query_upper:
                rows = [r for r in self._storage.values() if r[1] == str(params[0])]
                self._results = sorted(rows, key=lambda r: r[6], reverse=True)

        elif query_upper.startswith("SELECT"):
            # Connectivity probes such as SELECT 1
            self._results = [(1,)]

        return self

    def fetchone(self) -> Optional[tuple]:
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list[tuple]:
        return list(self._results)

    def close(self) -> None:
        pass

    @property
    def rowcount(self) -> int:
        return self._rowcount


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores video rows in memory. Not suitable for production, but
    enables running the API and tests without a real database.
    """

    def __init__(self) -> None:
        self._videos: dict[str, tuple] = {}
        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        return MockSnowflakeCursor(self._videos)

    def commit(self) -> None:
        logger.debug("Mock connection commit")

    def rollback(self) -> None:
        logger.debug("Mock connection rollback")

    def close(self) -> None:
        logger.debug("Mock connection close")


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Create Snowflake connection based on configuration.

    Args:
        config: Snowflake configuration (required if not mock_mode)
        mock_mode: If True, yield a fresh in-memory connection

    Yields:
        SnowflakeConnection implementation (real or mock)
    """
    if mock_mode:
        conn = MockSnowflakeConnection()
        try:
            yield conn
        finally:
            conn.close()
        return

    if config is None:
        raise ValueError("config is required when not in mock mode")

    with get_snowflake_connection(config) as conn:
        yield conn

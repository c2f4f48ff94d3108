"""Async Cassandra connection using cassandra-asyncio-driver.

The cassandra-asyncio-driver ``Cluster`` yields sessions exposing
``session.aexecute()`` alongside the regular driver API. Connection setup is
synchronous; all queries issued by the engine are awaited.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from learnflow.assessments.models import ASSESSMENTS_TABLES_CQL
from learnflow.assignments.models import ASSIGNMENTS_TABLES_CQL
from learnflow.catalog.models import CATALOG_TABLES_CQL
from learnflow.config.settings import get_settings
from learnflow.enrollments.models import ENROLLMENTS_TABLES_CQL
from learnflow.progress.models import PROGRESS_TABLES_CQL


logger = structlog.get_logger(__name__)

# (name, CQL templates) in creation order
SCHEMA: list[tuple[str, list[str]]] = [
    ("catalog", CATALOG_TABLES_CQL),
    ("enrollments", ENROLLMENTS_TABLES_CQL),
    ("progress", PROGRESS_TABLES_CQL),
    ("assessments", ASSESSMENTS_TABLES_CQL),
    ("assignments", ASSIGNMENTS_TABLES_CQL),
]


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls):
        """Connect to the cluster, reusing the open session if there is one.

        Raises:
            ConnectionError: If the cluster cannot be reached.
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
        )
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


async def init_async_keyspace(session, keyspace: str) -> None:
    """Create the keyspace if it does not exist."""
    settings = get_settings()

    if settings.is_production:
        replication = (
            "'class': 'NetworkTopologyStrategy', "
            f"'datacenter1': {settings.cassandra_replication_factor}"
        )
    else:
        replication = "'class': 'SimpleStrategy', 'replication_factor': 1"

    await session.aexecute(f"""
        CREATE KEYSPACE IF NOT EXISTS {keyspace}
        WITH replication = {{{replication}}}
        AND durable_writes = true
    """)
    logger.info("keyspace_created", keyspace=keyspace)


async def init_async_tables(session, keyspace: str) -> None:
    """Create every engine table (idempotent)."""
    for name, statements in SCHEMA:
        for cql_template in statements:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("tables_created", group=name, keyspace=keyspace)


async def init_async_cassandra():
    """Connect, then create keyspace and tables.

    Returns:
        Session with ``aexecute()`` support, bound to the configured keyspace.
    """
    settings = get_settings()
    session = AsyncCassandraConnection.connect()

    await init_async_keyspace(session, settings.cassandra_keyspace)
    session.set_keyspace(settings.cassandra_keyspace)
    await init_async_tables(session, settings.cassandra_keyspace)

    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()

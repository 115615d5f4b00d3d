"""PoolCare MCP server application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from poolcare.core.audit.logger import AuditLogger
from poolcare.core.config.settings import get_settings
from poolcare.core.storage.database import PoolDatabase
from poolcare.core.storage.repository import PoolRepository
from poolcare.domains.pool.tools.chemistry_tools import register_chemistry_tools

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    *,
    database_override: PoolDatabase | None = None,
) -> FastMCP:
    """Create and configure the PoolCare MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens the pool history store (unless storage is disabled)
    3. Registers the stateless chemistry and scoring tools
    4. Registers the storage-backed record and report tools
    """
    settings = get_settings()

    server = FastMCP(
        "PoolCare",
        instructions=(
            "Pool maintenance assistant. Evaluates water tests against target "
            "bands, recommends corrective actions, scores maintenance visits, "
            "grades weekly assessments and reports chemistry trends."
        ),
    )

    # --- Initialize storage (pool history store) ---
    database: PoolDatabase | None = None
    if database_override is not None:
        database = database_override
        database.initialize()
    elif settings.storage_enabled:
        database = PoolDatabase(settings.db_path)
        database.initialize()
        logger.info(
            "Pool history store initialized: %s (schema v%d)",
            settings.db_path,
            database.get_schema_version(),
        )
    else:
        logger.info("Storage disabled; running stateless scoring tools only")

    repository = PoolRepository(database) if database is not None else None
    audit_logger = AuditLogger(database) if database is not None else None

    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": "PoolCare",
            "version": VERSION,
            "storage_enabled": repository is not None,
        }
        if repository is not None:
            status["readings_stored"] = repository.count_readings()
        return status

    register_chemistry_tools(server, audit_logger)
    logger.info("Chemistry and scoring tools registered")

    # --- Register storage-backed tools ---
    if repository is not None:
        from poolcare.domains.pool.domain_logic.trend_analyzer import TrendAnalyzer
        from poolcare.domains.pool.tools.pool_record_tools import register_pool_record_tools

        register_pool_record_tools(server, repository, TrendAnalyzer(repository), audit_logger)
        logger.info("Pool record and report tools registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this attribute is accessed (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

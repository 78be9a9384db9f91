"""Contextual padding MCP server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from cpad.core.audit.logger import AuditLogger
from cpad.core.config.settings import Settings, get_settings
from cpad.core.pipeline.engine import PaddingPipeline, build_pipeline
from cpad.core.storage.database import DatabaseError, PreferenceDatabase
from cpad.core.storage.encryption import EncryptionError, FieldEncryptor
from cpad.core.storage.repository import PreferenceRepository, RepositoryError
from cpad.domains.messaging.resources.levels import register_padding_resources
from cpad.domains.messaging.tools.audit_tools import register_audit_tools
from cpad.domains.messaging.tools.padding_tools import register_padding_tools

logger = logging.getLogger(__name__)


def open_storage(settings: Settings) -> tuple[PreferenceRepository | None, AuditLogger | None]:
    """Open the encrypted preference store when both db_path and encryption_key are set.

    Storage problems are logged and the server continues in memory only.
    """
    if not (settings.db_path and settings.encryption_key):
        logger.info(
            "No DB_PATH/ENCRYPTION_KEY configured; learned preferences stay in memory only"
        )
        return None, None
    try:
        previous_keys = [k.strip() for k in settings.previous_encryption_keys.split(",") if k.strip()]
        encryptor = FieldEncryptor(settings.encryption_key, previous_keys=previous_keys)
        database = PreferenceDatabase(settings.db_path)
        database.initialize()
        repository = PreferenceRepository(database, encryptor)
        if previous_keys:
            repository.reencrypt_history()
    except (EncryptionError, DatabaseError, RepositoryError) as exc:
        logger.error("Failed to initialize storage: %s", exc)
        logger.warning("Continuing without persistence; preferences will not be stored")
        return None, None
    logger.info(
        "Preference store initialized: %s (schema v%d)",
        settings.db_path,
        database.get_schema_version(),
    )
    return repository, AuditLogger(database)


def create_app(
    *,
    pipeline_override: PaddingPipeline | None = None,
    audit_logger_override: AuditLogger | None = None,
) -> FastMCP:
    """Create and configure the padding MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens optional encrypted persistence and the audit trail
    3. Builds the padding pipeline (alignment check, cache, preference store)
    4. Registers all tools and resources
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        "Contextual Padding",
        instructions=(
            "Adaptive response padding for short messages. Processes a message "
            "for a sender, learns that sender's preferred padding level from "
            "feedback, and exposes pipeline counters."
        ),
    )

    # --- Storage, audit and pipeline ---
    audit_logger = audit_logger_override
    if pipeline_override is not None:
        pipeline = pipeline_override
    else:
        repository, opened_audit = open_storage(settings)
        audit_logger = audit_logger or opened_audit
        pipeline = build_pipeline(settings, repository=repository, audit=audit_logger)

    if pipeline.alignment.degraded:
        logger.warning("Alignment self-check failed; server running in degraded mode")

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        metrics = pipeline.metrics()
        return {
            "status": "degraded" if metrics.degraded else "ok",
            "server": "Contextual Padding",
            "version": "0.1.0",
            "alignment_valid": metrics.alignment_valid,
            "storage_enabled": pipeline.store.persistent,
            "audit_enabled": audit_logger is not None,
            "profiles": metrics.profile_count,
        }

    register_padding_tools(server, pipeline)
    logger.info("Padding tools registered")

    if audit_logger is not None:
        register_audit_tools(server, audit_logger)
        logger.info("Audit tools registered")

    # --- Register resources ---
    register_padding_resources(server)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

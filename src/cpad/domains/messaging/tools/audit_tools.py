"""MCP tools for viewing the audit trail.

The trail never contains message text; senders appear only as hashes.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from cpad.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def register_audit_tools(mcp: FastMCP, audit_logger: AuditLogger) -> None:
    """Register audit trail tools on the MCP server."""

    @mcp.tool
    async def audit_summary(ctx: Context, days: int = 30, sender_id: str | None = None) -> str:
        """Summarize recent processing, feedback and deletion events.

        Args:
            days: Number of days to look back (default: 30).
            sender_id: Restrict to one sender (matched by hash).
        """
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
        events = audit_logger.get_events(since=since, sender_id=sender_id, limit=20)
        return json.dumps({
            "period_days": days,
            "total_events": audit_logger.count_events(),
            "messages_processed": audit_logger.count_events(action="message_processed"),
            "feedback_applied": audit_logger.count_events(action="feedback_applied"),
            "recent_events": [
                {
                    "timestamp": e.get("timestamp"),
                    "action": e.get("action"),
                    "padding_level": e.get("padding_level"),
                    "domain": e.get("domain"),
                    "status": e.get("status"),
                    "duration_ms": e.get("duration_ms"),
                }
                for e in events
            ],
        })

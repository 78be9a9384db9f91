"""MCP tools for processing messages and managing learned preferences."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from cpad.core.alignment.validator import AlignmentConfig
from cpad.core.padding.levels import PaddingLevel
from cpad.core.preferences.models import Satisfaction
from cpad.core.preferences.store import StoreUnavailableError

if TYPE_CHECKING:
    from cpad.core.pipeline.engine import PaddingPipeline

logger = logging.getLogger(__name__)


def _error(message: str) -> str:
    return json.dumps({"status": "error", "message": message})


def _parse_level(value: str | None) -> PaddingLevel | None:
    if value is None or value == "":
        return None
    return PaddingLevel(value.strip().lower())


def register_padding_tools(mcp: FastMCP, pipeline: PaddingPipeline) -> None:
    """Register message processing and preference tools on the MCP server."""

    @mcp.tool
    async def process_message(
        ctx: Context,
        text: str,
        sender_id: str,
        context_key: str | None = None,
        include_details: bool = False,
    ) -> str:
        """Pad a short message for its sender and return the response.

        Args:
            text: The raw message text.
            sender_id: Stable identifier of the sender (used for learning).
            context_key: Optional context whose stored override should apply.
            include_details: Also return the classification and decision details.
        """
        if not sender_id:
            return _error("sender_id must not be empty")
        result = pipeline.process_message(text, sender_id, context_key=context_key)
        if include_details:
            return json.dumps({"status": "ok", **result.to_dict()})
        return json.dumps({
            "status": "ok",
            "output": result.output_text,
            "level": result.level.value if result.level else None,
            "fallback": result.fallback,
        })

    @mcp.tool
    async def submit_feedback(
        ctx: Context,
        sender_id: str,
        satisfaction: str,
        requested_level: str | None = None,
        context_key: str | None = None,
    ) -> str:
        """Tell the pipeline how a response landed.

        Args:
            sender_id: The sender the feedback is about.
            satisfaction: 'negative', 'neutral' or 'positive'.
            requested_level: Optional level the sender wants instead
                ('none', 'light', 'medium', 'enhanced').
            context_key: Store the requested level only for this context.
        """
        try:
            parsed_satisfaction = Satisfaction(satisfaction.strip().lower())
            level = _parse_level(requested_level)
        except ValueError as exc:
            return _error(str(exc))
        if context_key and level is None:
            return _error("context_key requires requested_level")

        pipeline.apply_feedback(sender_id, parsed_satisfaction, level, context_key)
        record = pipeline.store.get(sender_id)
        return json.dumps({
            "status": "ok",
            "preferred_padding_level": record.preferred_padding_level.value,
            "communication_style": record.communication_style.value,
            "effectiveness": round(record.effectiveness, 4),
            "context_overrides": {k: v.value for k, v in record.context_overrides.items()},
        })

    @mcp.tool
    async def get_preferences(
        ctx: Context,
        sender_id: str,
        include_history: bool = False,
    ) -> str:
        """Show what has been learned about a sender.

        Args:
            sender_id: The sender to look up.
            include_history: Also return the recent conversation history.
        """
        payload: dict = {"status": "ok", "preferences": pipeline.store.get(sender_id).to_dict()}
        if include_history:
            payload["history"] = [e.to_dict() for e in pipeline.store.history(sender_id)]
        return json.dumps(payload)

    @mcp.tool
    async def forget_sender(ctx: Context, sender_id: str) -> str:
        """Delete everything learned about a sender, including persisted history.

        Args:
            sender_id: The sender to forget.
        """
        try:
            existed = pipeline.forget(sender_id)
        except StoreUnavailableError as exc:
            logger.error("Failed to forget sender: %s", exc)
            return _error("Persisted preferences could not be deleted; try again later.")
        return json.dumps({"status": "deleted" if existed else "not_found"})

    @mcp.tool
    async def configure_alignment(
        ctx: Context,
        value_a: float,
        value_b: float,
        value_c: float,
        tolerance: float = 1e-4,
    ) -> str:
        """Re-run the alignment self-check with new constants.

        An invalid set is reported and leaves the pipeline degraded on its
        last valid configuration; processing continues either way.

        Args:
            value_a: First addend.
            value_b: Second addend.
            value_c: Expected sum.
            tolerance: Allowed absolute deviation.
        """
        report = pipeline.configure_alignment(
            AlignmentConfig(value_a=value_a, value_b=value_b, value_c=value_c, tolerance=tolerance)
        )
        return json.dumps({
            "status": "ok" if report.valid else "degraded",
            "valid": report.valid,
            "deviation": report.deviation,
            "degraded": pipeline.alignment.degraded,
        })

    @mcp.tool
    async def pipeline_metrics(ctx: Context) -> str:
        """Cache, preference and filter counters for observability."""
        return json.dumps({"status": "ok", **pipeline.metrics().to_dict()})

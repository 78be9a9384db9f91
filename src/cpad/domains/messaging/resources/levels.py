"""MCP resources describing padding levels."""

from __future__ import annotations

import json

from fastmcp import FastMCP

from cpad.core.padding.composer import ENHANCED_WRAPPERS, LEAD_INS
from cpad.core.padding.levels import LEVEL_DESCRIPTIONS, PaddingLevel


def register_padding_resources(mcp: FastMCP) -> None:
    """Register padding level discovery resources on the MCP server."""

    @mcp.resource("padding://levels")
    def padding_levels_resource() -> str:
        """The ordered padding levels and the wording each domain uses."""
        return json.dumps(
            {
                "levels": [
                    {"level": level.value, "rank": level.rank, "description": LEVEL_DESCRIPTIONS[level]}
                    for level in PaddingLevel
                ],
                "lead_ins": {domain.value: text for domain, text in LEAD_INS.items()},
                "enhanced": {
                    domain.value: {"opening": opening, "closing": closing}
                    for domain, (opening, closing) in ENHANCED_WRAPPERS.items()
                },
            },
            indent=2,
        )

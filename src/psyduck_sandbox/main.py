# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

from typing import Any

from mcp.server.fastmcp import FastMCP

from psyduck_sandbox.errors import RequestInvalidError
from psyduck_sandbox.sandbox import SandboxAsync
from psyduck_sandbox.utils.logger import logger

# Initialize Sandbox Logic
sandbox = SandboxAsync()

# Initialize MCP Server
mcp = FastMCP("psyduck-sandbox")


@mcp.tool()  # type: ignore[misc]
async def execute_code(
    code: str,
    language: str = "python",
    input: str | None = None,
    workspace: dict[str, Any] | None = None,
) -> dict[str, Any] | str:
    """
    Execute a learner's program in the sandbox.
    Pass `workspace` as {"files": [{"path", "content"}], "entryPath"} for multi-file programs.
    Returns the execution record: id, success, output, executionTime, memoryUsage, status, errorMessage.
    """
    payload: dict[str, Any] = {"code": code, "language": language, "input": input}
    if workspace is not None:
        payload["workspace"] = workspace
    try:
        result = await sandbox.execute(payload)
    except RequestInvalidError as e:
        logger.warning(f"Rejected execution request: {e}")
        return f"Invalid request: {e!s}"
    return result.to_payload()


@mcp.tool()  # type: ignore[misc]
async def list_languages() -> list[dict[str, Any]]:
    """
    List the languages offered by the editor and whether the sandbox executes them.
    """
    return [info.model_dump() for info in sandbox.list_languages()]


@mcp.tool()  # type: ignore[misc]
async def get_language_template(language: str) -> str:
    """
    Return the starter template for a language (empty if unknown).
    """
    return sandbox.get_language_template(language)


def main() -> None:
    """Entry point for the MCP server."""
    mcp.run()


if __name__ == "__main__":  # pragma: no cover
    main()

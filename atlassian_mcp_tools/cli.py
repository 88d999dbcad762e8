#!/usr/bin/env python3
"""
Command line wrapper around the Atlassian MCP tools

Runs a single tool without an MCP host:

    python -m atlassian_mcp_tools.cli get-issue-structure '{"issueKey": "PROJ-123"}'
"""

import sys
import json
import logging
from typing import List, Optional

from .app_logger import setup_logging
from .config import ConfluenceConfig, JiraConfig, load_env_files
from .server import build_tool_functions
from .tools import ConfluenceTools, JiraTools

logger = logging.getLogger(__name__)


def usage(tool_names: List[str]) -> str:
    lines = [
        "Usage: python -m atlassian_mcp_tools.cli <tool-name> ['<json arguments>']",
        "",
        "Tools:",
    ]
    lines.extend(f"  • {name}" for name in tool_names)
    lines.append("")
    lines.append("Example:")
    lines.append("  python -m atlassian_mcp_tools.cli read-description '{\"issueKey\": \"PROJ-123\"}'")
    return '\n'.join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Run one tool and print its text. Returns the process exit code."""
    argv = sys.argv[1:] if argv is None else argv
    setup_logging()
    load_env_files()

    jira_tools = JiraTools(JiraConfig.from_env())
    confluence_tools = ConfluenceTools(ConfluenceConfig.from_env())
    functions = build_tool_functions(jira_tools, confluence_tools)

    if not argv or argv[0] not in functions:
        if argv:
            print(f"❌ Unknown tool: {argv[0]}", file=sys.stderr)
        print(usage(list(functions)), file=sys.stderr)
        return 1

    try:
        arguments = json.loads(argv[1]) if len(argv) > 1 else {}
    except json.JSONDecodeError as e:
        print(f"❌ Invalid JSON arguments: {e}", file=sys.stderr)
        return 1
    if not isinstance(arguments, dict):
        print("❌ Arguments must be a JSON object", file=sys.stderr)
        return 1

    try:
        print(functions[argv[0]](**arguments))
    except TypeError as e:
        print(f"❌ Invalid arguments for {argv[0]}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

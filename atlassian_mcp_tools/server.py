"""
Atlassian MCP Tools - FastMCP server exposing Jira and Confluence read operations
"""

import os
import logging
from typing import Callable, Dict, List, Optional, Literal

from fastmcp import FastMCP

from .app_logger import setup_logging
from .config import ConfluenceConfig, JiraConfig, load_env_files, validate_confluence_config, validate_jira_config
from .tools import ConfluenceTools, JiraTools, result_text

logger = logging.getLogger(__name__)

SERVER_NAME = "jira"


def build_tool_functions(jira_tools: JiraTools,
                         confluence_tools: ConfluenceTools) -> Dict[str, Callable[..., str]]:
    """
    Tool name -> callable using the MCP argument names.

    Each callable returns the text of the tool result.
    """

    def get_issue_structure(issueKey: str) -> str:
        """
        Get the structure of related issues: epic with its stories, parent issue,
        sibling subtasks and subtasks of a Jira issue.

        Args:
            issueKey: The Jira issue key (e.g., PROJECT-123)
        """
        return result_text(jira_tools.get_issue_structure(issueKey))

    def read_description(issueKey: str) -> str:
        """
        Get the description of a Jira issue.

        Args:
            issueKey: The Jira issue key (e.g., PROJECT-123)
        """
        return result_text(jira_tools.read_description(issueKey))

    def read_comments(issueKey: str) -> str:
        """
        Get the comments for a Jira issue.

        Args:
            issueKey: The Jira issue key (e.g., PROJECT-123)
        """
        return result_text(jira_tools.read_comments(issueKey))

    def search_issues(query: str,
                      maxResults: int = 20,
                      projectKeys: Optional[List[str]] = None,
                      status: Optional[List[str]] = None,
                      assignee: Optional[str] = None,
                      includeDescription: bool = True) -> str:
        """
        Search Jira issues by text in title and description.

        Args:
            query: Search query to look for in issue title and description
            maxResults: Maximum number of results (default: 20, max: 100)
            projectKeys: Filter by specific project keys
            status: Filter by issue status (e.g., ['Open', 'In Progress', 'Done'])
            assignee: Filter by assignee username or 'currentUser()'
            includeDescription: Include issue description in results
        """
        return result_text(jira_tools.search_issues(
            query, maxResults, projectKeys, status, assignee, includeDescription
        ))

    def get_worklogs(startDate: str,
                     endDate: str,
                     username: Optional[str] = None,
                     projectKeys: Optional[List[str]] = None,
                     includeSubtasks: bool = False,
                     includeCommunication: bool = False,
                     communicationProjects: Optional[List[str]] = None) -> str:
        """
        Get worklogs for a date range.

        Args:
            startDate: Start date in YYYY-MM-DD format
            endDate: End date in YYYY-MM-DD format
            username: Username to get worklogs for. If not specified, gets your own worklogs
            projectKeys: Filter by specific project keys
            includeSubtasks: Include subtasks in results
            includeCommunication: Include communication tasks (COM-* issues)
            communicationProjects: Project keys for communication tasks (default: ['COM'])
        """
        return result_text(jira_tools.get_worklogs(
            startDate, endDate, username, projectKeys,
            includeSubtasks, includeCommunication, communicationProjects
        ))

    def get_worklogs_by_days(days: int,
                             endDate: Optional[str] = None,
                             username: Optional[str] = None,
                             projectKeys: Optional[List[str]] = None,
                             includeSubtasks: bool = False,
                             includeCommunication: bool = False,
                             communicationProjects: Optional[List[str]] = None) -> str:
        """
        Get worklogs for the last N days.

        Args:
            days: Number of days to look backward from end date (e.g. 180 for ~6 months)
            endDate: End date in YYYY-MM-DD format. If not specified, uses current date
            username: Username to get worklogs for. If not specified, gets your own worklogs
            projectKeys: Filter by specific project keys
            includeSubtasks: Include subtasks in results
            includeCommunication: Include communication tasks (COM-* issues)
            communicationProjects: Project keys for communication tasks (default: ['COM'])
        """
        return result_text(jira_tools.get_worklogs_by_days(
            days, endDate, username, projectKeys,
            includeSubtasks, includeCommunication, communicationProjects
        ))

    def get_recent_worklogs(period: Literal['week', 'month', '3months', '6months', 'year'],
                            username: Optional[str] = None,
                            projectKeys: Optional[List[str]] = None,
                            includeCommunication: bool = False) -> str:
        """
        Count the tasks worked on during a recent period.

        Args:
            period: Time period
            username: Username to get worklogs for. If not specified, gets your own worklogs
            projectKeys: Filter by specific projects
            includeCommunication: Include communication tasks (COM-* issues)
        """
        return result_text(jira_tools.get_recent_worklogs(
            period, username, projectKeys, includeCommunication
        ))

    def search_confluence_pages(query: str,
                                spaceKey: Optional[str] = None,
                                type: Literal['page', 'blogpost'] = 'page',
                                limit: int = 10) -> str:
        """
        Search Confluence pages.

        Args:
            query: Search query (title or content)
            spaceKey: Limit search to specific space (e.g., 'PROJ')
            type: Content type to search for
            limit: Maximum number of results (default: 10, max: 50)
        """
        return result_text(confluence_tools.search_pages(query, spaceKey, type, limit))

    def get_confluence_page(pageIdOrUrl: str,
                            includeBody: bool = True,
                            expandProperties: Optional[List[str]] = None) -> str:
        """
        Get a Confluence page by ID or URL.

        Args:
            pageIdOrUrl: The page ID (e.g., 123456) or full Confluence page URL
            includeBody: Include page body content
            expandProperties: Additional properties to expand (e.g., ['version', 'ancestors'])
        """
        return result_text(confluence_tools.get_page(pageIdOrUrl, includeBody, expandProperties))

    return {
        'get-issue-structure': get_issue_structure,
        'read-description': read_description,
        'read-comments': read_comments,
        'search-issues': search_issues,
        'get-worklogs': get_worklogs,
        'get-worklogs-by-days': get_worklogs_by_days,
        'get-recent-worklogs': get_recent_worklogs,
        'search-confluence-pages': search_confluence_pages,
        'get-confluence-page': get_confluence_page,
    }


def create_server(jira_tools: JiraTools, confluence_tools: ConfluenceTools) -> FastMCP:
    """Register every tool on a new FastMCP server."""
    mcp = FastMCP(SERVER_NAME)
    for tool_name, function in build_tool_functions(jira_tools, confluence_tools).items():
        mcp.tool(name=tool_name)(function)
    return mcp


def check_configuration(jira_tools: JiraTools, confluence_tools: ConfluenceTools) -> bool:
    """
    Report configuration and authentication problems on startup.

    The server starts either way; tools answer with the error text.

    Returns:
        True when Jira is configured and the credentials work
    """
    confluence_error = validate_confluence_config(confluence_tools.config)
    if confluence_error:
        logger.warning(f"⚠️  Confluence configuration error: {confluence_error}")

    jira_error = validate_jira_config(jira_tools.config)
    if jira_error:
        logger.error(f"❌ Jira configuration error: {jira_error}")
        logger.error("Starting server in limited mode (tools will return configuration instructions)")
        return False

    try:
        jira_tools.jira_client.test_connection()
    except Exception as e:
        logger.error(f"❌ Jira authentication error: {e}")
        logger.error("Starting server in limited mode (tools will return authentication error messages)")
        return False

    return True


def main():
    setup_logging()
    load_env_files()

    jira_tools = JiraTools(JiraConfig.from_env())
    confluence_tools = ConfluenceTools(ConfluenceConfig.from_env())
    check_configuration(jira_tools, confluence_tools)

    mcp = create_server(jira_tools, confluence_tools)
    transport = os.getenv('MCP_TRANSPORT', 'stdio')
    logger.info(f"🚀 Jira MCP server running on {transport}")
    if transport == 'stdio':
        mcp.run()
    else:
        mcp.run(transport=transport, port=int(os.getenv('MCP_PORT', '8000')))


if __name__ == "__main__":
    main()

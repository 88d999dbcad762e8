"""
Atlassian MCP Tools Package

Read-only Jira and Confluence tools for AI assistants:
- Issue structure (epic, epic stories, parent, sibling subtasks, subtasks)
- Issue descriptions, comments and text search
- Worklog reports
- Confluence page search and retrieval
"""

from .jira_client import JiraClient
from .confluence_client import ConfluenceClient
from .issue_relationships import EpicStoryResolver, IssueStructureBuilder
from .tools import ConfluenceTools, JiraTools

__all__ = [
    'JiraClient',
    'ConfluenceClient',
    'EpicStoryResolver',
    'IssueStructureBuilder',
    'JiraTools',
    'ConfluenceTools',
]

__version__ = "1.0.0"

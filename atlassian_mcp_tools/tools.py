"""
Tool handlers - Jira and Confluence operations exposed to the MCP host

Every handler returns the MCP text content shape, on failure too:
``{'content': [{'type': 'text', 'text': ...}]}``.
"""

import re
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any

from .config import (
    JIRA_ENV_HELP,
    ConfluenceConfig,
    JiraConfig,
    validate_confluence_config,
    validate_jira_config,
)
from .confluence_client import ConfluenceClient, confluence_site_url
from .date_utils import PERIOD_DAYS, get_date_range_by_days
from .formatters import (
    format_comments,
    format_confluence_page,
    format_confluence_search_results,
    format_issue_description,
    format_issue_structure,
    format_search_results,
    format_worklog_report,
)
from .issue_relationships import IssueStructureBuilder
from .jira_client import JiraClient
from .jql_builder import build_search_jql, escape_jql
from .worklog_manager import UserNotFoundError, WorklogManager

logger = logging.getLogger(__name__)

SEARCH_FIELDS = [
    'key', 'summary', 'description', 'issuetype', 'priority',
    'status', 'assignee', 'project', 'created', 'updated'
]
MAX_SEARCH_RESULTS = 100
MAX_CONFLUENCE_RESULTS = 50
CONTENT_TYPES = ('page', 'blogpost')


def text_result(text: str) -> Dict[str, Any]:
    """Wrap text in the MCP tool result shape."""
    return {'content': [{'type': 'text', 'text': text}]}


def result_text(result: Dict[str, Any]) -> str:
    """Inverse of text_result."""
    return '\n'.join(item['text'] for item in result.get('content', []) if item.get('type') == 'text')


def _valid_date(value: str) -> bool:
    try:
        datetime.strptime(value, '%Y-%m-%d')
        return True
    except (TypeError, ValueError):
        return False


class JiraTools:
    """Jira read tools sharing one lazily created client."""

    def __init__(self, config: JiraConfig, jira_client=None):
        """
        Args:
            config: Jira settings, validated on every call
            jira_client: Client to use instead of building a JiraClient
        """
        self.config = config
        self._jira_client = jira_client

    @property
    def jira_client(self):
        if self._jira_client is None:
            self._jira_client = JiraClient(self.config)
        return self._jira_client

    def _config_error(self, with_help: bool = False) -> Optional[Dict[str, Any]]:
        error = validate_jira_config(self.config)
        if not error:
            return None
        text = f"Configuration error: {error}"
        if with_help:
            text += f"\n\n{JIRA_ENV_HELP}"
        return text_result(text)

    def get_issue_structure(self, issue_key: str) -> Dict[str, Any]:
        """Parent, epic, epic stories, sibling subtasks and subtasks of an issue."""
        config_error = self._config_error()
        if config_error:
            return config_error

        try:
            structure = IssueStructureBuilder(self.jira_client, self.config.host).build(issue_key)
        except Exception as e:
            logger.error(f"❌ Error building issue structure for {issue_key}: {e}")
            return text_result(f"Failed to retrieve issue structure for {issue_key}: {e}")

        logger.debug(f"Issue structure lookups for {issue_key}: {structure.lookups}")
        return text_result(format_issue_structure(structure))

    def read_description(self, issue_key: str) -> Dict[str, Any]:
        config_error = self._config_error(with_help=True)
        if config_error:
            return config_error

        try:
            issue = self.jira_client.get_issue(issue_key)
        except Exception as e:
            logger.error(f"❌ Error fetching Jira issue {issue_key}: {e}")
            return text_result(f"Failed to retrieve issue {issue_key}: {e}")

        if not issue:
            return text_result(f"Issue {issue_key} not found")
        return text_result(format_issue_description(issue))

    def read_comments(self, issue_key: str) -> Dict[str, Any]:
        config_error = self._config_error()
        if config_error:
            return config_error

        try:
            comments = self.jira_client.get_comments(issue_key)
        except Exception as e:
            logger.error(f"❌ Error fetching Jira comments for {issue_key}: {e}")
            return text_result(f"Failed to retrieve comments for {issue_key}: {e}")

        return text_result(format_comments(issue_key, comments))

    def search_issues(self,
                      query: str,
                      max_results: int = 20,
                      project_keys: Optional[List[str]] = None,
                      status: Optional[List[str]] = None,
                      assignee: Optional[str] = None,
                      include_description: bool = True) -> Dict[str, Any]:
        config_error = self._config_error()
        if config_error:
            return config_error

        jql = build_search_jql(query, project_keys, status, assignee)
        logger.info(f"🔍 JQL Query: {jql}")

        try:
            result = self.jira_client.search_issues(
                jql,
                max_results=max(1, min(max_results, MAX_SEARCH_RESULTS)),
                fields=SEARCH_FIELDS
            )
        except Exception as e:
            logger.error(f"❌ Error searching Jira issues: {e}")
            return text_result(f"Search failed: {e}")

        return text_result(format_search_results(result, query, self.config.host, include_description))

    def get_worklogs(self,
                     start_date: str,
                     end_date: str,
                     username: Optional[str] = None,
                     project_keys: Optional[List[str]] = None,
                     include_subtasks: bool = False,
                     include_communication: bool = False,
                     communication_projects: Optional[List[str]] = None,
                     days: Optional[int] = None) -> Dict[str, Any]:
        """Detailed worklog report for a date range."""
        config_error = self._config_error()
        if config_error:
            return config_error

        for value in (start_date, end_date):
            if not _valid_date(value):
                return text_result(f"Invalid date '{value}': expected YYYY-MM-DD")

        manager = WorklogManager(self.jira_client, self.config.host)
        try:
            report = manager.build_report(
                start_date, end_date,
                username=username,
                project_keys=project_keys,
                include_subtasks=include_subtasks,
                include_communication=include_communication,
                communication_projects=communication_projects,
                days=days,
            )
        except UserNotFoundError as e:
            return text_result(str(e))
        except Exception as e:
            logger.error(f"❌ Error fetching worklogs: {e}")
            return text_result(f"Failed to retrieve worklogs: {e}")

        if not report.tasks:
            return text_result("No worklogs found for the specified criteria")
        return text_result(format_worklog_report(report))

    def get_worklogs_by_days(self,
                             days: int,
                             end_date: Optional[str] = None,
                             username: Optional[str] = None,
                             project_keys: Optional[List[str]] = None,
                             include_subtasks: bool = False,
                             include_communication: bool = False,
                             communication_projects: Optional[List[str]] = None) -> Dict[str, Any]:
        """get_worklogs for the ``days`` days ending at end_date (default today)."""
        if days <= 0:
            return text_result("days must be a positive number")
        if end_date and not _valid_date(end_date):
            return text_result(f"Invalid date '{end_date}': expected YYYY-MM-DD")

        date_range = get_date_range_by_days(days, end_date)
        return self.get_worklogs(
            date_range['start_date'],
            date_range['end_date'],
            username=username,
            project_keys=project_keys,
            include_subtasks=include_subtasks,
            include_communication=include_communication,
            communication_projects=communication_projects,
            days=days,
        )

    def get_recent_worklogs(self,
                            period: str,
                            username: Optional[str] = None,
                            project_keys: Optional[List[str]] = None,
                            include_communication: bool = False) -> Dict[str, Any]:
        config_error = self._config_error()
        if config_error:
            return config_error

        if period not in PERIOD_DAYS:
            return text_result(f"Unknown period '{period}'. Use one of: {', '.join(PERIOD_DAYS)}")

        manager = WorklogManager(self.jira_client, self.config.host)
        try:
            count = manager.count_recent_tasks(period, username, project_keys, include_communication)
        except Exception as e:
            logger.error(f"❌ Error fetching recent worklogs: {e}")
            return text_result(f"Failed to retrieve recent worklogs: {e}")

        return text_result(f"{username or 'You'} worked on {count} tasks in the last {period}")


def extract_page_id(page_id_or_url: str) -> Optional[str]:
    """
    Page id from an id, a ``.../pages/<id>/...`` URL or a ``pageId=<id>`` URL.
    """
    value = page_id_or_url.strip()
    if '/' not in value:
        return value or None

    parts = value.split('/')
    if 'pages' in parts:
        index = parts.index('pages')
        if index < len(parts) - 1 and parts[index + 1].isdigit():
            return parts[index + 1]

    match = re.search(r'pageId=(\d+)', value)
    return match.group(1) if match else None


class ConfluenceTools:
    """Confluence read tools sharing one lazily created client."""

    def __init__(self, config: ConfluenceConfig, confluence_client=None):
        self.config = config
        self._confluence_client = confluence_client

    @property
    def confluence_client(self):
        if self._confluence_client is None:
            self._confluence_client = ConfluenceClient(self.config)
        return self._confluence_client

    @property
    def site_url(self) -> str:
        return confluence_site_url(self.config.host)

    def _config_error(self) -> Optional[Dict[str, Any]]:
        error = validate_confluence_config(self.config)
        return text_result(f"Configuration error: {error}") if error else None

    def search_pages(self,
                     query: str,
                     space_key: Optional[str] = None,
                     content_type: str = 'page',
                     limit: int = 10) -> Dict[str, Any]:
        config_error = self._config_error()
        if config_error:
            return config_error

        if content_type not in CONTENT_TYPES:
            return text_result(f"Unknown content type '{content_type}'. Use page or blogpost")

        cql = f'text ~ "{escape_jql(query)}" AND type = "{content_type}"'
        if space_key:
            cql += f' AND space = "{escape_jql(space_key)}"'
        logger.debug(f"🔍 CQL Query: {cql}")

        try:
            results = self.confluence_client.search(
                cql,
                limit=max(1, min(limit, MAX_CONFLUENCE_RESULTS)),
                expand=['space', 'version']
            )
        except Exception as e:
            logger.error(f"❌ Error searching Confluence: {e}")
            return text_result(f"Search failed: {e}")

        return text_result(
            format_confluence_search_results(results, query, content_type, self.site_url, space_key)
        )

    def get_page(self,
                 page_id_or_url: str,
                 include_body: bool = True,
                 expand_properties: Optional[List[str]] = None) -> Dict[str, Any]:
        config_error = self._config_error()
        if config_error:
            return config_error

        page_id = extract_page_id(page_id_or_url)
        if not page_id:
            return text_result(f"Cannot extract page ID from URL: {page_id_or_url}")

        expand = ['space', 'history']
        if include_body:
            expand.append('body.storage')
        if expand_properties:
            expand.extend(p for p in expand_properties if p not in expand)

        try:
            page = self.confluence_client.get_content(page_id, expand=expand)
        except Exception as e:
            logger.error(f"❌ Error fetching Confluence page {page_id}: {e}")
            return text_result(f"Failed to retrieve page: {e}")

        if not page:
            return text_result(f"Page not found: {page_id}")
        return text_result(format_confluence_page(page, self.site_url, include_body))

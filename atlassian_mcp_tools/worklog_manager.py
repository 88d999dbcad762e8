"""
Worklog Manager - Collect a user's worklogs over a date range
"""

import logging
from typing import Dict, List, Optional, Any, Set

from .date_utils import get_date_range
from .issue_relationships import build_issue_url
from .jql_builder import build_worklog_jql_for_user
from .models import TaskWorklogs, WorklogEntry, WorklogReport

logger = logging.getLogger(__name__)

WORKLOG_SEARCH_FIELDS = [
    'key', 'summary', 'description', 'issuetype', 'priority', 'status',
    'assignee', 'creator', 'created', 'updated', 'project'
]
WORKLOG_SEARCH_LIMIT = 1000
RECENT_SEARCH_LIMIT = 50
DEFAULT_COMMUNICATION_PROJECTS = ['COM']


class UserNotFoundError(Exception):
    """The requested user does not exist or is not visible."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f'User "{username}" not found or no permission to view their data')


def user_identifiers(user: Dict[str, Any]) -> Set[str]:
    """Every identifier Jira may use for the user in worklog authors."""
    return {user[k] for k in ('name', 'key', 'accountId') if user.get(k)}


class WorklogManager:
    """
    Builds worklog reports for one user.
    """

    def __init__(self, jira_client, jira_host: str):
        """
        Initialize Worklog Manager.

        Args:
            jira_client: Configured JiraClient instance
            jira_host: Jira host used for browse URLs
        """
        self.client = jira_client
        self.jira_host = jira_host

    def resolve_target_user(self, username: Optional[str]) -> Dict[str, Any]:
        """
        Look up the reported user, the authenticated user when username is empty.

        Raises:
            UserNotFoundError: username given but the lookup failed
        """
        if not username:
            return self.client.get_current_user()
        try:
            return self.client.get_user(username)
        except Exception as e:
            logger.warning(f"⚠️  User lookup failed for {username}: {e}")
            raise UserNotFoundError(username) from e

    def collect_tasks(self,
                      jql: str,
                      start_date: str,
                      end_date: str,
                      author_ids: Set[str],
                      communication_projects: List[str]) -> List[TaskWorklogs]:
        """
        Search matching issues and keep the author's worklogs inside the range.

        Args:
            jql: Worklog query
            start_date: First day (YYYY-MM-DD, inclusive)
            end_date: Last day (YYYY-MM-DD, inclusive)
            author_ids: Identifiers of the reported user
            communication_projects: Project keys counted as communication

        Returns:
            Tasks with at least one matching worklog, most time first
        """
        logger.debug(f"🔍 Executing JQL: {jql}")
        result = self.client.search_issues(
            jql,
            max_results=WORKLOG_SEARCH_LIMIT,
            fields=WORKLOG_SEARCH_FIELDS
        )

        tasks = []
        seen = set()
        for issue in result.get('issues') or []:
            key = issue.get('key')
            if not key or key in seen:
                continue
            seen.add(key)

            entries = [
                self._to_entry(worklog)
                for worklog in self.client.get_issue_worklogs(key)
                if self._matches(worklog, author_ids, start_date, end_date)
            ]
            if entries:
                tasks.append(self._to_task(issue, entries, communication_projects))

        tasks.sort(key=lambda task: task.total_seconds, reverse=True)
        logger.info(f"📊 Found {len(tasks)} tasks with worklogs between {start_date} and {end_date}")
        return tasks

    def build_report(self,
                     start_date: str,
                     end_date: str,
                     username: Optional[str] = None,
                     project_keys: Optional[List[str]] = None,
                     include_subtasks: bool = False,
                     include_communication: bool = False,
                     communication_projects: Optional[List[str]] = None,
                     days: Optional[int] = None) -> WorklogReport:
        communication_projects = communication_projects or list(DEFAULT_COMMUNICATION_PROJECTS)
        user = self.resolve_target_user(username)
        author_ids = user_identifiers(user)
        if username:
            author_ids.add(username)

        jql = build_worklog_jql_for_user(
            username, start_date, end_date, project_keys,
            include_communication, communication_projects, include_subtasks
        )
        tasks = self.collect_tasks(jql, start_date, end_date, author_ids, communication_projects)

        if username:
            display_name = user.get('displayName') or user.get('name') or username
            title = f"Worklog Report for {display_name} ({username})"
        else:
            title = "Your Worklog Report"

        return WorklogReport(
            title=title,
            start_date=start_date,
            end_date=end_date,
            tasks=tasks,
            include_communication=include_communication,
            communication_projects=communication_projects,
            days=days,
        )

    def count_recent_tasks(self,
                           period: str,
                           username: Optional[str] = None,
                           project_keys: Optional[List[str]] = None,
                           include_communication: bool = False) -> int:
        """Number of issues the user logged work on during a named period."""
        date_range = get_date_range(period)
        jql = build_worklog_jql_for_user(
            username, date_range['start_date'], date_range['end_date'], project_keys,
            include_communication, DEFAULT_COMMUNICATION_PROJECTS, include_subtasks=True
        )
        result = self.client.search_issues(
            jql,
            max_results=RECENT_SEARCH_LIMIT,
            fields=['key', 'summary', 'project']
        )
        return len(result.get('issues') or [])

    @staticmethod
    def _matches(worklog: Dict[str, Any], author_ids: Set[str], start_date: str, end_date: str) -> bool:
        author = worklog.get('author') or {}
        if not user_identifiers(author) & author_ids:
            return False
        started = (worklog.get('started') or '')[:10]
        return start_date <= started <= end_date

    @staticmethod
    def _to_entry(worklog: Dict[str, Any]) -> WorklogEntry:
        comment = worklog.get('comment')
        return WorklogEntry(
            id=worklog.get('id'),
            started=worklog.get('started') or '',
            time_spent=worklog.get('timeSpent') or '',
            time_spent_seconds=worklog.get('timeSpentSeconds') or 0,
            # REST v3 returns rich-text documents here; only plain text is reported
            comment=comment if isinstance(comment, str) else '',
        )

    def _to_task(self,
                 issue: Dict[str, Any],
                 entries: List[WorklogEntry],
                 communication_projects: List[str]) -> TaskWorklogs:
        fields = issue.get('fields') or {}
        project = (fields.get('project') or {}).get('key') or 'Unknown'
        return TaskWorklogs(
            key=issue['key'],
            summary=fields.get('summary') or 'No summary',
            description=fields.get('description') or 'No description available',
            issue_type=(fields.get('issuetype') or {}).get('name') or 'Unknown',
            priority=(fields.get('priority') or {}).get('name') or 'No Priority',
            status=(fields.get('status') or {}).get('name') or 'Unknown',
            project=project,
            url=build_issue_url(self.jira_host, issue['key']),
            is_communication=project in communication_projects,
            worklogs=entries,
        )

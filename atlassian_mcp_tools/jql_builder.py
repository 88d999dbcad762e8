"""
JQL builders for the search and worklog tools
"""

from typing import List, Optional

CURRENT_USER = 'currentUser()'


def escape_jql(value: str) -> str:
    """Escape backslashes and double quotes inside a quoted JQL value."""
    if not value:
        return value
    return value.replace('\\', '\\\\').replace('"', '\\"')


def _quoted_list(values: List[str]) -> str:
    return ','.join(f'"{escape_jql(v)}"' for v in values)


def _user_clause(field_name: str, user: str) -> str:
    if user == CURRENT_USER:
        return f'{field_name} = {CURRENT_USER}'
    return f'{field_name} = "{escape_jql(user)}"'


def build_search_jql(query: str,
                     project_keys: Optional[List[str]] = None,
                     status: Optional[List[str]] = None,
                     assignee: Optional[str] = None) -> str:
    """
    Build the free text search query.

    Args:
        query: Text to look for in summary and description
        project_keys: Restrict to these projects
        status: Restrict to these workflow states
        assignee: User name or currentUser()

    Returns:
        JQL string ordered by last update
    """
    text = escape_jql(query)
    jql = f'(summary ~ "{text}" OR description ~ "{text}")'

    if project_keys:
        jql += f' AND project IN ({_quoted_list(project_keys)})'
    if status:
        jql += f' AND status IN ({_quoted_list(status)})'
    if assignee:
        jql += f' AND {_user_clause("assignee", assignee)}'

    return jql + ' ORDER BY updated DESC'


def build_worklog_jql(author: str,
                      start_date: str,
                      end_date: str,
                      project_keys: Optional[List[str]] = None,
                      include_communication: bool = False,
                      communication_projects: Optional[List[str]] = None,
                      include_subtasks: bool = False) -> str:
    """
    Build the query selecting issues with worklogs in a date range.

    Communication projects are excluded unless include_communication is set,
    together with issues whose summary mentions "communications".
    """
    jql = (f'{_user_clause("worklogAuthor", author)} '
           f'AND worklogDate >= "{start_date}" AND worklogDate <= "{end_date}"')

    if project_keys:
        jql += f' AND project IN ({_quoted_list(project_keys)})'

    if not include_communication:
        if communication_projects:
            jql += f' AND project NOT IN ({_quoted_list(communication_projects)})'
        jql += ' AND summary !~ "communications"'

    if not include_subtasks:
        jql += ' AND issuetype not in subTaskIssueTypes()'

    return jql


def build_worklog_jql_for_user(username: Optional[str],
                               start_date: str,
                               end_date: str,
                               project_keys: Optional[List[str]] = None,
                               include_communication: bool = False,
                               communication_projects: Optional[List[str]] = None,
                               include_subtasks: bool = False) -> str:
    """build_worklog_jql defaulting the author to the authenticated user."""
    return build_worklog_jql(
        username or CURRENT_USER,
        start_date,
        end_date,
        project_keys,
        include_communication,
        communication_projects,
        include_subtasks,
    )

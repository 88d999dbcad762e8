"""
Formatters - Turn Jira and Confluence payloads into text for the assistant
"""

import re
import html
from typing import Dict, List, Optional, Any

from .date_utils import format_duration, format_jira_datetime
from .issue_relationships import build_issue_url
from .models import IssueStructure, RelatedIssue, WorklogReport

# Checked in order, first match wins. Localized (Russian) workflow names included.
STATUS_ICONS = [
    ('✅', ('done', 'closed', 'resolved', 'готово', 'закрыт')),
    ('🔄', ('progress', 'in development', 'работе', 'разработ')),
    ('👁️', ('review', 'ревью')),
    ('🚀', ('release', 'релиз')),
    ('🧪', ('test', 'тест')),
]
DEFAULT_STATUS_ICON = '📋'

SEARCH_HIGHLIGHT = re.compile(r'@@@hl@@@|@@@endhl@@@')


def get_status_icon(status: str) -> str:
    """Icon for a workflow status name (case-insensitive substring match)."""
    lower_status = (status or '').lower()
    for icon, needles in STATUS_ICONS:
        if any(needle in lower_status for needle in needles):
            return icon
    return DEFAULT_STATUS_ICON


def truncate(text: str, limit: int) -> str:
    return text[:limit] + '...' if len(text) > limit else text


# ---------------------------------------------------------------------------
# Issue structure
# ---------------------------------------------------------------------------

def _issue_block(heading: str, issue: RelatedIssue) -> List[str]:
    lines = [
        f"### {heading}",
        f"**[{issue.key}: {issue.summary}]({issue.url})**",
        f"- **Type:** {issue.type}",
        f"- **Status:** {issue.status}",
    ]
    if issue.priority:
        lines.append(f"- **Priority:** {issue.priority}")
    return lines


def _numbered_issues(issues: List[RelatedIssue]) -> List[str]:
    lines = []
    for index, issue in enumerate(issues, 1):
        lines.append(f"{index}. **[{issue.key}: {issue.summary}]({issue.url})**")
        lines.append(f"   - **Status:** {get_status_icon(issue.status)} {issue.status} | **Type:** {issue.type}")
    return lines


def format_issue_structure(structure: IssueStructure) -> str:
    """
    Render an IssueStructure as markdown.

    Order: epic (with its stories), parent, current issue, sibling subtasks,
    own subtasks. Empty sections are left out entirely.
    """
    lines = ["## 📋 Issue Structure", ""]

    if structure.epic:
        lines.extend(_issue_block("🎯 **EPIC**", structure.epic))
        if structure.epic_stories:
            lines.append("")
            lines.append(f"#### 📖 **EPIC STORIES** ({len(structure.epic_stories)})")
            for story in structure.epic_stories:
                lines.append(
                    f"- {get_status_icon(story.status)} [{story.key}: {story.summary}]({story.url})"
                    f" | {story.status} | {story.type}"
                )
        lines.extend(["", "---", ""])

    if structure.parent:
        lines.extend(_issue_block("📚 **PARENT ISSUE**", structure.parent))
        lines.extend(["", "---", ""])

    lines.extend(_issue_block("📌 **CURRENT ISSUE**", structure.current))

    if structure.siblings:
        lines.append("")
        lines.append(f"### 🔗 **RELATED SUBTASKS** ({len(structure.siblings)})")
        lines.extend(_numbered_issues(structure.siblings))

    if structure.subtasks:
        lines.append("")
        lines.append(f"### 🔧 **SUBTASKS** ({len(structure.subtasks)})")
        lines.extend(_numbered_issues(structure.subtasks))

    return '\n'.join(lines) + '\n'


# ---------------------------------------------------------------------------
# Issues, comments
# ---------------------------------------------------------------------------

def format_search_results(search_response: Dict[str, Any],
                          query: str,
                          jira_host: str,
                          include_description: bool = True) -> str:
    issues = search_response.get('issues') or []
    if not issues:
        return f'No issues found for query: "{query}"'

    total = search_response.get('total', len(issues))
    results = [
        f'Found {len(issues)} issues for query: "{query}"',
        f'(showing {len(issues)} of {total} total)',
        '',
    ]

    for index, issue in enumerate(issues, 1):
        fields = issue.get('fields') or {}
        issue_type = (fields.get('issuetype') or {}).get('name') or 'Unknown type'
        priority = (fields.get('priority') or {}).get('name') or 'No priority'
        status = (fields.get('status') or {}).get('name') or 'Unknown status'
        assignee = (fields.get('assignee') or {}).get('displayName') or 'Unassigned'
        project = (fields.get('project') or {}).get('key') or 'Unknown project'
        created = format_jira_datetime(fields.get('created'), with_time=False)
        updated = format_jira_datetime(fields.get('updated'), with_time=False)

        results.append(f"{index}. {issue.get('key')}: {fields.get('summary') or 'No summary'}")
        results.append(f"   Type: {issue_type} | Priority: {priority} | Status: {status}")
        results.append(f"   Project: {project} | Assignee: {assignee}")
        results.append(f"   Created: {created} | Updated: {updated}")
        results.append(f"   URL: {build_issue_url(jira_host, issue.get('key', ''))}")

        if include_description:
            description = fields.get('description') or 'No description available'
            results.append(f"   Description: {truncate(description, 300)}")

        results.append('')

    return '\n'.join(results)


def format_issue_description(issue: Dict[str, Any]) -> str:
    fields = issue.get('fields') or {}
    return '\n'.join([
        f"Issue: {issue.get('key')}",
        f"Summary: {fields.get('summary') or 'No summary available'}",
        f"Type: {(fields.get('issuetype') or {}).get('name') or 'Unknown type'}",
        f"Status: {(fields.get('status') or {}).get('name') or 'Unknown status'}",
        f"\nDescription:\n{fields.get('description') or 'No description available'}",
    ])


def format_comments(issue_key: str, comments: List[Dict[str, Any]]) -> str:
    if not comments:
        return f"No comments found for issue {issue_key}"

    blocks = []
    for comment in comments:
        blocks.append('\n'.join([
            f"Author: {(comment.get('author') or {}).get('displayName') or 'Unknown'}",
            f"Date: {format_jira_datetime(comment.get('created'))}",
            f"Comment:\n{comment.get('body') or 'No content'}",
            '---',
        ]))

    return f"Comments for {issue_key}:\n\n" + '\n'.join(blocks)


# ---------------------------------------------------------------------------
# Worklogs
# ---------------------------------------------------------------------------

def format_worklog_report(report: WorklogReport) -> str:
    project_tasks = report.project_tasks
    comm_tasks = report.communication_tasks
    project_time = sum(t.total_seconds for t in project_tasks)
    comm_time = sum(t.total_seconds for t in comm_tasks)

    period = f"Period: {report.start_date} to {report.end_date}"
    if report.days is not None:
        period += f" ({report.days} days)"

    projects = list(dict.fromkeys(t.project for t in project_tasks))
    task_types = list(dict.fromkeys(t.issue_type for t in report.tasks))

    lines = [
        report.title,
        period,
        f"Total tasks: {len(report.tasks)} ({len(project_tasks)} project + {len(comm_tasks)} communication)",
        f"Total time: {format_duration(project_time + comm_time)}",
        f"  - Project work: {format_duration(project_time)}",
        f"  - Communication: {format_duration(comm_time)}",
        f"Projects: {', '.join(projects) or 'None'}",
        f"Task types: {', '.join(task_types) or 'None'}",
        '',
    ]

    if not report.include_communication:
        lines.append(
            f"Note: Communication tasks ({', '.join(report.communication_projects)}) are excluded by default"
        )
        lines.append("To include them, set includeCommunication to true")
        lines.append('')

    lines.extend(["PROJECT TASKS:", "=" * 50])
    for index, task in enumerate(project_tasks, 1):
        lines.extend([
            f"\n{index}. {task.key}: {task.summary}",
            f"   Type: {task.issue_type} | Priority: {task.priority} | Status: {task.status}",
            f"   Project: {task.project} | Time spent: {format_duration(task.total_seconds)}",
            f"   URL: {task.url}",
            f"   Description: {truncate(task.description, 200)}",
            f"   Worklogs ({len(task.worklogs)}):",
        ])
        for entry in task.worklogs:
            comment = f" ({truncate(entry.comment, 100)})" if entry.comment else ''
            lines.append(f"     - {entry.started[:10]}: {entry.time_spent}{comment}")

    if report.include_communication and comm_tasks:
        lines.extend(["\n\nCOMMUNICATION TASKS:", "=" * 50])
        for index, task in enumerate(comm_tasks, 1):
            lines.extend([
                f"\n{index}. {task.key}: {task.summary}",
                f"   Time spent: {format_duration(task.total_seconds)}",
                f"   Worklogs ({len(task.worklogs)}):",
            ])
            for entry in task.worklogs:
                comment = f" ({truncate(entry.comment, 150)})" if entry.comment else ''
                lines.append(f"     - {entry.started[:10]}: {entry.time_spent}{comment}")
    elif comm_time > 0:
        lines.append(
            f"\nCommunication time logged: {format_duration(comm_time)} (excluded from detailed report)"
        )

    return '\n'.join(lines)


# ---------------------------------------------------------------------------
# Confluence
# ---------------------------------------------------------------------------

def clean_search_text(text: str) -> str:
    """Drop Confluence highlight markers and unescape HTML entities."""
    return html.unescape(SEARCH_HIGHLIGHT.sub('', text or ''))


def format_confluence_search_results(results: List[Dict[str, Any]],
                                     query: str,
                                     content_type: str,
                                     site_url: str,
                                     space_key: Optional[str] = None) -> str:
    in_space = f" in space {space_key}" if space_key else ''
    if not results:
        return f'No {content_type}s found for query: "{query}"{in_space}'

    lines = [f'Found {len(results)} {content_type}(s) for query: "{query}"{in_space}', '']

    for index, result in enumerate(results, 1):
        content = result.get('content') or {}
        container = result.get('resultGlobalContainer') or {}
        title = clean_search_text(content.get('title') or result.get('title') or 'No title')
        webui = (content.get('_links') or {}).get('webui') or result.get('url') or ''
        excerpt = result.get('excerpt')

        lines.extend([
            f"{index}. {title}",
            f"   ID: {content.get('id') or 'Unknown ID'}",
            f"   Space: {container.get('title') or 'Unknown space'} ({container.get('displayUrl') or ''})",
            f"   Last modified: {result.get('friendlyLastModified') or 'Unknown'}",
            f"   URL: {site_url + webui if webui else 'URL not available'}",
            f"   Excerpt: {clean_search_text(excerpt)[:150] + '...' if excerpt else 'No preview'}",
            '',
        ])

    return '\n'.join(lines)


def format_confluence_page(page: Dict[str, Any], site_url: str, include_body: bool = True) -> str:
    links = page.get('_links') or {}
    webui = links.get('webui') or ''
    base = links.get('base') or site_url
    created = (page.get('history') or {}).get('createdDate') or page.get('createdDate')

    lines = [
        f"Title: {page.get('title')}",
        f"Space: {(page.get('space') or {}).get('name') or 'Unknown'}",
        f"Type: {page.get('type')}",
        f"Status: {page.get('status')}",
        f"Created: {format_jira_datetime(created)}",
        f"URL: {base + webui if webui else 'URL not available'}",
    ]
    text = '\n'.join(lines) + '\n'

    body = ((page.get('body') or {}).get('storage') or {}).get('value')
    if include_body and body:
        text += f"\nContent:\n{body}"

    return text

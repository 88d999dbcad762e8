"""Test configuration and fixtures."""

from typing import Any, Callable, Dict, List, Optional, Union

import pytest
import requests

from atlassian_mcp_tools.config import ConfluenceConfig, JiraConfig

HOST = "jira.example.com"


def http_error(status_code: int) -> requests.HTTPError:
    """HTTPError carrying a response with the given status."""
    response = requests.Response()
    response.status_code = status_code
    return requests.HTTPError(f"{status_code} Client Error", response=response)


def raw_issue(key: str,
              summary: Optional[str] = None,
              status: str = "To Do",
              issue_type: str = "Story",
              priority: Optional[str] = None,
              **extra_fields: Any) -> Dict[str, Any]:
    """Jira REST issue payload with display fields filled in."""
    fields: Dict[str, Any] = {
        "summary": summary or f"Summary of {key}",
        "status": {"name": status},
        "issuetype": {"name": issue_type},
        "project": {"key": key.rsplit("-", 1)[0]},
    }
    if priority:
        fields["priority"] = {"name": priority}
    fields.update(extra_fields)
    return {"key": key, "fields": fields}


SearchAnswer = Union[List[Dict[str, Any]], Exception]


class FakeJiraClient:
    """
    In-memory stand-in for JiraClient.

    ``issues`` maps keys to payloads (or exceptions to raise); unknown keys
    raise a 404. ``search`` is either a jql -> answer mapping or a callable.
    """

    def __init__(self,
                 issues: Optional[Dict[str, Any]] = None,
                 search: Union[Dict[str, SearchAnswer], Callable[[str], SearchAnswer], None] = None,
                 worklogs: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 comments: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 users: Optional[Dict[str, Dict[str, Any]]] = None,
                 current_user: Optional[Dict[str, Any]] = None):
        self.issues = issues or {}
        self.search = search or {}
        self.worklogs = worklogs or {}
        self.comments = comments or {}
        self.users = users or {}
        self.current_user = current_user or {"name": "me", "accountId": "me-id", "displayName": "Me"}
        self.get_calls: List[Dict[str, Any]] = []
        self.search_calls: List[Dict[str, Any]] = []

    @property
    def queries(self) -> List[str]:
        return [call["jql"] for call in self.search_calls]

    def get_issue(self, issue_key, fields=None, expand=None):
        self.get_calls.append({"key": issue_key, "fields": fields, "expand": expand})
        if issue_key not in self.issues:
            raise http_error(404)
        value = self.issues[issue_key]
        if isinstance(value, Exception):
            raise value
        return value

    def search_issues(self, jql, start_at=0, max_results=50, fields=None):
        self.search_calls.append({"jql": jql, "max_results": max_results, "fields": fields})
        answer = self.search(jql) if callable(self.search) else self.search.get(jql, [])
        if isinstance(answer, Exception):
            raise answer
        return {"issues": answer, "total": len(answer)}

    def get_comments(self, issue_key):
        return self.comments.get(issue_key, [])

    def get_issue_worklogs(self, issue_key):
        return self.worklogs.get(issue_key, [])

    def get_current_user(self):
        return self.current_user

    def get_user(self, username):
        if username not in self.users:
            raise http_error(404)
        return self.users[username]

    def test_connection(self):
        return self.current_user


@pytest.fixture
def jira_config() -> JiraConfig:
    return JiraConfig(host=HOST, username="me@example.com", password="secret")


@pytest.fixture
def confluence_config() -> ConfluenceConfig:
    return ConfluenceConfig(host="wiki.example.com", username="me@example.com", password="secret")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every Jira/Confluence variable from the environment."""
    for name in (
        "JIRA_HOST", "JIRA_USERNAME", "JIRA_PASSWORD", "JIRA_API_TOKEN",
        "JIRA_AUTH_TYPE", "JIRA_API_VERSION", "JIRA_STRICT_SSL",
        "CONFLUENCE_HOST", "CONFLUENCE_USERNAME", "CONFLUENCE_PASSWORD",
        "CONFLUENCE_API_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch

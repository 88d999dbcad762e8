"""Tests for the Jira and Confluence tool handlers."""

from unittest.mock import Mock

import pytest

from atlassian_mcp_tools.config import ConfluenceConfig, JiraConfig
from atlassian_mcp_tools.tools import (
    ConfluenceTools,
    JiraTools,
    extract_page_id,
    result_text,
    text_result,
)

from conftest import FakeJiraClient, http_error, raw_issue


def assert_text_shape(result: dict) -> None:
    assert list(result) == ["content"]
    assert result["content"][0]["type"] == "text"


class TestResultShape:

    def test_round_trip(self) -> None:
        assert text_result("hello") == {"content": [{"type": "text", "text": "hello"}]}
        assert result_text(text_result("hello")) == "hello"


class TestJiraToolsConfiguration:

    def test_missing_host(self) -> None:
        tools = JiraTools(JiraConfig(), jira_client=FakeJiraClient())

        result = tools.get_issue_structure("X-1")

        assert_text_shape(result)
        assert result_text(result) == "Configuration error: JIRA_HOST environment variable is not set"

    def test_read_description_includes_help(self) -> None:
        tools = JiraTools(JiraConfig(host="jira.example.com"), jira_client=FakeJiraClient())

        text = result_text(tools.read_description("X-1"))

        assert text.startswith("Configuration error: JIRA_USERNAME")
        assert "Required environment variables:" in text


class TestIssueTools:

    def test_issue_structure(self, jira_config: JiraConfig) -> None:
        client = FakeJiraClient(issues={"X-1": raw_issue("X-1", subtasks=[raw_issue("X-2")])})

        text = result_text(JiraTools(jira_config, client).get_issue_structure("X-1"))

        assert text.startswith("## 📋 Issue Structure")
        assert "🔧 **SUBTASKS** (1)" in text

    def test_issue_structure_fatal_failure(self, jira_config: JiraConfig) -> None:
        result = JiraTools(jira_config, FakeJiraClient()).get_issue_structure("X-404")

        assert_text_shape(result)
        assert result_text(result).startswith("Failed to retrieve issue structure for X-404:")

    def test_read_description(self, jira_config: JiraConfig) -> None:
        client = FakeJiraClient(issues={"X-1": raw_issue("X-1", "Login", description="Steps")})

        text = result_text(JiraTools(jira_config, client).read_description("X-1"))

        assert "Summary: Login" in text
        assert "Description:\nSteps" in text

    def test_read_description_failure(self, jira_config: JiraConfig) -> None:
        text = result_text(JiraTools(jira_config, FakeJiraClient()).read_description("X-404"))

        assert text.startswith("Failed to retrieve issue X-404:")

    def test_read_comments(self, jira_config: JiraConfig) -> None:
        client = FakeJiraClient(comments={"X-1": [{"author": {"displayName": "Ann"}, "body": "ok"}]})

        text = result_text(JiraTools(jira_config, client).read_comments("X-1"))

        assert "Author: Ann" in text

    @pytest.mark.parametrize("requested,sent", [(500, 100), (0, 1), (20, 20)])
    def test_search_clamps_results(self, jira_config: JiraConfig, requested: int, sent: int) -> None:
        client = FakeJiraClient(search=lambda jql: [raw_issue("X-1")])

        JiraTools(jira_config, client).search_issues("login", max_results=requested)

        assert client.search_calls[0]["max_results"] == sent

    def test_search_failure(self, jira_config: JiraConfig) -> None:
        client = FakeJiraClient(search=lambda jql: http_error(400))

        text = result_text(JiraTools(jira_config, client).search_issues("login"))

        assert text.startswith("Search failed:")


class TestWorklogTools:

    def test_invalid_date(self, jira_config: JiraConfig) -> None:
        text = result_text(JiraTools(jira_config, FakeJiraClient()).get_worklogs("2024-13-01", "2024-12-31"))

        assert text == "Invalid date '2024-13-01': expected YYYY-MM-DD"

    def test_no_worklogs(self, jira_config: JiraConfig) -> None:
        text = result_text(JiraTools(jira_config, FakeJiraClient()).get_worklogs("2024-03-01", "2024-03-31"))

        assert text == "No worklogs found for the specified criteria"

    def test_unknown_user(self, jira_config: JiraConfig) -> None:
        tools = JiraTools(jira_config, FakeJiraClient())

        text = result_text(tools.get_worklogs("2024-03-01", "2024-03-31", username="ghost"))

        assert text == 'User "ghost" not found or no permission to view their data'

    def test_report(self, jira_config: JiraConfig) -> None:
        client = FakeJiraClient(
            search=lambda jql: [raw_issue("A-1", "Build API")],
            worklogs={"A-1": [{
                "author": {"accountId": "me-id"},
                "started": "2024-03-05T09:00:00.000+0000",
                "timeSpent": "2h",
                "timeSpentSeconds": 7200,
            }]},
        )

        text = result_text(JiraTools(jira_config, client).get_worklogs_by_days(7, "2024-03-07"))

        assert text.startswith("Your Worklog Report\nPeriod: 2024-02-29 to 2024-03-07 (7 days)")
        assert "1. A-1: Build API" in text

    def test_days_must_be_positive(self, jira_config: JiraConfig) -> None:
        text = result_text(JiraTools(jira_config, FakeJiraClient()).get_worklogs_by_days(0))

        assert text == "days must be a positive number"

    def test_recent_worklogs(self, jira_config: JiraConfig) -> None:
        client = FakeJiraClient(search=lambda jql: [raw_issue("A-1"), raw_issue("A-2")])
        tools = JiraTools(jira_config, client)

        assert result_text(tools.get_recent_worklogs("week")) == "You worked on 2 tasks in the last week"
        assert result_text(tools.get_recent_worklogs("month", username="ann")) == (
            "ann worked on 2 tasks in the last month"
        )

    def test_recent_worklogs_unknown_period(self, jira_config: JiraConfig) -> None:
        text = result_text(JiraTools(jira_config, FakeJiraClient()).get_recent_worklogs("decade"))

        assert text.startswith("Unknown period 'decade'")


class TestExtractPageId:

    @pytest.mark.parametrize("value,page_id", [
        ("123456", "123456"),
        ("https://acme.atlassian.net/wiki/spaces/P/pages/98765/Roadmap", "98765"),
        ("https://wiki.corp/pages/viewpage.action?pageId=42", "42"),
        ("https://wiki.corp/display/P/Roadmap", None),
    ])
    def test_extract(self, value: str, page_id) -> None:
        assert extract_page_id(value) == page_id


class TestConfluenceTools:

    def test_search_pages_cql(self, confluence_config: ConfluenceConfig) -> None:
        client = Mock()
        client.search.return_value = []

        text = result_text(ConfluenceTools(confluence_config, client).search_pages("roadmap", "PROJ", limit=100))

        client.search.assert_called_once_with(
            'text ~ "roadmap" AND type = "page" AND space = "PROJ"',
            limit=50,
            expand=["space", "version"],
        )
        assert text == 'No pages found for query: "roadmap" in space PROJ'

    def test_search_rejects_unknown_type(self, confluence_config: ConfluenceConfig) -> None:
        text = result_text(ConfluenceTools(confluence_config, Mock()).search_pages("x", content_type="comment"))

        assert text.startswith("Unknown content type 'comment'")

    def test_get_page(self, confluence_config: ConfluenceConfig) -> None:
        client = Mock()
        client.get_content.return_value = {
            "title": "Roadmap",
            "_links": {"webui": "/spaces/P/pages/98765"},
        }

        text = result_text(ConfluenceTools(confluence_config, client).get_page(
            "https://wiki.example.com/spaces/P/pages/98765/Roadmap", expand_properties=["version"]
        ))

        client.get_content.assert_called_once_with(
            "98765", expand=["space", "history", "body.storage", "version"]
        )
        assert "Title: Roadmap" in text
        assert "URL: https://wiki.example.com/spaces/P/pages/98765" in text

    def test_get_page_bad_url(self, confluence_config: ConfluenceConfig) -> None:
        text = result_text(ConfluenceTools(confluence_config, Mock()).get_page("https://wiki.corp/display/P/X"))

        assert text == "Cannot extract page ID from URL: https://wiki.corp/display/P/X"

    def test_missing_config(self) -> None:
        text = result_text(ConfluenceTools(ConfluenceConfig(), Mock()).get_page("1"))

        assert text == "Configuration error: CONFLUENCE_HOST environment variable is not set"

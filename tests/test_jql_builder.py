"""Tests for JQL construction."""

from atlassian_mcp_tools.jql_builder import (
    build_search_jql,
    build_worklog_jql,
    build_worklog_jql_for_user,
    escape_jql,
)


class TestSearchJql:

    def test_text_only(self) -> None:
        assert build_search_jql("login") == (
            '(summary ~ "login" OR description ~ "login") ORDER BY updated DESC'
        )

    def test_all_filters(self) -> None:
        jql = build_search_jql("login", ["A", "B"], ["Open", "In Progress"], "jdoe")

        assert jql == (
            '(summary ~ "login" OR description ~ "login")'
            ' AND project IN ("A","B")'
            ' AND status IN ("Open","In Progress")'
            ' AND assignee = "jdoe"'
            ' ORDER BY updated DESC'
        )

    def test_current_user_unquoted(self) -> None:
        assert 'assignee = currentUser()' in build_search_jql("x", assignee="currentUser()")

    def test_quotes_escaped(self) -> None:
        assert escape_jql('say "hi" \\o/') == 'say \\"hi\\" \\\\o/'
        assert 'summary ~ "a \\"b\\""' in build_search_jql('a "b"')


class TestWorklogJql:

    def test_defaults_exclude_communication_and_subtasks(self) -> None:
        jql = build_worklog_jql("jdoe", "2024-03-01", "2024-03-31", communication_projects=["COM"])

        assert jql == (
            'worklogAuthor = "jdoe" AND worklogDate >= "2024-03-01" AND worklogDate <= "2024-03-31"'
            ' AND project NOT IN ("COM")'
            ' AND summary !~ "communications"'
            ' AND issuetype not in subTaskIssueTypes()'
        )

    def test_include_everything(self) -> None:
        jql = build_worklog_jql(
            "jdoe", "2024-03-01", "2024-03-31",
            project_keys=["A"],
            include_communication=True,
            communication_projects=["COM"],
            include_subtasks=True,
        )

        assert jql == (
            'worklogAuthor = "jdoe" AND worklogDate >= "2024-03-01" AND worklogDate <= "2024-03-31"'
            ' AND project IN ("A")'
        )

    def test_current_user_default(self) -> None:
        jql = build_worklog_jql_for_user(None, "2024-03-01", "2024-03-31", include_communication=True)

        assert jql.startswith("worklogAuthor = currentUser() AND")

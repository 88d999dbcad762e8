"""
Issue Relationships - Resolve the hierarchical context of a Jira issue

Given one issue key this module finds its parent, epic, subtasks, sibling
subtasks and the stories of its epic. Only the first fetch of the requested
issue may fail the request; every later lookup degrades to an empty field.
"""

import re
import logging
import requests
from typing import Dict, List, Optional, Any, Tuple

from .jql_builder import escape_jql
from .models import (
    EpicKeyReference,
    EpicLookup,
    EpicNameReference,
    EpicObjectReference,
    EpicReference,
    IssueStructure,
    LookupStatus,
    RelatedIssue,
)

logger = logging.getLogger(__name__)

# Jira has no standard field for the epic link; probed in this order,
# first non-empty value wins.
EPIC_LINK_FIELDS = [
    'customfield_10014',  # Epic Link on most Cloud and Server instances
    'customfield_10006',
    'epic',
    'epicLink',
    'customfield_10200',
]
EPIC_NAME_FIELD = 'customfield_10011'
EPIC_PROBE_FIELDS = EPIC_LINK_FIELDS + [EPIC_NAME_FIELD]

# Custom field ids usable as cf[...] in JQL, same order as above
EPIC_LINK_CF_IDS = ['10014', '10006']

DISPLAY_FIELDS = ['summary', 'status', 'issuetype', 'priority', 'project']
ISSUE_EXPAND = ['parent', 'subtasks', 'issuelinks']
EPIC_STORY_LIMIT = 50


def build_issue_url(host: str, issue_key: str) -> str:
    """Browse URL of an issue; any protocol on the host is replaced by https."""
    clean_host = re.sub(r'^https?://', '', host.strip()).rstrip('/')
    return f"https://{clean_host}/browse/{issue_key}"


def _name_of(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get('name') or None
    return None


def normalize_issue(raw_issue: Dict[str, Any], host: str) -> RelatedIssue:
    """
    Convert a raw issue payload into a RelatedIssue.

    Missing fields fall back to "Untitled" / "Unknown"; priority stays None.
    """
    fields = raw_issue.get('fields') or {}
    key = raw_issue.get('key', '')
    return RelatedIssue(
        key=key,
        summary=fields.get('summary') or 'Untitled',
        status=_name_of(fields.get('status')) or 'Unknown',
        type=_name_of(fields.get('issuetype')) or 'Unknown',
        url=build_issue_url(host, key),
        priority=_name_of(fields.get('priority')),
    )


def project_key_of(raw_issue: Dict[str, Any]) -> str:
    """Project key from the payload, or the prefix of the issue key."""
    project = (raw_issue.get('fields') or {}).get('project')
    if isinstance(project, dict) and project.get('key'):
        return project['key']
    return raw_issue.get('key', '').rsplit('-', 1)[0]


def decode_epic_reference(field_name: str, value: Any) -> Optional[EpicReference]:
    """Turn one raw epic field value into an EpicReference variant."""
    if field_name == EPIC_NAME_FIELD:
        if isinstance(value, dict):
            value = value.get('name') or value.get('value')
        if isinstance(value, str) and value.strip():
            return EpicNameReference(value.strip())
        return None

    if isinstance(value, str):
        return EpicKeyReference(value.strip()) if value.strip() else None

    if isinstance(value, dict):
        if value.get('key'):
            return EpicObjectReference(value)
        name = value.get('name') or value.get('value')
        if name:
            return EpicNameReference(name)

    return None


def locate_epic_reference(fields: Dict[str, Any]) -> Optional[EpicReference]:
    """
    Find the epic reference among the known epic fields.

    Args:
        fields: The ``fields`` mapping of a raw issue

    Returns:
        The first decodable reference in EPIC_PROBE_FIELDS order, or None
    """
    for field_name in EPIC_PROBE_FIELDS:
        value = fields.get(field_name)
        if not value:
            continue
        reference = decode_epic_reference(field_name, value)
        if reference is not None:
            return reference
    return None


def classify_error(error: Exception) -> LookupStatus:
    """404 responses mean the entity does not exist; anything else is a failure."""
    if isinstance(error, requests.HTTPError) and error.response is not None:
        if error.response.status_code == 404:
            return LookupStatus.NOT_FOUND
    return LookupStatus.FAILED


class EpicStoryResolver:
    """
    Enumerate the issues that belong to an epic.

    The JQL field for "belongs to epic" differs between Jira configurations,
    so candidate queries are tried in order until one returns issues.
    """

    def __init__(self, jira_client, host: str, max_results: int = EPIC_STORY_LIMIT):
        self.client = jira_client
        self.host = host
        self.max_results = max_results

    def candidate_queries(self, epic_key: str, project_key: Optional[str] = None) -> List[str]:
        key = escape_jql(epic_key)
        project = escape_jql(project_key or epic_key.rsplit('-', 1)[0])
        queries = [f'"Epic Link" = {key}']
        queries.extend(f'cf[{cf_id}] = {key}' for cf_id in EPIC_LINK_CF_IDS)
        queries.append(f'project = "{project}" AND text ~ "{key}"')
        return queries

    def lookup(self, epic_key: str, project_key: Optional[str] = None) -> Tuple[LookupStatus, List[RelatedIssue]]:
        """
        Run the candidate queries and report how the lookup ended.

        Returns:
            (RESOLVED, stories) on the first non-empty answer,
            (NOT_FOUND, []) when at least one query answered with nothing,
            (FAILED, []) when every query raised
        """
        answered = False
        for jql in self.candidate_queries(epic_key, project_key):
            try:
                result = self.client.search_issues(
                    jql,
                    max_results=self.max_results,
                    fields=DISPLAY_FIELDS
                )
            except Exception as e:
                logger.warning(f"⚠️  Epic story query failed for {epic_key} ({jql}): {e}")
                continue

            answered = True
            issues = result.get('issues') or []
            if issues:
                logger.debug(f"📊 Found {len(issues)} stories for {epic_key} with: {jql}")
                return LookupStatus.RESOLVED, [normalize_issue(i, self.host) for i in issues]

        return (LookupStatus.NOT_FOUND if answered else LookupStatus.FAILED), []

    def resolve(self, epic_key: str, project_key: Optional[str] = None) -> List[RelatedIssue]:
        return self.lookup(epic_key, project_key)[1]


class IssueStructureBuilder:
    """
    Build the IssueStructure of one issue.

    Steps: fetch the issue (fatal on failure), parent and its subtasks,
    own subtasks, epic reference (own fields, then parent's), epic,
    epic stories, siblings.
    """

    def __init__(self, jira_client, host: str):
        """
        Args:
            jira_client: Object providing get_issue and search_issues
            host: Jira host used for browse URLs
        """
        self.client = jira_client
        self.host = host
        self.story_resolver = EpicStoryResolver(jira_client, host)

    def build(self, issue_key: str) -> IssueStructure:
        issue = self.client.get_issue(issue_key, fields=['*all'], expand=ISSUE_EXPAND)
        fields = issue.get('fields') or {}

        structure = IssueStructure(current=normalize_issue(issue, self.host))
        excluded = {issue_key.upper(), structure.current.key.upper()}

        parent_issue = None
        parent_ref = fields.get('parent')
        if isinstance(parent_ref, dict) and parent_ref.get('key'):
            structure.parent = normalize_issue(parent_ref, self.host)
            parent_issue = self._fetch_parent(structure.parent.key, structure)
        else:
            structure.lookups['parent_subtasks'] = LookupStatus.SKIPPED

        structure.subtasks = [
            normalize_issue(subtask, self.host)
            for subtask in fields.get('subtasks') or []
            if isinstance(subtask, dict) and subtask.get('key')
        ]

        reference = locate_epic_reference(fields)
        if reference is None and parent_issue is not None:
            reference = locate_epic_reference(parent_issue.get('fields') or {})

        if reference is None:
            structure.lookups['epic'] = LookupStatus.NOT_FOUND
        else:
            epic_lookup = self._resolve_epic(reference, issue)
            structure.lookups['epic'] = epic_lookup.status
            structure.epic = epic_lookup.epic

        if structure.epic is not None:
            status, stories = self.story_resolver.lookup(structure.epic.key)
            structure.lookups['epic_stories'] = status
            excluded_stories = excluded | {structure.epic.key.upper()}
            structure.epic_stories = [s for s in stories if s.key.upper() not in excluded_stories]
        else:
            structure.lookups['epic_stories'] = LookupStatus.SKIPPED

        if parent_issue is not None:
            structure.siblings = [
                normalize_issue(subtask, self.host)
                for subtask in (parent_issue.get('fields') or {}).get('subtasks') or []
                if isinstance(subtask, dict)
                and subtask.get('key')
                and subtask['key'].upper() not in excluded
            ]

        return structure

    def _fetch_parent(self, parent_key: str, structure: IssueStructure) -> Optional[Dict[str, Any]]:
        """Re-fetch the parent with its subtasks and epic fields."""
        try:
            parent_issue = self.client.get_issue(
                parent_key,
                fields=DISPLAY_FIELDS + ['subtasks'] + EPIC_PROBE_FIELDS,
                expand=['subtasks']
            )
        except Exception as e:
            structure.lookups['parent_subtasks'] = classify_error(e)
            logger.warning(f"⚠️  Could not fetch parent {parent_key} subtasks: {e}")
            return None

        structure.lookups['parent_subtasks'] = LookupStatus.RESOLVED
        return parent_issue

    def _resolve_epic(self, reference: EpicReference, issue: Dict[str, Any]) -> EpicLookup:
        if isinstance(reference, EpicObjectReference):
            return EpicLookup(LookupStatus.RESOLVED, normalize_issue(reference.issue, self.host))

        try:
            if isinstance(reference, EpicKeyReference):
                epic_issue = self.client.get_issue(reference.key, fields=DISPLAY_FIELDS)
                return EpicLookup(LookupStatus.RESOLVED, normalize_issue(epic_issue, self.host))

            if isinstance(reference, EpicNameReference):
                return self._find_epic_by_name(reference.name, project_key_of(issue))
        except Exception as e:
            status = classify_error(e)
            logger.warning(f"⚠️  Error fetching epic for {issue.get('key')}: {e}")
            return EpicLookup(status, error=str(e))

        raise TypeError(f"Unsupported epic reference: {reference!r}")

    def _find_epic_by_name(self, name: str, project_key: str) -> EpicLookup:
        jql = (f'project = "{escape_jql(project_key)}" AND issuetype = Epic '
               f'AND summary ~ "{escape_jql(name)}"')
        result = self.client.search_issues(jql, max_results=1, fields=DISPLAY_FIELDS)
        issues = result.get('issues') or []
        if not issues:
            logger.info(f"No epic named '{name}' found in project {project_key}")
            return EpicLookup(LookupStatus.NOT_FOUND)
        return EpicLookup(LookupStatus.RESOLVED, normalize_issue(issues[0], self.host))


def get_issue_structure(jira_client, issue_key: str, host: str) -> IssueStructure:
    """Convenience wrapper around IssueStructureBuilder.build."""
    return IssueStructureBuilder(jira_client, host).build(issue_key)


def resolve_epic_stories(jira_client, epic_key: str, host: str) -> List[RelatedIssue]:
    """Convenience wrapper around EpicStoryResolver.resolve."""
    return EpicStoryResolver(jira_client, host).resolve(epic_key)

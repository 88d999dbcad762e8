"""
Models - Data classes shared by the issue relationship resolver and formatters
"""

from enum import Enum
from typing import Dict, List, Optional, Any, Union
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RelatedIssue:
    """Display snapshot of a single Jira issue."""
    key: str
    summary: str
    status: str
    type: str
    url: str
    priority: Optional[str] = None


class LookupStatus(str, Enum):
    """Outcome of a best-effort lookup performed while building a structure."""
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class IssueStructure:
    """
    Hierarchical context of one issue.

    Built once per request by IssueStructureBuilder. ``lookups`` keeps the
    outcome of every degrading step; it is not rendered.
    """
    current: RelatedIssue
    parent: Optional[RelatedIssue] = None
    epic: Optional[RelatedIssue] = None
    subtasks: List[RelatedIssue] = field(default_factory=list)
    siblings: List[RelatedIssue] = field(default_factory=list)
    epic_stories: List[RelatedIssue] = field(default_factory=list)
    lookups: Dict[str, LookupStatus] = field(default_factory=dict)


@dataclass(frozen=True)
class EpicKeyReference:
    """Epic referenced by its bare issue key."""
    key: str


@dataclass(frozen=True)
class EpicObjectReference:
    """Epic embedded in the issue payload as a partially populated issue."""
    issue: Dict[str, Any]


@dataclass(frozen=True)
class EpicNameReference:
    """Only the epic name is known; the key has to be searched for."""
    name: str


EpicReference = Union[EpicKeyReference, EpicObjectReference, EpicNameReference]


@dataclass
class EpicLookup:
    """Result of resolving an EpicReference to an issue."""
    status: LookupStatus
    epic: Optional[RelatedIssue] = None
    error: Optional[str] = None


@dataclass
class WorklogEntry:
    """A single worklog row belonging to the reported user."""
    id: Optional[str]
    started: str
    time_spent: str
    time_spent_seconds: int
    comment: str = ""


@dataclass
class TaskWorklogs:
    """Worklogs of one issue, summed for the report."""
    key: str
    summary: str
    description: str
    issue_type: str
    priority: str
    status: str
    project: str
    url: str
    is_communication: bool
    worklogs: List[WorklogEntry] = field(default_factory=list)

    @property
    def total_seconds(self) -> int:
        return sum(entry.time_spent_seconds for entry in self.worklogs)


@dataclass
class WorklogReport:
    """Everything the worklog formatter needs."""
    title: str
    start_date: str
    end_date: str
    tasks: List[TaskWorklogs]
    include_communication: bool
    communication_projects: List[str]
    days: Optional[int] = None

    @property
    def project_tasks(self) -> List[TaskWorklogs]:
        return [t for t in self.tasks if not t.is_communication]

    @property
    def communication_tasks(self) -> List[TaskWorklogs]:
        return [t for t in self.tasks if t.is_communication]

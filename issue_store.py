"""In-process storage for submitted issues (swap for a database in production)."""

from collections import Counter
from typing import Dict, Optional

from models import Issue


class IssueStore:
    def __init__(self):
        self._issues: Dict[str, Issue] = {}

    def add(self, issue: Issue) -> Issue:
        self._issues[issue.id] = issue
        return issue

    def get(self, issue_id: str) -> Optional[Issue]:
        return self._issues.get(issue_id)

    def count_by_status(self) -> Dict[str, int]:
        return dict(Counter(issue.status for issue in self._issues.values()))

    def __len__(self) -> int:
        return len(self._issues)

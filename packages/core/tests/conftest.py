"""Shared fixtures: a scripted model client and an in-memory commit source."""

from __future__ import annotations

import json

import pytest

from commitscore_core.models import DIMENSIONS, ChangedFile, ChangeType, CommitInfo
from commitscore_core.providers.base import BaseModelClient, Generation, SamplingOptions


def quality_json(score=7, **overrides) -> str:
    payload = {dim: {"score": overrides.get(dim, score), "justification": f"{dim} looks fine"} for dim in DIMENSIONS}
    payload["overall_score"] = score
    payload["justification"] = overrides.get("justification", "Readable code.")
    payload["recommendations"] = overrides.get(
        "recommendations",
        [{"title": "Extract helper", "description": "Split the loop body.", "priority": "medium"}],
    )
    return json.dumps(payload)


class ScriptedClient(BaseModelClient):
    """Returns queued replies in order; a queued Exception is raised from _call_api."""

    DEFAULT_MODEL = "stub-model"

    def __init__(self, replies=None, default=None):
        super().__init__()
        self.replies = list(replies or [])
        self.default = default
        self.prompts: list[str] = []

    def _call_api(self, prompt: str, model: str, options: SamplingOptions, timeout: float) -> Generation:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        if reply is None:
            raise ConnectionError("no scripted reply")
        return Generation(text=reply)

    def _list_models(self) -> list[str]:
        return [self.model]

    @property
    def calls(self) -> int:
        return len(self.prompts)


class FakeSource:
    """Commit source backed by dicts, shaped like GitHubSource."""

    def __init__(self, commit: CommitInfo, files: dict[str, str], statuses: dict[str, ChangeType] | None = None):
        self.commit = commit
        self.files = files
        self.statuses = statuses or {}
        self.content_requests: list[str] = []

    def get_commit(self, commit_id):
        return self.commit

    def get_changed_files(self, commit_id):
        return [ChangedFile(path, self.statuses.get(path, ChangeType.MODIFIED)) for path in self.files]

    def get_file_content(self, commit_id, path):
        self.content_requests.append(path)
        return self.files[path]

    def get_diff(self, commit_id, path):
        return "@@ -1,2 +1,3 @@\n line1\n+added\n line2\n"

    def list_commits(self, since=None):
        return [self.commit]


@pytest.fixture
def commit():
    return CommitInfo(
        id="a1b2c3d4e5f6a7b8c9d0a1b2c3d4e5f6a7b8c9d0",
        author="Dana",
        message="Refactor order service",
        date="2024-05-01T10:00:00+00:00",
        repository="owner/repo",
    )


@pytest.fixture
def make_payload():
    return quality_json


@pytest.fixture
def scripted_client():
    return ScriptedClient


@pytest.fixture
def fake_source():
    return FakeSource

"""
Code hosting integration (GitHub REST v3).
"""

import hashlib
import hmac
import logging
import random
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

import requests
from pydantic import BaseModel

from ..storage.models import utcnow
from .base import IntegrationError, LiveHttpClient

logger = logging.getLogger(__name__)


class Commit(BaseModel):
    sha: str
    message: str
    author: str
    date: datetime
    url: str


class Issue(BaseModel):
    id: int
    title: str
    body: str = ""
    state: str = "open"
    url: str


def split_repo(repo: str) -> Tuple[str, str]:
    """'owner/repo' -> ('owner', 'repo')"""
    owner, _, name = repo.partition("/")
    if not owner or not name or "/" in name:
        raise ValueError(f"Invalid repo format: {repo}. Expected format: owner/repo")
    return owner, name


def verify_signature(secret: Optional[str], body: bytes, signature: Optional[str]) -> bool:
    """
    Check an X-Hub-Signature-256 header against the raw webhook body.

    Always True when no secret is configured.
    """
    if not secret:
        return True
    if not signature or not signature.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature[len("sha256="):])


class CodeHostingClient(ABC):
    """Capability interface for the code hosting service."""

    @abstractmethod
    def get_recent_commits_for_repo(self, repo: str, since: datetime) -> List[Commit]:
        ...

    @abstractmethod
    def create_issue(self, repo: str, title: str, body: str) -> Issue:
        ...


class SimulatedGithubClient(CodeHostingClient):
    """Deterministic synthetic GitHub responses."""

    def get_recent_commits_for_repo(self, repo: str, since: datetime) -> List[Commit]:
        logger.info(f"[Simulated GitHub] Fetching commits for {repo} since {since.isoformat()}")
        return [
            Commit(
                sha="abc123",
                message="feat: Add new feature",
                author="developer@example.com",
                date=utcnow(),
                url=f"https://github.com/{repo}/commit/abc123",
            )
        ]

    def create_issue(self, repo: str, title: str, body: str) -> Issue:
        logger.info(f"[Simulated GitHub] Creating issue in {repo}: {title}")
        return Issue(
            id=random.randint(1, 10000),
            title=title,
            body=body,
            state="open",
            url=f"https://github.com/{repo}/issues/1",
        )


class LiveGithubClient(LiveHttpClient, CodeHostingClient):
    """GitHub REST API client."""

    service = "GitHub"

    def __init__(self, token: str, base_url: str = "https://api.github.com", **kwargs):
        super().__init__(base_url, **kwargs)
        self.session.headers.update({
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "studio-ops-bot",
            "Authorization": f"token {token}",
        })

    def _is_rate_limited(self, resp: requests.Response) -> bool:
        # GitHub signals primary rate limits with 403 and an exhausted quota header
        if resp.status_code == 403 and resp.headers.get("X-RateLimit-Remaining") == "0":
            return True
        return super()._is_rate_limited(resp)

    def get_recent_commits_for_repo(self, repo: str, since: datetime) -> List[Commit]:
        def call() -> List[Commit]:
            owner, name = split_repo(repo)
            data = self._request(
                "GET",
                f"/repos/{owner}/{name}/commits",
                params={"since": since.isoformat() + ("Z" if since.tzinfo is None else ""), "per_page": 100},
            )
            return [self._to_commit(item) for item in data]

        return self._with_fallback("get_recent_commits_for_repo", call, repo, since)

    def create_issue(self, repo: str, title: str, body: str) -> Issue:
        def call() -> Issue:
            owner, name = split_repo(repo)
            data = self._request(
                "POST",
                f"/repos/{owner}/{name}/issues",
                json={"title": title, "body": body},
            )
            return Issue(
                id=data["id"],
                title=data["title"],
                body=data.get("body") or "",
                state=data.get("state", "open"),
                url=data["html_url"],
            )

        return self._with_fallback("create_issue", call, repo, title, body)

    @staticmethod
    def _to_commit(item: dict) -> Commit:
        try:
            commit = item["commit"]
            author: Optional[dict] = item.get("author")
            return Commit(
                sha=item["sha"],
                # First line only
                message=commit["message"].split("\n")[0],
                author=(author or {}).get("login") or commit["author"]["email"],
                date=datetime.fromisoformat(commit["author"]["date"].replace("Z", "+00:00")),
                url=item["html_url"],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise IntegrationError("GitHub", f"unexpected commit payload: {e}") from e

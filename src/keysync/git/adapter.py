"""Declared-state API wrapper — listings, file reads, commits, compare."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

JSON_ACCEPT = "application/vnd.github.v3+json"
DIFF_ACCEPT = "application/vnd.github.v3.diff"


class RemoteError(Exception):
    """Raised when the declared-state API is unreachable or returns an unexpected error."""


class RemoteStore:
    """Thin client over a GitHub-style contents/commits/compare API.

    *base_url* points at the contents endpoint
    (``.../repos/<owner>/<repo>/contents``); repository-level endpoints are
    derived by dropping the trailing ``/contents``.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        user_agent: str = "keysync",
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.contents_url = base_url.rstrip("/")
        self.repo_url = self.contents_url.removesuffix("/contents")
        self._client = httpx.Client(
            headers={
                "Authorization": f"Bearer {token}",
                "User-Agent": user_agent,
            },
            timeout=timeout,
            transport=transport,
        )

    def _request(self, url: str, *, accept: str = JSON_ACCEPT, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """Send a GET and return the response. Raises RemoteError on transport failure."""
        try:
            return self._client.get(url, params=params, headers={"Accept": accept})
        except httpx.HTTPError as exc:
            raise RemoteError(f"request to {url} failed: {exc}") from exc

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(f"invalid JSON from {response.request.url}: {exc}") from exc

    def _check(self, response: httpx.Response, what: str) -> None:
        if not response.is_success:
            raise RemoteError(f"{what} failed with status {response.status_code}")

    # --- contents ---

    def get_file(self, path: str, ref: str) -> httpx.Response:
        """Return the raw response for a file read; the caller inspects the status."""
        return self._request(f"{self.contents_url}/{path}", params={"ref": ref})

    def list_dir(self, path: str, ref: str) -> Optional[List[Dict[str, Any]]]:
        """Return the directory entries at *path*, or None on a non-success status."""
        response = self.get_file(path, ref)
        if not response.is_success:
            return None
        entries = self._json(response)
        if not isinstance(entries, list):
            raise RemoteError(f"{path} at {ref} is not a directory")
        return entries

    # --- commits ---

    def recent_commit(self, branch: str) -> str:
        """Return the sha of the newest commit on *branch* via the commits listing."""
        response = self._request(
            f"{self.repo_url}/commits",
            params={"sha": branch, "per_page": 1},
        )
        self._check(response, f"commit listing for {branch}")
        commits = self._json(response)
        if not isinstance(commits, list):
            raise RemoteError(f"commit listing for {branch} is not a list")
        if not commits:
            raise RemoteError(f"No commits found on {branch} branch")
        sha = commits[0].get("sha") if isinstance(commits[0], dict) else None
        if not sha:
            raise RemoteError(f"SHA not found in commit listing for {branch}")
        return sha

    def latest_commit(self, branch: str) -> str:
        """Return the sha *branch* currently points at via the single-commit lookup."""
        response = self._request(f"{self.repo_url}/commits/{branch}")
        self._check(response, f"fetching latest commit of {branch}")
        data = self._json(response)
        sha = data.get("sha") if isinstance(data, dict) else None
        if not sha:
            raise RemoteError("SHA not found in commit response")
        return sha

    def compare(self, base: str, head: str) -> str:
        """Return the unified diff text between *base* and *head*."""
        response = self._request(
            f"{self.repo_url}/compare/{base}...{head}",
            accept=DIFF_ACCEPT,
        )
        self._check(response, f"compare {base}...{head}")
        return response.text

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RemoteStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

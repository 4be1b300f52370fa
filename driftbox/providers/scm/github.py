"""GitHub SCM provider that fetches configuration repositories over https."""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import Sequence

from driftbox.models.scm import RepositoryRef
from driftbox.providers.scm.base import ScmProvider

logger = logging.getLogger(__name__)

_CREDENTIAL = re.compile(r"https://[^@/\s]+@")


def redact(text: str) -> str:
    return _CREDENTIAL.sub("https://***@", text)


class GitHubProvider(ScmProvider):
    def __init__(self, token: str = "", username: str = "oauth2") -> None:
        self._token = token
        self._username = username

    def authenticated_url(self, repo: RepositoryRef) -> str:
        url = repo.https_url
        if not self._token:
            return url
        credential = f"{self._username}:{self._token}"
        return url.replace("https://", f"https://{credential}@", 1)

    def fetch_tree(self, repo: RepositoryRef, dest: Path) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Fetching {repo.https_url} at {repo.branch} into {dest}")
        self._run_git(
            [
                "git",
                "clone",
                "--depth",
                "1",
                "--branch",
                repo.branch,
                self.authenticated_url(repo),
                str(dest),
            ]
        )
        return dest

    def _run_git(self, command: Sequence[str]) -> subprocess.CompletedProcess[str]:
        process = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            check=False,
        )
        if process.returncode != 0:
            raise RuntimeError(
                "Git command failed: "
                f"{redact(' '.join(command))}\n{redact(process.stderr.strip())}"
            )
        return process

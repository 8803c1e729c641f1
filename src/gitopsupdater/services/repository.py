"""Git repository session for the GitOps updater.

Wraps the handful of GitPython calls a run needs: clone into the scratch
workspace, switch branch, commit one file and push it back. Credentials are
only ever placed in the URL handed to git for the clone and push commands;
they are never written to ``.git/config`` and are redacted from error
messages.
"""

import os
import re
from typing import Optional
from urllib.parse import quote, urlsplit, urlunsplit

from git import Actor, GitCommandError, Repo
from git.exc import GitError

from gitopsupdater.errors import (
    BranchError,
    CloneError,
    CommitError,
    PushError,
    RepositoryNotClonedError,
)
from gitopsupdater.errors_catalog import actionable_error

_USERINFO = re.compile(r"(://)[^/\s@]+@")


def authenticated_url(server_url: str, username: str, password: str) -> str:
    """Embeds credentials into http(s) URLs; other URLs are returned unchanged."""
    parts = urlsplit(server_url)
    if parts.scheme not in ("http", "https") or not (username or password):
        return server_url

    host = parts.netloc.rsplit("@", 1)[-1]
    userinfo = quote(username or "git", safe="")
    if password:
        userinfo = f"{userinfo}:{quote(password, safe='')}"
    return urlunsplit((parts.scheme, f"{userinfo}@{host}", parts.path, parts.query, parts.fragment))


def redact(text: str, password: str) -> str:
    """Masks URL userinfo and the password; user names elsewhere are left alone."""
    text = _USERINFO.sub(r"\1***@", text)
    if password:
        text = text.replace(quote(password, safe=""), "***")
        text = text.replace(password, "***")
    return text


class RepositorySession:
    """One cloned repository and its working tree, used for a single run."""

    def __init__(self, logger):
        self.logger = logger
        self.repository: Optional[Repo] = None
        self.server_url = ""

    def _require_repository(self) -> Repo:
        if self.repository is None:
            raise RepositoryNotClonedError("repository has not been cloned")
        return self.repository

    @property
    def working_tree(self) -> str:
        return self._require_repository().working_tree_dir

    def clone(self, server_url: str, username: str, password: str, directory: str):
        self.logger.info("Cloning %s", server_url)
        clone_url = authenticated_url(server_url, username, password)
        try:
            self.repository = Repo.clone_from(clone_url, directory)
            if clone_url != server_url:
                self.repository.remote("origin").set_url(server_url)
        except (GitError, ValueError, OSError) as exc:
            self.repository = None
            raise CloneError(
                f"{actionable_error('clone_failed', url=server_url)} "
                f"{redact(str(exc), password)}"
            ) from None
        self.server_url = server_url

    def change_branch(self, branch_name: str):
        repository = self._require_repository()
        if not branch_name:
            raise BranchError("no branch name provided")

        try:
            if branch_name in repository.heads:
                repository.heads[branch_name].checkout()
                return

            remote_ref = f"origin/{branch_name}"
            origin = repository.remote("origin")
            if remote_ref not in [ref.name for ref in origin.refs]:
                raise BranchError(actionable_error("branch_not_found", branch=branch_name))

            head = repository.create_head(branch_name, origin.refs[branch_name])
            head.set_tracking_branch(origin.refs[branch_name])
            head.checkout()
        except GitCommandError as exc:
            raise BranchError(f"failed to check out branch '{branch_name}'") from exc
        self.logger.debug("Checked out branch %s", branch_name)

    def commit_single_file(
        self,
        file_path: str,
        commit_message: str,
        author_name: str,
        author_email: str = "",
    ) -> str:
        repository = self._require_repository()
        absolute_path = os.path.join(repository.working_tree_dir, file_path)
        if not os.path.isfile(absolute_path):
            raise CommitError(actionable_error("manifest_not_found", path=file_path))

        actor = Actor(author_name, author_email)
        try:
            repository.index.add([file_path.replace(os.sep, "/")])
            commit = repository.index.commit(commit_message, author=actor, committer=actor)
        except (GitError, OSError, ValueError) as exc:
            raise CommitError(f"committing {file_path} failed") from exc
        return commit.hexsha

    def push(self, username: str, password: str):
        repository = self._require_repository()
        try:
            branch = repository.active_branch.name
        except TypeError as exc:
            raise PushError("cannot push from a detached HEAD") from exc

        push_url = authenticated_url(self.server_url, username, password)
        self.logger.info("Pushing %s to %s", branch, self.server_url)
        try:
            repository.git.push(push_url, f"HEAD:refs/heads/{branch}")
        except GitCommandError as exc:
            raise PushError(
                f"{actionable_error('push_rejected', branch=branch)} "
                f"{redact(str(exc), password)}"
            ) from None

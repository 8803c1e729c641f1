import logging
import os
from typing import Callable, Optional

from rich.console import Console

from .constants import WORKSPACE_PREFIX
from .errors import (
    BranchError,
    CloneError,
    CommitError,
    ConfigurationError,
    ExternalToolError,
    FileWriteError,
    GitopsError,
    PushError,
    WorkspaceError,
    describe_error,
)
from .models import DeploymentUpdateRequest
from .services.command_runner import CommandRunner
from .services.filesystem import FileSystemService
from .services.renderers import ManifestRenderer, build_renderer
from .services.repository import RepositorySession

console = Console()
logger = logging.getLogger("gitopsupdater")

# Error class used for unexpected failures raised inside a step.
STEP_ERRORS = {
    "validate_request": ConfigurationError,
    "clone_repository": CloneError,
    "change_branch": BranchError,
    "render_manifest": ExternalToolError,
    "write_manifest": FileWriteError,
    "commit_changes": CommitError,
    "push_changes": PushError,
}


class GitopsUpdater:
    """Clones a repository, re-renders one manifest and pushes the change."""

    def __init__(
        self,
        request: DeploymentUpdateRequest,
        command_runner: Optional[CommandRunner] = None,
        repository: Optional[RepositorySession] = None,
        filesystem: Optional[FileSystemService] = None,
        renderer_factory: Callable[..., ManifestRenderer] = build_renderer,
    ):
        self.request = request
        self.command_runner = command_runner or CommandRunner(logger=logger)
        self.repository = repository or RepositorySession(logger=logger)
        self.filesystem = filesystem or FileSystemService(logger=logger, console=console)
        self.renderer_factory = renderer_factory
        self.current_step_name: Optional[str] = None

    def _run_step(self, name: str, callback, *args, **kwargs):
        logger.debug("Starting step: %s", name)
        self.current_step_name = name
        try:
            result = callback(*args, **kwargs)
        except GitopsError as exc:
            if exc.step is None:
                exc.step = name
            raise
        except Exception as exc:
            error_cls = STEP_ERRORS.get(name, GitopsError)
            raise error_cls(f"unexpected failure: {exc}", step=name) from exc

        self.current_step_name = None
        return result

    def clone_repository(self, workspace: str):
        self.repository.clone(
            self.request.server_url,
            self.request.username,
            self.request.password,
            workspace,
        )

    def change_branch(self):
        self.repository.change_branch(self.request.branch_name)

    def render_manifest(self, manifest_path: str) -> bytes:
        renderer = self.renderer_factory(self.request.deploy_tool, self.command_runner)
        console.print(f"[blue]Rendering manifest with {self.request.deploy_tool}...[/blue]")
        return renderer.render(self.request, manifest_path)

    def write_manifest(self, manifest_path: str, content: bytes):
        self.filesystem.write_file(manifest_path, content, self.request.manifest_file_mode)

    def commit_changes(self) -> str:
        return self.repository.commit_single_file(
            self.request.file_path,
            self.request.formatted_commit_message(),
            self.request.commit_author,
            self.request.author_email,
        )

    def push_changes(self):
        self.repository.push(self.request.username, self.request.password)

    def update(self) -> str:
        """Runs every step in order and returns the pushed commit SHA."""
        self._run_step("validate_request", self.request.validate)

        try:
            with self.filesystem.workspace(
                self.request.workspace_base_dir, WORKSPACE_PREFIX
            ) as workspace:
                commit = self._update_workspace(workspace)
        except WorkspaceError as exc:
            exc.step = exc.step or "create_workspace"
            raise

        logger.info("Changes committed with %s", commit)
        return commit

    def _update_workspace(self, workspace: str) -> str:
        self._run_step("clone_repository", self.clone_repository, workspace)
        self._run_step("change_branch", self.change_branch)

        manifest_path = os.path.join(workspace, self.request.file_path)
        content = self._run_step("render_manifest", self.render_manifest, manifest_path)
        self._run_step("write_manifest", self.write_manifest, manifest_path, content)

        commit = self._run_step("commit_changes", self.commit_changes)
        self._run_step("push_changes", self.push_changes)
        return commit

    def run(self) -> int:
        try:
            logger.info("Starting GitOps deployment update...")
            commit = self.update()
            console.print(f"[green]Pushed commit {commit[:12]} to {self.request.branch_name}.[/green]")
            return 0

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except GitopsError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.critical("Step execution failed: %s", describe_error(exc))
            return 1
        except Exception:
            console.print("[bold red]Unexpected error.[/bold red]")
            logger.exception("Unexpected error in step %s", self.current_step_name or "run")
            return 1

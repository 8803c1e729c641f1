"""Shared domain models for the GitOps updater."""

from dataclasses import dataclass
from typing import List, Optional

from .constants import (
    DEFAULT_AUTHOR_NAME,
    DEFAULT_BRANCH,
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_HELM_IMAGE_VALUE,
    DEFAULT_HELM_TAG_VALUE,
    HELM,
    KUBECTL,
    MANIFEST_FILE_MODE,
)
from .errors import ConfigurationError


@dataclass(frozen=True)
class DeploymentUpdateRequest:
    """Everything one run needs to patch, commit and push a manifest."""

    server_url: str
    file_path: str
    deploy_tool: str
    container_image: str
    username: str = ""
    password: str = ""
    branch_name: str = DEFAULT_BRANCH
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    author_name: str = ""
    author_email: str = ""
    container_registry_url: str = ""
    container_name: str = ""
    deployment_name: str = ""
    chart_path: str = ""
    helm_values_file: str = ""
    helm_image_value_name: str = DEFAULT_HELM_IMAGE_VALUE
    helm_tag_value_name: str = DEFAULT_HELM_TAG_VALUE
    manifest_file_mode: int = MANIFEST_FILE_MODE
    workspace_base_dir: str = "."
    tool_timeout: Optional[float] = None

    def __repr__(self) -> str:
        return (
            f"DeploymentUpdateRequest(server_url={self.server_url!r}, "
            f"branch_name={self.branch_name!r}, file_path={self.file_path!r}, "
            f"deploy_tool={self.deploy_tool!r}, container_image={self.container_image!r})"
        )

    @property
    def commit_author(self) -> str:
        return self.author_name or self.username or DEFAULT_AUTHOR_NAME

    def formatted_commit_message(self) -> str:
        """Expands the known placeholders; any other text is kept verbatim."""
        message = self.commit_message
        replacements = {
            "{container_name}": self.container_name or self.deployment_name,
            "{image}": self.container_image,
            "{file_path}": self.file_path,
        }
        for token, value in replacements.items():
            message = message.replace(token, value)
        return message

    def missing_fields(self) -> List[str]:
        required = ["server_url", "file_path", "deploy_tool", "container_image"]
        if self.deploy_tool == KUBECTL:
            required.append("container_name")
        elif self.deploy_tool == HELM:
            required.extend(["deployment_name", "chart_path"])
        return [name for name in required if not str(getattr(self, name) or "").strip()]

    def validate(self):
        """Checks the request before any side effect happens.

        Unknown deploy tools are left to the orchestrator so that the
        dispatch reports them as UnsupportedToolError.
        """
        missing = self.missing_fields()
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

        if not self.commit_message.strip():
            raise ConfigurationError("commit_message must not be empty")

        if escapes_root(self.file_path):
            raise ConfigurationError(
                f"file_path must stay inside the repository: {self.file_path}"
            )

        if not 0 <= self.manifest_file_mode <= 0o777:
            raise ConfigurationError(
                f"manifest_file_mode must be a permission mode, got {oct(self.manifest_file_mode)}"
            )


def escapes_root(relative_path: str) -> bool:
    parts = relative_path.replace("\\", "/").split("/")
    if relative_path.startswith(("/", "\\")):
        return True
    depth = 0
    for part in parts:
        if part in ("", "."):
            continue
        depth = depth - 1 if part == ".." else depth + 1
        if depth < 0:
            return True
    return False

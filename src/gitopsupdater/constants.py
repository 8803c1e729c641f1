"""Shared constants for the GitOps updater."""

KUBECTL = "kubectl"
HELM = "helm"
SUPPORTED_DEPLOY_TOOLS = (KUBECTL, HELM)

DEFAULT_BRANCH = "master"
DEFAULT_COMMIT_MESSAGE = "Updated {container_name} to {image}"
DEFAULT_AUTHOR_NAME = "gitops-updater"
DEFAULT_HELM_IMAGE_VALUE = "image.repository"
DEFAULT_HELM_TAG_VALUE = "image.tag"
DEFAULT_CONFIG_FILE = ".gitops-updater.yml"

WORKSPACE_PREFIX = "temp-"
MANIFEST_FILE_MODE = 0o644

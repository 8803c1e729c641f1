import logging
import os

import click
from rich.logging import RichHandler

from .constants import (
    DEFAULT_BRANCH,
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_CONFIG_FILE,
    DEFAULT_HELM_IMAGE_VALUE,
    DEFAULT_HELM_TAG_VALUE,
    MANIFEST_FILE_MODE,
    SUPPORTED_DEPLOY_TOOLS,
)
from .core import GitopsUpdater
from .errors import GitopsError
from .models import DeploymentUpdateRequest
from .services.config_loader import ConfigLoader, parse_file_mode, parse_timeout


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option("--server-url", required=False, help="URL of the Git repository holding the manifest.")
@click.option(
    "--username",
    required=False,
    envvar="GITOPS_USERNAME",
    help="User name for the Git server (env: GITOPS_USERNAME).",
)
@click.option(
    "--password",
    required=False,
    envvar="GITOPS_PASSWORD",
    help="Password or access token for the Git server (env: GITOPS_PASSWORD).",
)
@click.option("--branch-name", required=False, help=f"Branch to update (default: {DEFAULT_BRANCH}).")
@click.option("--file-path", required=False, help="Manifest path relative to the repository root.")
@click.option(
    "--commit-message",
    required=False,
    help="Commit message. Supports {container_name}, {image} and {file_path} placeholders.",
)
@click.option("--author-name", required=False, help="Commit author name (default: the user name).")
@click.option("--author-email", required=False, help="Commit author e-mail.")
@click.option(
    "--deploy-tool",
    required=False,
    type=click.Choice(SUPPORTED_DEPLOY_TOOLS),
    help="Tool used to render the new manifest.",
)
@click.option("--container-image", required=False, help="New image reference, name[:tag].")
@click.option("--container-registry-url", required=False, help="Registry the image is pulled from.")
@click.option("--container-name", required=False, help="Container to patch (kubectl).")
@click.option("--deployment-name", required=False, help="Release name passed to helm template (helm).")
@click.option("--chart-path", required=False, help="Chart path relative to the repository root (helm).")
@click.option("--helm-values-file", required=False, help="Additional values file (helm).")
@click.option(
    "--helm-image-value-name",
    required=False,
    help=f"Chart value receiving registry and image name (default: {DEFAULT_HELM_IMAGE_VALUE}).",
)
@click.option(
    "--helm-tag-value-name",
    required=False,
    help=f"Chart value receiving the image tag (default: {DEFAULT_HELM_TAG_VALUE}).",
)
@click.option(
    "--manifest-file-mode",
    required=False,
    help="Octal permission mode for the written manifest (default: 644).",
)
@click.option(
    "--workspace-base-dir",
    required=False,
    type=click.Path(file_okay=False),
    help="Directory in which the temporary clone is created (default: current directory).",
)
@click.option(
    "--tool-timeout",
    required=False,
    type=float,
    default=None,
    help="Timeout in seconds for the kubectl/helm invocation.",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
def main(
    server_url,
    username,
    password,
    branch_name,
    file_path,
    commit_message,
    author_name,
    author_email,
    deploy_tool,
    container_image,
    container_registry_url,
    container_name,
    deployment_name,
    chart_path,
    helm_values_file,
    helm_image_value_name,
    helm_tag_value_name,
    manifest_file_mode,
    workspace_base_dir,
    tool_timeout,
    config,
    verbose,
    log_file,
):
    """Update a container image in a Git-hosted deployment manifest and push the change."""
    logger = logging.getLogger("gitopsupdater")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except GitopsError as exc:
        raise click.ClickException(str(exc)) from exc

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")

    deploy_tool = _resolve_option(deploy_tool, config_values, "deploy_tool")
    if deploy_tool is not None and deploy_tool not in SUPPORTED_DEPLOY_TOOLS:
        raise click.ClickException(
            f"Invalid deploy_tool '{deploy_tool}'. Supported: {', '.join(SUPPORTED_DEPLOY_TOOLS)}"
        )

    tool_timeout = _resolve_option(tool_timeout, config_values, "tool_timeout")

    try:
        request = DeploymentUpdateRequest(
            server_url=_resolve_option(server_url, config_values, "server_url", default=""),
            username=_resolve_option(username, config_values, "username", default=""),
            password=_resolve_option(password, config_values, "password", default=""),
            branch_name=_resolve_option(
                branch_name, config_values, "branch_name", default=DEFAULT_BRANCH
            ),
            file_path=_resolve_option(file_path, config_values, "file_path", default=""),
            commit_message=_resolve_option(
                commit_message, config_values, "commit_message", default=DEFAULT_COMMIT_MESSAGE
            ),
            author_name=_resolve_option(author_name, config_values, "author_name", default=""),
            author_email=_resolve_option(author_email, config_values, "author_email", default=""),
            deploy_tool=deploy_tool or "",
            container_image=_resolve_option(
                container_image, config_values, "container_image", default=""
            ),
            container_registry_url=_resolve_option(
                container_registry_url, config_values, "container_registry_url", default=""
            ),
            container_name=_resolve_option(
                container_name, config_values, "container_name", default=""
            ),
            deployment_name=_resolve_option(
                deployment_name, config_values, "deployment_name", default=""
            ),
            chart_path=_resolve_option(chart_path, config_values, "chart_path", default=""),
            helm_values_file=_resolve_option(
                helm_values_file, config_values, "helm_values_file", default=""
            ),
            helm_image_value_name=_resolve_option(
                helm_image_value_name,
                config_values,
                "helm_image_value_name",
                default=DEFAULT_HELM_IMAGE_VALUE,
            ),
            helm_tag_value_name=_resolve_option(
                helm_tag_value_name,
                config_values,
                "helm_tag_value_name",
                default=DEFAULT_HELM_TAG_VALUE,
            ),
            manifest_file_mode=parse_file_mode(
                _resolve_option(
                    manifest_file_mode,
                    config_values,
                    "manifest_file_mode",
                    default=MANIFEST_FILE_MODE,
                )
            ),
            workspace_base_dir=_resolve_option(
                workspace_base_dir, config_values, "workspace_base_dir", default="."
            ),
            tool_timeout=parse_timeout(tool_timeout),
        )
        request.validate()
    except GitopsError as exc:
        raise click.ClickException(str(exc)) from exc

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    updater = GitopsUpdater(request)
    raise SystemExit(updater.run())


if __name__ == "__main__":
    main()

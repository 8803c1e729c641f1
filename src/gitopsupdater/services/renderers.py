"""Manifest renderers wrapping the deploy tool executables."""

import json
from typing import List

from gitopsupdater.constants import HELM, KUBECTL, SUPPORTED_DEPLOY_TOOLS
from gitopsupdater.errors import ExternalToolError, ImageReferenceError, UnsupportedToolError
from gitopsupdater.errors_catalog import actionable_error
from gitopsupdater.models import DeploymentUpdateRequest
from gitopsupdater.services import image_reference


class ManifestRenderer:
    """Produces the patched manifest bytes for one deploy tool."""

    tool = ""

    def __init__(self, command_runner):
        self.command_runner = command_runner

    def build_command(
        self, request: DeploymentUpdateRequest, manifest_path: str
    ) -> List[str]:
        raise NotImplementedError

    def render(self, request: DeploymentUpdateRequest, manifest_path: str) -> bytes:
        cmd = self.build_command(request, manifest_path)
        try:
            result = self.command_runner.run(cmd, timeout=request.tool_timeout)
        except ExternalToolError as exc:
            raise ExternalToolError(f"failed to apply {self.tool} command") from exc
        return result.stdout or b""


class KubectlRenderer(ManifestRenderer):
    tool = KUBECTL

    def build_patch(self, request: DeploymentUpdateRequest) -> str:
        try:
            registry_image = image_reference.build_registry_image(
                request.container_registry_url, request.container_image
            )
        except ImageReferenceError as exc:
            raise ImageReferenceError("registry URL could not be extracted") from exc

        patch = {
            "spec": {
                "template": {
                    "spec": {
                        "containers": [
                            {"name": request.container_name, "image": registry_image}
                        ]
                    }
                }
            }
        }
        return json.dumps(patch, separators=(",", ":"))

    def build_command(self, request, manifest_path):
        return [
            KUBECTL,
            "patch",
            "--local",
            "--output=yaml",
            f"--patch={self.build_patch(request)}",
            f"--filename={manifest_path}",
        ]


class HelmRenderer(ManifestRenderer):
    """Renders the chart with the image name and tag set as separate values."""

    tool = HELM

    def image_values(self, request: DeploymentUpdateRequest):
        try:
            registry_image = image_reference.build_registry_image_without_tag(
                request.container_registry_url, request.container_image
            )
        except ImageReferenceError as exc:
            raise ImageReferenceError("failed to extract registry URL and image") from exc
        try:
            image_tag = image_reference.tag_from_reference(request.container_image)
        except ImageReferenceError as exc:
            raise ImageReferenceError("failed to extract image tag") from exc
        return registry_image, image_tag

    def build_command(self, request, manifest_path):
        registry_image, image_tag = self.image_values(request)
        return [
            HELM,
            "template",
            request.deployment_name,
            request.chart_path,
            f"--values={request.helm_values_file}",
            f"--set={request.helm_image_value_name}={registry_image}",
            f"--set={request.helm_tag_value_name}={image_tag}",
        ]


RENDERERS = {
    KUBECTL: KubectlRenderer,
    HELM: HelmRenderer,
}


def build_renderer(deploy_tool: str, command_runner) -> ManifestRenderer:
    renderer_cls = RENDERERS.get(deploy_tool)
    if renderer_cls is None:
        raise UnsupportedToolError(
            actionable_error(
                "unsupported_tool",
                tool=deploy_tool,
                supported=", ".join(SUPPORTED_DEPLOY_TOOLS),
            )
        )
    return renderer_cls(command_runner)

import subprocess
import sys

import pytest

from gitopsupdater.errors import ExternalToolError, ImageReferenceError, UnsupportedToolError
from gitopsupdater.models import DeploymentUpdateRequest
from gitopsupdater.services.command_runner import CommandRunner
from gitopsupdater.services.renderers import HelmRenderer, KubectlRenderer, build_renderer


class RecordingRunner:
    def __init__(self, stdout=b"rendered: true\n", error=None):
        self.stdout = stdout
        self.error = error
        self.calls = []

    def run(self, cmd, cwd=None, timeout=None):
        self.calls.append({"cmd": cmd, "cwd": cwd, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(cmd, 0, stdout=self.stdout, stderr=b"")


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


def _request(**overrides) -> DeploymentUpdateRequest:
    values = dict(
        server_url="https://git.example.com/deploy.git",
        file_path="deploy.yaml",
        deploy_tool="kubectl",
        container_image="img:v1",
        container_name="app",
    )
    values.update(overrides)
    return DeploymentUpdateRequest(**values)


def test_kubectl_renderer_builds_merge_patch_command():
    runner = RecordingRunner()
    renderer = KubectlRenderer(runner)

    output = renderer.render(_request(), "/work/deploy.yaml")

    assert output == b"rendered: true\n"
    assert runner.calls[0]["cmd"] == [
        "kubectl",
        "patch",
        "--local",
        "--output=yaml",
        '--patch={"spec":{"template":{"spec":{"containers":[{"name":"app","image":"img:v1"}]}}}}',
        "--filename=/work/deploy.yaml",
    ]


def test_kubectl_renderer_prefixes_registry_host():
    patch = KubectlRenderer(RecordingRunner()).build_patch(
        _request(container_registry_url="https://reg.example.com/")
    )

    assert '"image":"reg.example.com/img:v1"' in patch


def test_kubectl_renderer_wraps_registry_errors():
    with pytest.raises(ImageReferenceError, match="registry URL could not be extracted"):
        KubectlRenderer(RecordingRunner()).build_patch(_request(container_registry_url="https://"))


def test_helm_renderer_sets_name_and_tag_separately():
    runner = RecordingRunner()
    request = _request(
        deploy_tool="helm",
        container_image="reg.example.com/img:v2",
        container_registry_url="reg.example.com",
        deployment_name="web",
        chart_path="./chart",
        helm_values_file="vals.yaml",
        helm_image_value_name="image.repository",
        helm_tag_value_name="image.tag",
        tool_timeout=30.0,
    )

    HelmRenderer(runner).render(request, "/work/deploy.yaml")

    assert runner.calls[0]["cmd"] == [
        "helm",
        "template",
        "web",
        "./chart",
        "--values=vals.yaml",
        "--set=image.repository=reg.example.com/img",
        "--set=image.tag=v2",
    ]
    assert runner.calls[0]["cwd"] is None
    assert runner.calls[0]["timeout"] == 30.0


def test_helm_renderer_reports_bad_image_before_running():
    runner = RecordingRunner()
    request = _request(deploy_tool="helm", container_image="img:", deployment_name="web", chart_path="c")

    with pytest.raises(ImageReferenceError, match="failed to extract registry URL and image"):
        HelmRenderer(runner).render(request, "/work/deploy.yaml")

    assert runner.calls == []


def test_renderer_wraps_tool_failure_with_tool_name():
    runner = RecordingRunner(error=ExternalToolError("Command failed (1): kubectl patch"))

    with pytest.raises(ExternalToolError, match="failed to apply kubectl command") as excinfo:
        KubectlRenderer(runner).render(_request(), "/work/deploy.yaml")

    assert "Command failed (1)" in str(excinfo.value.__cause__)


def test_renderer_returns_real_process_stdout(tmp_path, monkeypatch):
    fake_kubectl = tmp_path / "kubectl"
    fake_kubectl.write_text(
        f"#!{sys.executable}\nimport sys\nsys.stdout.write('\\n'.join(sys.argv[1:]))\n",
        encoding="utf-8",
    )
    fake_kubectl.chmod(0o755)
    monkeypatch.setenv("PATH", str(tmp_path))

    output = KubectlRenderer(CommandRunner(logger=DummyLogger())).render(
        _request(), str(tmp_path / "deploy.yaml")
    )

    assert output.decode().splitlines()[:3] == ["patch", "--local", "--output=yaml"]


@pytest.mark.parametrize("tool", ["kustomize", "", "KUBECTL"])
def test_build_renderer_rejects_unsupported_tools(tool):
    with pytest.raises(UnsupportedToolError, match="is not supported"):
        build_renderer(tool, RecordingRunner())


def test_helm_chart_path_resolves_from_step_working_directory(tmp_path, monkeypatch):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    fake_helm = bin_dir / "helm"
    fake_helm.write_text(
        f"#!{sys.executable}\n"
        "import os, sys\n"
        "chart = sys.argv[3]\n"
        "if not os.path.isdir(chart):\n"
        "    sys.stderr.write('chart not found: ' + chart)\n"
        "    sys.exit(4)\n"
        "sys.stdout.write('chart: ' + os.path.realpath(chart))\n",
        encoding="utf-8",
    )
    fake_helm.chmod(0o755)
    monkeypatch.setenv("PATH", str(bin_dir))

    app_checkout = tmp_path / "app"
    (app_checkout / "chart").mkdir(parents=True)
    monkeypatch.chdir(app_checkout)

    request = _request(
        deploy_tool="helm",
        container_image="img:v2",
        deployment_name="web",
        chart_path="./chart",
        helm_values_file="vals.yaml",
    )
    output = HelmRenderer(CommandRunner(logger=DummyLogger())).render(
        request, str(tmp_path / "clone" / "deploy.yaml")
    )

    assert output.decode() == f"chart: {(app_checkout / 'chart').resolve()}"

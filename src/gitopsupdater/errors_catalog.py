"""Actionable error catalog for the GitOps updater."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "unsupported_tool": {
        "what": "Deploy tool '{tool}' is not supported.",
        "next": "Use one of: {supported}.",
    },
    "tool_not_found": {
        "what": "Required command not found: {tool}",
        "next": "Install `{tool}` and make sure it is on the PATH.",
    },
    "clone_failed": {
        "what": "Could not clone repository {url}.",
        "next": "Check the server URL and that the credentials grant read access.",
    },
    "branch_not_found": {
        "what": "Branch '{branch}' does not exist in the repository.",
        "next": "Create the branch on the remote or set `branch_name` to an existing one.",
    },
    "manifest_not_found": {
        "what": "Manifest file not found in the repository: {path}",
        "next": "Check `file_path`; it must be relative to the repository root.",
    },
    "push_rejected": {
        "what": "Pushing to branch '{branch}' was rejected.",
        "next": "Check write permissions and make sure no other run updated the branch concurrently.",
    },
    "config_not_found": {
        "what": "Config file not found: {path}",
        "next": "Pass an existing file with `--config` or remove the option.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"

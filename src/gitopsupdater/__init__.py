"""
gitops-updater - GitOps deployment update step for kubectl and Helm manifests
"""

__version__ = "0.1.0"

from .core import GitopsUpdater
from .errors import GitopsError
from .models import DeploymentUpdateRequest

__all__ = ["DeploymentUpdateRequest", "GitopsError", "GitopsUpdater"]

"""Resource adapters."""

from .app import AppResource
from .app_bitrise_yml import AppBitriseYmlResource
from .app_finish import AppFinishResource
from .app_roles import AppRolesResource
from .app_secrets import AppSecretResource
from .app_ssh import AppSSHResource
from .base import ChangeAction, PlannedChange, ResourceAdapter, RestResource, Route

RESOURCES: tuple[type[ResourceAdapter], ...] = (
    AppResource,
    AppSSHResource,
    AppFinishResource,
    AppBitriseYmlResource,
    AppRolesResource,
    AppSecretResource,
)

__all__ = [
    "RESOURCES",
    "AppBitriseYmlResource",
    "AppFinishResource",
    "AppResource",
    "AppRolesResource",
    "AppSSHResource",
    "AppSecretResource",
    "ChangeAction",
    "PlannedChange",
    "ResourceAdapter",
    "RestResource",
    "Route",
]

"""Groups holding a role of an app."""

import httpx

from bitrise_provider.data_sources.base import DataSourceAdapter
from bitrise_provider.resources.app_roles import ROLE_PATH, RoleGroups
from bitrise_provider.resources.base import Route
from bitrise_provider.schema import StateModel, attribute


class AppRolesDataState(StateModel):
    app_slug: str | None = attribute(description="Slug of the app.", required=True)
    role_name: str | None = attribute(description="Role name.", required=True)
    id: str | None = attribute(
        description="Identifier in the form app_slug/role_name.", computed=True
    )
    groups: list[str] | None = attribute(
        description="Slugs of the groups holding the role.", computed=True
    )


class AppRolesDataSource(DataSourceAdapter[AppRolesDataState]):
    type_suffix = "app_roles"
    state_model = AppRolesDataState
    description = "Reads the groups assigned to a role of a Bitrise app."
    entity_name = "app role"
    route = Route("GET", ROLE_PATH, (200,))

    def compute_id(self, state: AppRolesDataState) -> str:
        return f"{state.app_slug}/{state.role_name}"

    def project(
        self, config: AppRolesDataState, response: httpx.Response
    ) -> AppRolesDataState:
        remote = self._parse(response, RoleGroups, "read app role")
        return config.model_copy(update={"groups": remote.groups})

"""Group assignments for an app role."""

from typing import Any

import httpx
from pydantic import BaseModel, Field, field_validator

from bitrise_provider.resources.app import APP_PATH
from bitrise_provider.resources.base import RestResource, Route
from bitrise_provider.schema import StateModel, attribute

ROLE_PATH = APP_PATH + "/roles/{role_name}"


class AppRolesState(StateModel):
    id: str | None = attribute(
        description="Identifier in the form app_slug/role_name.", computed=True
    )
    app_slug: str | None = attribute(
        description="Slug of the app.", required=True, requires_replace=True
    )
    role_name: str | None = attribute(
        description="Role name, e.g. admin or manager.",
        required=True,
        requires_replace=True,
    )
    groups: list[str] | None = attribute(
        description="Slugs of the groups holding the role.", required=True
    )


class RoleGroups(BaseModel):
    groups: list[str] = Field(default_factory=list)

    @field_validator("groups", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        """A role without groups comes back as ``null``."""
        return [] if v is None else v


class AppRolesResource(RestResource[AppRolesState]):
    """Replaces the group list of one app role.

    The API only knows "set the list", so create, update and delete all PUT;
    delete sends an empty list.
    """

    type_suffix = "app_roles"
    state_model = AppRolesState
    description = "Assigns groups to a role of a Bitrise app."
    entity_name = "app role"
    identity_fields = ("app_slug", "role_name")

    create_route = Route("PUT", ROLE_PATH, (200,))
    read_route = Route("GET", ROLE_PATH, (200,))
    update_route = create_route
    delete_route = create_route
    mutable_fields = frozenset({"groups"})

    def build_create_payload(self, plan: AppRolesState) -> dict[str, Any]:
        return self._dump(RoleGroups(groups=list(plan.groups or [])))

    def build_delete_payload(self, state: AppRolesState) -> dict[str, Any]:
        return self._dump(RoleGroups(groups=[]))

    def merge_read(self, state: AppRolesState, response: httpx.Response) -> AppRolesState:
        remote = self._parse(response, RoleGroups, "read app role")
        return state.model_copy(update={"groups": remote.groups})

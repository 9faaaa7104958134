"""Groups of an organization."""

from typing import Any

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError, field_validator

from bitrise_provider.data_sources.base import DataSourceAdapter
from bitrise_provider.exceptions import PayloadError
from bitrise_provider.resources.base import Route
from bitrise_provider.schema import StateModel, attribute


class OrgGroup(BaseModel):
    slug: str = ""
    name: str = ""

    @field_validator("slug", "name", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class OrgGroupsState(StateModel):
    org_slug: str | None = attribute(
        description="Slug of the organization.", required=True
    )
    id: str | None = attribute(description="Identifier (the org slug).", computed=True)
    groups: list[OrgGroup] | None = attribute(
        description="Groups of the organization.", computed=True
    )


_groups_adapter = TypeAdapter(list[OrgGroup])


class OrgGroupsDataSource(DataSourceAdapter[OrgGroupsState]):
    type_suffix = "org_groups"
    state_model = OrgGroupsState
    description = "Lists the groups of a Bitrise organization."
    entity_name = "organization groups"
    route = Route("GET", "/v0.1/organizations/{org_slug}/groups", (200,))

    def compute_id(self, state: OrgGroupsState) -> str | None:
        return state.org_slug

    def project(self, config: OrgGroupsState, response: httpx.Response) -> OrgGroupsState:
        body = self._json(response, "read organization groups")
        if isinstance(body, dict):
            body = body.get("data", [])
        try:
            groups = _groups_adapter.validate_python(body)
        except ValidationError as e:
            raise PayloadError(f"Unexpected response to read organization groups: {e}") from e
        return config.model_copy(update={"groups": groups})

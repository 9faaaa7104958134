"""App details."""

import httpx

from bitrise_provider.data_sources.base import DataSourceAdapter
from bitrise_provider.resources.app import APP_PATH, AppDetailsResponse
from bitrise_provider.resources.base import Route
from bitrise_provider.schema import StateModel, attribute


class AppDataState(StateModel):
    app_slug: str | None = attribute(description="Slug of the app.", required=True)
    id: str | None = attribute(description="Identifier (the app slug).", computed=True)
    title: str | None = attribute(description="App title.", computed=True)
    repo_url: str | None = attribute(description="Repository URL.", computed=True)
    is_public: bool | None = attribute(
        description="Whether the app is public.", computed=True
    )
    provider: str | None = attribute(
        description="Repository provider.", computed=True
    )
    repo_owner: str | None = attribute(
        description="Repository owner at the provider.", computed=True
    )
    repo_slug: str | None = attribute(
        description="Repository name at the provider.", computed=True
    )
    owner_slug: str | None = attribute(
        description="Slug of the owning account.", computed=True
    )
    owner_name: str | None = attribute(
        description="Name of the owning account.", computed=True
    )


class AppDataSource(DataSourceAdapter[AppDataState]):
    type_suffix = "app"
    state_model = AppDataState
    description = "Reads the details of a Bitrise app."
    entity_name = "app"
    route = Route("GET", APP_PATH, (200,))

    def compute_id(self, state: AppDataState) -> str | None:
        return state.app_slug

    def project(self, config: AppDataState, response: httpx.Response) -> AppDataState:
        details = self._parse(response, AppDetailsResponse, "read app").data
        owner = details.owner
        return config.model_copy(
            update={
                "title": details.title,
                "repo_url": details.repo_url,
                "is_public": details.is_public,
                "provider": details.provider,
                "repo_owner": details.repo_owner,
                "repo_slug": details.repo_slug,
                "owner_slug": owner.slug if owner else None,
                "owner_name": owner.name if owner else None,
            }
        )

"""Bitrise app resource."""

from typing import Any

import httpx
from pydantic import BaseModel, Field

from bitrise_provider.exceptions import PayloadError
from bitrise_provider.resources.base import RestResource, Route
from bitrise_provider.schema import StateModel, attribute

APP_PATH = "/v0.1/apps/{app_slug}"


class AppState(StateModel):
    id: str | None = attribute(
        description="Identifier of the app (same as app_slug).", computed=True
    )
    app_slug: str | None = attribute(
        description="Slug assigned by Bitrise on registration.", computed=True
    )
    repo: str | None = attribute(
        description="Repository provider, e.g. github or gitlab.",
        requires_replace=True,
    )
    is_public: bool | None = attribute(description="Whether the app is public.")
    organization_slug: str | None = attribute(
        description="Slug of the owning organization.", requires_replace=True
    )
    repo_url: str | None = attribute(description="Repository URL.")
    type: str | None = attribute(
        description="Repository type, e.g. git.", requires_replace=True
    )
    git_repo_slug: str | None = attribute(
        description="Repository name at the provider.", requires_replace=True
    )
    git_owner: str | None = attribute(
        description="Repository owner at the provider.", requires_replace=True
    )


class AppRegisterPayload(BaseModel):
    provider: str | None = None
    is_public: bool | None = None
    organization_slug: str | None = None
    repo_url: str | None = None
    type: str | None = None
    git_repo_slug: str | None = None
    git_owner: str | None = None


class AppRegisterResponse(BaseModel):
    status: str | None = None
    slug: str | None = None
    provider_id: str | None = None


class AppOwner(BaseModel):
    account_type: str | None = None
    name: str | None = None
    slug: str | None = None


class AppDetails(BaseModel):
    """App record as returned inside the ``data`` envelope."""

    slug: str | None = None
    title: str | None = None
    repo_url: str | None = None
    is_public: bool | None = None
    owner: AppOwner | None = None
    repo_slug: str | None = None
    repo_owner: str | None = None
    provider: str | None = None


class AppDetailsResponse(BaseModel):
    data: AppDetails = Field(default_factory=AppDetails)


class AppResource(RestResource[AppState]):
    """Registers, patches and deletes Bitrise apps."""

    type_suffix = "app"
    state_model = AppState
    description = "Registers a repository as a Bitrise app."
    entity_name = "app"

    create_route = Route("POST", "/v0.1/apps/register", (200,))
    read_route = Route("GET", APP_PATH, (200,))
    update_route = Route("PATCH", APP_PATH, (200,))
    delete_route = Route("DELETE", APP_PATH, (200,))
    mutable_fields = frozenset({"is_public", "repo_url"})

    def build_create_payload(self, plan: AppState) -> dict[str, Any]:
        return self._dump(
            AppRegisterPayload(
                provider=plan.repo,
                is_public=plan.is_public,
                organization_slug=plan.organization_slug,
                repo_url=plan.repo_url,
                type=plan.type,
                git_repo_slug=plan.git_repo_slug,
                git_owner=plan.git_owner,
            )
        )

    def apply_create_response(
        self, plan: AppState, response: httpx.Response
    ) -> AppState:
        registered = self._parse(response, AppRegisterResponse, "create app")
        if not registered.slug:
            raise PayloadError("App registration response did not include a slug")
        self._logger.debug(
            "Captured app slug", app_slug=registered.slug, status=registered.status
        )
        return plan.model_copy(update={"app_slug": registered.slug})

    def build_update_payload(self, plan: AppState, changes: set[str]) -> dict[str, Any]:
        payload: dict[str, Any] = {"is_public": bool(plan.is_public)}
        if plan.repo_url:
            payload["repository_url"] = plan.repo_url
        return payload

    def merge_read(self, state: AppState, response: httpx.Response) -> AppState:
        details = self._parse(response, AppDetailsResponse, "read app").data
        return self.merge_values(
            state,
            {
                "repo_url": details.repo_url,
                "is_public": details.is_public,
                "git_owner": details.repo_owner,
                "git_repo_slug": details.repo_slug,
                "repo": details.provider,
            },
        )

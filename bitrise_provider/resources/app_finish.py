"""Finish-step configuration for a newly registered Bitrise app."""

from typing import Any

from pydantic import BaseModel

from bitrise_provider.resources.app import APP_PATH
from bitrise_provider.resources.base import RestResource, Route
from bitrise_provider.schema import StateModel, attribute


class AppFinishState(StateModel):
    id: str | None = attribute(description="Identifier (the app slug).", computed=True)
    app_slug: str | None = attribute(
        description="Slug of the app.", required=True, requires_replace=True
    )
    project_type: str | None = attribute(
        description="Project type, e.g. ios or android.", required=True
    )
    stack_id: str | None = attribute(
        description="Build stack, see bitrise_available_stacks.", required=True
    )
    config: str | None = attribute(
        description="Default configuration name.", required=True
    )
    mode: str | None = attribute(description="Setup mode, e.g. manual.", required=True)
    envs: dict[str, str] | None = attribute(
        description="Environment variables added to the app."
    )
    organization_slug: str | None = attribute(
        description="Slug of the owning organization.", required=True
    )


class FinishPayload(BaseModel):
    app_slug: str
    project_type: str
    stack_id: str
    config: str
    mode: str
    envs: dict[str, str] | None = None
    organization_slug: str


class AppFinishResource(RestResource[AppFinishState]):
    """Completes app setup by posting to the finish endpoint."""

    type_suffix = "app_finish"
    state_model = AppFinishState
    description = "Finishes the setup of a registered Bitrise app."
    entity_name = "app finish"

    create_route = Route("POST", APP_PATH + "/finish", (200,))
    read_route = Route("GET", APP_PATH, (200,))
    update_route = create_route
    mutable_fields = frozenset(
        {"project_type", "stack_id", "config", "mode", "envs", "organization_slug"}
    )

    def build_create_payload(self, plan: AppFinishState) -> dict[str, Any]:
        return self._dump(
            FinishPayload(
                app_slug=plan.app_slug,
                project_type=plan.project_type,
                stack_id=plan.stack_id,
                config=plan.config,
                mode=plan.mode,
                envs=plan.envs,
                organization_slug=plan.organization_slug,
            )
        )

"""App secrets (secret environment variables)."""

from typing import Any

import httpx
from pydantic import BaseModel

from bitrise_provider.resources.app import APP_PATH
from bitrise_provider.resources.base import RestResource, Route
from bitrise_provider.schema import StateModel, attribute

SECRETS_PATH = APP_PATH + "/secrets"
SECRET_PATH = SECRETS_PATH + "/{name}"


class AppSecretState(StateModel):
    id: str | None = attribute(
        description="Identifier in the form app_slug/name.", computed=True
    )
    app_slug: str | None = attribute(
        description="Slug of the app.", required=True, requires_replace=True
    )
    name: str | None = attribute(
        description="Secret name.", required=True, requires_replace=True
    )
    value: str | None = attribute(
        description="Secret value.", required=True, sensitive=True
    )
    is_protected: bool | None = attribute(
        False,
        description="Protected secrets can never be read back or changed.",
        computed=True,
    )
    is_exposed_for_pull_requests: bool | None = attribute(
        False, description="Expose the secret to pull request builds.", computed=True
    )
    expand_in_step_inputs: bool | None = attribute(
        True, description="Expand the secret in step inputs.", computed=True
    )


class CreateSecretPayload(BaseModel):
    name: str
    value: str
    is_protected: bool
    is_exposed_for_pull_requests: bool
    expand_in_step_inputs: bool


class UpdateSecretPayload(BaseModel):
    value: str | None = None
    is_protected: bool | None = None
    is_exposed_for_pull_requests: bool | None = None
    expand_in_step_inputs: bool | None = None


class SecretResponse(BaseModel):
    name: str | None = None
    value: str | None = None
    is_protected: bool = False
    is_exposed_for_pull_requests: bool = False
    expand_in_step_inputs: bool = False


class AppSecretResource(RestResource[AppSecretState]):
    """Creates, refreshes, patches and deletes app secrets."""

    type_suffix = "app_secret"
    state_model = AppSecretState
    description = "Manages a secret environment variable of a Bitrise app."
    entity_name = "secret"
    identity_fields = ("app_slug", "name")

    create_route = Route("POST", SECRETS_PATH, (201,))
    read_route = Route("GET", SECRET_PATH, (200,))
    update_route = Route("PATCH", SECRET_PATH, (200,))
    delete_route = Route("DELETE", SECRET_PATH, (204,))
    mutable_fields = frozenset(
        {"value", "is_protected", "is_exposed_for_pull_requests", "expand_in_step_inputs"}
    )

    def build_create_payload(self, plan: AppSecretState) -> dict[str, Any]:
        return self._dump(
            CreateSecretPayload(
                name=plan.name,
                value=plan.value,
                is_protected=bool(plan.is_protected),
                is_exposed_for_pull_requests=bool(plan.is_exposed_for_pull_requests),
                expand_in_step_inputs=bool(plan.expand_in_step_inputs),
            )
        )

    def build_update_payload(
        self, plan: AppSecretState, changes: set[str]
    ) -> dict[str, Any]:
        return self._dump(
            UpdateSecretPayload(
                value=plan.value or None,
                is_protected=bool(plan.is_protected),
                is_exposed_for_pull_requests=bool(plan.is_exposed_for_pull_requests),
                expand_in_step_inputs=bool(plan.expand_in_step_inputs),
            )
        )

    def merge_read(
        self, state: AppSecretState, response: httpx.Response
    ) -> AppSecretState:
        remote = self._parse(response, SecretResponse, "read secret")
        updates: dict[str, Any] = {
            "is_protected": remote.is_protected,
            "is_exposed_for_pull_requests": remote.is_exposed_for_pull_requests,
            "expand_in_step_inputs": remote.expand_in_step_inputs,
        }
        # Protected values are masked by the API; an omitted value keeps the known one
        if not remote.is_protected and remote.value:
            updates["value"] = remote.value
        return state.model_copy(update=updates)

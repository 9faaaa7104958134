"""SSH key registration for a Bitrise app."""

from typing import Any

from pydantic import BaseModel

from bitrise_provider.resources.app import APP_PATH
from bitrise_provider.resources.base import RestResource, Route
from bitrise_provider.schema import StateModel, attribute


class AppSSHState(StateModel):
    id: str | None = attribute(description="Identifier (the app slug).", computed=True)
    app_slug: str | None = attribute(
        description="Slug of the app.", required=True, requires_replace=True
    )
    auth_ssh_private_key: str | None = attribute(
        description="Private SSH key used to clone the repository.",
        required=True,
        sensitive=True,
    )
    auth_ssh_public_key: str | None = attribute(
        description="Public half of the SSH key.", required=True
    )
    is_register_key_into_provider_service: bool | None = attribute(
        False,
        description="Register the public key with the repository provider.",
    )


class RegisterSSHKeyPayload(BaseModel):
    auth_ssh_private_key: str
    auth_ssh_public_key: str
    is_register_key_into_provider_service: bool = False


class AppSSHResource(RestResource[AppSSHState]):
    """Registers an SSH key for an app.

    The API has no endpoint to read or remove a registered key: refresh only
    checks that the parent app still exists, and delete forgets local state.
    """

    type_suffix = "app_ssh"
    state_model = AppSSHState
    description = "Registers an SSH key pair for a Bitrise app."
    entity_name = "app SSH key"

    create_route = Route("POST", APP_PATH + "/register-ssh-key", (200,))
    read_route = Route("GET", APP_PATH, (200,))
    update_route = create_route
    mutable_fields = frozenset(
        {
            "auth_ssh_private_key",
            "auth_ssh_public_key",
            "is_register_key_into_provider_service",
        }
    )

    def build_create_payload(self, plan: AppSSHState) -> dict[str, Any]:
        return self._dump(
            RegisterSSHKeyPayload(
                auth_ssh_private_key=plan.auth_ssh_private_key,
                auth_ssh_public_key=plan.auth_ssh_public_key,
                is_register_key_into_provider_service=bool(
                    plan.is_register_key_into_provider_service
                ),
            )
        )

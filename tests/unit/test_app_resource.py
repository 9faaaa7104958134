"""Unit tests for the app resource."""

import pytest

from bitrise_provider.exceptions import APIError, PayloadError, ReplacementRequiredError
from bitrise_provider.resources.app import AppResource, AppState
from bitrise_provider.resources.base import ChangeAction


@pytest.fixture
def app_resource(context):
    """Create an app resource bound to the fake API."""
    return AppResource(context)


@pytest.fixture
def app_plan():
    """Create a planned app."""
    return AppState(
        repo="github",
        is_public=False,
        organization_slug="org-1",
        repo_url="git@github.com:acme/mobile.git",
        type="git",
        git_repo_slug="mobile",
        git_owner="acme",
    )


@pytest.fixture
def app_state(app_plan):
    """Create the state of a registered app."""
    return app_plan.model_copy(update={"app_slug": "app-1", "id": "app-1"})


def app_details(**overrides):
    data = {
        "slug": "app-1",
        "repo_url": "git@github.com:acme/mobile.git",
        "is_public": False,
        "repo_owner": "acme",
        "repo_slug": "mobile",
        "provider": "github",
        "owner": {"account_type": "organization", "name": "Acme", "slug": "org-1"},
    }
    data.update(overrides)
    return {"data": data}


@pytest.mark.asyncio
class TestAppResource:
    """Test app CRUD against the fake API."""

    async def test_type_name(self, app_resource):
        """Test the full type name."""
        assert app_resource.type_name == "bitrise_app"

    async def test_create(self, app_resource, app_plan, mock_api):
        """Test registration captures the slug as app_slug and id."""
        mock_api.add(
            "POST",
            "/v0.1/apps/register",
            json_data={"status": "ok", "slug": "app-1"},
        )

        state = await app_resource.create(app_plan)

        assert state.app_slug == "app-1"
        assert state.id == "app-1"
        assert mock_api.last_json == {
            "provider": "github",
            "is_public": False,
            "organization_slug": "org-1",
            "repo_url": "git@github.com:acme/mobile.git",
            "type": "git",
            "git_repo_slug": "mobile",
            "git_owner": "acme",
        }

    async def test_create_rejects_201(self, app_resource, app_plan, mock_api):
        """Test that registration succeeds only on 200 OK."""
        mock_api.add(
            "POST", "/v0.1/apps/register", status_code=201, json_data={"slug": "app-2"}
        )

        with pytest.raises(APIError) as exc_info:
            await app_resource.create(app_plan)

        assert exc_info.value.status_code == 201

    async def test_create_failure(self, app_resource, app_plan, mock_api):
        """Test that a failed registration raises with status and body."""
        mock_api.add(
            "POST", "/v0.1/apps/register", status_code=400, text='{"message":"bad repo"}'
        )

        with pytest.raises(APIError) as exc_info:
            await app_resource.create(app_plan)

        assert exc_info.value.status_code == 400
        assert "bad repo" in str(exc_info.value)

    async def test_create_without_slug(self, app_resource, app_plan, mock_api):
        """Test that a response without slug is a payload error."""
        mock_api.add("POST", "/v0.1/apps/register", json_data={"status": "ok"})

        with pytest.raises(PayloadError, match="slug"):
            await app_resource.create(app_plan)

    async def test_read_maps_fields(self, app_resource, app_state, mock_api):
        """Test that read maps API fields onto state attributes."""
        mock_api.add(
            "GET",
            "/v0.1/apps/app-1",
            json_data=app_details(is_public=True, repo_url="https://github.com/acme/mobile"),
        )

        state = await app_resource.read(app_state)

        assert state.is_public is True
        assert state.repo_url == "https://github.com/acme/mobile"
        assert state.git_owner == "acme"
        assert state.repo == "github"
        assert state.organization_slug == "org-1"

    async def test_read_keeps_prior_when_omitted(self, app_resource, app_state, mock_api):
        """Test that empty API fields keep their prior values."""
        mock_api.add(
            "GET",
            "/v0.1/apps/app-1",
            json_data={"data": {"slug": "app-1", "is_public": False, "repo_owner": ""}},
        )

        state = await app_resource.read(app_state)

        assert state.git_owner == "acme"
        assert state.repo_url == app_state.repo_url

    async def test_read_not_found_removes_state(self, app_resource, app_state, mock_api):
        """Test that 404 on read returns None."""
        mock_api.add("GET", "/v0.1/apps/app-1", status_code=404)
        assert await app_resource.read(app_state) is None

    async def test_read_server_error(self, app_resource, app_state, mock_api):
        """Test that other statuses raise."""
        mock_api.add("GET", "/v0.1/apps/app-1", status_code=503, text="maintenance")

        with pytest.raises(APIError) as exc_info:
            await app_resource.read(app_state)

        assert exc_info.value.status_code == 503

    async def test_read_without_slug_is_skipped(self, app_resource, app_plan, mock_api):
        """Test that read with an empty slug makes no request."""
        state = await app_resource.read(app_plan)

        assert state == app_plan
        assert mock_api.requests == []

    async def test_update_patches_mutable_fields(self, app_resource, app_state, mock_api):
        """Test that visibility and repo URL changes are patched."""
        mock_api.add("PATCH", "/v0.1/apps/app-1", json_data={})
        plan = app_state.model_copy(
            update={"is_public": True, "app_slug": None, "id": None}
        )

        state = await app_resource.update(plan, app_state)

        assert mock_api.last_json == {
            "is_public": True,
            "repository_url": "git@github.com:acme/mobile.git",
        }
        assert state.app_slug == "app-1"
        assert state.id == "app-1"

    async def test_update_without_changes(self, app_resource, app_state, mock_api):
        """Test that an unchanged plan sends nothing."""
        state = await app_resource.update(app_state, app_state)

        assert state == app_state
        assert mock_api.requests == []

    async def test_update_replace_only_field(self, app_resource, app_state, mock_api):
        """Test that changing the repository requires replacement."""
        plan = app_state.model_copy(update={"git_repo_slug": "other"})

        with pytest.raises(ReplacementRequiredError) as exc_info:
            await app_resource.update(plan, app_state)

        assert exc_info.value.attribute == "git_repo_slug"
        assert mock_api.requests == []

    async def test_delete(self, app_resource, app_state, mock_api):
        """Test delete sends one DELETE request."""
        mock_api.add("DELETE", "/v0.1/apps/app-1", status_code=200, json_data={})

        await app_resource.delete(app_state)

        assert len(mock_api.calls("DELETE", "/v0.1/apps/app-1")) == 1

    async def test_delete_rejects_204(self, app_resource, app_state, mock_api):
        """Test that delete succeeds only on 200 OK."""
        mock_api.add("DELETE", "/v0.1/apps/app-1", status_code=204)

        with pytest.raises(APIError) as exc_info:
            await app_resource.delete(app_state)

        assert exc_info.value.status_code == 204

    async def test_delete_not_found_is_success(self, app_resource, app_state, mock_api):
        """Test that deleting a missing app succeeds."""
        mock_api.add("DELETE", "/v0.1/apps/app-1", status_code=404)
        await app_resource.delete(app_state)

    async def test_import(self, app_resource):
        """Test import seeds the slug and id."""
        state = app_resource.import_state("app-1")

        assert state.app_slug == "app-1"
        assert state.id == "app-1"
        assert state.repo is None

    async def test_create_then_read_round_trip(self, app_resource, app_plan, mock_api):
        """Test that read after create reproduces the created state."""
        mock_api.add("POST", "/v0.1/apps/register", json_data={"slug": "app-1"})
        mock_api.add("GET", "/v0.1/apps/app-1", json_data=app_details())

        created = await app_resource.create(app_plan)
        refreshed = await app_resource.read(created)

        assert refreshed == created


class TestAppPlan:
    """Test plan classification for apps."""

    def test_create(self, context, app_plan):
        """Test that no prior state means create."""
        change = AppResource(context).plan_change(None, app_plan)
        assert change.action is ChangeAction.CREATE

    def test_delete(self, context, app_state):
        """Test that no proposed state means delete."""
        change = AppResource(context).plan_change(app_state, None)
        assert change.action is ChangeAction.DELETE
        assert change.planned_state is None

    def test_noop_carries_computed(self, context, app_plan, app_state):
        """Test that server-assigned values are kept from prior state."""
        change = AppResource(context).plan_change(app_state, app_plan)

        assert change.action is ChangeAction.NOOP
        assert change.planned_state.app_slug == "app-1"
        assert change.planned_state.id == "app-1"

    def test_update(self, context, app_plan, app_state):
        """Test that mutable changes plan an update."""
        proposed = app_plan.model_copy(update={"is_public": True})
        change = AppResource(context).plan_change(app_state, proposed)
        assert change.action is ChangeAction.UPDATE

    def test_replace(self, context, app_plan, app_state):
        """Test that replace-only changes plan a replacement."""
        proposed = app_plan.model_copy(update={"organization_slug": "org-2"})

        change = AppResource(context).plan_change(app_state, proposed)

        assert change.action is ChangeAction.REPLACE
        assert change.requires_replace == ("organization_slug",)
        assert change.planned_state.app_slug is None

    def test_unknown_prior_value_is_adopted(self, context, app_plan):
        """Test that attributes unknown after import do not force replacement."""
        imported = AppResource(context).import_state("app-1")

        change = AppResource(context).plan_change(imported, app_plan)

        assert change.action is ChangeAction.UPDATE
        assert change.requires_replace == ()

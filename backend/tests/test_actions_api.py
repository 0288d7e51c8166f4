"""Tests for the form actions endpoint."""

from datetime import timedelta
from typing import Any

import pytest
from httpx import AsyncClient
from route_picker.core.session import SessionContext
from route_picker.models import Route, RouteGroup, Trip, User
from route_picker.services.route_service import RouteService
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers.database import fetch
from tests.helpers.jwt_helpers import MockJWTGenerator

ACTIONS_URL = "/api/v1/actions"


class TestActionDispatch:
    """Tests for routing of action names."""

    @pytest.mark.asyncio
    async def test_unknown_action_is_not_found(
        self, async_client: AsyncClient, auth_headers_for_user: dict[str, str]
    ) -> None:
        response = await async_client.post(f"{ACTIONS_URL}/renameEverything", data={}, headers=auth_headers_for_user)

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "data": None,
            "error": {"kind": "not_found", "message": "Unknown action: renameEverything"},
        }

    @pytest.mark.asyncio
    async def test_anonymous_request_answers_through_result(self, async_client: AsyncClient) -> None:
        response = await async_client.post(f"{ACTIONS_URL}/postRoute", data={"routeName": "Canal path"})

        assert response.status_code == 401
        assert response.json()["error"] == {"kind": "unauthenticated", "message": "Authentication required"}

    @pytest.mark.asyncio
    async def test_invalid_token_is_treated_as_anonymous(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            f"{ACTIONS_URL}/postRoute",
            data={"routeName": "Canal path"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Authentication required"

    @pytest.mark.asyncio
    async def test_expired_token_is_treated_as_anonymous(self, async_client: AsyncClient, test_user: User) -> None:
        token = MockJWTGenerator.generate(test_user.id, email=test_user.email, expires_in=timedelta(seconds=-60))

        response = await async_client.post(
            f"{ACTIONS_URL}/createGroup",
            data={"name": "Weekend"},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_of_unknown_user_is_user_not_found(self, async_client: AsyncClient) -> None:
        token = MockJWTGenerator.generate("oauth|never-signed-in", email="nobody@example.com")

        response = await async_client.post(
            f"{ACTIONS_URL}/createGroup",
            data={"name": "Weekend"},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "User not found"

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_hidden(
        self,
        async_client: AsyncClient,
        auth_headers_for_user: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def explode(self: RouteService, session: SessionContext | None, form: Any) -> None:  # noqa: ANN401
            raise RuntimeError("connection reset by peer at 10.0.0.3")

        monkeypatch.setattr(RouteService, "post_route", explode)

        response = await async_client.post(
            f"{ACTIONS_URL}/postRoute", data={"routeName": "Canal path"}, headers=auth_headers_for_user
        )

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "data": None,
            "error": {"kind": "unexpected", "message": "An unexpected error occurred"},
        }


class TestRouteActions:
    """Route actions over HTTP."""

    @pytest.mark.asyncio
    async def test_post_route(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        auth_headers_for_user: dict[str, str],
    ) -> None:
        response = await async_client.post(
            f"{ACTIONS_URL}/postRoute", data={"routeName": "Via the park"}, headers=auth_headers_for_user
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["error"] is None

        route = await fetch(db_session, Route, body["data"]["id"])
        assert route is not None
        assert route.user_id == test_user.id

    @pytest.mark.asyncio
    async def test_multipart_body_is_accepted(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        auth_headers_for_user: dict[str, str],
        make_route: Any,
    ) -> None:
        route = await make_route(test_user, name="Old")

        response = await async_client.post(
            f"{ACTIONS_URL}/updateRouteName",
            data={"routeId": str(route.id), "newName": "New"},
            files={"attachment": ("note.txt", b"ignored", "text/plain")},
            headers=auth_headers_for_user,
        )

        assert response.status_code == 200
        stored = await fetch(db_session, Route, route.id)
        assert stored is not None
        assert stored.name == "New"

    @pytest.mark.asyncio
    async def test_rename_of_foreign_route_is_forbidden(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        another_user: User,
        auth_headers_for_user: dict[str, str],
        make_route: Any,
    ) -> None:
        route = await make_route(another_user, name="Theirs")

        response = await async_client.post(
            f"{ACTIONS_URL}/updateRouteName",
            data={"routeId": str(route.id), "newName": "Mine"},
            headers=auth_headers_for_user,
        )

        assert response.status_code == 403
        assert response.json()["error"] == {
            "kind": "forbidden",
            "message": "You do not have permission to edit this route",
        }
        stored = await fetch(db_session, Route, route.id)
        assert stored is not None
        assert stored.name == "Theirs"

    @pytest.mark.asyncio
    async def test_rename_validation_error(
        self, async_client: AsyncClient, auth_headers_for_user: dict[str, str]
    ) -> None:
        response = await async_client.post(
            f"{ACTIONS_URL}/updateRouteName",
            data={"routeId": "12", "newName": "x" * 101},
            headers=auth_headers_for_user,
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Route name cannot exceed 100 characters"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("action", "data", "message"),
        [
            ("updateRouteName", {"routeId": "99999999999999999999", "newName": "x"}, "Invalid route ID"),
            ("deleteRoute", {"id": "2147483648"}, "Invalid route ID"),
            ("deleteTrip", {"id": "1_0"}, "Invalid trip ID"),
            ("deleteGroup", {"id": "99999999999999999999"}, "Invalid group ID"),
        ],
    )
    async def test_ids_beyond_the_key_range_are_client_errors(
        self,
        async_client: AsyncClient,
        test_user: User,
        auth_headers_for_user: dict[str, str],
        action: str,
        data: dict[str, str],
        message: str,
    ) -> None:
        response = await async_client.post(f"{ACTIONS_URL}/{action}", data=data, headers=auth_headers_for_user)

        assert response.status_code == 400
        assert response.json()["error"] == {"kind": "validation", "message": message}

    @pytest.mark.asyncio
    async def test_delete_route_not_found(
        self, async_client: AsyncClient, auth_headers_for_user: dict[str, str]
    ) -> None:
        response = await async_client.post(
            f"{ACTIONS_URL}/deleteRoute", data={"id": "4040"}, headers=auth_headers_for_user
        )

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Route not found"

    @pytest.mark.asyncio
    async def test_move_route_into_and_out_of_group(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        auth_headers_for_user: dict[str, str],
        make_route: Any,
        make_group: Any,
    ) -> None:
        route = await make_route(test_user)
        group = await make_group(test_user)

        response = await async_client.post(
            f"{ACTIONS_URL}/moveRouteToGroup",
            data={"routeId": str(route.id), "groupId": str(group.id)},
            headers=auth_headers_for_user,
        )
        assert response.status_code == 200
        stored = await fetch(db_session, Route, route.id)
        assert stored is not None
        assert stored.route_group_id == group.id

        response = await async_client.post(
            f"{ACTIONS_URL}/moveRouteToGroup",
            data={"routeId": str(route.id), "groupId": ""},
            headers=auth_headers_for_user,
        )
        assert response.status_code == 200
        stored = await fetch(db_session, Route, route.id)
        assert stored is not None
        assert stored.route_group_id is None


class TestTripActions:
    """Trip actions over HTTP."""

    @pytest.mark.asyncio
    async def test_record_and_delete_trip(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        auth_headers_for_user: dict[str, str],
        make_route: Any,
    ) -> None:
        route = await make_route(test_user)

        response = await async_client.post(
            f"{ACTIONS_URL}/postTrip",
            data={
                "startTime": "2024-03-04T07:55:00Z",
                "endTime": "2024-03-04T08:31:00Z",
                "routeId": str(route.id),
                "path": '[{"lat": 51.5, "lng": -0.12}]',
            },
            headers=auth_headers_for_user,
        )
        assert response.status_code == 200
        trip_id = response.json()["data"]["id"]
        trip = await fetch(db_session, Trip, trip_id)
        assert trip is not None
        assert trip.path == [{"lat": 51.5, "lng": -0.12}]

        response = await async_client.post(
            f"{ACTIONS_URL}/deleteTrip", data={"id": str(trip_id)}, headers=auth_headers_for_user
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": None, "error": None}
        assert await fetch(db_session, Trip, trip_id) is None

    @pytest.mark.asyncio
    async def test_invalid_date(
        self,
        async_client: AsyncClient,
        test_user: User,
        auth_headers_for_user: dict[str, str],
        make_route: Any,
    ) -> None:
        route = await make_route(test_user)

        response = await async_client.post(
            f"{ACTIONS_URL}/postTrip",
            data={"startTime": "soon", "endTime": "later", "routeId": str(route.id)},
            headers=auth_headers_for_user,
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid date provided"


class TestGroupActions:
    """Group actions over HTTP."""

    @pytest.mark.asyncio
    async def test_create_rename_delete(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        auth_headers_for_user: dict[str, str],
        make_route: Any,
    ) -> None:
        response = await async_client.post(
            f"{ACTIONS_URL}/createGroup", data={"name": "Weekday"}, headers=auth_headers_for_user
        )
        assert response.status_code == 200
        group_id = response.json()["data"]["id"]

        response = await async_client.post(
            f"{ACTIONS_URL}/updateGroupName",
            data={"id": str(group_id), "name": "Weekdays"},
            headers=auth_headers_for_user,
        )
        assert response.status_code == 200
        group = await fetch(db_session, RouteGroup, group_id)
        assert group is not None
        assert group.name == "Weekdays"

        route = await make_route(test_user, group=group)

        response = await async_client.post(
            f"{ACTIONS_URL}/deleteGroup", data={"id": str(group_id)}, headers=auth_headers_for_user
        )
        assert response.status_code == 200
        assert await fetch(db_session, RouteGroup, group_id) is None
        stored = await fetch(db_session, Route, route.id)
        assert stored is not None
        assert stored.route_group_id is None

    @pytest.mark.asyncio
    async def test_other_user_cannot_delete_group(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        auth_headers_for_another_user: dict[str, str],
        make_group: Any,
    ) -> None:
        group = await make_group(test_user)

        response = await async_client.post(
            f"{ACTIONS_URL}/deleteGroup", data={"id": str(group.id)}, headers=auth_headers_for_another_user
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Forbidden"
        assert await fetch(db_session, RouteGroup, group.id) is not None

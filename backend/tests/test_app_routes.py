"""Regression tests for application route registration."""
from fastapi.routing import APIRoute

from journalmate.main import app


def _routes(path: str, method: str) -> list[APIRoute]:
    return [
        route
        for route in app.routes
        if isinstance(route, APIRoute) and route.path == path and method in route.methods
    ]


def test_copy_route_registered_once() -> None:
    assert len(_routes("/activities/copy/{share_token}", "POST")) == 1


def test_history_route_precedes_activity_detail() -> None:
    paths = [route.path for route in app.routes if isinstance(route, APIRoute) and "GET" in route.methods]

    assert paths.index("/activities/history") < paths.index("/activities/{activity_id}")

"""
Shared fixtures: a scripted fake of the Nexon Open API.
"""
import httpx
import pytest

from shared.config import DashboardSettings
from upstream.client import UpstreamClient

BASE_PATH = "/maplestorytw/v1"

NOT_FOUND_BODY = {"error": {"name": "OPENAPI00004", "message": "Please input valid parameter"}}


class FakeUpstream:
    """
    Routes upstream paths to canned responses and records every call.

    A route is ``(status, body)`` or a callable taking the request and
    returning one. Unrouted paths answer 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith(BASE_PATH):
            path = path[len(BASE_PATH):]
        self.calls.append((path, dict(request.url.params), request.headers))

        route = self.routes.get(path, (404, NOT_FOUND_BODY))
        if callable(route):
            route = route(request)
        status, body = route

        if body is None:
            return httpx.Response(status)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def paths(self):
        return [call[0] for call in self.calls]

    def client(self, settings: DashboardSettings) -> UpstreamClient:
        transport = httpx.MockTransport(self.handler)
        return UpstreamClient(settings, http_client=httpx.AsyncClient(transport=transport))


def make_settings(**overrides) -> DashboardSettings:
    values = {
        "nexon_open_api_key": "test-key",
        "max_retries": 0,
        "retry_backoff": 0.0,
        "response_cache_ttl": 0,
    }
    values.update(overrides)
    return DashboardSettings(_env_file=None, **values)


def character_routes(ocid="ocid-bob"):
    """Every section answering successfully for one character."""
    return {
        "/id": (200, {"ocid": ocid}),
        "/character/basic": (200, {"character_name": "Bob", "world_name": "艾麗亞", "character_level": 260}),
        "/character/popularity": (200, {"popularity": 42}),
        "/character/dojang": (200, {"dojang_best_floor": 55}),
        "/character/stat": (200, {"final_stat": [{"stat_name": "STR", "stat_value": "4000"}]}),
        "/character/hyper-stat": (200, {"hyper_stat_preset_1": []}),
        "/character/propensity": (200, {"charisma_level": 100}),
        "/character/ability": (200, {"ability_grade": "傳說"}),
        "/character/item-equipment": (200, {"item_equipment": [{"slot_name": "帽子", "item_name": "Arcane Hat"}]}),
        "/character/cashitem-equipment": (200, {"cash_item_equipment_base": []}),
        "/character/symbol-equipment": (200, {"symbol": []}),
        "/character/set-effect": (200, {"set_effect": []}),
        "/character/beauty-equipment": (200, {"character_hair": {"hair_name": "Short"}}),
        "/character/android-equipment": (200, {"android_name": "Bot"}),
        "/character/pet-equipment": (200, {"pet_1_name": "Kitty"}),
        "/character/link-skill": (200, {"character_link_skill": []}),
        "/character/vmatrix": (200, {"character_v_core_equipment": []}),
        "/character/hexamatrix": (200, {"character_hexa_core_equipment": []}),
        "/character/hexamatrix-stat": (200, {"character_hexa_stat_core": []}),
        "/user/union": (200, {"union_level": 8000, "union_grade": "Grand Master"}),
    }


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def upstream():
    return FakeUpstream(character_routes())

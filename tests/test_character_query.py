"""
Unit tests for the validated, cached character query entry point.
"""
import pytest

from conftest import FakeUpstream, character_routes, make_settings
from aggregator.cache import TTLResponseCache
from aggregator.models import SectionKey
from aggregator.query import build_character_query
from shared.errors import CharacterNotFoundError, QueryValidationError


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def build_query(upstream, cache=None):
    settings = make_settings()
    return build_character_query(settings, client=upstream.client(settings), cache=cache)


class TestValidation:
    """Test parameter validation happens before any upstream call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs, message", [
        ({"character_name": None}, "Missing characterName query parameter."),
        ({"character_name": "   "}, "Missing characterName query parameter."),
        ({"character_name": "Bob", "section": "pets"}, 'Unknown section "pets".'),
        ({"character_name": "Bob", "module": "vmatrix"}, 'Module "vmatrix" requires section "skills".'),
        ({"character_name": "Bob", "section": "equipment", "module": "vmatrix"},
         'Module "vmatrix" requires section "skills".'),
        ({"character_name": "Bob", "section": "skills", "module": "gear"}, 'Unknown skill module "gear".'),
    ])
    async def test_invalid_queries(self, upstream, kwargs, message):
        query = build_query(upstream)

        with pytest.raises(QueryValidationError) as exc_info:
            await query.get_composite_response(**kwargs)

        assert exc_info.value.status == 400
        assert exc_info.value.message == message
        assert upstream.calls == []


class TestCompositeQueries:
    """Test query shapes end to end against the fake upstream."""

    @pytest.mark.asyncio
    async def test_full_query(self, upstream):
        query = build_query(upstream)

        response = await query.get_composite_response(" Bob ", date="")

        assert response.character_name == "Bob"
        assert response.requested_date is None
        assert set(response.sections) == set(SectionKey)
        assert response.cached is False

    @pytest.mark.asyncio
    async def test_single_section_refetch(self, upstream):
        query = build_query(upstream)

        response = await query.get_composite_response("Bob", section="stat", ocid="ocid-bob")

        assert list(response.sections) == [SectionKey.STAT]
        assert "/id" not in upstream.paths()

    @pytest.mark.asyncio
    async def test_skill_module_refetch(self, upstream):
        query = build_query(upstream)

        response = await query.get_composite_response(
            "Bob", section="skills", ocid="ocid-bob", module="linkSkills"
        )

        assert list(response.sections[SectionKey.SKILLS]) == ["linkSkills"]
        assert upstream.paths() == ["/character/link-skill"]

    @pytest.mark.asyncio
    async def test_unknown_character(self):
        upstream = FakeUpstream({"/id": (200, {})})
        query = build_query(upstream)

        with pytest.raises(CharacterNotFoundError):
            await query.get_composite_response("Alice")

        assert upstream.paths() == ["/id"]


class TestQueryCaching:
    """Test cache hits skip the upstream and expire after the TTL."""

    @pytest.mark.asyncio
    async def test_cache_hit_and_expiry(self):
        upstream = FakeUpstream(character_routes())
        clock = FakeClock()
        query = build_query(upstream, cache=TTLResponseCache(ttl=30, clock=clock))

        first = await query.get_composite_response("Bob", section="union")
        calls_after_first = len(upstream.calls)

        clock.now = 10
        second = await query.get_composite_response("Bob", section="union")

        assert first.cached is False
        assert second.cached is True
        assert second.sections == first.sections
        assert len(upstream.calls) == calls_after_first

        clock.now = 31
        third = await query.get_composite_response("Bob", section="union")

        assert third.cached is False
        assert len(upstream.calls) == calls_after_first * 2

    @pytest.mark.asyncio
    async def test_failed_response_is_not_cached(self):
        answers = iter([(500, {"error": {"message": "server busy"}}), (200, {"union_level": 8000})])
        routes = character_routes()
        routes["/user/union"] = lambda request: next(answers)
        upstream = FakeUpstream(routes)
        query = build_query(upstream, cache=TTLResponseCache(ttl=30, clock=FakeClock()))

        first = await query.get_composite_response("Bob", section="union", ocid="ocid-bob")
        retry = await query.get_composite_response("Bob", section="union", ocid="ocid-bob")

        assert [error.path for error in first.errors] == ["union"]
        assert retry.cached is False
        assert retry.errors == []
        assert retry.sections[SectionKey.UNION] == {"union_level": 8000}
        assert upstream.paths().count("/user/union") == 2

    @pytest.mark.asyncio
    async def test_different_shapes_do_not_share_entries(self):
        upstream = FakeUpstream(character_routes())
        query = build_query(upstream, cache=TTLResponseCache(ttl=30, clock=FakeClock()))

        await query.get_composite_response("Bob", section="union")
        response = await query.get_composite_response("Bob", section="union", date="2024-05-01")

        assert response.cached is False

    @pytest.mark.asyncio
    async def test_disabled_cache_always_fetches(self, upstream):
        query = build_query(upstream, cache=TTLResponseCache(ttl=0))

        await query.get_composite_response("Bob", section="union")
        response = await query.get_composite_response("Bob", section="union")

        assert response.cached is False
        assert upstream.paths().count("/user/union") == 2

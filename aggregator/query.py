"""
Character query entry point.

Validates the request shape, serves recent answers from the response cache and
otherwise delegates to the composite assembler.
"""
import logging
from typing import Optional

from shared.config import DashboardSettings
from shared.errors import QueryValidationError
from upstream.client import UpstreamClient
from upstream.fetcher import OptionalFetcher
from upstream.identity import IdentityResolver
from .assembler import CompositeAssembler
from .cache import BaseResponseCache, TTLResponseCache, cache_signature
from .models import CompositeResponse, SectionKey, SkillModule
from .sections import build_section_aggregators

logger = logging.getLogger(__name__)

SECTION_VALUES = [section.value for section in SectionKey]
SKILL_MODULE_VALUES = [module.value for module in SkillModule]


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_query(
    character_name: Optional[str],
    section: Optional[str] = None,
    module: Optional[str] = None
):
    """
    Check query parameters before any network activity.

    Raises:
        QueryValidationError: On a missing name, unknown section, a module
            without the skills section, or an unknown skill module
    """
    if not character_name:
        raise QueryValidationError("Missing characterName query parameter.")

    if section is not None and section not in SECTION_VALUES:
        raise QueryValidationError(f'Unknown section "{section}".')

    if module is not None:
        if section != SectionKey.SKILLS.value:
            raise QueryValidationError(f'Module "{module}" requires section "skills".')
        if module not in SKILL_MODULE_VALUES:
            raise QueryValidationError(f'Unknown skill module "{module}".')


class CharacterQuery:
    """Validated, cached access to composite character responses."""

    def __init__(self, assembler: CompositeAssembler, cache: BaseResponseCache):
        self.assembler = assembler
        self.cache = cache

    async def get_composite_response(
        self,
        character_name: Optional[str],
        date: Optional[str] = None,
        section: Optional[str] = None,
        ocid: Optional[str] = None,
        module: Optional[str] = None
    ) -> CompositeResponse:
        """
        Fetch the composite response for a character.

        Args:
            character_name: Character name (required)
            date: Optional data date (YYYY-MM-DD)
            section: Restrict to one section
            ocid: Previously resolved id, for targeted refetches
            module: Restrict the skills section to one module

        Returns:
            CompositeResponse, with ``cached`` set when served from cache
        """
        character_name = _blank_to_none(character_name)
        date = _blank_to_none(date)
        section = _blank_to_none(section)
        ocid = _blank_to_none(ocid)
        module = _blank_to_none(module)

        validate_query(character_name, section, module)

        signature = cache_signature(character_name, date, section, ocid, module)
        cached = self.cache.get(signature)
        if cached is not None:
            logger.info(f"Cache hit for {signature}")
            return cached

        response = await self.assembler.assemble(
            character_name,
            date=date,
            sections=[SectionKey(section)] if section else None,
            ocid=ocid,
            skill_modules=[module] if module else None
        )

        # Responses with failed slices stay uncached so a retry reaches the upstream
        if not response.errors:
            self.cache.put(signature, response)
        return response


def build_character_query(
    settings: DashboardSettings,
    client: Optional[UpstreamClient] = None,
    cache: Optional[BaseResponseCache] = None
) -> CharacterQuery:
    """Wire the upstream client, aggregators, assembler and cache together."""
    client = client or UpstreamClient(settings)
    assembler = CompositeAssembler(
        resolver=IdentityResolver(client),
        aggregators=build_section_aggregators(client, OptionalFetcher(client))
    )
    if cache is None:
        cache = TTLResponseCache(ttl=settings.response_cache_ttl)
    return CharacterQuery(assembler, cache)

"""
Composite response assembly.

Resolves the character once, fans out to the requested section aggregators and
merges their payloads and errors into a single CompositeResponse. A failing
section never cancels or fails its siblings.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from shared.errors import ConfigurationError, DashboardError, describe_error
from upstream.identity import IdentityResolver
from .models import ALL_SECTIONS, CompositeResponse, SectionError, SectionKey, SectionResult
from .sections import SectionAggregator

logger = logging.getLogger(__name__)

UNEXPECTED_SECTION_MESSAGE = "資料讀取暫時失敗，請稍後再試。"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CompositeAssembler:
    """Drives identity resolution and the section fan-out."""

    def __init__(
        self,
        resolver: IdentityResolver,
        aggregators: Dict[SectionKey, SectionAggregator],
        clock: Callable[[], datetime] = utc_now
    ):
        self.resolver = resolver
        self.aggregators = aggregators
        self.clock = clock

    async def assemble(
        self,
        character_name: str,
        date: Optional[str] = None,
        sections: Optional[Iterable[SectionKey]] = None,
        ocid: Optional[str] = None,
        skill_modules: Optional[Iterable[str]] = None
    ) -> CompositeResponse:
        """
        Build the composite response for a character.

        Args:
            character_name: Character name as entered by the user
            date: Optional data date (YYYY-MM-DD)
            sections: Sections to fetch (default: all, in canonical order)
            ocid: Previously resolved id; skips identity resolution
            skill_modules: Narrow the skills section to these modules

        Returns:
            CompositeResponse with partial successes and scoped errors

        Raises:
            CharacterNotFoundError: If the name does not resolve
            UpstreamError: If the identity lookup fails
            ConfigurationError: If the API key is missing
        """
        if not ocid:
            identity = await self.resolver.resolve(character_name)
            ocid = identity.ocid

        requested: List[SectionKey] = list(sections) if sections else list(ALL_SECTIONS)
        modules = list(skill_modules) if skill_modules else None

        logger.info(
            f"Assembling {character_name} ({ocid}): "
            f"sections={[section.value for section in requested]}"
        )

        results = await asyncio.gather(
            *(self._collect(section, ocid, date, modules) for section in requested),
            return_exceptions=True
        )

        payloads: Dict[SectionKey, dict] = {}
        section_errors: List[SectionError] = []
        module_errors: List[SectionError] = []

        for section, result in zip(requested, results):
            if isinstance(result, ConfigurationError):
                raise result
            if isinstance(result, SectionResult):
                payloads[section] = result.payload
                module_errors.extend(result.errors)
                continue

            if isinstance(result, DashboardError):
                message = describe_error(result)
                logger.warning(f"Section {section.value} failed: {message}")
            else:
                message = UNEXPECTED_SECTION_MESSAGE
                logger.error(
                    f"Unexpected error in section {section.value}: {result!r}",
                    exc_info=result
                )
            section_errors.append(SectionError(section=section.value, message=message))

        return CompositeResponse(
            character_name=character_name,
            ocid=ocid,
            requested_date=date,
            fetched_at=self.clock(),
            sections=payloads,
            errors=section_errors + module_errors
        )

    async def _collect(
        self,
        section: SectionKey,
        ocid: str,
        date: Optional[str],
        skill_modules: Optional[List[str]]
    ) -> SectionResult:
        aggregator = self.aggregators[section]
        modules = skill_modules if section == SectionKey.SKILLS else None
        return await aggregator.collect(ocid, date=date, modules=modules)


def merge_composite(
    previous: CompositeResponse,
    refreshed: CompositeResponse,
    section: SectionKey,
    module: Optional[str] = None
) -> CompositeResponse:
    """
    Fold a targeted refetch into a previously fetched response.

    Only the refetched slice changes: other sections keep their payloads and
    errors.

    Args:
        previous: Response currently shown to the user
        refreshed: Response of the narrowed refetch
        section: Section that was refetched
        module: Module that was refetched (skills only)

    Returns:
        New CompositeResponse combining both
    """
    sections = dict(previous.sections)
    key = section.value

    if module is None:
        if section in refreshed.sections:
            sections[section] = refreshed.sections[section]
        remaining = [error for error in previous.errors if not error.belongs_to_section(key)]
        updates = [error for error in refreshed.errors if error.belongs_to_section(key)]
    else:
        merged = dict(previous.sections.get(section) or {})
        merged.update(refreshed.sections.get(section) or {})
        sections[section] = merged
        remaining = [
            error for error in previous.errors
            if not error.belongs_to_module(key, module) and str(error) != key
        ]
        updates = [error for error in refreshed.errors if error.belongs_to_module(key, module)]
        # A whole-section failure of the refetch is reported against the module
        updates.extend(
            SectionError(section=key, module=module, message=error.message)
            for error in refreshed.errors if str(error) == key
        )

    return previous.model_copy(update={
        "sections": sections,
        "errors": remaining + updates,
        "fetched_at": refreshed.fetched_at,
        "cached": False,
    })

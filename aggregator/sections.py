"""
Section aggregators.

Each section of the dashboard is composed of several upstream endpoints
("modules"). An aggregator fetches its modules concurrently, merges the
payloads under their module keys and collects per-module errors, so one broken
module never hides its siblings.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from shared.errors import DashboardError, describe_error
from upstream.client import UpstreamClient
from upstream.fetcher import OptionalFetcher
from .models import SectionError, SectionKey, SectionResult, SkillModule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleSpec:
    """One upstream endpoint within a section."""
    key: str
    path: str
    required: bool = False


SECTION_MODULES: Dict[SectionKey, List[ModuleSpec]] = {
    SectionKey.BASIC: [
        ModuleSpec("profile", "/character/basic", required=True),
        ModuleSpec("popularity", "/character/popularity"),
        ModuleSpec("dojang", "/character/dojang"),
    ],
    SectionKey.STAT: [
        ModuleSpec("overview", "/character/stat", required=True),
        ModuleSpec("hyperStat", "/character/hyper-stat"),
        ModuleSpec("propensity", "/character/propensity"),
        ModuleSpec("ability", "/character/ability"),
    ],
    SectionKey.EQUIPMENT: [
        ModuleSpec("gear", "/character/item-equipment"),
        ModuleSpec("cash", "/character/cashitem-equipment"),
        ModuleSpec("symbols", "/character/symbol-equipment"),
        ModuleSpec("setEffects", "/character/set-effect"),
        ModuleSpec("beauty", "/character/beauty-equipment"),
        ModuleSpec("android", "/character/android-equipment"),
        ModuleSpec("pets", "/character/pet-equipment"),
    ],
    SectionKey.SKILLS: [
        ModuleSpec(SkillModule.LINK_SKILLS.value, "/character/link-skill"),
        ModuleSpec(SkillModule.VMATRIX.value, "/character/vmatrix"),
        ModuleSpec(SkillModule.HEXAMATRIX.value, "/character/hexamatrix"),
        ModuleSpec(SkillModule.HEXAMATRIX_STAT.value, "/character/hexamatrix-stat"),
    ],
    SectionKey.UNION: [
        ModuleSpec("union", "/user/union", required=True),
    ],
}

# Sections whose module set can be narrowed per request
SELECTABLE_SECTIONS = {SectionKey.SKILLS}


class SectionAggregator:
    """Fetches and merges the modules of a single section."""

    def __init__(
        self,
        section: SectionKey,
        modules: List[ModuleSpec],
        client: UpstreamClient,
        fetcher: OptionalFetcher,
        nested: bool = True
    ):
        self.section = section
        self.modules = modules
        self.client = client
        self.fetcher = fetcher
        self.nested = nested

    def select_modules(self, module_keys: Optional[Iterable[str]] = None) -> List[ModuleSpec]:
        """Resolve a module subset; None selects every module."""
        if module_keys is None:
            return list(self.modules)

        if self.section not in SELECTABLE_SECTIONS:
            raise ValueError(f"Section {self.section.value} does not support module selection")

        wanted = set(module_keys)
        known = {spec.key for spec in self.modules}
        unknown = wanted - known
        if unknown:
            raise ValueError(f"Unknown modules for {self.section.value}: {sorted(unknown)}")

        return [spec for spec in self.modules if spec.key in wanted]

    async def collect(
        self,
        ocid: str,
        date: Optional[str] = None,
        modules: Optional[Iterable[str]] = None
    ) -> SectionResult:
        """
        Fetch every selected module concurrently and merge the results.

        Args:
            ocid: Resolved character id
            date: Optional data date (YYYY-MM-DD)
            modules: Module keys to fetch (selectable sections only)

        Returns:
            SectionResult with merged payload and sub-module errors

        Raises:
            DashboardError: If a required module fails; the whole section fails
        """
        selected = self.select_modules(modules)
        params = {"ocid": ocid, "date": date}
        errors: List[SectionError] = []

        def recorder(module_key: str):
            def record(error: DashboardError):
                errors.append(SectionError(
                    section=self.section.value,
                    module=module_key,
                    message=describe_error(error)
                ))
            return record

        async def fetch_module(spec: ModuleSpec) -> Optional[Dict[str, Any]]:
            if spec.required:
                return await self.client.call(spec.path, params)
            return await self.fetcher.fetch_optional(spec.path, params, on_error=recorder(spec.key))

        results = await asyncio.gather(
            *(fetch_module(spec) for spec in selected),
            return_exceptions=True
        )

        payload: Dict[str, Any] = {}
        for spec, result in zip(selected, results):
            if isinstance(result, BaseException):
                # Required modules and configuration errors abort the section
                raise result
            if result is None:
                continue
            if self.nested:
                payload[spec.key] = result
            else:
                payload.update(result)

        if errors:
            logger.info(
                f"Section {self.section.value}: {len(payload)} modules fetched, "
                f"{len(errors)} module errors"
            )

        return SectionResult(section=self.section, payload=payload, errors=errors)


def build_section_aggregators(
    client: UpstreamClient,
    fetcher: Optional[OptionalFetcher] = None
) -> Dict[SectionKey, SectionAggregator]:
    """Create one aggregator per section sharing the same client."""
    fetcher = fetcher or OptionalFetcher(client)
    return {
        section: SectionAggregator(
            section=section,
            modules=modules,
            client=client,
            fetcher=fetcher,
            nested=section != SectionKey.UNION
        )
        for section, modules in SECTION_MODULES.items()
    }

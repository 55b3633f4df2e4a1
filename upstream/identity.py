"""
Character identity resolution.

Maps a human-readable character name to the ocid every data endpoint expects.
"""
import logging
from dataclasses import dataclass

from shared.errors import CharacterNotFoundError
from .client import UpstreamClient

logger = logging.getLogger(__name__)

IDENTITY_PATH = "/id"


@dataclass(frozen=True)
class CharacterIdentity:
    """A resolved character; request-scoped and never persisted."""
    name: str
    ocid: str


class IdentityResolver:
    """Resolves character names through the upstream /id endpoint."""

    def __init__(self, client: UpstreamClient):
        self.client = client

    async def resolve(self, character_name: str) -> CharacterIdentity:
        """
        Resolve a character name to its ocid.

        Args:
            character_name: Exact in-game character name

        Returns:
            CharacterIdentity for the name

        Raises:
            CharacterNotFoundError: If the upstream answers without an ocid
            UpstreamError: If the lookup request itself fails
        """
        data = await self.client.call(IDENTITY_PATH, {"character_name": character_name})
        ocid = data.get("ocid") if isinstance(data, dict) else None

        if not ocid:
            logger.info(f"Character not found: {character_name}")
            raise CharacterNotFoundError(
                f"角色「{character_name}」未找到，請確認角色名稱是否正確。"
            )

        return CharacterIdentity(name=character_name, ocid=ocid)

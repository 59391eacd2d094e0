"""
GUID service for entity identification.

Provides utilities for generating the identifiers used as document ids in
the store and in API paths.

GUID Format: {prefix}_{base32_uuid}
- prefix: 3-character entity type identifier (prf, evt, fav)
- base32_uuid: 26-character Crockford Base32 encoded UUIDv7
"""

import uuid

import base32_crockford
from uuid_extensions import uuid7

# Prefix mappings for stored entities:
#   prf - Performer
#   evt - SupportEvent
#   fav - Favorite
ENTITY_PREFIXES = {
    "prf": "Performer",
    "evt": "SupportEvent",
    "fav": "Favorite",
}


class GuidService:
    """
    Static helpers for GUID generation.

    UUIDv7 values are time-ordered, so GUIDs generated later sort after
    earlier ones.
    """

    @staticmethod
    def encode_uuid(uuid_value: uuid.UUID, prefix: str) -> str:
        """
        Encode a UUID to a GUID string.

        Args:
            uuid_value: UUID to encode
            prefix: Entity type prefix (prf, evt, fav)

        Returns:
            GUID string (e.g., "prf_01hgw2bbg...")

        Raises:
            ValueError: If prefix is invalid
        """
        if prefix not in ENTITY_PREFIXES:
            raise ValueError(
                f"Invalid prefix '{prefix}'. "
                f"Valid prefixes: {', '.join(ENTITY_PREFIXES.keys())}"
            )

        encoded = base32_crockford.encode(int.from_bytes(uuid_value.bytes, "big"))
        return f"{prefix}_{encoded.zfill(26).lower()}"

    @staticmethod
    def generate_guid(prefix: str) -> str:
        """
        Generate a new GUID with the specified prefix.

        Example:
            >>> performer_id = GuidService.generate_guid("prf")
        """
        return GuidService.encode_uuid(uuid7(), prefix)

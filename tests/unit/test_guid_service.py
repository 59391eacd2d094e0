"""
Unit tests for GuidService.

Tests cover:
- GUID generation per entity prefix
- Encoding of known UUIDs
"""

import re
import uuid

import pytest

from cheerboard.services.guid import ENTITY_PREFIXES, GuidService


GUID_FORMAT = re.compile(r"^(prf|evt|fav)_[0-9a-hjkmnp-tv-z]{26}$")


class TestGuidGeneration:
    """Tests for generate_guid()."""

    @pytest.mark.parametrize("prefix", list(ENTITY_PREFIXES))
    def test_generate_guid_matches_pattern(self, prefix):
        guid = GuidService.generate_guid(prefix)

        assert guid.startswith(f"{prefix}_")
        assert GUID_FORMAT.match(guid)
        assert len(guid) == 30

    def test_generated_guids_are_unique(self):
        guids = {GuidService.generate_guid("evt") for _ in range(100)}
        assert len(guids) == 100

    def test_invalid_prefix(self):
        with pytest.raises(ValueError, match="Invalid prefix"):
            GuidService.generate_guid("xyz")


class TestGuidEncoding:

    def test_zero_uuid_is_zero_padded(self):
        """Small values are left-padded to 26 characters."""
        assert GuidService.encode_uuid(uuid.UUID(int=0), "prf") == "prf_" + "0" * 26

    def test_encoding_is_lowercase_and_deterministic(self):
        value = uuid.UUID("01890a5d-ac96-774b-bcce-b302099a8057")

        first = GuidService.encode_uuid(value, "fav")
        second = GuidService.encode_uuid(value, "fav")

        assert first == second
        assert first == first.lower()

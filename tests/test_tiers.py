"""Tests for tier routing."""

from __future__ import annotations

import pytest

from custom_components.blink_cameras.exceptions import BlinkConfigurationError
from custom_components.blink_cameras.models import ApiGroup
from custom_components.blink_cameras.tiers import TierRouter, normalize_tier


class TestNormalizeTier:
    """Tests for normalize_tier."""

    def test_known_tier_lowercased(self) -> None:
        """Test that known codes are normalised."""
        assert normalize_tier(" PRDE ") == "prde"

    @pytest.mark.parametrize("tier", [None, "", "mars"])
    def test_unknown_tier(self, tier: str | None) -> None:
        """Test that unknown or empty codes give None."""
        assert normalize_tier(tier) is None


class TestTierRouter:
    """Tests for TierRouter."""

    def test_defaults_to_prod(self) -> None:
        """Test the default tier and URLs."""
        router = TierRouter()
        assert router.tier == "prod"
        assert router.shared_tier == "prod"
        assert router.base_url() == "https://rest-prod.immedia-semi.com/api/"
        assert router.root_url() == "https://rest-prod.immedia-semi.com/"

    def test_unknown_configured_tier_fails_closed(self) -> None:
        """Test that a typo in the tier is rejected instead of defaulting."""
        with pytest.raises(BlinkConfigurationError):
            TierRouter("prdo")

    def test_unknown_shared_tier_fails_closed(self) -> None:
        """Test that an unknown shared override is rejected."""
        with pytest.raises(BlinkConfigurationError):
            TierRouter("prod", "nowhere")

    def test_asserted_tier_wins_for_primary(self) -> None:
        """Test that a server-asserted tier replaces the configured one."""
        router = TierRouter("prod")

        assert router.adopt_asserted_tier("prde") is True

        assert router.tier == "prde"
        assert router.configured_tier == "prod"
        assert router.base_url(ApiGroup.PRIMARY) == "https://rest-prde.immedia-semi.com/api/"

    def test_shared_follows_asserted_tier_without_override(self) -> None:
        """Test that the shared group tracks the effective tier."""
        router = TierRouter("prod")
        router.adopt_asserted_tier("prsg")
        assert router.base_url(ApiGroup.SHARED) == "https://rest-prsg.immedia-semi.com/api/"

    def test_shared_override_is_independent(self) -> None:
        """Test that an explicit shared tier survives a tier assertion."""
        router = TierRouter("prod", "a001")

        router.adopt_asserted_tier("prde")

        assert router.shared_tier == "a001"
        assert router.base_url(ApiGroup.SHARED, "prde") == "https://rest-a001.immedia-semi.com/api/"
        assert router.base_url(ApiGroup.PRIMARY) == "https://rest-prde.immedia-semi.com/api/"

    def test_unknown_asserted_tier_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that an unknown asserted tier is logged and ignored."""
        router = TierRouter("cemp")

        assert router.adopt_asserted_tier("zz99") is False

        assert router.tier == "cemp"
        assert "unsupported tier" in caplog.text

    def test_per_request_tier(self) -> None:
        """Test that a per-request tier picks the host."""
        router = TierRouter()
        assert router.base_url(ApiGroup.PRIMARY, "srf1") == "https://rest-srf1.immedia-semi.com/api/"

    def test_oauth_url(self) -> None:
        """Test the OAuth endpoint for production and QA."""
        assert TierRouter().oauth_token_url() == "https://api.oauth.blink.com/oauth/token"
        assert TierRouter("sqa1").oauth_token_url() == "https://api.qa.oauth.blink.com/oauth/token"

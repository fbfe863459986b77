"""Regional tier routing for the Blink REST API."""

from __future__ import annotations

import logging

from .const import DEFAULT_TIER, KNOWN_TIERS
from .exceptions import BlinkConfigurationError
from .models import ApiGroup

_LOGGER = logging.getLogger(__name__)

REST_HOST_TEMPLATE = "https://rest-{tier}.immedia-semi.com/"
OAUTH_HOST_TEMPLATE = "https://api.{env}oauth.blink.com/"


def normalize_tier(tier: str | None) -> str | None:
    """Return the canonical form of a tier code, or None if it is unknown."""
    if not tier:
        return None
    normalized = tier.strip().lower()
    return normalized if normalized in KNOWN_TIERS else None


class TierRouter:
    """Resolve tier codes to base URLs for the primary and shared API groups.

    Precedence:
    - Primary group: server-asserted tier, then configured tier.
    - Shared group: explicit shared override, then the primary tier.

    Unknown configured codes raise BlinkConfigurationError instead of silently
    falling back to production. Unknown server-asserted codes are ignored.
    """

    __slots__ = ("_asserted_tier", "_configured_tier", "_logger", "_shared_override")

    def __init__(
        self,
        tier: str | None = None,
        shared_tier: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize TierRouter.

        Args:
            tier: Configured tier code. Defaults to "prod".
            shared_tier: Optional tier pinned for the shared REST group.
            logger: Logger to report tier changes to.

        Raises:
            BlinkConfigurationError: If either tier code is unknown.
        """
        self._logger = logger or _LOGGER
        self._configured_tier = self._validate(tier or DEFAULT_TIER, "tier")
        self._shared_override = (
            self._validate(shared_tier, "shared tier") if shared_tier else None
        )
        self._asserted_tier: str | None = None

    @staticmethod
    def _validate(tier: str, label: str) -> str:
        normalized = normalize_tier(tier)
        if normalized is None:
            raise BlinkConfigurationError(
                f"Unknown {label} '{tier}'; expected one of {', '.join(KNOWN_TIERS)}"
            )
        return normalized

    @property
    def tier(self) -> str:
        """Return the tier used by the primary API group."""
        return self._asserted_tier or self._configured_tier

    @property
    def shared_tier(self) -> str:
        """Return the tier used by the shared API group."""
        return self._shared_override or self.tier

    @property
    def configured_tier(self) -> str:
        """Return the tier from configuration, ignoring server assertions."""
        return self._configured_tier

    def adopt_asserted_tier(self, tier: str | None) -> bool:
        """Adopt a tier reported by the service.

        The explicit shared override, if any, is left untouched.

        Args:
            tier: Tier code from a login or account info response.

        Returns:
            True if the asserted tier is now in effect.
        """
        if not tier:
            return False
        normalized = normalize_tier(tier)
        if normalized is None:
            self._logger.warning(
                "Blink reported unsupported tier '%s'; keeping %s",
                tier,
                self.tier,
            )
            return False
        if normalized != self.tier:
            self._logger.info("Blink tier updated from %s to %s", self.tier, normalized)
        self._asserted_tier = normalized
        return True

    def resolve(self, group: ApiGroup = ApiGroup.PRIMARY, tier: str | None = None) -> str:
        """Return the tier a request to the given group is sent to.

        Args:
            group: The logical API group.
            tier: Per-request tier, typically the one held by the token.

        Raises:
            BlinkConfigurationError: If the per-request tier is unknown.
        """
        if group is ApiGroup.SHARED and self._shared_override:
            return self._shared_override
        if tier:
            return self._validate(tier, "tier")
        return self.tier

    def root_url(self, group: ApiGroup = ApiGroup.PRIMARY, tier: str | None = None) -> str:
        """Return the REST host root, used for media and thumbnail URLs."""
        return REST_HOST_TEMPLATE.format(tier=self.resolve(group, tier))

    def base_url(self, group: ApiGroup = ApiGroup.PRIMARY, tier: str | None = None) -> str:
        """Return the REST API base URL (ending in /api/) for a group."""
        return f"{self.root_url(group, tier)}api/"

    def oauth_token_url(self) -> str:
        """Return the OAuth token endpoint for the configured environment."""
        env = "qa." if self._configured_tier == "sqa1" else ""
        return f"{OAUTH_HOST_TEMPLATE.format(env=env)}oauth/token"

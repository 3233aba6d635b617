"""Latest-release lookup against the LivOS release server."""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from lifecycle.config import Settings
from lifecycle.errors import ResolutionError
from lifecycle.models.release import ReleaseChannel, ReleaseInfo, UpdateCheck
from lifecycle.services.device import DeviceDetector
from lifecycle.services.store import JsonStore


RELEASE_CHANNEL_KEY = "settings.releaseChannel"


class ReleaseResolver:
    """Queries the release server for the latest version metadata.

    The request carries the running version, device id, platform and
    release channel so the server only offers releases that apply to this
    host. Detection failures degrade to "unknown"/"stable" and are logged.
    """

    def __init__(self, settings: Settings, device: DeviceDetector, store: JsonStore):
        """Initialize resolver.

        Args:
            settings: Service settings (version, domains, timeout)
            device: Device/platform detection capability
            store: Key-value store holding the release channel
        """
        self.logger = logging.getLogger("lifecycle.release")
        self.settings = settings
        self.device = device
        self.store = store

    @property
    def user_agent(self) -> str:
        return f"LivOS {self.settings.version}"

    @property
    def release_url(self) -> str:
        return f"{self.settings.domains.api_base_url}/latest-release"

    async def get_channel(self) -> str:
        """Read the configured release channel.

        Returns:
            "stable" or "beta"; "stable" when unset

        Raises:
            ValueError: If the store cannot be read
        """
        channel = await self.store.get(RELEASE_CHANNEL_KEY)
        return channel or ReleaseChannel.STABLE.value

    async def set_channel(self, channel: str) -> bool:
        """Persist the release channel.

        Args:
            channel: "stable" or "beta"

        Returns:
            True once stored

        Raises:
            ValueError: If the channel is not a known release channel
        """
        value = ReleaseChannel(channel).value
        self.logger.info(f"Release channel set to {value}")
        return await self.store.set(RELEASE_CHANNEL_KEY, value)

    async def _query_params(self) -> dict[str, str]:
        device_id = "unknown"
        try:
            device_id = (await self.device.detect_device()).device_id
        except Exception as e:
            self.logger.error(f"Failed to detect device type: {e}", exc_info=True)

        platform = "unknown"
        try:
            if await self.device.is_livos():
                platform = "LivOS"
        except Exception as e:
            self.logger.error(f"Failed to detect platform: {e}", exc_info=True)

        channel = ReleaseChannel.STABLE.value
        try:
            channel = await self.get_channel()
        except Exception as e:
            self.logger.error(f"Failed to get release channel: {e}", exc_info=True)

        return {
            "version": self.settings.version,
            "device": device_id,
            "platform": platform,
            "channel": channel,
        }

    async def resolve(self, client: Optional[httpx.AsyncClient] = None) -> ReleaseInfo:
        """Fetch the latest release for this host.

        Args:
            client: Optional shared HTTP client (a short-lived one is used otherwise)

        Returns:
            ReleaseInfo parsed from the server response

        Raises:
            ResolutionError: On network, HTTP status or decode failures
        """
        params = await self._query_params()
        headers = {"User-Agent": self.user_agent}
        self.logger.info(
            f"Checking for release: url={self.release_url}, "
            f"device={params['device']}, platform={params['platform']}, "
            f"channel={params['channel']}"
        )

        try:
            if client is None:
                async with httpx.AsyncClient(timeout=self.settings.release_timeout_seconds) as own:
                    response = await own.get(self.release_url, params=params, headers=headers)
            else:
                response = await client.get(self.release_url, params=params, headers=headers)
            response.raise_for_status()
            return ReleaseInfo.model_validate(response.json())
        except httpx.HTTPError as e:
            raise ResolutionError(f"Release server unreachable: {e}") from e
        except (ValueError, ValidationError) as e:
            raise ResolutionError(f"Malformed release metadata: {e}") from e

    async def check_update(self) -> UpdateCheck:
        """Compare the latest release with the running version.

        Returns:
            UpdateCheck with ``available`` set when versions differ

        Raises:
            ResolutionError: If the release cannot be resolved
        """
        release = await self.resolve()
        # Tags carry a "v" prefix for legacy reasons
        available = release.version.replace("v", "") != self.settings.version
        return UpdateCheck(
            available=available,
            version=release.version,
            name=release.name,
            release_notes=release.release_notes,
        )

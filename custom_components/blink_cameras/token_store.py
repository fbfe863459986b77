"""Persistence of the Blink auth records across restarts.

Each account has its own JSON dot-file, keyed by a hash of the username and
device id. The files live in a storage root next to Home Assistant's own
`.storage/` directory, never inside it. Writes go to a temporary file in the
same directory and are renamed over the target, so readers only ever see a
complete record.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import shutil
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.json import json_dumps
from homeassistant.util.file import WriteError, write_utf8_file
from homeassistant.util.json import json_loads

from .const import AUTH_FILE_NAME, AUTH_FILE_PREFIX, AUTH_STORAGE_ENV, LEGACY_AUTH_DIR
from .exceptions import BlinkConfigurationError, BlinkStorageError
from .models import PersistedAuthRecord

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)

SYSTEM_STORAGE_ROOT = "/config"
USER_STORAGE_ROOT = "~/.homeassistant"


def account_key(username: str, device_id: str) -> str:
    """Return the storage key for an account on this device."""
    source = f"{username.strip().lower()}|{device_id}"
    return hashlib.sha1(source.encode(), usedforsecurity=False).hexdigest()


def auth_file_name(key: str) -> str:
    """Return the record file name for an account key."""
    return f"{AUTH_FILE_PREFIX}{key}.json"


def candidate_storage_roots(config_dir: str | None) -> list[Path]:
    """Return the storage roots to try, in order of preference.

    Args:
        config_dir: The Home Assistant configuration directory, if known.

    Returns:
        Deduplicated candidate directories: the override variable, the
        configuration directory, the container default, the per-user default.
    """
    raw: list[str] = []
    override = os.environ.get(AUTH_STORAGE_ENV)
    if override:
        raw.append(override)
    if config_dir:
        raw.append(config_dir)
    raw.append(SYSTEM_STORAGE_ROOT)
    raw.append(os.path.expanduser(USER_STORAGE_ROOT))

    candidates: list[Path] = []
    for entry in raw:
        path = Path(entry)
        if path not in candidates:
            candidates.append(path)
    return candidates


def resolve_storage_dir(config_dir: str | None) -> Path:
    """Pick the first existing, writable storage root.

    This is blocking and should run in the executor.

    Raises:
        BlinkConfigurationError: If no candidate is usable.
    """
    candidates = candidate_storage_roots(config_dir)
    for path in candidates:
        if path.is_dir() and os.access(path, os.W_OK):
            return path
    raise BlinkConfigurationError(
        "No writable storage directory for Blink auth state "
        f"(tried {', '.join(str(path) for path in candidates)})"
    )


class TokenStore:
    """Load, save and delete the persisted auth record.

    Only this class touches the record file. Saves and deletes are
    serialised within the process.
    """

    __slots__ = ("_hass", "_lock", "_logger", "_path")

    def __init__(
        self,
        hass: HomeAssistant,
        path: Path,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize TokenStore.

        Args:
            hass: The Home Assistant instance, used to run file I/O.
            path: Full path of the record file.
            logger: Logger for load and save problems.
        """
        self._hass = hass
        self._path = path
        self._logger = logger or _LOGGER
        self._lock = asyncio.Lock()

    @classmethod
    async def async_create(
        cls,
        hass: HomeAssistant,
        username: str,
        device_id: str,
        logger: logging.Logger | None = None,
    ) -> TokenStore:
        """Resolve the storage directory and build the store for one account.

        Raises:
            BlinkConfigurationError: If no storage directory is writable.
        """
        storage_dir = await hass.async_add_executor_job(
            resolve_storage_dir, hass.config.config_dir
        )
        file_name = auth_file_name(account_key(username, device_id))
        return cls(hass, storage_dir / file_name, logger)

    @property
    def path(self) -> Path:
        """Return the record file path."""
        return self._path

    async def async_load(self) -> PersistedAuthRecord | None:
        """Load the record, or None if it is absent or unreadable."""
        data = await self._hass.async_add_executor_job(self._read)
        if data is None:
            return None
        try:
            return PersistedAuthRecord.from_dict(data)
        except (KeyError, TypeError, ValueError) as err:
            self._logger.warning(
                "Ignoring malformed Blink auth record at %s: %s", self._path, err
            )
            return None

    async def async_save(self, record: PersistedAuthRecord) -> None:
        """Atomically replace the record.

        Raises:
            BlinkStorageError: If the record could not be written.
        """
        payload = json_dumps(record.as_dict())
        async with self._lock:
            try:
                await self._hass.async_add_executor_job(
                    write_utf8_file, str(self._path), payload, True
                )
            except WriteError as err:
                raise BlinkStorageError(
                    f"Unable to write Blink auth record to {self._path}: {err}"
                ) from err

    async def async_delete(self) -> None:
        """Remove the record. A missing file is not an error.

        Raises:
            BlinkStorageError: If an existing record could not be removed.
        """
        async with self._lock:
            try:
                await self._hass.async_add_executor_job(self._path.unlink)
            except FileNotFoundError:
                return
            except OSError as err:
                raise BlinkStorageError(
                    f"Unable to remove Blink auth record {self._path}: {err}"
                ) from err

    def _read(self) -> dict[str, Any] | None:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as err:
            self._logger.warning("Unable to read Blink auth record %s: %s", self._path, err)
            return None
        try:
            data = json_loads(raw)
        except ValueError as err:
            self._logger.warning("Ignoring corrupt Blink auth record %s: %s", self._path, err)
            return None
        if not isinstance(data, dict):
            self._logger.warning("Ignoring Blink auth record %s: not an object", self._path)
            return None
        return data


def _remove_path(path: Path, removed: list[Path]) -> None:
    try:
        if path.is_dir():
            shutil.rmtree(path)
        elif path.is_file():
            path.unlink()
        else:
            return
    except OSError as err:
        _LOGGER.warning("Could not remove %s: %s", path, err)
        return
    removed.append(path)


def remove_persisted_auth(
    config_dir: str | None,
    key: str,
    *,
    include_shared: bool = False,
) -> list[Path]:
    """Delete one account's auth state from every storage root.

    With `include_shared` the unkeyed dot-file and the whole legacy directory
    are removed as well; only do that when no other account remains.

    Never raises: failures are logged and the next path is tried.

    Returns:
        The paths that were removed.
    """
    removed: list[Path] = []
    for root in candidate_storage_roots(config_dir):
        if not root.is_dir():
            continue
        legacy_dir = root / LEGACY_AUTH_DIR
        _remove_path(root / auth_file_name(key), removed)
        _remove_path(legacy_dir / f"{key}.json", removed)
        if include_shared:
            _remove_path(root / AUTH_FILE_NAME, removed)
            _remove_path(legacy_dir, removed)
    return removed


async def async_remove_persisted_auth(
    hass: HomeAssistant,
    username: str,
    device_id: str,
    *,
    include_shared: bool = False,
) -> None:
    """Clean up an account's persisted auth state when its entry is removed."""
    removed = await hass.async_add_executor_job(
        partial(
            remove_persisted_auth,
            hass.config.config_dir,
            account_key(username, device_id),
            include_shared=include_shared,
        )
    )
    if removed:
        for path in removed:
            _LOGGER.info("Removed Blink auth state %s", path)
    else:
        _LOGGER.debug("No Blink auth state files found to clean up")

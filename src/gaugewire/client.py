"""eGauge device API client.

Provides async access to a single eGauge meter through its JSON HTTP API.
The :class:`Device` class is the main entry point::

    import asyncio
    from gaugewire import Device

    device = Device("egauge12345", "owner", "secret")
    now = await device.get_current_registers()
    series = await device.get_values_for_range(1704067200, 1704070800, 60)

Authentication is the eGauge digest-style exchange: the device hands out
a realm and nonce, the client answers with an MD5 hash over them, and the
device issues a short-lived JWT that is presented as a bearer token.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import time
from collections.abc import Mapping
from typing import Any

import aiohttp

from gaugewire._constants import (
    API_HEADERS,
    API_URL,
    DEFAULT_DECIMALS,
    DEFAULT_INTERVAL,
    DEFAULT_MULTIPLIERS,
    ENDPOINT_EPOCH,
    ENDPOINT_LOGIN,
    ENDPOINT_REBOOT,
    ENDPOINT_REGISTER,
    ENDPOINT_TIME,
    ENDPOINT_UNAUTHORIZED,
    ENDPOINT_UPTIME,
    REQUEST_TIMEOUT,
    TOKEN_EXPIRY_BUFFER,
)
from gaugewire._crypto import build_login_payload
from gaugewire.config import DeviceConfig
from gaugewire.exceptions import EgaugeAuthError, EgaugeParseError, error_from_status
from gaugewire.registers import (
    RegisterResponse,
    RegisterSample,
    average_at_time,
    current_rates,
    series_for_range,
    time_spec_for_point,
    time_spec_for_range,
)

_LOGGER = logging.getLogger(__name__)


class Device:
    """A single eGauge meter.

    The bearer token is cached on the instance and shared by every
    operation; concurrent operations may run on the same device.

    Args:
        device_id: Device name (the ``{device_id}.d.egauge.net`` host).
        username: Account username.
        password: Account password.
        multipliers: Register type -> scale factor; defaults to
            :data:`~gaugewire._constants.DEFAULT_MULTIPLIERS`.
        decimals: Decimal places for converted values.
        session: Optional shared :class:`aiohttp.ClientSession`.  When not
            given, a short-lived session is opened per operation.
        timeout: Total timeout in seconds for each HTTP call.
    """

    def __init__(
        self,
        device_id: str,
        username: str,
        password: str,
        *,
        multipliers: Mapping[str, float] | None = None,
        decimals: int = DEFAULT_DECIMALS,
        session: aiohttp.ClientSession | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self._device_id = device_id
        self._username = username
        self._password = password
        self._multipliers = dict(multipliers if multipliers is not None else DEFAULT_MULTIPLIERS)
        self._decimals = decimals
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._token: str | None = None
        self._token_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: DeviceConfig, **kwargs: Any) -> Device:
        """Create a device from a :class:`~gaugewire.config.DeviceConfig`."""
        return cls(
            config.device_id,
            config.username,
            config.password,
            multipliers=config.multipliers,
            **kwargs,
        )

    @classmethod
    def from_saved(cls, **kwargs: Any) -> Device:
        """Create a device from ``~/.config/gaugewire/config.json``.

        Raises :class:`FileNotFoundError` if no config file exists.
        """
        return cls.from_config(DeviceConfig.load(), **kwargs)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def device_id(self) -> str:
        """Device name."""
        return self._device_id

    @property
    def base_url(self) -> str:
        """API root for this device."""
        return API_URL.format(device_id=self._device_id)

    @property
    def token(self) -> str | None:
        """Currently cached JWT, or ``None`` before the first login."""
        return self._token

    @property
    def multipliers(self) -> dict[str, float]:
        """Register type multipliers used for conversion."""
        return dict(self._multipliers)

    # ------------------------------------------------------------------
    # Token handling
    # ------------------------------------------------------------------

    async def _get_token(
        self, session: aiohttp.ClientSession, *, rejected: str | None = None
    ) -> str:
        """Return a usable token, logging in when needed.

        With *rejected* set, the cached token is replaced even if it still
        looks fresh, unless another task already replaced that token while
        this one was waiting for the lock.
        """
        token = self._token
        if rejected is None and token is not None and not is_token_expired(token):
            return token

        async with self._token_lock:
            token = self._token
            if token is not None:
                if rejected is None and not is_token_expired(token):
                    return token
                if rejected is not None and token != rejected:
                    return token

            _LOGGER.debug("Requesting new token from %s", self._device_id)
            token = await fetch_token(
                self._device_id, self._username, self._password, session, timeout=self._timeout
            )
            self._token = token
            return token

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        body: object = None,
    ) -> Any:
        """Perform an authenticated call and return the decoded JSON body.

        A 401 triggers one forced re-login and one retry of the identical
        call; any other non-2xx status raises a typed
        :class:`~gaugewire.exceptions.EgaugeRequestError`.  A successful
        response whose body is not JSON yields ``None``.
        """
        if self._session is not None:
            return await self._request_with(self._session, method, endpoint, params, body)
        async with aiohttp.ClientSession() as session:
            return await self._request_with(session, method, endpoint, params, body)

    async def _request_with(
        self,
        session: aiohttp.ClientSession,
        method: str,
        endpoint: str,
        params: Mapping[str, str] | None,
        body: object,
    ) -> Any:
        token = await self._get_token(session)
        status, data = await self._send(session, method, endpoint, token, params, body)

        if status == 401:
            _LOGGER.debug("Token rejected for %s %s, re-authenticating", method, endpoint)
            token = await self._get_token(session, rejected=token)
            status, data = await self._send(session, method, endpoint, token, params, body)

        if not 200 <= status < 300:
            raise error_from_status(status, data)
        return data

    async def _send(
        self,
        session: aiohttp.ClientSession,
        method: str,
        endpoint: str,
        token: str,
        params: Mapping[str, str] | None,
        body: object,
    ) -> tuple[int, Any]:
        url = f"{self.base_url}{endpoint}"
        headers = {**API_HEADERS, "Authorization": f"Bearer {token}"}
        kwargs: dict[str, Any] = {"headers": headers, "timeout": self._timeout}
        if params:
            kwargs["params"] = dict(params)
        if body is not None:
            kwargs["json"] = body

        _LOGGER.debug("%s %s params=%s", method, url, params)
        async with session.request(method, url, **kwargs) as resp:
            try:
                data = await resp.json(content_type=None)
            except (json.JSONDecodeError, UnicodeDecodeError):
                data = None
            return resp.status, data

    async def _get_registers(self, params: Mapping[str, str]) -> RegisterResponse:
        data = await self._request("GET", ENDPOINT_REGISTER, params=params)
        return RegisterResponse.from_json(data)

    async def _get_result(self, endpoint: str) -> str:
        data = await self._request("GET", endpoint)
        try:
            return str(data["result"])
        except (KeyError, TypeError) as err:
            raise EgaugeParseError(data=data) from err

    # ------------------------------------------------------------------
    # Registers
    # ------------------------------------------------------------------

    async def get_current_registers(self) -> dict[str, float]:
        """Fetch the instantaneous rate of every register."""
        response = await self._get_registers({"rate": ""})
        return current_rates(response, self._decimals)

    async def get_registers_at_time(
        self, unix: int, interval: int = DEFAULT_INTERVAL
    ) -> dict[str, float]:
        """Average register values for *unix*, sampled over *interval* seconds."""
        if interval <= 0:
            raise ValueError("interval must be a positive number of seconds.")
        response = await self._get_registers({"time": time_spec_for_point(unix, interval)})
        return average_at_time(response, interval, self._multipliers, self._decimals)

    async def get_values_for_range(
        self, start_unix: int, end_unix: int, interval: int = DEFAULT_INTERVAL
    ) -> list[RegisterSample]:
        """Register values for every *interval* from *start_unix* to *end_unix* inclusive.

        Returns samples oldest first.  If the device holds fewer rows than
        requested (e.g. the range starts before the epoch) the series is
        simply shorter.
        """
        if end_unix < start_unix:
            raise ValueError("end_unix must not be before start_unix.")
        if interval <= 0:
            raise ValueError("interval must be a positive number of seconds.")
        response = await self._get_registers(
            {"time": time_spec_for_range(start_unix, end_unix, interval)}
        )
        return series_for_range(response, self._multipliers, self._decimals, interval=interval)

    # ------------------------------------------------------------------
    # System
    # ------------------------------------------------------------------

    async def get_epoch(self) -> int:
        """Unix timestamp at which the meter started recording."""
        result = await self._get_result(ENDPOINT_EPOCH)
        try:
            return int(result)
        except ValueError as err:
            raise EgaugeParseError(data=result) from err

    async def get_time(self) -> float:
        """Current device time as a Unix timestamp."""
        result = await self._get_result(ENDPOINT_TIME)
        try:
            return float(result)
        except ValueError as err:
            raise EgaugeParseError(data=result) from err

    async def get_uptime(self) -> float:
        """Seconds since the device last booted."""
        result = await self._get_result(ENDPOINT_UPTIME)
        try:
            return float(result)
        except ValueError as err:
            raise EgaugeParseError(data=result) from err

    async def reboot(self) -> None:
        """Ask the device to reboot."""
        await self._request("POST", ENDPOINT_REBOOT)


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------


def decode_token_expiry(token: str) -> float | None:
    """Read the ``exp`` claim of a device JWT, or ``None`` if there is none.

    The signature is not checked; the device validates its own tokens.
    """
    try:
        parts = token.split(".")
        if len(parts) != 3:
            return None
        # base64url padding: length must be a multiple of 4
        padded = parts[1] + "=" * (-len(parts[1]) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded))
        return float(payload["exp"])
    except (ValueError, KeyError, TypeError, binascii.Error):
        return None


def is_token_expired(token: str, offset: float = TOKEN_EXPIRY_BUFFER) -> bool:
    """Whether *token* is expired or will expire within *offset* seconds.

    Undecodable tokens are always treated as expired.
    """
    exp = decode_token_expiry(token)
    if exp is None:
        return True
    return time.time() * 1000 > (exp + offset) * 1000


async def fetch_token(
    device_id: str,
    username: str,
    password: str,
    session: aiohttp.ClientSession,
    *,
    timeout: aiohttp.ClientTimeout | None = None,
) -> str:
    """Log in to *device_id* and return a fresh JWT.

    Transport and HTTP errors propagate as :class:`aiohttp.ClientError`;
    a challenge or login response without the expected fields raises
    :class:`~gaugewire.exceptions.EgaugeAuthError`.
    """
    base = API_URL.format(device_id=device_id)
    timeout = timeout or aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)

    async with session.get(
        f"{base}{ENDPOINT_UNAUTHORIZED}", headers=API_HEADERS, timeout=timeout
    ) as resp:
        challenge = await resp.json(content_type=None)
    try:
        realm = str(challenge["rlm"])
        nonce = str(challenge["nnc"])
    except (KeyError, TypeError):
        raise EgaugeAuthError(
            "Login challenge did not include a realm and nonce.", challenge
        ) from None

    payload = build_login_payload(username, password, realm, nonce)
    async with session.post(
        f"{base}{ENDPOINT_LOGIN}", json=payload, headers=API_HEADERS, timeout=timeout
    ) as resp:
        resp.raise_for_status()
        body = await resp.json(content_type=None)

    token = body.get("jwt") if isinstance(body, dict) else None
    if not token:
        raise EgaugeAuthError("Login failed: no token in response.", body)
    _LOGGER.debug("Logged in to %s as %s", device_id, username)
    return str(token)

from __future__ import annotations

import itertools
from typing import Any, List, Optional

import httpx

from .access import normalize_address
from .config import Settings
from .errors import UserRejectedError, WalletError


# EIP-1193 provider error: the user rejected the request
USER_REJECTED_CODE = 4001


class JsonRpcWallet:
    """
    Minimal async JSON-RPC wallet client (EIP-1193 method names).

    Notes
    - `sign()` uses `personal_sign` with the UTF-8 message hex-encoded, so it
      can be passed directly as the signing callable of a reveal.
    - A 4001 error is the wallet telling us the user declined; it maps to
      UserRejectedError. Any other failure is a WalletError.
    - No retries: a signing prompt must never be re-issued behind the user's back.
    """

    def __init__(
        self,
        url: str,
        address: str,
        *,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not url:
            raise ValueError("url is required")
        self._url = url
        self._address = normalize_address(address)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    @classmethod
    def from_settings(cls, settings: Settings) -> "JsonRpcWallet":
        if not settings.rpc_url or not settings.wallet_address:
            raise RuntimeError("Wallet is not configured: set WILL_RPC_URL and WILL_WALLET_ADDRESS")
        return cls(settings.rpc_url, settings.wallet_address)

    @property
    def address(self) -> str:
        return self._address

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "JsonRpcWallet":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --------------- Public API ---------------
    async def chain_id(self) -> int:
        result = await self._call("eth_chainId", [])
        if not isinstance(result, str):
            raise WalletError(f"Unexpected eth_chainId result: {result!r}")
        try:
            return int(result, 16)
        except ValueError as exc:
            raise WalletError(f"Unexpected eth_chainId result: {result!r}") from exc

    async def sign(self, message: str) -> str:
        payload = "0x" + message.encode("utf-8").hex()
        result = await self._call("personal_sign", [payload, self._address])
        if not isinstance(result, str) or not result:
            raise WalletError(f"Unexpected personal_sign result: {result!r}")
        return result

    # --------------- Internal ---------------
    async def _call(self, method: str, params: List[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = await self._client.post(self._url, json=body)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise WalletError(f"{method} request failed") from exc

        if resp.status_code != 200:
            raise WalletError(f"HTTP {resp.status_code} from wallet: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise WalletError("Failed to parse JSON from wallet") from exc
        if not isinstance(data, dict):
            raise WalletError("Malformed JSON-RPC response")

        err = data.get("error")
        if isinstance(err, dict):
            code = err.get("code")
            msg = err.get("message") or "wallet error"
            if code == USER_REJECTED_CODE:
                raise UserRejectedError(f"{method} rejected by user: {msg}")
            raise WalletError(f"{msg} (code={code})")
        if "result" not in data:
            raise WalletError("Malformed JSON-RPC response: missing result")
        return data["result"]


__all__ = ["JsonRpcWallet", "USER_REJECTED_CODE"]

"""
Predicate registration against the chain-indexing service's registry API.

Operator-triggered configuration, not part of the delivery path. A predicate
pairs a subscription identifier (the registry uuid) with a chain scope, a
match rule and the callback URL that receives deliveries.

Endpoints (relative to the registry base URL):
    POST   /chainhooks          register a predicate
    GET    /chainhooks          list registered predicates
    DELETE /chainhooks/{uuid}   remove a predicate
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import httpx

from backend_hookrelay.core.exceptions import RegistryError
from backend_hookrelay.relay_logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_MIN_RETRY_DELAY_SEC = 1.0
DEFAULT_MAX_RETRY_DELAY_SEC = 30.0


@dataclass(frozen=True)
class PredicateSpec:
    """One predicate to register."""

    uuid: str
    """Subscription identifier echoed back in every delivery."""
    name: str
    if_this: dict[str, Any]
    """Match rule, e.g. {"scope": "print_event", "contract_identifier": "...", "contains": "swap"}."""
    callback_url: str
    chain: str = "stacks"
    network: str = "mainnet"
    authorization_header: str | None = None
    start_block: int | None = None
    decode_clarity_values: bool = True

    def to_payload(self) -> dict[str, Any]:
        http_post: dict[str, Any] = {"url": self.callback_url}
        if self.authorization_header:
            http_post["authorization_header"] = self.authorization_header
        network: dict[str, Any] = {
            "if_this": dict(self.if_this),
            "then_that": {"http_post": http_post},
            "decode_clarity_values": self.decode_clarity_values,
        }
        if self.start_block is not None:
            network["start_block"] = self.start_block
        return {
            "uuid": self.uuid,
            "name": self.name,
            "chain": self.chain,
            "version": 1,
            "networks": {self.network: network},
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        callback_url: str = "",
        network: str = "mainnet",
        authorization_header: str | None = None,
    ) -> "PredicateSpec":
        """Build from a definitions-file entry; explicit entry values override the defaults."""
        for key in ("uuid", "if_this"):
            if key not in data:
                raise ValueError(f"predicate definition missing {key!r}")
        url = data.get("callback_url") or callback_url
        if not url:
            raise ValueError(f"predicate {data['uuid']!r} has no callback_url")
        return cls(
            uuid=str(data["uuid"]),
            name=str(data.get("name") or data["uuid"]),
            if_this=dict(data["if_this"]),
            callback_url=url,
            chain=str(data.get("chain") or "stacks"),
            network=str(data.get("network") or network),
            authorization_header=data.get("authorization_header") or authorization_header,
            start_block=data.get("start_block"),
        )


@dataclass(frozen=True)
class RegistrationAck:
    uuid: str
    status_code: int
    body: Any


class RegistryClient:
    """
    Thin synchronous client with retry and exponential backoff.

    Transport errors and 5xx responses are retried; 4xx responses fail
    immediately with RegistryError.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        client: httpx.Client | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        min_retry_delay_sec: float = DEFAULT_MIN_RETRY_DELAY_SEC,
        max_retry_delay_sec: float = DEFAULT_MAX_RETRY_DELAY_SEC,
    ) -> None:
        if not base_url.strip():
            raise ValueError("base_url must be non-empty")
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        headers = {"x-api-key": api_key} if api_key else {}
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout_sec))
        self._owns_client = client is None
        self._headers = headers
        self._max_retries = max_retries
        self._min_retry_delay = min_retry_delay_sec
        self._max_retry_delay = max_retry_delay_sec

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RegistryClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}{path}"
        delay = self._min_retry_delay
        last_error: str = ""
        for attempt in range(self._max_retries):
            try:
                resp = self._client.request(method, url, headers=self._headers, **kwargs)
            except httpx.HTTPError as e:
                last_error = str(e)
            else:
                if resp.status_code < 400:
                    return resp
                if resp.status_code < 500:
                    raise RegistryError(
                        f"{method} {path} rejected: HTTP {resp.status_code} {resp.text[:200]}",
                        status_code=resp.status_code,
                    )
                last_error = f"HTTP {resp.status_code}"
            logger.warning(
                "registry_request_retry",
                method=method,
                path=path,
                attempt=attempt + 1,
                max_retries=self._max_retries,
                error=last_error,
            )
            if attempt + 1 < self._max_retries:
                time.sleep(delay)
                delay = min(delay * 2, self._max_retry_delay)
        logger.error("registry_request_give_up", method=method, path=path, error=last_error)
        raise RegistryError(f"{method} {path} failed after {self._max_retries} attempts: {last_error}")

    @staticmethod
    def _body(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            return resp.text

    def register(self, spec: PredicateSpec) -> RegistrationAck:
        resp = self._request("POST", "/chainhooks", json=spec.to_payload())
        logger.info("registry_predicate_registered", uuid=spec.uuid, network=spec.network)
        return RegistrationAck(uuid=spec.uuid, status_code=resp.status_code, body=self._body(resp))

    def delete(self, uuid: str) -> RegistrationAck:
        resp = self._request("DELETE", f"/chainhooks/{uuid}")
        logger.info("registry_predicate_deleted", uuid=uuid)
        return RegistrationAck(uuid=uuid, status_code=resp.status_code, body=self._body(resp))

    def list_predicates(self) -> list[dict[str, Any]]:
        body = self._body(self._request("GET", "/chainhooks"))
        if isinstance(body, dict):
            body = body.get("results", body.get("chainhooks", []))
        return body if isinstance(body, list) else []

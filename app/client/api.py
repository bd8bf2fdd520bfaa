"""
Async HTTP client for the entitlement API (used by dashboard sessions).
Uses httpx.AsyncClient; the session token is the identity collaborator's bearer token.
"""
import logging
from typing import Any, Iterable

import httpx

from app.services.unlock.failure_types import UnlockFailure, failure_from_status
from app.services.unlock.models import UnlockResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class SessionExpired(Exception):
    """Server rejected the session token (401)."""


class OutcomeUnknown(Exception):
    """Unlock request may or may not have been applied (timeout / broken connection after send)."""


class EntitlementApiError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, failure: UnlockFailure | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.failure = failure


def _error_detail(resp: httpx.Response) -> dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return {}
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, dict):
        return detail
    if isinstance(detail, str):
        return {"message": detail}
    return {}


class EntitlementApiClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "EntitlementApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code == 401:
            raise SessionExpired(_error_detail(resp).get("message") or "Session expired")
        if resp.is_success:
            return
        detail = _error_detail(resp)
        failure = None
        if detail.get("error"):
            try:
                failure = UnlockFailure(detail["error"])
            except ValueError:
                failure = None
        if failure is None:
            failure = failure_from_status(resp.status_code)
        raise EntitlementApiError(
            detail.get("message") or f"HTTP {resp.status_code}",
            status_code=resp.status_code,
            failure=failure,
        )

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            # Reads are side-effect free: any transport failure is just "unavailable"
            raise EntitlementApiError(
                f"{type(e).__name__} on GET {path}", failure=UnlockFailure.STORE_UNAVAILABLE
            ) from e
        self._raise_for_status(resp)
        return resp.json()

    async def list_records(self, vertical_key: str, limit: int | None = None) -> list[dict[str, Any]]:
        params = {"limit": limit} if limit else None
        data = await self._get(f"/verticals/{vertical_key}/records", params=params)
        return list(data.get("records") or [])

    async def list_entitlements(self, vertical_key: str) -> set[str]:
        data = await self._get(f"/verticals/{vertical_key}/entitlements")
        return {str(rid) for rid in data.get("record_ids") or []}

    async def get_balance(self) -> int:
        data = await self._get("/credits/balance")
        return int(data.get("balance") or 0)

    async def unlock(self, vertical_key: str, record_ids: Iterable[str]) -> UnlockResult:
        """
        Typed result for business failures (UnknownVertical, InsufficientCredits, StoreUnavailable).
        Raises OutcomeUnknown when the request may have reached the server, SessionExpired on 401.
        """
        ids = sorted({str(rid) for rid in record_ids})
        try:
            resp = await self._client.post(f"/verticals/{vertical_key}/unlock", json={"record_ids": ids})
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            # Never reached the server: nothing was applied
            return UnlockResult(
                ok=False,
                vertical_key=vertical_key,
                requested=ids,
                failure=UnlockFailure.STORE_UNAVAILABLE,
                message=f"{type(e).__name__}: server unreachable",
            )
        except httpx.HTTPError as e:
            logger.warning("unlock_outcome_unknown", extra={"vertical_key": vertical_key, "error": type(e).__name__})
            raise OutcomeUnknown(f"{type(e).__name__} during unlock") from e

        if resp.status_code == 401:
            raise SessionExpired("Session expired")
        if resp.is_success:
            data = resp.json()
            return UnlockResult(
                ok=True,
                vertical_key=vertical_key,
                requested=ids,
                newly_granted=[str(x) for x in data.get("newly_granted") or []],
                already_granted=[str(x) for x in data.get("already_granted") or []],
                charged=int(data.get("charged") or 0),
                remaining_balance=data.get("remaining_balance"),
            )

        detail = _error_detail(resp)
        failure = None
        if detail.get("error"):
            try:
                failure = UnlockFailure(detail["error"])
            except ValueError:
                failure = None
        if failure is None and resp.status_code >= 500:
            # Gateway error or crash without a typed body: the request may have been applied
            logger.warning(
                "unlock_outcome_unknown",
                extra={"vertical_key": vertical_key, "status_code": resp.status_code},
            )
            raise OutcomeUnknown(f"HTTP {resp.status_code} during unlock")
        failure = failure or failure_from_status(resp.status_code)
        if failure is None:
            raise EntitlementApiError(
                detail.get("message") or f"HTTP {resp.status_code}", status_code=resp.status_code
            )
        return UnlockResult(
            ok=False,
            vertical_key=vertical_key,
            requested=ids,
            failure=failure,
            required=detail.get("required"),
            remaining_balance=detail.get("available"),
            message=detail.get("message"),
        )

"""HTTP client for the Swiggy login flow and order history API."""
from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests

from app_config import AppConfig

LOGGER = logging.getLogger(__name__)

__all__ = [
    "InvalidRequestError",
    "MalformedResponseError",
    "OrderHistory",
    "SessionExpiredError",
    "SwiggyClient",
    "SwiggyError",
    "UpstreamNetworkError",
    "WafBlockedError",
    "format_session_cookie",
]

MOBILE_PATTERN = re.compile(r"^[6-9]\d{9}$")
SESSION_COOKIE_NAME = "_session_tid"

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Origin": "https://www.swiggy.com",
    "Referer": "https://www.swiggy.com/",
}
BROWSER_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
}
# Sent with the OTP request only; the WAF is strictest on that endpoint.
FETCH_METADATA_HEADERS = {
    "sec-ch-ua": '"Chromium";v="131", "Not_A Brand";v="24"',
    "sec-ch-ua-mobile": "?0",
    "sec-ch-ua-platform": '"macOS"',
    "sec-fetch-dest": "empty",
    "sec-fetch-mode": "cors",
    "sec-fetch-site": "same-origin",
}


class SwiggyError(RuntimeError):
    """Raised when a Swiggy request fails; carries an HTTP status hint and a code."""

    status_code = 400
    code = "API_ERROR"

    def __init__(
        self, message: str, *, status_code: Optional[int] = None, code: Optional[str] = None
    ) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class InvalidRequestError(SwiggyError):
    """Raised before any network traffic when caller input is unusable."""

    code = "INVALID_REQUEST"


class WafBlockedError(SwiggyError):
    """Raised when the upstream bot defence answers with a challenge."""

    status_code = 403
    code = "WAF_BLOCKED"


class SessionExpiredError(SwiggyError):
    status_code = 401
    code = "SESSION_EXPIRED"


class MalformedResponseError(SwiggyError):
    code = "MALFORMED_RESPONSE"


class UpstreamNetworkError(SwiggyError):
    status_code = 502
    code = "NETWORK_ERROR"


@dataclass(frozen=True)
class OrderHistory:
    """Raw orders gathered by :meth:`SwiggyClient.fetch_order_history`."""

    orders: List[Dict[str, Any]] = field(default_factory=list)
    pages: int = 0
    stop_reason: str = "complete"

    @property
    def is_empty(self) -> bool:
        return not self.orders


def format_session_cookie(token: Optional[str]) -> str:
    """Turn a pasted token into a Cookie header value.

    A full cookie string (anything containing ``=``) is used verbatim; a bare
    value is treated as the ``_session_tid`` cookie.
    """

    trimmed = str(token or "").strip()
    if not trimmed:
        raise InvalidRequestError("Session token is required")
    if "=" in trimmed:
        return trimmed
    return f"{SESSION_COOKIE_NAME}={trimmed}"


def _positive_int(value: Any) -> Optional[int]:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


class SwiggyClient:
    SEND_OTP_PATH = "/dapi/auth/sms-otp"
    VERIFY_OTP_PATH = "/dapi/auth/otp-verify"
    ORDERS_PATH = "/dapi/order/all"

    def __init__(
        self, config: Optional[AppConfig] = None, session: Optional[requests.Session] = None
    ) -> None:
        self.config = config or AppConfig()
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------
    def send_otp(self, mobile: str) -> str:
        """Ask Swiggy to text an OTP to ``mobile`` and return the device id to verify with."""

        mobile = str(mobile or "").strip()
        if not MOBILE_PATTERN.match(mobile):
            raise InvalidRequestError("Please enter a valid 10-digit Indian mobile number")

        device_id = str(uuid.uuid4())
        response = self._send(
            "POST",
            self.SEND_OTP_PATH,
            json={"mobile": mobile, "_device_id": device_id},
            headers={**BROWSER_HEADERS, **FETCH_METADATA_HEADERS},
        )
        if self._is_waf_challenge(response):
            raise WafBlockedError(
                "Swiggy's security blocked this request. Please use the token method instead."
            )
        if not response.ok:
            raise SwiggyError(
                f"Swiggy returned status {response.status_code}. Please try the token method."
            )

        payload = self._json(response)
        if payload.get("statusCode") != 0:
            raise SwiggyError(payload.get("statusMessage") or "Failed to send OTP. Please try again.")

        LOGGER.info("OTP requested for mobile ending in %s", mobile[-4:])
        return device_id

    def verify_otp(self, mobile: str, otp: str, device_id: str) -> str:
        """Exchange an OTP for the session credential (a Cookie header value)."""

        if not mobile or not otp or not device_id:
            raise InvalidRequestError("Mobile, OTP, and device ID are required")

        response = self._send(
            "POST",
            self.VERIFY_OTP_PATH,
            json={"mobile": str(mobile).strip(), "otp": str(otp).strip(), "_device_id": device_id},
        )
        if self._is_waf_challenge(response):
            raise WafBlockedError(
                "Swiggy's security blocked this request. Please use the token method instead."
            )

        payload = self._json(response)
        if payload.get("statusCode") != 0:
            raise SwiggyError(
                payload.get("statusMessage") or "Invalid OTP. Please try again.", code="INVALID_OTP"
            )

        session_token = "; ".join(f"{cookie.name}={cookie.value}" for cookie in response.cookies)
        if not session_token:
            session_token = response.headers.get("set-cookie", "")
        if not session_token:
            raise SwiggyError(
                "Login succeeded but no session token received. Try manual token input.",
                status_code=502,
                code="MISSING_SESSION",
            )
        return session_token

    # ------------------------------------------------------------------
    # Order history
    # ------------------------------------------------------------------
    def fetch_order_history(self, token: str) -> OrderHistory:
        """Walk the paginated order history until it is exhausted.

        The walk is capped at ``config.max_pages``. Once at least one page has
        been read, an empty page, a WAF challenge, an auth failure or an
        unusable payload ends the walk with the orders gathered so far;
        before that they are raised. Transport errors are always raised.
        """

        headers = {**BROWSER_HEADERS, "Cookie": format_session_cookie(token)}
        orders: List[Dict[str, Any]] = []
        last_order_id = ""
        pages = 0
        total_orders: Optional[int] = None

        while True:
            if total_orders is not None and len(orders) >= total_orders:
                stop_reason = "complete"
                break
            if pages >= self.config.max_pages:
                LOGGER.warning(
                    "Stopped order history walk at the %d page limit with %d orders",
                    self.config.max_pages,
                    len(orders),
                )
                stop_reason = "page_limit"
                break

            response = self._send(
                "GET", self.ORDERS_PATH, params={"order_id": last_order_id}, headers=headers
            )
            try:
                page_orders, reported_total = self._parse_order_page(response)
            except (WafBlockedError, SessionExpiredError, MalformedResponseError) as exc:
                if not orders:
                    raise
                LOGGER.warning(
                    "Stopping order history walk after %d pages (%s): %s", pages, exc.code, exc
                )
                stop_reason = exc.code.lower()
                break

            if reported_total is not None:
                total_orders = reported_total
            if not page_orders:
                stop_reason = "empty_page"
                break

            orders.extend(page_orders)
            last_entry = page_orders[-1]
            last_order_id = str(last_entry.get("order_id", "")) if isinstance(last_entry, dict) else ""
            pages += 1
            LOGGER.info("Fetched order page %d (%d orders so far)", pages, len(orders))

        return OrderHistory(orders=orders, pages=pages, stop_reason=stop_reason)

    def _parse_order_page(
        self, response: requests.Response
    ) -> Tuple[List[Dict[str, Any]], Optional[int]]:
        if self._is_waf_challenge(response):
            raise WafBlockedError(
                "Swiggy's security blocked the request. Please try copying the full cookie "
                "string from your browser."
            )
        if response.status_code in (401, 403):
            raise SessionExpiredError(
                "Session expired or invalid token. Please get a fresh token from Swiggy."
            )

        text = response.text
        if not text or not text.strip():
            raise MalformedResponseError(
                "Swiggy returned an empty response. Your token may be invalid or expired."
            )
        try:
            payload = json.loads(text)
        except ValueError as exc:
            raise MalformedResponseError(
                f"Swiggy returned unexpected response (HTTP {response.status_code}). "
                "Token may be invalid."
            ) from exc

        if not isinstance(payload, dict):
            payload = {}
        data = payload.get("data")
        page_orders = data.get("orders") if isinstance(data, dict) else None
        if payload.get("statusCode") != 0 or not isinstance(page_orders, list):
            message = payload.get("statusMessage") or "Failed to fetch orders"
            raise MalformedResponseError(f"Swiggy API error: {message}. Please check your token.")

        return page_orders, _positive_int(data.get("total_orders"))

    # ------------------------------------------------------------------
    # Transport helpers
    # ------------------------------------------------------------------
    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.config.base_url}{path}"
        try:
            return self.session.request(method, url, timeout=self.config.http_timeout, **kwargs)
        except requests.RequestException as exc:
            raise UpstreamNetworkError(f"Could not reach Swiggy: {exc}") from exc

    @staticmethod
    def _is_waf_challenge(response: requests.Response) -> bool:
        if response.headers.get("x-amzn-waf-action") == "challenge":
            return True
        return response.status_code == 202 and response.headers.get("content-length") == "0"

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"Swiggy returned unexpected response (HTTP {response.status_code})."
            ) from exc
        return payload if isinstance(payload, dict) else {}

"""HTTP webhook gateway backed by httpx."""

from typing import Any, Dict, Optional

import httpx

from automation_kernel.gateways.base import GatewayResult
from automation_kernel.log import get_logger

logger = get_logger(__name__)

_RETRYABLE_STATUS = {408, 425, 429, 500, 502, 503, 504}


class HttpWebhookGateway:
    """
    Sends webhook requests. Transport errors, timeouts and 408/429/5xx
    responses are reported as retryable; other non-2xx responses are not.
    """

    def __init__(self, client: Optional[httpx.Client] = None):
        self._client = client or httpx.Client()

    def post(
        self,
        url: str,
        method: str,
        headers: Dict[str, str],
        body: Any,
        timeout: float,
    ) -> GatewayResult:
        request_kwargs: Dict[str, Any] = {"headers": headers, "timeout": timeout}
        if isinstance(body, (dict, list)):
            request_kwargs["json"] = body
        elif body is not None:
            request_kwargs["content"] = str(body)

        try:
            response = self._client.request(method.upper(), url, **request_kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("Webhook timed out", url=url, timeout=timeout)
            return GatewayResult.failure(f"Webhook timed out: {exc}", retryable=True)
        except httpx.TransportError as exc:
            logger.warning("Webhook transport error", url=url, error=str(exc))
            return GatewayResult.failure(f"Webhook transport error: {exc}", retryable=True)

        if response.is_success:
            logger.info("Webhook delivered", url=url, status_code=response.status_code)
            return GatewayResult.success(status_code=response.status_code)

        retryable = response.status_code in _RETRYABLE_STATUS
        logger.warning(
            "Webhook rejected",
            url=url,
            status_code=response.status_code,
            retryable=retryable,
        )
        return GatewayResult.failure(
            f"Webhook returned status {response.status_code}",
            retryable=retryable,
        )

    def close(self) -> None:
        self._client.close()

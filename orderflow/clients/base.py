from typing import Any, Dict, Optional
import httpx
import structlog
from orderflow.errors import JobFailure

logger = structlog.get_logger(__name__)

class ServiceClient:
    """httpx client for one internal service with its own timeout and retries.

    ``retries`` is the transport's connect retry count and is independent of
    the job queue's attempt budget.
    """

    service = "service"

    def __init__(self, base_url: str, timeout: float = 5.0, retries: int = 0,
                 internal_key: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        headers = {"X-Internal-Key": internal_key} if internal_key else {}
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            transport=transport or httpx.HTTPTransport(retries=retries),
        )

    def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        try:
            resp = self._client.post(path, json=payload)
        except httpx.RequestError as exc:
            logger.warning("Service call failed", service=self.service, path=path, error=str(exc))
            raise JobFailure(f"{self.service} unavailable: {exc}") from exc
        if resp.status_code >= 500:
            raise JobFailure(f"{self.service} error {resp.status_code}: {resp.text}")
        return resp

    def close(self) -> None:
        self._client.close()

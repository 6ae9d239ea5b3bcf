"""
Sample sender.

Posts batches of client samples as JSON to the configured collector
endpoint. A failed delivery raises :class:`TransportError`; retrying is
left to the caller.
"""

import json
import logging
import time
from typing import List, Optional

import httpx

from .monitoring import ComponentType, monitor_performance
from .sampler import ClientSample
from .sdk.config_manager import SenderConfig
from .sdk.exceptions import SenderClosedError, TransportError
from .sdk.utils import format_duration


class Sender:
    """HTTP sender of sample batches."""

    def __init__(
        self,
        config: SenderConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None
        self._closed = False
        self.sent_batches = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            headers = {"Content-Type": "application/json"}
            headers.update(self.config.headers)
            self.client = httpx.AsyncClient(
                headers=headers,
                timeout=self.config.timeout,
                transport=self._transport
            )
        return self.client

    @monitor_performance(component=ComponentType.SENDER.value)
    async def send(self, samples: List[ClientSample]) -> None:
        """
        Deliver one batch.

        Raises:
            SenderClosedError: If the sender was closed
            TransportError: If the batch cannot be encoded or was not delivered
        """
        if self._closed:
            raise SenderClosedError(self.config.url)

        try:
            body = json.dumps({"samples": [sample.to_dict() for sample in samples]}, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise TransportError(self.config.url, f"samples are not JSON encodable: {e}", original_error=e)

        start_time = time.time()
        try:
            response = await self._get_client().post(self.config.url, content=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                self.config.url,
                f"server answered {e.response.status_code}",
                status_code=e.response.status_code,
                original_error=e
            )
        except httpx.HTTPError as e:
            raise TransportError(self.config.url, str(e) or type(e).__name__, original_error=e)

        self.sent_batches += 1
        self.logger.debug(
            f"Sent {len(samples)} samples to {self.config.url} in {format_duration(time.time() - start_time)}"
        )

    async def close(self) -> None:
        """Close the underlying HTTP client. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        if self.client is not None:
            await self.client.aclose()
            self.client = None
        self.logger.debug(f"Sender to {self.config.url} closed after {self.sent_batches} batches")

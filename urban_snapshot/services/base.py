# urban_snapshot/services/base.py
import asyncio
import logging
from typing import Optional, Sequence

import httpx

from ..core.config import settings
from ..core.errors import FailureReason, UpstreamError, UpstreamTimeout, UpstreamUnavailable
from ..schemas.common import Query
from ..schemas.payloads import SourcePayload
from ..schemas.results import SourceError, SourceResult, SourceStatus
from ..utils.time import utc_now

logger = logging.getLogger(__name__)

# failures that move a provider chain on to its next provider
PROVIDER_ERRORS = (
    UpstreamError, asyncio.TimeoutError, httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError,
)


class SourceClient:
    """
    One source of data, backed by an ordered chain of upstream providers.

    Subclasses list provider names in ``providers`` and implement one
    ``_from_<name>(query)`` coroutine per provider (may raise), plus
    ``fallback``. ``_fetch`` tries the providers in order and the first
    payload wins; each payload's ``source`` names the provider that answered.
    Callers only ever use ``fetch``, which never raises.
    """
    source_id: str = ""
    providers: tuple[str, ...] = ()

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        providers: Optional[Sequence[str]] = None,
    ):
        self.timeout = timeout if timeout is not None else settings.source_timeout
        self.transport = transport
        if providers is not None:
            unknown = [p for p in providers if p not in type(self).providers]
            if unknown or not providers:
                raise ValueError(f"{self.source_id} providers must be a non-empty subset of {type(self).providers}")
            self.providers = tuple(providers)

    @property
    def attempt_timeout(self) -> float:
        """Share of the per-call budget given to each provider in the chain."""
        return self.timeout / max(1, len(self.providers))

    async def _fetch(self, query: Query) -> SourcePayload:
        last: Optional[BaseException] = None
        for i, name in enumerate(self.providers):
            try:
                return await asyncio.wait_for(getattr(self, f"_from_{name}")(query), self.attempt_timeout)
            except PROVIDER_ERRORS as e:
                last = e
                if i + 1 < len(self.providers):
                    logger.info("%s provider %s failed (%s), trying %s",
                                self.source_id, name, type(e).__name__, self.providers[i + 1])
        if last is None:
            raise NotImplementedError(f"{type(self).__name__} has no providers")
        raise last

    def fallback(self, query: Query) -> SourcePayload:
        raise NotImplementedError

    def unavailable(self, reason: FailureReason, message: str) -> UpstreamUnavailable:
        return UpstreamUnavailable(self.source_id, reason, message)

    async def fetch(self, query: Query) -> SourceResult:
        try:
            payload = await asyncio.wait_for(self._fetch(query), self.timeout)
        except UpstreamError as e:
            return self._failed(e)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return self._failed(UpstreamTimeout(
                self.source_id, FailureReason.TIMEOUT, f"{self.source_id} timed out after {self.timeout:.1f}s"
            ))
        except httpx.HTTPStatusError as e:
            return self._failed(self.unavailable(
                FailureReason.HTTP_STATUS, f"{self.source_id} API error: {e.response.status_code}"
            ))
        except httpx.HTTPError as e:
            return self._failed(self.unavailable(
                FailureReason.NETWORK, f"{self.source_id} request failed: {type(e).__name__}"
            ))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            # JSON decoding, pydantic validation and unexpected response shapes
            return self._failed(self.unavailable(
                FailureReason.MALFORMED_PAYLOAD, f"{self.source_id} returned a malformed payload: {e}"
            ))
        except Exception as e:
            logger.exception("Unexpected error in %s client", self.source_id)
            return self._failed(self.unavailable(
                FailureReason.MALFORMED_PAYLOAD, f"{self.source_id} failed unexpectedly: {type(e).__name__}"
            ))
        return SourceResult(
            source_id=self.source_id, status=SourceStatus.OK, payload=payload, fetched_at=utc_now()
        )

    def _failed(self, exc: UpstreamError) -> SourceResult:
        logger.warning("Source %s unavailable (%s): %s", self.source_id, exc.reason.value, exc.message)
        return SourceResult(
            source_id=self.source_id,
            status=SourceStatus.FAILED,
            error=SourceError.from_exception(exc),
            fetched_at=utc_now(),
        )

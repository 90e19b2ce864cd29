"""Option catalog: externally fetched candidate labels and their fetch lifecycle.

``OptionCatalog.fetch`` flips the status to ``loading`` synchronously so
the UI can disable its buttons before the request is even awaited.  Every
call takes a fresh request id; a response is applied only if its id is
still the latest, so a slow superseded request never overwrites a newer
one.  There is no retry policy.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from app.exceptions import CatalogFetchError
from app.models.label import LabelOption
from app.models.selection import CatalogState

logger = logging.getLogger(__name__)

CatalogSource = Callable[[], Awaitable[Any]]

_OPTIONS_ADAPTER = TypeAdapter(list[LabelOption])

DEFAULT_OPTIONS: list[dict[str, Any]] = [
    {"id": 1, "value": "air_squat.down"},
    {"id": 2, "value": "air_squat.up"},
    {"id": 3, "value": "push_press.down"},
    {"id": 4, "value": "push_press.up"},
    {"id": 5, "value": "power_clean.up"},
    {"id": 6, "value": "power_clean.down"},
]


class StaticCatalogSource:
    """Serves a fixed option list (the built-in catalog)."""

    def __init__(self, options: list[dict[str, Any]] | None = None) -> None:
        self.options = list(DEFAULT_OPTIONS if options is None else options)

    async def __call__(self) -> list[dict[str, Any]]:
        return [dict(o) for o in self.options]


class HttpCatalogSource:
    """Fetches the option list with a GET request."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    async def __call__(self) -> Any:
        if self._client is not None:
            response = await self._client.get(self.url, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.url)
        response.raise_for_status()
        return response.json()


def parse_options(payload: Any) -> list[LabelOption]:
    """Validate a catalog payload: a list of options or ``{"options": [...]}``.

    Raises :class:`CatalogFetchError` on any other shape.
    """
    if isinstance(payload, dict):
        payload = payload.get("options")
    try:
        return _OPTIONS_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise CatalogFetchError("Malformed label catalog response") from e


class OptionCatalog:
    """Holds the candidate labels and the idle/loading/ready/error lifecycle."""

    def __init__(self, source: CatalogSource) -> None:
        self._source = source
        self._state = CatalogState()
        self._request_id = 0

    @property
    def status(self) -> str:
        return self._state.status

    @property
    def options(self) -> list[LabelOption]:
        return self._state.options

    @property
    def error_message(self) -> str | None:
        return self._state.error_message

    @property
    def is_loading(self) -> bool:
        return self._state.status == "loading"

    def snapshot(self) -> CatalogState:
        return self._state.model_copy(deep=True)

    def fetch(self) -> Awaitable[CatalogState]:
        """Start a fetch and return an awaitable of the resulting state.

        The status is ``loading`` as soon as this method returns.
        """
        self._request_id += 1
        request_id = self._request_id
        self._state = CatalogState(
            status="loading",
            options=self._state.options,
            request_id=request_id,
        )
        logger.debug("Catalog fetch %d started", request_id)
        return self._complete(request_id)

    async def _load(self) -> list[LabelOption]:
        try:
            payload = await self._source()
        except httpx.TimeoutException as e:
            raise CatalogFetchError("network timeout") from e
        except httpx.HTTPStatusError as e:
            raise CatalogFetchError(
                f"Label catalog returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise CatalogFetchError(f"Could not reach label catalog: {e}") from e
        except ValueError as e:
            # response.json() on a non-JSON body
            raise CatalogFetchError("Malformed label catalog response") from e
        return parse_options(payload)

    async def _complete(self, request_id: int) -> CatalogState:
        try:
            options = await self._load()
        except CatalogFetchError as e:
            new_state = CatalogState(
                status="error", error_message=str(e), request_id=request_id
            )
        except Exception as e:
            logger.error(
                "Catalog source failed on fetch %d:\n%s", request_id, traceback.format_exc()
            )
            new_state = CatalogState(
                status="error",
                error_message=f"Label catalog failed: {type(e).__name__}: {e}",
                request_id=request_id,
            )
        else:
            new_state = CatalogState(
                status="ready", options=options, request_id=request_id
            )

        if request_id != self._request_id:
            logger.debug(
                "Discarding stale catalog response %d (latest is %d)",
                request_id,
                self._request_id,
            )
            return self.snapshot()

        if new_state.status == "error":
            logger.warning("Catalog fetch %d failed: %s", request_id, new_state.error_message)
        else:
            logger.info("Catalog fetch %d loaded %d options", request_id, len(new_state.options))
        self._state = new_state
        return self.snapshot()

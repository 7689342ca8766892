"""Page renderers the gate calls on a cache miss."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import requests

from variants.resource import TEMPLATE, Resource

logger = logging.getLogger(__name__)


class RenderError(Exception):
    """The renderer could not produce output for a resource."""


class Renderer(Protocol):
    def render(self, resource: Resource) -> str: ...


class HttpRenderer:
    """Render by fetching the page from an origin that honours ?template=."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def render(self, resource: Resource) -> str:
        url = f"{self._base_url}/{resource.resource_id}"
        template = resource.get_attribute(TEMPLATE)
        try:
            resp = self._session.get(
                url,
                params={"template": template},
                headers={"Cache-Control": "no-cache"},
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise RenderError(f"render of {url} failed: {exc}") from exc
        logger.debug("Rendered %s with template %s (%d bytes)", url, template, len(resp.content))
        return resp.text

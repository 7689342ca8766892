"""Page resource contract and the scoped host-cache toggle."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Protocol, Union

TEMPLATE = "template"
CACHEABLE = "cacheable"


class Resource(Protocol):
    @property
    def resource_id(self) -> Union[int, str]: ...

    def get_attribute(self, name: str) -> Any: ...

    def set_attribute(self, name: str, value: Any) -> None: ...

    def set_content(self, payload: str) -> None: ...


@dataclass
class PageResource:
    """In-process resource for hosts without their own page object."""

    resource_id: Union[int, str]
    template: Any = None
    cacheable: bool = True
    attributes: Dict[str, Any] = field(default_factory=dict)
    content: Optional[str] = None

    def get_attribute(self, name: str) -> Any:
        if name == TEMPLATE:
            return self.template
        if name == CACHEABLE:
            return self.cacheable
        return self.attributes.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        if name == TEMPLATE:
            self.template = value
        elif name == CACHEABLE:
            self.cacheable = bool(value)
        else:
            self.attributes[name] = value

    def set_content(self, payload: str) -> None:
        self.content = payload


@contextmanager
def host_cache_disabled(resource: Resource) -> Iterator[Resource]:
    """Mark the resource non-cacheable for the host cache, restoring it on exit."""
    previous = resource.get_attribute(CACHEABLE)
    resource.set_attribute(CACHEABLE, False)
    try:
        yield resource
    finally:
        resource.set_attribute(CACHEABLE, previous)

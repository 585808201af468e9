"""
Category Registry
Maps script handles to their consent category and payload for one page render.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Optional

from app.core.constants import DEFAULT_GATED_CATEGORY, ConsentCategory

from .exceptions import DuplicateHandle, InvalidDescriptor, UnknownHandle


@dataclass(frozen=True)
class ScriptDescriptor:
    """
    A script the page wants to load.

    Exactly one of `src` (remote URL) or `inline` (script body) is normally set.
    A descriptor with neither has nothing to gate and is passed through.
    """
    handle: str
    category: ConsentCategory = DEFAULT_GATED_CATEGORY
    src: str = ""
    inline: str = ""
    noscript: str = ""

    def __post_init__(self):
        if not self.handle:
            raise InvalidDescriptor("Script descriptor requires a handle")
        if self.src and self.inline:
            raise InvalidDescriptor(f"{self.handle}: a script has either a src or an inline body, not both")
        # Unknown or missing category falls back to the restrictive default
        category = ConsentCategory.parse(self.category) or DEFAULT_GATED_CATEGORY
        object.__setattr__(self, "category", category)

    @property
    def has_payload(self) -> bool:
        return bool(self.src or self.inline)

    @property
    def is_gated(self) -> bool:
        return self.category != ConsentCategory.NECESSARY


class CategoryRegistry:
    """
    Handle -> ScriptDescriptor for a single render.
    Create one per request; never share between renders.
    """

    def __init__(self):
        self._descriptors: Dict[str, ScriptDescriptor] = {}

    def register(self, descriptor: ScriptDescriptor) -> ScriptDescriptor:
        if descriptor.handle in self._descriptors:
            raise DuplicateHandle(descriptor.handle)
        self._descriptors[descriptor.handle] = descriptor
        return descriptor

    def resolve(self, handle: str) -> ScriptDescriptor:
        try:
            return self._descriptors[handle]
        except KeyError:
            raise UnknownHandle(handle) from None

    def get(self, handle: str) -> Optional[ScriptDescriptor]:
        return self._descriptors.get(handle)

    def category_for(self, handle: str) -> Optional[ConsentCategory]:
        descriptor = self._descriptors.get(handle)
        return descriptor.category if descriptor else None

    def __contains__(self, handle) -> bool:
        return handle in self._descriptors

    def __iter__(self) -> Iterator[ScriptDescriptor]:
        return iter(list(self._descriptors.values()))

    def __len__(self) -> int:
        return len(self._descriptors)

"""
Notification message templates.

Short HTML messages (a study is ready, feedback was published, ...) are
Jinja2 templates registered by id. Compiled templates are kept in an
explicit, bounded cache object that the caller constructs and passes in.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from jinja2 import Environment, StrictUndefined, Template, TemplateSyntaxError, UndefinedError
from markupsafe import Markup

from .config import DEFAULT_MESSAGE_CACHE_SIZE, DEFAULT_MESSAGE_CACHE_TTL_SECONDS, EngineConfig
from .exceptions import MessageDataError, MessageTemplateError, MessageTemplateNotFoundError

logger = logging.getLogger(__name__)


class MessageTemplateCache:
    """
    Thread-safe LRU cache of compiled templates with a time-to-live.

    A ``ttl_seconds`` of zero or less keeps entries until they are evicted
    by size.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MESSAGE_CACHE_SIZE,
        ttl_seconds: float = DEFAULT_MESSAGE_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[Template, float]]" = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: EngineConfig) -> "MessageTemplateCache":
        return cls(max_size=config.message_cache_size, ttl_seconds=config.message_cache_ttl_seconds)

    def get(self, key: str) -> Optional[Template]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            template, stored_at = entry
            if self.ttl_seconds > 0 and self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return template

    def put(self, key: str, template: Template) -> None:
        with self._lock:
            self._entries[key] = (template, self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted message template %r", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class MessageTemplates:
    """
    Renders registered notification templates.

    Usage:
        cache = MessageTemplateCache()
        messages = MessageTemplates({"feedback_ready": "<p>Hi {{ name }}</p>"}, cache)
        html = messages.render("feedback_ready", {"name": "Ada"})
    """

    def __init__(self, sources: Mapping[str, str], cache: Optional[MessageTemplateCache] = None):
        self.sources: Dict[str, str] = dict(sources)
        self.cache = cache if cache is not None else MessageTemplateCache()
        self.env = Environment(
            undefined=StrictUndefined,
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def load_template(self, template_id: str) -> Template:
        """Compiled template for an id, through the cache."""
        template = self.cache.get(template_id)
        if template is not None:
            return template

        source = self.sources.get(template_id)
        if source is None:
            raise MessageTemplateNotFoundError(
                f"Template '{template_id}' not found. Available templates: {sorted(self.sources)}"
            )
        try:
            template = self.env.from_string(source)
        except TemplateSyntaxError as e:
            raise MessageTemplateError(f"Template '{template_id}' does not compile: {e}") from e

        self.cache.put(template_id, template)
        return template

    def render(self, template_id: str, data: Mapping[str, Any]) -> str:
        """
        Render a message.

        Raises:
            MessageTemplateNotFoundError: If no template has this id
            MessageDataError: If the template reads a value that data lacks
        """
        template = self.load_template(template_id)
        try:
            return template.render(**dict(data))
        except UndefinedError as e:
            raise MessageDataError(
                f"Notification data does not satisfy template '{template_id}': {e}"
            ) from e


def strip_html_tags(html: str) -> str:
    """Plain-text rendition of an HTML message."""
    return Markup(html or "").striptags()

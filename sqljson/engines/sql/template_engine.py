"""
Jinja2 environment for result templates.

Compiled ``Template`` objects are cached in an LRU dict keyed by template
source hash so repeated calls with the same source skip the parse phase.
"""

import hashlib
import threading
from collections import OrderedDict

from jinja2 import Environment, Template

from sqljson.core.config import settings

_ENV: Environment | None = None
_env_lock = threading.Lock()

_template_cache: OrderedDict[str, Template] = OrderedDict()
_cache_lock = threading.Lock()


def get_environment() -> Environment:
    """Return the shared Jinja2 Environment for result templates."""
    global _ENV
    if _ENV is None:
        with _env_lock:
            if _ENV is None:
                _ENV = Environment(autoescape=settings.TEMPLATE_AUTOESCAPE)
    return _ENV


def get_template(source: str | Template) -> Template:
    """Return a compiled ``Template`` from cache or compile & cache it."""
    if isinstance(source, Template):
        return source
    key = hashlib.md5(source.encode(), usedforsecurity=False).hexdigest()
    with _cache_lock:
        tpl = _template_cache.get(key)
        if tpl is not None:
            _template_cache.move_to_end(key)
            return tpl
    tpl = get_environment().from_string(source)
    with _cache_lock:
        _template_cache[key] = tpl
        if len(_template_cache) > settings.TEMPLATE_CACHE_SIZE:
            _template_cache.popitem(last=False)
    return tpl

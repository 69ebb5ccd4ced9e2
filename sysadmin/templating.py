"""Jinja2 rendering of the packaged templates."""

import shlex
from functools import lru_cache
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    """Jinja2 environment loading templates from ``sysadmin/templates``.

    Templates producing shell code quote values with the ``shquote`` filter.
    """
    env = Environment(
        loader=PackageLoader("sysadmin", "templates"),
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )
    env.filters["shquote"] = lambda value: shlex.quote(str(value))
    return env


def render_template(name: str, **variables: Any) -> str:
    """Render a packaged template.

    Raises:
        jinja2.TemplateNotFound: If no template has that name
        jinja2.UndefinedError: If the template uses a missing variable
    """
    return get_environment().get_template(name).render(**variables)

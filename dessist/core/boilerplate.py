"""
boilerplate.py
==============
Boilerplate text for generated programs.

The emission engine only depends on `TemplateProvider`: something that
accepts a template key plus named substitutions and returns text. The
default implementation renders the jinja2 templates shipped inside this
package; callers can swap in their own mapping or environment.
"""

from __future__ import annotations

import logging
from typing import Mapping, Protocol

from jinja2 import DictLoader, Environment, PackageLoader, StrictUndefined, TemplateNotFound

logger = logging.getLogger(__name__)

PROGRAM_HEADER = "program_header"
PROGRAM_FOOTER = "program_footer"
SQL_SMO_HELPERS = "sql_smo_helpers"
GENERIC_SQL_HELPERS = "generic_sql_helpers"
TABLE_PARAMETER_HELPERS = "table_parameter_helpers"
ARITHMETIC_HELPERS = "arithmetic_helpers"

TEMPLATE_SUFFIX = ".py.j2"


class TemplateProvider(Protocol):
    def render(self, key: str, **substitutions: str) -> str: ...


class JinjaTemplateProvider:
    """
    `TemplateProvider` backed by a jinja2 `Environment`.

    Usage
    -----
    ::

        provider = JinjaTemplateProvider()
        header = provider.render("program_header", namespace="Nightly", main_function="run")
    """

    def __init__(self, env: Environment | None = None) -> None:
        self._env = env or self._make_environment(PackageLoader("dessist.core", "templates"))

    @classmethod
    def from_mapping(cls, templates: Mapping[str, str]) -> "JinjaTemplateProvider":
        """Build a provider from in-memory template sources keyed by template key."""
        loader = DictLoader({f"{key}{TEMPLATE_SUFFIX}": src for key, src in templates.items()})
        return cls(cls._make_environment(loader))

    @staticmethod
    def _make_environment(loader) -> Environment:
        return Environment(
            loader=loader,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def render(self, key: str, **substitutions: str) -> str:
        try:
            template = self._env.get_template(f"{key}{TEMPLATE_SUFFIX}")
        except TemplateNotFound:
            logger.error("No template registered for key '%s'.", key)
            raise KeyError(key) from None
        return template.render(**substitutions)

"""Paging and autocomplete defaults for resource services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import int_env_var

DEFAULT_FIRST_RESULT: Final[int] = 0
DEFAULT_MAX_RESULTS: Final[int] = 256
DEFAULT_AUTOCOMPLETE_CUT: Final[int] = 3
DEFAULT_AUTOCOMPLETE_MAX_RESULTS: Final[int] = 16


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    first_result: int = DEFAULT_FIRST_RESULT
    max_results: int = DEFAULT_MAX_RESULTS
    autocomplete_cut: int = DEFAULT_AUTOCOMPLETE_CUT
    autocomplete_max_results: int = DEFAULT_AUTOCOMPLETE_MAX_RESULTS

    def resolve_first_result(self, value: int | None) -> int:
        return self.first_result if value is None else value

    def resolve_max_results(self, value: int | None) -> int:
        return self.max_results if value is None else value

    def resolve_autocomplete_max_results(self, value: int | None) -> int:
        return self.autocomplete_max_results if value is None else value


def get_service_config() -> ServiceConfig:
    return ServiceConfig(
        max_results=int_env_var("CRUDMERGE_MAX_RESULTS", DEFAULT_MAX_RESULTS, minimum=1),
        autocomplete_cut=int_env_var("CRUDMERGE_AUTOCOMPLETE_CUT", DEFAULT_AUTOCOMPLETE_CUT),
        autocomplete_max_results=int_env_var(
            "CRUDMERGE_AUTOCOMPLETE_MAX_RESULTS", DEFAULT_AUTOCOMPLETE_MAX_RESULTS, minimum=1
        ),
    )

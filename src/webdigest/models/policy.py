from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class DomainMode(StrEnum):
    ALLOW = "allow"  # active only on allow-listed hosts
    DENY = "deny"  # active everywhere except deny-listed hosts


class DomainPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: DomainMode = DomainMode.ALLOW
    allow_list: tuple[str, ...] = ()
    deny_list: tuple[str, ...] = ()


class ExclusionRules(BaseModel):
    """CSS selectors for elements skipped during article extraction.

    ``self_selectors`` match the element itself; ``ancestors`` match any
    enclosing container.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    self_selectors: tuple[str, ...] = Field(default=(), alias="self")
    ancestors: tuple[str, ...] = ()

    def merged_with(self, other: ExclusionRules) -> ExclusionRules:
        return ExclusionRules(
            self_selectors=_dedupe([*self.self_selectors, *other.self_selectors]),
            ancestors=_dedupe([*self.ancestors, *other.ancestors]),
        )


def _dedupe(items: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(item for item in items if item))

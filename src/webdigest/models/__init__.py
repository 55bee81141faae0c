from __future__ import annotations

from webdigest.models.cache import CacheEntry
from webdigest.models.content import ArticleState, DigestMode, ExtractedContent, SourceKind
from webdigest.models.policy import DomainMode, DomainPolicy, ExclusionRules
from webdigest.models.usage import ModelOption, Pricing, UsageCounters, UsageTotals

__all__ = [
    # cache
    "CacheEntry",
    # content
    "ArticleState",
    "DigestMode",
    "ExtractedContent",
    "SourceKind",
    # policy
    "DomainMode",
    "DomainPolicy",
    "ExclusionRules",
    # usage
    "ModelOption",
    "Pricing",
    "UsageCounters",
    "UsageTotals",
]

"""Namespaced keys for the persisted storage collaborator."""

from __future__ import annotations

API_KEY = "OPENAI_KEY"
DOMAINS_MODE = "digest_domains_mode_v1"
DOMAINS_DENY = "digest_domains_excluded_v1"
DOMAINS_ALLOW = "digest_domains_enabled_v1"
DEBUG = "digest_debug_v1"
SIMPLIFICATION_LEVEL = "digest_simplification_v1"
AUTO_RUN = "digest_auto_simplify_v1"
CUSTOM_PROMPTS = "digest_custom_prompt_v1"
OVERLAY_POS = "digest_overlay_pos_v1"
OVERLAY_COLLAPSED = "digest_overlay_collapsed_v1"
FIRST_INSTALL = "digest_installed_v1"
USAGE = "digest_api_tokens_v1"
PRICING = "digest_pricing_v1"
CACHE = "digest_cache_v1"
MODEL = "digest_model_v1"
SELECTORS_GLOBAL = "digest_selectors_v1"
EXCLUDES_GLOBAL = "digest_excludes_v1"
DOMAIN_SELECTORS = "digest_domain_selectors_v1"
DOMAIN_EXCLUDES = "digest_domain_excludes_v1"

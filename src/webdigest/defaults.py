"""Built-in prompts, extraction selectors, model catalogue and pricing."""

from __future__ import annotations

from webdigest.models.content import DigestMode
from webdigest.models.policy import ExclusionRules
from webdigest.models.usage import ModelOption, Pricing

# Attribute carried by every element the digest UI injects into a page.
UI_ATTR = "data-digest-ui"

DEFAULT_MODEL = "gpt-5-nano"

DEFAULT_PROMPTS: dict[DigestMode, str] = {
    DigestMode.LARGE: (
        "You will receive INPUT as article text. Summarize and simplify the content to "
        "approximately 50% of the original length. Make the language clearer and more direct "
        "while staying in the SAME language as input. CRITICAL: Do NOT change facts, numbers, "
        "names, quotes, or the actual meaning/details of the content. If the text contains "
        "direct quotes inside quotation marks, keep that quoted text VERBATIM. Preserve all "
        "factual information, statistics, proper nouns, and direct quotes exactly as they "
        "appear. Maintain paragraph structure where appropriate. Return ONLY the simplified "
        "text without any formatting, code blocks, or JSON."
    ),
    DigestMode.SMALL: (
        "You will receive INPUT as article text. Create a concise summary at approximately 20% "
        "of the original length while staying in the SAME language as input. Focus on the most "
        "important points and key facts. CRITICAL: Do NOT change facts, numbers, names, or core "
        "meaning. Preserve important quotes, statistics, and proper nouns exactly as they "
        "appear. Condense the content aggressively to achieve the 20% length target while "
        "maintaining readability. Return ONLY the summary text without any formatting, code "
        "blocks, or JSON."
    ),
}

# Sent as the backend temperature; higher rewrites more liberally.
SIMPLIFICATION_LEVELS: dict[str, float] = {
    "Conservative": 0.1,
    "Balanced": 0.2,
    "Aggressive": 0.4,
}
DEFAULT_SIMPLIFICATION_LEVEL = "Balanced"

# Ordered by specificity: microdata and CMS containers first, generic landmarks last.
DEFAULT_SELECTORS: tuple[str, ...] = (
    '[itemprop="articleBody"]',
    'article[itemtype*="Article"]',
    ".article-body",
    ".post-content",
    ".entry-content",
    '[class*="article-content"]',
    ':is(div, section, article)[class*="post-body"]',
    '[class*="articleContainer"] .cnt',
    '[class*="articleContainer"]',
    ".story-content",
    ".story-body",
    "article",
    "main",
    '[role="main"]',
)

DEFAULT_EXCLUDES = ExclusionRules(
    self_selectors=(),
    ancestors=(
        ".comment",
        ".comments",
        ".sidebar",
        ".navigation",
        ".menu",
        ".footer",
        ".header",
        "nav",
        "aside",
        ".related",
        ".recommended",
        ".advertisement",
        ".ad",
        ".social-share",
        ".author-bio",
    ),
)

TEXT_SELECTORS = "p, li, blockquote, figcaption, dd, dt"

TITLE_SELECTORS: tuple[str, ...] = (
    '[itemprop="headline"]',
    "h1",
    "h2",
    ".article-title",
    ".post-title",
    ".entry-title",
    '[class*="article-title"]',
    '[class*="post-title"]',
)

# Pricing source: https://openai.com/api/pricing/ (as of 2025-12-18)
MODEL_OPTIONS: dict[str, ModelOption] = {
    "gpt-5-nano": ModelOption(
        name="GPT-5 Nano",
        api_model="gpt-5-nano",
        description="Ultra-affordable latest generation - Best value for most articles",
        input_per_1m=0.05,
        output_per_1m=0.40,
        recommended=True,
    ),
    "gpt-5-mini": ModelOption(
        name="GPT-5 Mini",
        api_model="gpt-5-mini",
        description="Better quality, still very affordable",
        input_per_1m=0.25,
        output_per_1m=2.00,
    ),
    "gpt-4.1-nano-priority": ModelOption(
        name="GPT-4.1 Nano Priority",
        api_model="gpt-4.1-nano",
        description="Faster processing - Cheaper than regular GPT-5 Mini",
        input_per_1m=0.20,
        output_per_1m=0.80,
        priority=True,
    ),
    "gpt-5-mini-priority": ModelOption(
        name="GPT-5 Mini Priority",
        api_model="gpt-5-mini",
        description="Better quality + faster processing",
        input_per_1m=0.45,
        output_per_1m=3.60,
        priority=True,
    ),
    "gpt-5.2-priority": ModelOption(
        name="GPT-5.2 Priority",
        api_model="gpt-5.2",
        description="Premium quality + fastest processing (most expensive)",
        input_per_1m=2.50,
        output_per_1m=20.00,
        priority=True,
    ),
}

DEFAULT_PRICING = Pricing(
    model="gpt-5-nano",
    input_per_1m=0.05,
    output_per_1m=0.40,
    last_updated="2025-12-18",
)

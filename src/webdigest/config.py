"""Configuration loading.

Two layers:

* ``Settings`` is process configuration, loaded in priority order (highest first):
    1. Environment variables  (WEBDIGEST__BACKEND__TIMEOUT_SECONDS=30)
    2. webdigest.yaml         (searched in cwd, then platform config dir)
    3. Hardcoded defaults
* ``DigestConfig`` is the user's digest preferences, read from the storage
  collaborator once per page load. It is frozen: a settings change persists
  the new value and builds a fresh ``DigestConfig`` via ``load_digest_config``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import platformdirs
import structlog
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from webdigest import keys
from webdigest.defaults import (
    DEFAULT_EXCLUDES,
    DEFAULT_MODEL,
    DEFAULT_PROMPTS,
    DEFAULT_SELECTORS,
    DEFAULT_SIMPLIFICATION_LEVEL,
    MODEL_OPTIONS,
    SIMPLIFICATION_LEVELS,
)
from webdigest.models.content import DigestMode
from webdigest.models.policy import DomainMode, DomainPolicy, ExclusionRules

if TYPE_CHECKING:
    from webdigest.protocols import StorageProtocol

log = structlog.get_logger()

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("webdigest")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "storage.db")


def _find_config_file() -> str | None:
    """Return the path of the first webdigest.yaml found, or None."""
    candidates = [
        Path("webdigest.yaml"),
        Path(platformdirs.user_config_dir("webdigest")) / "webdigest.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class BackendSettings(BaseModel):
    url: str = "https://api.openai.com/v1/responses"
    models_url: str = "https://api.openai.com/v1/models"
    timeout_seconds: float = 60.0
    max_output_tokens_large: int = 4000
    max_output_tokens_small: int = 2000
    user_agent: str = "webdigest/1.0"


class StorageSettings(BaseModel):
    db_path: str = _DEFAULT_DB_PATH


class CacheSettings(BaseModel):
    limit: int = 50
    trim_to: int = 30
    flush_interval_seconds: float = 5.0


class UsageSettings(BaseModel):
    persist_debounce_seconds: float = 1.0


class ExtractionSettings(BaseModel):
    min_selection_length: int = 100
    min_element_length: int = 40


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: WEBDIGEST__CACHE__LIMIT=100
        env_prefix="WEBDIGEST__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    backend: BackendSettings = BackendSettings()
    storage: StorageSettings = StorageSettings()
    cache: CacheSettings = CacheSettings()
    usage: UsageSettings = UsageSettings()
    extraction: ExtractionSettings = ExtractionSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
        )


# ---------------------------------------------------------------------------
# Per-user digest configuration
# ---------------------------------------------------------------------------


class DigestConfig(BaseModel):
    """Immutable snapshot of the user's digest preferences for one page load."""

    model_config = ConfigDict(frozen=True)

    domain_policy: DomainPolicy = DomainPolicy()
    debug: bool = False
    simplification_level: str = DEFAULT_SIMPLIFICATION_LEVEL
    auto_run: bool = False
    custom_prompts: dict[DigestMode, str] = {}
    model: str = DEFAULT_MODEL
    selectors_global: tuple[str, ...] = DEFAULT_SELECTORS
    selectors_domain: dict[str, tuple[str, ...]] = {}
    excludes_global: ExclusionRules = DEFAULT_EXCLUDES
    excludes_domain: dict[str, ExclusionRules] = {}
    overlay_position: tuple[float, float] | None = None
    overlay_collapsed: bool = False

    @property
    def strength(self) -> float:
        return SIMPLIFICATION_LEVELS[self.simplification_level]

    def prompt_for(self, mode: DigestMode) -> str:
        return self.custom_prompts.get(mode) or DEFAULT_PROMPTS[mode]

    @property
    def api_model(self) -> str:
        option = MODEL_OPTIONS.get(self.model)
        return option.api_model if option is not None else self.model

    @property
    def is_priority(self) -> bool:
        option = MODEL_OPTIONS.get(self.model)
        return option is not None and option.priority

    def selectors_for(self, host: str) -> tuple[str, ...]:
        """Global container selectors followed by this host's additions."""
        extra = self.selectors_domain.get(host, ())
        return tuple(dict.fromkeys(s for s in (*self.selectors_global, *extra) if s))

    def excludes_for(self, host: str) -> ExclusionRules:
        extra = self.excludes_domain.get(host)
        if extra is None:
            return self.excludes_global
        return self.excludes_global.merged_with(extra)


STR_LIST = TypeAdapter(list[str])
_STR_MAP = TypeAdapter(dict[str, str])
SELECTOR_MAP = TypeAdapter(dict[str, list[str]])
EXCLUDE_MAP = TypeAdapter(dict[str, ExclusionRules])
_POSITION = TypeAdapter(tuple[float, float])


def _parse_bool(raw: Any) -> bool:
    return raw is True or raw == "true"


async def read_json_setting(
    storage: StorageProtocol, key: str, adapter: TypeAdapter, default: Any
) -> Any:
    """Read a JSON blob from storage; malformed or mistyped values yield ``default``."""
    raw = await storage.get(key, "")
    if raw in ("", None):
        return default
    try:
        value = json.loads(raw) if isinstance(raw, str) else raw
        return adapter.validate_python(value)
    except (json.JSONDecodeError, ValidationError):
        log.warning("settings_value_invalid", key=key, exc_info=True)
        return default


async def load_digest_config(storage: StorageProtocol) -> DigestConfig:
    """Build a fresh DigestConfig from persisted values."""
    mode_raw = await storage.get(keys.DOMAINS_MODE, DomainMode.ALLOW)
    mode = DomainMode.DENY if mode_raw == DomainMode.DENY else DomainMode.ALLOW
    policy = DomainPolicy(
        mode=mode,
        allow_list=tuple(await read_json_setting(storage, keys.DOMAINS_ALLOW, STR_LIST, [])),
        deny_list=tuple(await read_json_setting(storage, keys.DOMAINS_DENY, STR_LIST, [])),
    )

    level = await storage.get(keys.SIMPLIFICATION_LEVEL, "")
    if level not in SIMPLIFICATION_LEVELS:
        if level:
            log.warning("settings_value_invalid", key=keys.SIMPLIFICATION_LEVEL, value=level)
        level = DEFAULT_SIMPLIFICATION_LEVEL

    prompts: dict[DigestMode, str] = {}
    stored_prompts = await read_json_setting(storage, keys.CUSTOM_PROMPTS, _STR_MAP, {})
    for name, text in stored_prompts.items():
        try:
            mode_key = DigestMode(name.removeprefix("summary_"))
        except ValueError:
            continue
        if text.strip():
            prompts[mode_key] = text

    model = await storage.get(keys.MODEL, "")
    if model not in MODEL_OPTIONS:
        model = DEFAULT_MODEL

    selectors_global = await read_json_setting(
        storage, keys.SELECTORS_GLOBAL, STR_LIST, list(DEFAULT_SELECTORS)
    )
    selectors_domain = await read_json_setting(storage, keys.DOMAIN_SELECTORS, SELECTOR_MAP, {})

    excludes_global = DEFAULT_EXCLUDES
    raw_excludes = await storage.get(keys.EXCLUDES_GLOBAL, "")
    if raw_excludes:
        try:
            excludes_global = ExclusionRules.model_validate_json(raw_excludes)
        except ValidationError:
            log.warning("settings_value_invalid", key=keys.EXCLUDES_GLOBAL, exc_info=True)

    return DigestConfig(
        domain_policy=policy,
        debug=_parse_bool(await storage.get(keys.DEBUG, "")),
        simplification_level=level,
        auto_run=_parse_bool(await storage.get(keys.AUTO_RUN, "")),
        custom_prompts=prompts,
        model=model,
        selectors_global=tuple(selectors_global) or DEFAULT_SELECTORS,
        selectors_domain={host: tuple(sels) for host, sels in selectors_domain.items()},
        excludes_global=excludes_global,
        excludes_domain=await read_json_setting(storage, keys.DOMAIN_EXCLUDES, EXCLUDE_MAP, {}),
        overlay_position=await read_json_setting(storage, keys.OVERLAY_POS, _POSITION, None),
        overlay_collapsed=_parse_bool(await storage.get(keys.OVERLAY_COLLAPSED, "")),
    )


async def ensure_first_install(storage: StorageProtocol) -> bool:
    """Record the install marker. Returns True on the very first run.

    A first install always starts in allow mode so the pipeline stays off
    until the user enables a domain.
    """
    if await storage.get(keys.FIRST_INSTALL, "") != "":
        return False
    await storage.set(keys.DOMAINS_MODE, DomainMode.ALLOW.value)
    await storage.set(keys.FIRST_INSTALL, "true")
    log.info("first_install_detected", domain_mode=DomainMode.ALLOW.value)
    return True

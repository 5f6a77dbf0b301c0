"""Load settings.yaml into typed dataclasses. Validates the council roster at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

# Labels are single uppercase letters, so a council tops out at A..Z
MAX_MEMBERS = 26


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass(frozen=True)
class SamplingParams:
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class SamplingConfig:
    opinion: SamplingParams = SamplingParams(temperature=0.7, max_tokens=2000)
    review: SamplingParams = SamplingParams(temperature=0.3, max_tokens=2000)
    synthesis: SamplingParams = SamplingParams(temperature=0.5, max_tokens=4000)


@dataclass(frozen=True)
class CouncilConfig:
    members: tuple[str, ...]
    chairman: str
    stage_delay_sec: float = 0.0
    enabled_modes: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        check_roster(self.members)

    def is_eligible(self, mode: str) -> bool:
        """Return True if a council may be convened in the given mode."""
        return mode in self.enabled_modes


@dataclass
class PromptsConfig:
    ranking: str
    chairman: str
    system: dict[str, str] = field(default_factory=dict)


@dataclass
class DefaultsConfig:
    output_dir: Path
    mode: str | None = None


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    council: CouncilConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    available_providers: set[str] = field(default_factory=set)


def _load_sampling(raw: dict | None) -> SamplingConfig:
    if not raw:
        return SamplingConfig()
    base = SamplingConfig()
    profiles = {}
    for key in ("opinion", "review", "synthesis"):
        default: SamplingParams = getattr(base, key)
        entry = raw.get(key) or {}
        profiles[key] = SamplingParams(
            temperature=float(entry.get("temperature", default.temperature)),
            max_tokens=int(entry.get("max_tokens", default.max_tokens)),
        )
    return SamplingConfig(**profiles)


def check_roster(members: tuple[str, ...]) -> None:
    """Raise ValueError unless members is a non-empty list of at most 26 distinct names."""
    if not members:
        raise ValueError("council.members must list at least one model")
    if len(members) > MAX_MEMBERS:
        raise ValueError(f"council.members has {len(members)} entries, at most {MAX_MEMBERS} are supported")
    duplicates = sorted({m for m in members if members.count(m) > 1})
    if duplicates:
        raise ValueError(f"council.members lists the same model more than once: {', '.join(duplicates)}")


def _load_council(raw: dict, models: dict[str, ModelConfig]) -> CouncilConfig:
    members = tuple(str(m) for m in raw["members"])
    chairman = str(raw["chairman"])

    for name in (*members, chairman):
        if name not in models:
            raise ValueError(f"Council references unknown model '{name}' (no entry under models:)")

    return CouncilConfig(
        members=members,
        chairman=chairman,
        stage_delay_sec=float(raw.get("stage_delay_sec", 0.0)),
        enabled_modes=frozenset(str(m) for m in raw.get("enabled_modes", [])),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError if the council
    roster references models that are not configured.
    Logs missing API keys but does not raise; callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw.get("defaults", {})
    defaults = DefaultsConfig(
        output_dir=Path(defaults_raw.get("output_dir", "./output")),
        mode=defaults_raw.get("mode"),
    )

    prompts_raw = raw["prompts"]
    system_raw = raw.get("system_prompts", {}) or {}
    prompts = PromptsConfig(
        ranking=prompts_raw["ranking"],
        chairman=prompts_raw["chairman"],
        system={k: str(v) for k, v in system_raw.items()},
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for model_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=model_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[model_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(model_name)
            logger.info("Model available: %s", model_name)
        else:
            logger.info(
                "Model skipped (no API key): %s — set %s in .env",
                model_name,
                model_raw["api_key_env"],
            )

    council = _load_council(raw["council"], models)

    return AppConfig(
        defaults=defaults,
        council=council,
        models=models,
        prompts=prompts,
        sampling=_load_sampling(raw.get("sampling")),
        available_providers=available_providers,
    )

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).parent
FORM_URL_ENV = "FORMFILL_FORM_URL"
TAXONOMY_PATH_ENV = "FORMFILL_TAXONOMY_PATH"


def _load_dotenv() -> None:
    repo_root = Path(__file__).resolve().parents[2]
    candidates = [repo_root / ".env", Path.cwd() / ".env"]
    for env_path in candidates:
        if not env_path.exists():
            continue
        try:
            for line in env_path.read_text().splitlines():
                stripped = line.strip()
                if not stripped or stripped.startswith("#") or "=" not in stripped:
                    continue
                key, value = stripped.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value
        except OSError:
            continue
        break


_load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class AutofillConfig:
    headless: bool = _env_flag("FORMFILL_HEADLESS", "true")
    slow_mo_ms: int = int(os.getenv("FORMFILL_SLOW_MO_MS", "0"))
    keep_open_ms: int = int(os.getenv("FORMFILL_KEEP_OPEN_MS", "0"))
    # Time given to framework handlers between event dispatch and read-back.
    settle_ms: int = int(os.getenv("FORMFILL_SETTLE_MS", "100"))
    form_url: str = "about:blank"


@dataclass(frozen=True)
class MatchingConfig:
    threshold: float = 0.05
    confidence_divisor: float = 5.0
    label_text_limit: int = 300
    custom_field_weight: int = 2
    debug: bool = _env_flag("FORMFILL_DEBUG", "false")
    taxonomy_path: Optional[str] = os.getenv(TAXONOMY_PATH_ENV) or None


@dataclass(frozen=True)
class AppConfig:
    log_level: str = os.getenv("FORMFILL_LOG_LEVEL", "INFO")
    runs_dir: Path = BASE_DIR / "runs"
    autofill: AutofillConfig = field(default_factory=AutofillConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)


CONFIG = AppConfig()


def resolve_form_url(override: Optional[str] = None) -> str:
    if override:
        return override
    env_value = os.getenv(FORM_URL_ENV)
    if env_value:
        return env_value
    return CONFIG.autofill.form_url

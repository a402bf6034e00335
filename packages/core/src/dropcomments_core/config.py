import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "openai",
    "model_name": None,  # None = provider default
    "max_scan_files": 5000,
    "include_globs": ["**/*"],
    "exclude_globs": [],  # glob patterns, e.g. "**/generated/**", "*.min.js"
    "score_threshold": 55,
    "show_low_confidence": False,
    "scan_batch_size": 25,
    "batch_concurrency": 3,
    "heuristic_weights": {},  # e.g. {"age": 10, "symbol_drift": 30}
    "age_half_life_days": 90,
    "window_lines": 10,
    "cache_max_files": 5000,
    "use_git": True,
    "comment_only_regeneration": True,
    "use_emojis": False,
    "comment_style": "succinct",  # "succinct" | "detailed"
    "prompt_template": None,  # None = use built-in template; set to a path string to override
    "store": "sqlite",  # "sqlite" | "gist" | "noop"
    "store_path": ".dropcomments.db",
}

# How far below the threshold a finding may score and still be shown when
# show_low_confidence is enabled.
LOW_CONFIDENCE_MARGIN = 10

_LIST_KEYS = ("include_globs", "exclude_globs")


def load_config(config_path: str = ".dropcomments.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .dropcomments.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "heuristic_weights": dict(DEFAULT_CONFIG["heuristic_weights"])}
    for key in _LIST_KEYS:
        config[key] = list(DEFAULT_CONFIG[key])

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config


def load_prompt_template(config: dict) -> Optional[str]:
    """
    Load a custom regeneration prompt template.

    If ``prompt_template`` is set in config, loads from that path (relative to cwd).
    Otherwise returns None and the built-in template is used.
    """
    custom_path = config.get("prompt_template")
    if not custom_path:
        return None
    p = Path(custom_path)
    if not p.exists():
        raise FileNotFoundError(f"Prompt template file not found: {custom_path}")
    return p.read_text()


@dataclass
class ScanSettings:
    """Typed view over the scan-related keys of a config dict."""

    max_scan_files: int = 5000
    include_globs: list[str] = field(default_factory=lambda: ["**/*"])
    exclude_globs: list[str] = field(default_factory=list)
    score_threshold: float = 55
    show_low_confidence: bool = False
    scan_batch_size: int = 25
    window_lines: int = 10

    @classmethod
    def from_config(cls, config: dict) -> "ScanSettings":
        return cls(
            max_scan_files=int(config.get("max_scan_files", 5000)),
            include_globs=list(config.get("include_globs") or ["**/*"]),
            exclude_globs=list(config.get("exclude_globs") or []),
            score_threshold=float(config.get("score_threshold", 55)),
            show_low_confidence=bool(config.get("show_low_confidence", False)),
            scan_batch_size=max(1, int(config.get("scan_batch_size", 25))),
            window_lines=max(1, int(config.get("window_lines", 10))),
        )

    def passes_threshold(self, score: float) -> bool:
        if score >= self.score_threshold:
            return True
        return self.show_low_confidence and score >= self.score_threshold - LOW_CONFIDENCE_MARGIN


@dataclass
class RegenerationSettings:
    batch_concurrency: int = 3
    comment_only: bool = True
    use_emojis: bool = False
    comment_style: str = "succinct"

    @classmethod
    def from_config(cls, config: dict) -> "RegenerationSettings":
        return cls(
            batch_concurrency=max(1, int(config.get("batch_concurrency", 3))),
            comment_only=bool(config.get("comment_only_regeneration", True)),
            use_emojis=bool(config.get("use_emojis", False)),
            comment_style=config.get("comment_style") or "succinct",
        )

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Dict

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "taxonomy": {"dir": "config/taxonomy"},
    "thresholds": {"micro": "1.00", "macro": "1000.00"},
    "logging": {"level": "INFO"},
}


def load_config(config_path: Path | None = None) -> Dict[str, Any]:
    """
    Load config.toml from repo root by default.
    Missing sections fall back to DEFAULTS; a relative taxonomy dir is
    resolved against the config file's folder.
    """
    if config_path is None:
        # repo root is parent of this file's parent
        repo = Path(__file__).resolve().parents[1]
        config_path = repo / "config.toml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with config_path.open("rb") as f:
        raw = tomllib.load(f)

    cfg = {section: {**values, **raw.get(section, {})} for section, values in DEFAULTS.items()}
    tax_dir = Path(cfg["taxonomy"]["dir"])
    if not tax_dir.is_absolute():
        tax_dir = config_path.resolve().parent / tax_dir
    cfg["taxonomy"]["dir"] = str(tax_dir)
    return cfg

"""Configuration helpers for the Decal Studio app."""

from dataclasses import dataclass, field
from pathlib import Path
import os
from typing import List, Optional

DEFAULT_CANVAS_SIZE = 1024
DEFAULT_GARMENT = "tshirt"
DEFAULT_MAX_TEXT_LENGTH = 50


@dataclass
class StudioConfig:
    """Configuration values for the texture and decal placement core.

    Values come from the process environment first and from an optional
    environment YAML file second, so deployments can override a checked-in
    profile without editing it.
    """

    canvas_size: int = DEFAULT_CANVAS_SIZE
    font_dirs: List[str] = field(default_factory=list)
    default_garment: str = DEFAULT_GARMENT
    max_text_length: int = DEFAULT_MAX_TEXT_LENGTH
    design_db_path: Optional[str] = None
    anchor_table_path: Optional[str] = None
    environment: str | None = None

    @classmethod
    def from_env(cls) -> "StudioConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default. ``APP_CONFIG_PATH`` points at an explicit file instead.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("STUDIO_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            env_key = key.upper()
            return os.getenv(env_key, yaml_config.get(key, default))

        raw_font_dirs = get_value("font_dirs") or ""
        font_dirs = [entry for entry in raw_font_dirs.split(os.pathsep) if entry.strip()]

        return cls(
            canvas_size=cls._as_int(get_value("canvas_size"), DEFAULT_CANVAS_SIZE),
            font_dirs=font_dirs,
            default_garment=str(get_value("default_garment", DEFAULT_GARMENT) or DEFAULT_GARMENT),
            max_text_length=cls._as_int(get_value("max_text_length"), DEFAULT_MAX_TEXT_LENGTH),
            design_db_path=get_value("design_db_path"),
            anchor_table_path=get_value("anchor_table_path"),
            environment=env_name,
        )

    @staticmethod
    def _as_int(raw: Optional[str], default: int) -> int:
        if raw is None or str(raw).strip() == "":
            return default
        try:
            value = int(str(raw).strip())
        except ValueError:
            return default
        return value if value > 0 else default

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal YAML/INI-style config without external dependencies."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config

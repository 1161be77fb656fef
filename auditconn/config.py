# auditconn/config.py

from pathlib import Path
import yaml

# auditconn/config.py -> auditconn/ -> .. -> корень проекта
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "auditconn.yaml"

DEFAULTS = {
    "resolve_hostnames": True,
    "time_format": None,
    "log_level": "WARNING",
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    pass


def load_settings(path=None):
    """
    Читает auditconn.yaml (или файл из --config).
    Возвращает dict с ключами из DEFAULTS; лишние ключи игнорируются.
    Если файла нет, просто настройки по умолчанию.
    """
    cfg_path = Path(path) if path else DEFAULT_CONFIG_PATH
    settings = dict(DEFAULTS)

    if not cfg_path.exists():
        return settings

    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {cfg_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{cfg_path}: top level must be a mapping")

    for key in DEFAULTS:
        if key in data:
            settings[key] = data[key]

    # "false" в кавычках это строка, а не bool
    if not isinstance(settings["resolve_hostnames"], bool):
        raise ConfigError(f"{cfg_path}: resolve_hostnames must be true or false")
    if settings["time_format"] is not None and not isinstance(settings["time_format"], str):
        raise ConfigError(f"{cfg_path}: time_format must be a string or null")

    settings["log_level"] = str(settings["log_level"]).upper()
    if settings["log_level"] not in LOG_LEVELS:
        raise ConfigError(f"{cfg_path}: unknown log_level {settings['log_level']!r}")
    return settings

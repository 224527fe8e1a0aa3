"""
Downloader configuration
Built once at startup from defaults, config.json, the environment and CLI flags
(later sources win)
"""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

from downloader import BrowserType

CONFIG_SECTION = 'downloader'

# Environment variable -> config key
ENV_VARS = {
    'CRXDL_OUTPUT_DIR': 'output_dir',
    'CRXDL_BROWSER': 'browser',
    'CRXDL_TIMEOUT': 'timeout',
    'CRXDL_DELAY': 'delay',
}


class ConfigError(Exception):
    """Invalid configuration value or unreadable config file"""


class DownloaderConfig:
    """Settings for one batch run"""

    def __init__(self, output_dir='.', extension_ids=None, browser=BrowserType.CHROME,
                 timeout=30.0, delay=0.0, keep_crx=True, show_progress=True):
        self.output_dir = Path(output_dir)
        self.extension_ids = list(extension_ids or [])
        self.browser = browser
        self.timeout = timeout
        self.delay = delay
        self.keep_crx = keep_crx
        self.show_progress = show_progress

    def __repr__(self):
        return (
            f"DownloaderConfig(output_dir={str(self.output_dir)!r}, "
            f"extension_ids={self.extension_ids!r}, browser={self.browser.value!r}, "
            f"timeout={self.timeout}, delay={self.delay}, keep_crx={self.keep_crx}, "
            f"show_progress={self.show_progress})"
        )


def _parse_browser(value):
    if isinstance(value, BrowserType):
        return value
    try:
        return BrowserType(str(value).strip().lower())
    except ValueError:
        choices = ', '.join(b.value for b in BrowserType)
        raise ConfigError(f"unknown browser {value!r} (choose from: {choices})") from None


def _parse_seconds(name, value, allow_zero):
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if seconds < 0 or (seconds == 0 and not allow_zero):
        raise ConfigError(f"{name} must be {'>= 0' if allow_zero else '> 0'}, got {value!r}")
    return seconds


def _parse_flag(name, value):
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ('1', 'true', 'yes', 'on'):
        return True
    if text in ('0', 'false', 'no', 'off'):
        return False
    raise ConfigError(f"{name} must be true or false, got {value!r}")


def _parse_extension_ids(value):
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"extension_ids must be a string or a list of strings, got {value!r}")
    return list(value)


def load_config_file(config_path):
    """Read the downloader section of a JSON config file, {} if the file is absent"""
    config_path = Path(config_path)

    if not config_path.exists():
        return {}

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read {config_path}: {e}") from e

    section = config.get(CONFIG_SECTION, {}) if isinstance(config, dict) else None
    if not isinstance(section, dict):
        raise ConfigError(f"{config_path}: '{CONFIG_SECTION}' must be an object")

    return section


def load_config(args=None, config_path='config.json', environ=None):
    """
    Build the configuration for a run

    Args:
        args (argparse.Namespace): Parsed CLI flags; None attributes are unset
        config_path (Path or str): JSON file with a "downloader" section
        environ (dict): Environment to read (default: os.environ after .env is loaded)

    Returns:
        DownloaderConfig: Validated settings

    Raises:
        ConfigError: On any invalid value
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    settings = {}
    settings.update(load_config_file(config_path))

    for var, key in ENV_VARS.items():
        if environ.get(var):
            settings[key] = environ[var]

    if args is not None:
        overrides = {
            'output_dir': getattr(args, 'download_location', None),
            'extension_ids': getattr(args, 'extension_id', None),
            'browser': getattr(args, 'browser', None),
            'timeout': getattr(args, 'timeout', None),
            'delay': getattr(args, 'delay', None),
            'keep_crx': getattr(args, 'keep_crx', None),
            'show_progress': getattr(args, 'show_progress', None),
        }
        settings.update({k: v for k, v in overrides.items() if v is not None})

    return DownloaderConfig(
        output_dir=settings.get('output_dir', '.'),
        extension_ids=_parse_extension_ids(settings.get('extension_ids')),
        browser=_parse_browser(settings.get('browser', BrowserType.CHROME)),
        timeout=_parse_seconds('timeout', settings.get('timeout', 30), allow_zero=False),
        delay=_parse_seconds('delay', settings.get('delay', 0), allow_zero=True),
        keep_crx=_parse_flag('keep_crx', settings.get('keep_crx', True)),
        show_progress=_parse_flag('show_progress', settings.get('show_progress', True)),
    )

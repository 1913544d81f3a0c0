"""
Server configuration: defaults, optional config.yml, environment, CLI flags.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

PACKAGE_DIR = Path(__file__).parent
DEFAULT_STATIC_DIR = PACKAGE_DIR / 'static'

# Environment variable -> ServerConfig field
ENV_VARS = {
    'HOST': 'host',
    'PORT': 'port',
    'SHUTDOWN_TIMEOUT': 'shutdown_timeout_ms',
    'APP_ENV': 'environment',
    'LOG_DIR': 'log_dir',
    'SERVE_STATIC': 'serve_static',
    'STATIC_DIR': 'static_dir',
    'LOG_LEVEL': 'log_level',
    'JSON_LOGS': 'json_logs',
    'FILE_LOGGING': 'file_logging',
}

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class ConfigError(Exception):
    """Configuration validation error"""
    pass


class ServerConfig(BaseModel):
    host: str = '0.0.0.0'
    port: int = Field(default=3000, ge=1, le=65535)
    shutdown_timeout_ms: int = Field(default=5000, ge=0)
    environment: str = 'development'
    log_dir: Path = Path('logs') / 'winston'
    serve_static: bool = True
    static_dir: Path = DEFAULT_STATIC_DIR
    log_level: str = 'INFO'
    json_logs: bool = True
    file_logging: bool = True

    @field_validator('log_level')
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in VALID_LOG_LEVELS:
            raise ValueError(f'must be one of {VALID_LOG_LEVELS}')
        return value

    @property
    def shutdown_timeout(self) -> float:
        """Forced-exit delay in seconds"""
        return self.shutdown_timeout_ms / 1000.0

    def summary(self) -> dict:
        """Settings worth logging at startup"""
        return {
            'APP_ENV': self.environment,
            'PORT': self.port,
            'HOST': self.host,
            'SHUTDOWN_TIMEOUT': self.shutdown_timeout_ms,
            'LOG_DIR': str(self.log_dir),
        }


def parse_config_file(config_path) -> dict:
    """
    Parse the ``server:`` section of a config.yml file

    Args:
        config_path: Path to config.yml file

    Returns:
        dict: Raw settings keyed by ServerConfig field name

    Raises:
        ConfigError: If the file is missing or not valid YAML
    """
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    section = data.get('server', {})
    if not isinstance(section, dict):
        raise ConfigError("'server' section must be a mapping")

    unknown = set(section) - set(ServerConfig.model_fields)
    if unknown:
        raise ConfigError(f"Unknown server settings: {sorted(unknown)}")
    return section


def settings_from_env(environ: Optional[Mapping[str, str]] = None) -> dict:
    """Collect raw settings from environment variables"""
    environ = os.environ if environ is None else environ
    settings = {}
    for var, field in ENV_VARS.items():
        value = environ.get(var)
        if value not in (None, ''):
            settings[field] = value

    # NODE_ENV is still honoured by container images built for the old server
    if 'environment' not in settings and environ.get('NODE_ENV'):
        settings['environment'] = environ['NODE_ENV']
    return settings


def load_config(config_path=None, environ: Optional[Mapping[str, str]] = None, **overrides) -> ServerConfig:
    """
    Build the effective configuration.

    Precedence, lowest first: defaults, config file, environment, overrides.
    Overrides whose value is None are ignored so CLI options can be passed
    straight through.

    Raises:
        ConfigError: If any source holds an invalid value
    """
    settings = {}
    if config_path:
        settings.update(parse_config_file(config_path))
    settings.update(settings_from_env(environ))
    settings.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ServerConfig(**settings)
    except ValidationError as e:
        problems = '; '.join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}")

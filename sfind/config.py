"""
Configuration Module

Handles the sfind configuration file and Salesforce credentials.

The configuration file is YAML and declares additional fields to include in
the output and additional fields to match when searching:

    fields:
      - Account.Foo__c
      - Contact.Birthdate
    search:
      - Account.Name
      - Opportunity.LeadSource
"""
import logging
import os
import shlex
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import yaml
from dotenv import load_dotenv

from .entities import (
    DEFAULT_FIELDS, DEFAULT_SEARCH, EntityKind, FieldSpec, merge_fields,
)
from .errors import ConfigError


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

KNOWN_KEYS = ('fields', 'search', 'timeout', 'substring_search')

TEMPLATE = """# sfind configuration
#
# Additional fields to include in the output, as Entity.Field:
# fields:
#   - Account.Foo__c
#   - Contact.Birthdate
#
# Additional string fields matched when searching by email:
# search:
#   - Contact.Secondary_Email__c
#   - Account.Name
#
# Seconds to wait for each Salesforce call:
# timeout: 30
#
# Match search fields with LIKE '%value%' instead of equality:
# substring_search: false
"""


@dataclass(frozen=True)
class Config:
    """
    Merged sfind configuration.

    Attributes:
        fields: Fields fetched for each entity kind, defaults first
        search: Fields matched against email queries, per entity kind
        timeout: Seconds to wait for each Salesforce call
        substring_search: Use substring matching for search fields
    """

    fields: Dict[EntityKind, Tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_FIELDS))
    search: Dict[EntityKind, Tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_SEARCH))
    timeout: float = DEFAULT_TIMEOUT
    substring_search: bool = False

    @classmethod
    def from_specs(cls, fields: List[FieldSpec] = (), search: List[FieldSpec] = (),
                   timeout: float = DEFAULT_TIMEOUT, substring_search: bool = False) -> 'Config':
        """Merge user field specs with the built-in defaults."""
        return cls(
            fields=_merge(DEFAULT_FIELDS, fields),
            search=_merge(DEFAULT_SEARCH, search),
            timeout=timeout,
            substring_search=substring_search,
        )


def _merge(defaults: Dict[EntityKind, Tuple[str, ...]],
           specs: List[FieldSpec]) -> Dict[EntityKind, Tuple[str, ...]]:
    merged = {}
    for kind in EntityKind:
        extra = [spec.field for spec in specs if spec.kind is kind]
        merged[kind] = merge_fields(defaults.get(kind, ()), extra)
    return merged


def config_path(explicit: Optional[str] = None) -> Path:
    """
    Return the path to the configuration file.

    Both the file and the directory it lives in might not exist.
    """
    if explicit:
        return Path(explicit).expanduser()
    if os.getenv('SFIND_CONFIG'):
        return Path(os.environ['SFIND_CONFIG']).expanduser()
    base = os.getenv('XDG_CONFIG_HOME') or Path.home() / '.config'
    return Path(base) / 'sfind' / 'config.yaml'


def parse_config(text: str) -> Config:
    """
    Parse and validate the YAML configuration.

    Raises:
        ConfigError: if the content is not a valid configuration
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse config: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("config must be a mapping")

    unknown = sorted(str(k) for k in data if k not in KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}")

    fields = _parse_specs(data, 'fields')
    search = _parse_specs(data, 'search')

    timeout = data.get('timeout', DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(f"timeout must be a positive number, got {timeout!r}")

    substring_search = data.get('substring_search', False)
    if not isinstance(substring_search, bool):
        raise ConfigError(f"substring_search must be true or false, got {substring_search!r}")

    return Config.from_specs(fields, search, float(timeout), substring_search)


def _parse_specs(data: dict, key: str) -> List[FieldSpec]:
    values = data.get(key)
    if values is None:
        return []
    if not isinstance(values, list):
        raise ConfigError(f"{key} must be a list of Entity.Field strings")
    specs = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"invalid {key} entry {value!r}")
        try:
            specs.append(FieldSpec.parse(value))
        except ValueError as e:
            raise ConfigError(f"invalid {key} entry: {e}")
    return specs


def load_config(path: Optional[Path] = None) -> Config:
    """
    Load the configuration file, or the defaults if it does not exist.

    Raises:
        ConfigError: if the file cannot be read or is invalid
    """
    path = path or config_path()
    if not path.exists():
        logger.debug("no config file at %s, using defaults", path)
        return Config()
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}")
    logger.debug("loaded config from %s", path)
    return parse_config(text)


def _launch_editor(path: str) -> int:
    editor = os.getenv('VISUAL') or os.getenv('EDITOR') or 'vi'
    return subprocess.call(shlex.split(editor) + [path])


def edit_config(path: Optional[Path] = None,
                launch: Callable[[str], int] = _launch_editor) -> Path:
    """
    Open the configuration file with the default editor.

    The edited content is validated before being saved, so an invalid edit
    leaves the existing file untouched.

    Args:
        path: Configuration file path (default: config_path())
        launch: Function opening an editor on a file, returning its exit code

    Returns:
        Path of the saved configuration

    Raises:
        ConfigError: if the file cannot be read, the editor fails or the new
            content is invalid
    """
    path = path or config_path()
    contents = TEMPLATE
    if path.exists():
        try:
            contents = path.read_text()
        except OSError as e:
            raise ConfigError(f"cannot read config {path}: {e}")

    fd, tmp = tempfile.mkstemp(suffix='.yaml', prefix='sfind-')
    try:
        with os.fdopen(fd, 'w') as f:
            f.write(contents)
        try:
            code = launch(tmp)
        except OSError as e:
            raise ConfigError(f"cannot open default editor: {e}")
        if code != 0:
            raise ConfigError(f"editor exited with status {code}")
        with open(tmp) as f:
            contents = f.read()
    finally:
        os.unlink(tmp)

    parse_config(contents)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(contents)
    except OSError as e:
        raise ConfigError(f"cannot write config: {e}")
    return path


def load_credentials() -> Dict[str, str]:
    """
    Return Salesforce credentials from the environment and .env file.

    A session id with its instance URL takes precedence over username,
    password and security token.

    Raises:
        ConfigError: if no complete set of credentials is available
    """
    load_dotenv()

    session_id = os.getenv('SF_SESSION_ID')
    instance_url = os.getenv('SF_INSTANCE_URL')
    if session_id and instance_url:
        return {'session_id': session_id, 'instance_url': instance_url}

    required = {
        'username': 'SF_USERNAME',
        'password': 'SF_PASSWORD',
        'security_token': 'SF_SECURITY_TOKEN',
    }
    missing = [var for var in required.values() if not os.getenv(var)]
    if missing:
        raise ConfigError(
            f"missing Salesforce credentials: {', '.join(missing)}. "
            "Set them in the environment or in a .env file "
            "(or use SF_SESSION_ID and SF_INSTANCE_URL)"
        )
    credentials = {key: os.environ[var] for key, var in required.items()}
    credentials['domain'] = os.getenv('SF_DOMAIN', 'login')
    return credentials

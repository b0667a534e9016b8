#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Oct 13 09:12:44 2026

@author: mike
"""
import os
import abc
import pathlib
import logging
import configparser
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError, field_validator

try:
    import tomllib as toml
except ImportError:
    import tomli as toml

from .errors import InvalidCredentials

logger = logging.getLogger(__name__)

#######################################################
### Parameters

env_access_key_id = 'AWS_ACCESS_KEY_ID'
env_secret_access_key = 'AWS_SECRET_ACCESS_KEY'
env_session_tokens = ('AWS_SESSION_TOKEN', 'AWS_SECURITY_TOKEN')
env_regions = ('AWS_REGION', 'AWS_DEFAULT_REGION')
env_profile = 'AWS_PROFILE'
env_credentials_file = 'AWS_SHARED_CREDENTIALS_FILE'
env_config_file = 'AWS_CONFIG_FILE'

default_credentials_file = '~/.aws/credentials'
default_config_file = '~/.aws/config'

#######################################################
### Credentials


def _describe_errors(err: ValidationError) -> str:
    """
    Summarises a pydantic ValidationError without echoing the input values.
    """
    msgs = []
    for error in err.errors():
        loc = '.'.join(str(l) for l in error['loc'])
        msgs.append(f'{loc}: {error["msg"]}')

    return '; '.join(msgs)


class Credentials(BaseModel):
    """
    The identity a request is signed with. The secret is a SecretStr, so it is masked in repr, str, and dumps.
    """
    model_config = ConfigDict(frozen=True)

    access_key_id: str
    secret_access_key: SecretStr
    session_token: Optional[str] = None
    region: str
    service: str

    def __init__(self, **data):
        try:
            super().__init__(**data)
        except ValidationError as err:
            # from None so the offending values never travel with the traceback
            raise InvalidCredentials(_describe_errors(err)) from None

    @field_validator('access_key_id', 'region', 'service')
    @classmethod
    def _check_scope_part(cls, value: str) -> str:
        if not value:
            raise ValueError('must not be empty')
        if any(c.isspace() for c in value):
            raise ValueError('must not contain whitespace')
        if '/' in value:
            raise ValueError("must not contain '/'")
        return value

    @field_validator('secret_access_key')
    @classmethod
    def _check_secret(cls, value: SecretStr) -> SecretStr:
        secret = value.get_secret_value()
        if not secret:
            raise ValueError('must not be empty')
        if secret != secret.strip():
            raise ValueError('must not start or end with whitespace')
        return value

    @field_validator('session_token')
    @classmethod
    def _check_token(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        if any(c.isspace() for c in value):
            raise ValueError('must not contain whitespace')
        return value

    def for_service(self, service: str):
        """
        The same identity bound to another service.
        """
        return Credentials(
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
            session_token=self.session_token,
            region=self.region,
            service=service,
            )


#######################################################
### Providers


class CredentialsProvider(abc.ABC):
    """
    Anything that can supply credentials. load returns None when the provider's source simply isn't there.
    """
    @abc.abstractmethod
    def load(self, service: str) -> Optional[Credentials]:
        ...


class StaticProvider(CredentialsProvider):
    """
    Credentials given explicitly in code.
    """
    def __init__(self, access_key_id: str, secret_access_key: str, region: str, session_token: str=None):
        self._access_key_id = access_key_id
        if isinstance(secret_access_key, SecretStr):
            self._secret_access_key = secret_access_key
        else:
            self._secret_access_key = SecretStr(secret_access_key)
        self._region = region
        self._session_token = session_token

    def load(self, service: str) -> Credentials:
        return Credentials(
            access_key_id=self._access_key_id,
            secret_access_key=self._secret_access_key,
            session_token=self._session_token,
            region=self._region,
            service=service,
            )


class EnvironmentProvider(CredentialsProvider):
    """
    Reads the standard AWS_* environment variables.
    """
    def __init__(self, environ: dict=None, region: str=None):
        """
        Parameters
        ----------
        environ : dict or None
            The environment to read. None reads os.environ when load is called.
        region : str or None
            The region to use when neither AWS_REGION nor AWS_DEFAULT_REGION is set.
        """
        self._environ = environ
        self._region = region

    def load(self, service: str) -> Optional[Credentials]:
        env = os.environ if self._environ is None else self._environ

        access_key_id = env.get(env_access_key_id)
        secret_access_key = env.get(env_secret_access_key)
        if not access_key_id and not secret_access_key:
            return None
        if not access_key_id or not secret_access_key:
            raise InvalidCredentials(f'Both {env_access_key_id} and {env_secret_access_key} must be set.')

        region = _first(env, env_regions) or self._region
        if not region:
            raise InvalidCredentials(f'Credentials were found in the environment, but no region. Set {env_regions[0]}.')

        logger.debug('Found credentials in environment variables.')

        return Credentials(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=_first(env, env_session_tokens),
            region=region,
            service=service,
            )


class SharedCredentialsProvider(CredentialsProvider):
    """
    Reads a profile from the shared AWS credentials and config files (INI format).
    """
    def __init__(self, profile: str=None, credentials_file: str=None, config_file: str=None, environ: dict=None, region: str=None):
        """
        Parameters
        ----------
        profile : str or None
            The profile name. None uses AWS_PROFILE, then "default".
        credentials_file : str or None
            Path to the credentials file. None uses AWS_SHARED_CREDENTIALS_FILE, then ~/.aws/credentials.
        config_file : str or None
            Path to the config file. None uses AWS_CONFIG_FILE, then ~/.aws/config.
        environ : dict or None
            The environment used for the lookups above. None reads os.environ when load is called.
        region : str or None
            The region to use when the profile doesn't set one.
        """
        self._profile = profile
        self._credentials_file = credentials_file
        self._config_file = config_file
        self._environ = environ
        self._region = region

    def load(self, service: str) -> Optional[Credentials]:
        env = os.environ if self._environ is None else self._environ

        profile = self._profile or env.get(env_profile) or 'default'
        credentials_path = pathlib.Path(self._credentials_file or env.get(env_credentials_file) or default_credentials_file).expanduser()
        config_path = pathlib.Path(self._config_file or env.get(env_config_file) or default_config_file).expanduser()

        creds_section = _read_section(credentials_path, profile)
        if profile == 'default':
            config_section = _read_section(config_path, 'default')
        else:
            config_section = _read_section(config_path, f'profile {profile}')

        source = None
        for section, path in ((creds_section, credentials_path), (config_section, config_path)):
            if section.get('aws_access_key_id') or section.get('aws_secret_access_key'):
                source = (section, path)
                break

        if source is None:
            return None

        section, path = source
        if not section.get('aws_access_key_id') or not section.get('aws_secret_access_key'):
            raise InvalidCredentials(f'Profile {profile!r} in {path} needs both aws_access_key_id and aws_secret_access_key.')

        region = config_section.get('region') or creds_section.get('region') or _first(env, env_regions) or self._region
        if not region:
            raise InvalidCredentials(f'Profile {profile!r} does not set a region.')

        logger.debug('Found credentials for profile %s in %s.', profile, path)

        return Credentials(
            access_key_id=section['aws_access_key_id'],
            secret_access_key=section['aws_secret_access_key'],
            session_token=section.get('aws_session_token') or section.get('aws_security_token'),
            region=region,
            service=service,
            )


class TomlFileProvider(CredentialsProvider):
    """
    Reads credentials from a table in a toml file, e.g.

        [connection_config]
        aws_access_key_id = "..."
        aws_secret_access_key = "..."
        region = "us-east-1"
    """
    def __init__(self, path, section: str='connection_config', region: str=None):
        self._path = pathlib.Path(path).expanduser()
        self._section = section
        self._region = region

    def load(self, service: str) -> Optional[Credentials]:
        if not self._path.is_file():
            return None

        try:
            with open(self._path, 'rb') as f:
                config = toml.load(f)
        except toml.TOMLDecodeError as err:
            raise InvalidCredentials(f'{self._path} is not valid toml: {err}') from None

        table = config.get(self._section)
        if not isinstance(table, dict):
            return None

        region = table.get('region') or self._region
        if not region:
            raise InvalidCredentials(f'The {self._section} table in {self._path} does not set a region.')

        logger.debug('Found credentials in %s.', self._path)

        return Credentials(
            access_key_id=table.get('aws_access_key_id', ''),
            secret_access_key=table.get('aws_secret_access_key', ''),
            session_token=table.get('aws_session_token'),
            region=region,
            service=service,
            )


class ChainProvider(CredentialsProvider):
    """
    Asks each provider in turn; the first one with credentials wins.
    """
    def __init__(self, providers: List[CredentialsProvider]):
        self.providers = list(providers)

    def load(self, service: str) -> Optional[Credentials]:
        for provider in self.providers:
            credentials = provider.load(service)
            if credentials is not None:
                return credentials

        return None


#######################################################
### Functions


def _first(env, names):
    for name in names:
        value = env.get(name)
        if value:
            return value
    return None


def _read_section(path: pathlib.Path, section: str) -> dict:
    if not path.is_file():
        return {}

    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read(path, encoding='utf-8')
    except configparser.Error as err:
        raise InvalidCredentials(f'Could not parse {path}: {err}') from None

    if not parser.has_section(section):
        return {}

    return {k: v.strip() for k, v in parser.items(section)}


def default_chain(region: str=None) -> ChainProvider:
    """
    Environment variables, then the shared credentials/config files.
    """
    return ChainProvider([EnvironmentProvider(region=region), SharedCredentialsProvider(region=region)])


def resolve_credentials(service: str, provider: CredentialsProvider=None) -> Credentials:
    """
    Loads credentials for a service from a provider (the default chain if None).

    Parameters
    ----------
    service : str
        The service the credentials will sign for (e.g. s3, execute-api, iotdevicegateway).
    provider : CredentialsProvider or None
        Where to look.

    Returns
    -------
    Credentials
    """
    if provider is None:
        provider = default_chain()

    credentials = provider.load(service)
    if credentials is None:
        raise InvalidCredentials('No credentials could be found.')

    return credentials

"""Provider credential resolution"""

from .resolvers import (
    CredentialResolver,
    CredentialStoreError,
    StaticCredentialResolver,
    EnvironmentCredentialResolver,
    RemoteCredentialResolver,
    CachingCredentialResolver,
    ChainedCredentialResolver,
    build_default_resolver,
)
from .key_format import validate_api_key_format, get_api_key_validation_error

__all__ = [
    "CredentialResolver",
    "CredentialStoreError",
    "StaticCredentialResolver",
    "EnvironmentCredentialResolver",
    "RemoteCredentialResolver",
    "CachingCredentialResolver",
    "ChainedCredentialResolver",
    "build_default_resolver",
    "validate_api_key_format",
    "get_api_key_validation_error",
]

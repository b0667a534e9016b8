from sigv4func.errors import SigningError, InvalidRequest, UnsupportedEncoding, InvalidCredentials, ClockError
from sigv4func.request import Method, RequestDescriptor, SignedRequest
from sigv4func.canonical import CanonicalRequest, canonicalize
from sigv4func.credentials import Credentials, CredentialsProvider, StaticProvider, EnvironmentProvider, SharedCredentialsProvider, TomlFileProvider, ChainProvider, default_chain, resolve_credentials
from sigv4func.signer import SigningScope, SigningKey, OutputTarget, SigV4Auth, derive_signing_key, string_to_sign, sign, build_authorization
from sigv4func.iot import mqtt_over_websockets_url, mqtt_over_websockets_request, mqtt_over_websockets_headers
from sigv4func.session import SignedSession

__version__ = '0.1.0'

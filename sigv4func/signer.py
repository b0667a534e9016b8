#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Oct 13 14:55:10 2026

@author: mike
"""
import enum
import urllib.parse
from typing import NamedTuple, Union, Optional

from pydantic import SecretStr

from . import utils
from .canonical import canonicalize, canonical_query, select_signed_headers, token_header, date_header, content_sha256_header
from .credentials import Credentials
from .request import RequestDescriptor, SignedRequest
from .errors import SigningError, InvalidRequest, InvalidCredentials, ClockError

#######################################################
### Parameters

max_expires = 604800

query_algorithm = 'X-Amz-Algorithm'
query_credential = 'X-Amz-Credential'
query_date = 'X-Amz-Date'
query_expires = 'X-Amz-Expires'
query_signed_headers = 'X-Amz-SignedHeaders'
query_token = 'X-Amz-Security-Token'
query_signature = 'X-Amz-Signature'

presign_params = (query_algorithm, query_credential, query_date, query_expires, query_signed_headers, query_token, query_signature)


class OutputTarget(enum.Enum):
    """
    Where the signature ends up: an Authorization header, or the query string of a presigned url.
    """
    HEADERS = 'headers'
    QUERY = 'query'


#######################################################
### Scope and key


class SigningScope(NamedTuple):
    date: str
    region: str
    service: str
    terminator: str = utils.terminator

    @classmethod
    def from_timestamp(cls, timestamp, region: str, service: str):
        t = utils.normalize_timestamp(timestamp)
        return cls(utils.date_stamp(t), region, service)

    def __str__(self):
        return '/'.join(self)


class SigningKey:
    """
    The derived signing key. The bytes live in a bytearray that is zeroed by clear() or on leaving a with block.
    """
    def __init__(self, key: bytes):
        self._key = bytearray(key)
        self._cleared = False

    def _check(self):
        if self._cleared:
            raise SigningError('The signing key has been cleared.')

    def digest(self, msg: Union[str, bytes]) -> bytes:
        self._check()
        return utils.hmac_sha256(self._key, msg)

    def hexdigest(self, msg: Union[str, bytes]) -> str:
        return self.digest(msg).hex()

    def clear(self):
        for i in range(len(self._key)):
            self._key[i] = 0
        self._cleared = True

    def __bytes__(self):
        self._check()
        return bytes(self._key)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.clear()

    def __repr__(self):
        return 'SigningKey(<redacted>)'


def derive_signing_key(secret_key: Union[str, SecretStr], scope: SigningScope) -> SigningKey:
    """
    Runs the four-step HMAC-SHA256 chain (date, region, service, terminator) seeded with "AWS4" + secret key.

    Parameters
    ----------
    secret_key : str or SecretStr
        The secret access key.
    scope : SigningScope
        The date, region, and service the key is scoped to.

    Returns
    -------
    SigningKey
    """
    if isinstance(secret_key, SecretStr):
        secret_key = secret_key.get_secret_value()
    if not isinstance(secret_key, str) or not secret_key:
        raise InvalidCredentials('The secret key must be a non-empty str.')

    k_secret = bytearray(utils.to_bytes(utils.key_prefix + secret_key, 'secret key'))
    try:
        k_date = utils.hmac_sha256(k_secret, scope.date)
    finally:
        for i in range(len(k_secret)):
            k_secret[i] = 0

    k_region = utils.hmac_sha256(k_date, scope.region)
    k_service = utils.hmac_sha256(k_region, scope.service)
    k_signing = utils.hmac_sha256(k_service, scope.terminator)

    return SigningKey(k_signing)


#######################################################
### Signature


def string_to_sign(canonical_request_hash: str, scope: SigningScope, timestamp) -> str:
    t = utils.normalize_timestamp(timestamp)
    if utils.date_stamp(t) != scope.date:
        raise ClockError(f'The scope date {scope.date} does not match the signing timestamp {utils.amz_date(t)}.')

    return '\n'.join([
        utils.algorithm,
        utils.amz_date(t),
        str(scope),
        canonical_request_hash,
        ])


def sign(canonical_request_hash: str, scope: SigningScope, signing_key: Union[SigningKey, bytes], timestamp) -> str:
    """
    The hex signature of the string-to-sign built from a canonical request hash.
    """
    sts = string_to_sign(canonical_request_hash, scope, timestamp)
    if isinstance(signing_key, SigningKey):
        return signing_key.hexdigest(sts)

    return utils.hmac_sha256(signing_key, sts).hex()


def build_authorization(credentials: Credentials, scope: SigningScope, signed_headers: str, signature: str) -> str:
    return (
        f"{utils.algorithm} Credential={credentials.access_key_id}/{scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
        )


#######################################################
### Main class


class SigV4Auth:
    """
    Signs requests for one identity, region, and service.
    """
    def __init__(self, credentials: Credentials, content_sha256: bool=False):
        """
        Parameters
        ----------
        credentials : Credentials
            The identity, region, and service to sign for.
        content_sha256 : bool
            Add (and sign) the x-amz-content-sha256 header. S3 requires it.
        """
        if not isinstance(credentials, Credentials):
            raise InvalidCredentials(f'Expected Credentials, not {type(credentials).__name__}.')
        self.credentials = credentials
        self.content_sha256 = content_sha256

    @property
    def region(self):
        return self.credentials.region

    @property
    def service(self):
        return self.credentials.service

    def _signature(self, canonical, scope, t):
        sts = string_to_sign(canonical.hexdigest(), scope, t)
        with derive_signing_key(self.credentials.secret_access_key, scope) as key:
            signature = key.hexdigest(sts)

        return sts, signature

    def sign_request(self, request: RequestDescriptor, timestamp, target: OutputTarget=OutputTarget.HEADERS, signed_headers=None, **presign_kwargs) -> SignedRequest:
        """
        Signs a request descriptor. The descriptor itself is left as it was.

        Parameters
        ----------
        request : RequestDescriptor
            The request to sign.
        timestamp : datetime.datetime or str
            The signing time (timezone-aware, or YYYYMMDDTHHMMSSZ).
        target : OutputTarget
            HEADERS adds an Authorization header; QUERY returns a presigned url (see presign).
        signed_headers : iterable of str or None
            The headers to sign. None signs all of them.
        presign_kwargs
            Passed to presign when target is QUERY.

        Returns
        -------
        SignedRequest
        """
        if target is OutputTarget.QUERY:
            return self.presign(request, timestamp, signed_headers=signed_headers, **presign_kwargs)
        if presign_kwargs:
            raise TypeError(f'Unexpected arguments for header signing: {", ".join(presign_kwargs)}')

        t = utils.normalize_timestamp(timestamp)
        scope = SigningScope.from_timestamp(t, self.region, self.service)

        new = request.copy()
        headers = new.headers
        headers.discard('authorization')
        if 'host' not in headers:
            headers['host'] = new.host
        headers[date_header] = utils.amz_date(t)
        if self.credentials.session_token:
            headers[token_header] = self.credentials.session_token
        if self.content_sha256 and content_sha256_header not in headers:
            headers[content_sha256_header] = utils.hash_body(new.body)

        canonical, _ = canonicalize(new, signed_headers, t)
        sts, signature = self._signature(canonical, scope, t)

        headers['Authorization'] = build_authorization(self.credentials, scope, canonical.signed_headers, signature)

        return SignedRequest(new.method, new.url, headers, new.body, canonical, sts, signature)

    def presign(self, request: RequestDescriptor, timestamp, expires: Optional[int]=None, payload_hash: str=utils.unsigned_payload, signed_headers=None, sign_session_token: bool=True) -> SignedRequest:
        """
        Signs a request through its query string, for clients that can't set headers (browsers, websocket handshakes).

        Parameters
        ----------
        request : RequestDescriptor
            The request to sign. Its query must not already carry X-Amz-* signing parameters.
        timestamp : datetime.datetime or str
            The signing time.
        expires : int or None
            Seconds the url stays valid (1 to 604800). None leaves out X-Amz-Expires.
        payload_hash : str
            The payload hash put in the canonical request. The body isn't known at presigning time, hence UNSIGNED-PAYLOAD by default.
        signed_headers : iterable of str or None
            The headers to sign. None signs only host.
        sign_session_token : bool
            Put X-Amz-Security-Token in the query before signing. AWS IoT wants it appended after the signature instead.

        Returns
        -------
        SignedRequest
        """
        t = utils.normalize_timestamp(timestamp)
        scope = SigningScope.from_timestamp(t, self.region, self.service)

        existing = {name.decode('utf-8', 'replace') for name, _ in request.query_pairs()}
        clash = existing.intersection(presign_params)
        if clash:
            raise InvalidRequest(f'The url already has {", ".join(sorted(clash))}.')

        new = request.copy()
        headers = new.headers
        headers.discard('authorization')
        if 'host' not in headers:
            headers['host'] = new.host

        if signed_headers is None:
            signed_headers = ['host']
        signed = select_signed_headers(headers, signed_headers, ['host'])

        params = [
            (query_algorithm, utils.algorithm),
            (query_credential, f'{self.credentials.access_key_id}/{scope}'),
            (query_date, utils.amz_date(t)),
            ]
        if expires is not None:
            if isinstance(expires, bool) or not isinstance(expires, int) or not (0 < expires <= max_expires):
                raise InvalidRequest(f'expires must be an int between 1 and {max_expires}.')
            params.append((query_expires, str(expires)))
        token = self.credentials.session_token
        if token and sign_session_token:
            params.append((query_token, token))
        params.append((query_signed_headers, ';'.join(signed)))

        new = new.copy(url=utils.append_query(new.url, params))
        canonical, _ = canonicalize(new, signed, t, payload_hash=payload_hash, sign_date_header=False)
        sts, signature = self._signature(canonical, scope, t)

        final_params = [(query_signature, signature)]
        if token and not sign_session_token:
            final_params.append((query_token, token))
        pairs = new.query_pairs() + [(k.encode('utf-8'), v.encode('utf-8')) for k, v in final_params]

        scheme, netloc, path, _, fragment = urllib.parse.urlsplit(new.url)
        url = urllib.parse.urlunsplit((scheme, netloc, path, canonical_query(pairs), fragment))

        return SignedRequest(new.method, url, new.headers, new.body, canonical, sts, signature)

    def add_auth(self, request_method: str, url: str, headers: dict, body=None, timestamp=None) -> SignedRequest:
        """
        Signs a request and writes the resulting headers back into the headers dict. Nothing is written if signing fails.

        Parameters
        ----------
        request_method : str
            The http method.
        url : str
            The absolute url including the query string.
        headers : dict
            The headers to sign. Updated in place.
        body : bytes, str, file-like, or None
            The request body.
        timestamp : datetime.datetime, str, or None
            The signing time. None uses the current time.

        Returns
        -------
        SignedRequest
        """
        if timestamp is None:
            timestamp = utils.utc_now()

        signed = self.sign_request(RequestDescriptor(request_method, url, headers, body), timestamp)

        # repeated names are joined the way the canonical headers joined them
        headers.clear()
        for name in signed.headers:
            values = signed.headers.getlist(name)
            if len(values) > 1:
                headers[name] = ','.join(utils.normalize_header_value(v) for v in values)
            else:
                headers[name] = values[0]

        return signed

    def sign_now(self, request: RequestDescriptor, **kwargs) -> SignedRequest:
        return self.sign_request(request, utils.utc_now(), **kwargs)

    def presign_now(self, request: RequestDescriptor, **kwargs) -> SignedRequest:
        return self.presign(request, utils.utc_now(), **kwargs)

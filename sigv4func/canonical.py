#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Oct 12 13:40:29 2026

@author: mike
"""
from typing import NamedTuple, Optional, Iterable, List, Tuple

from urllib3 import HTTPHeaderDict

from . import utils
from .request import RequestDescriptor
from .errors import InvalidRequest

#######################################################
### Parameters

excluded_headers = ('authorization',)

token_header = 'x-amz-security-token'
date_header = 'x-amz-date'
content_sha256_header = 'x-amz-content-sha256'

#######################################################
### Canonical request


class CanonicalRequest(NamedTuple):
    """
    The six canonical components of a request. The headers block already carries a trailing newline per header.
    """
    method: str
    uri: str
    query: str
    headers: str
    signed_headers: str
    payload_hash: str

    @property
    def text(self) -> str:
        return '\n'.join([
            self.method,
            self.uri,
            self.query,
            self.headers,
            self.signed_headers,
            self.payload_hash,
            ])

    def encode(self) -> bytes:
        return self.text.encode('utf-8')

    def hexdigest(self) -> str:
        return utils.sha256_hex(self.encode())

    def __str__(self):
        return self.text


#######################################################
### Components


def canonical_uri(path: str) -> str:
    """
    Each path segment is percent-decoded once and re-encoded with the unreserved set. Slashes between segments stay as they are.
    """
    if not path:
        return '/'

    return '/'.join(utils.uri_encode(utils.uri_decode(segment)) for segment in path.split('/'))


def canonical_query(pairs: Iterable[Tuple[bytes, bytes]]) -> str:
    """
    Encodes every name and value, then sorts by encoded name and encoded value.

    Parameters
    ----------
    pairs : iterable of (bytes or str, bytes or str)
        Decoded query parameters.

    Returns
    -------
    str
    """
    encoded = sorted((utils.uri_encode(k), utils.uri_encode(v)) for k, v in pairs)

    return '&'.join(f'{k}={v}' for k, v in encoded)


def canonical_headers(headers: HTTPHeaderDict, signed: List[str]) -> str:
    """
    Renders the signed headers as name:value lines. Repeated headers are comma-joined in the order they were added.
    """
    lines = []
    for name in signed:
        values = [utils.normalize_header_value(v) for v in headers.getlist(name)]
        lines.append(f'{name}:{",".join(values)}\n')

    return ''.join(lines)


def select_signed_headers(headers: HTTPHeaderDict, signed_header_names=None, required=()) -> List[str]:
    """
    Works out the sorted, lower-cased list of header names to sign.

    Parameters
    ----------
    headers : HTTPHeaderDict
        The headers after host and date synthesis.
    signed_header_names : iterable of str or None
        The names the caller wants signed. None signs every header.
    required : iterable of str
        Names that must be signed when they are present.

    Returns
    -------
    list of str
    """
    present = {name.lower() for name in headers.keys()}

    if signed_header_names is None:
        signed = present.difference(excluded_headers)
    else:
        if isinstance(signed_header_names, str):
            signed_header_names = signed_header_names.split(';')
        signed = {utils.check_header_name(name).lower() for name in signed_header_names}

        excluded = signed.intersection(excluded_headers)
        if excluded:
            raise InvalidRequest(f'{", ".join(sorted(excluded))} cannot be signed.')

        missing = signed.difference(present)
        if missing:
            raise InvalidRequest(f'Signed headers {", ".join(sorted(missing))} are not in the request.')

    unsigned = [name for name in required if name in present and name not in signed]
    if unsigned:
        raise InvalidRequest(f'{", ".join(unsigned)} must be included in the signed headers.')

    return sorted(signed)


def payload_hash_for(request: RequestDescriptor, payload_hash: Optional[str]=None) -> str:
    if payload_hash is not None:
        return payload_hash
    if content_sha256_header in request.headers:
        return request.headers[content_sha256_header].strip()

    return utils.hash_body(request.body)


#######################################################
### Main function


def canonicalize(request: RequestDescriptor, signed_header_names=None, timestamp=None, payload_hash: Optional[str]=None, sign_date_header: bool=True):
    """
    Builds the canonical request for a request descriptor.

    Parameters
    ----------
    request : RequestDescriptor
        The request to canonicalize. It is not modified.
    signed_header_names : iterable of str, str, or None
        The headers to sign (a list or a semicolon-joined string). None signs every header on the request. When given, it must include host, x-amz-date, and x-amz-security-token if the request carries one.
    timestamp : datetime.datetime or str
        The signing time. Used to synthesize the x-amz-date header when the request doesn't have one.
    payload_hash : str or None
        Overrides the payload hash (e.g. UNSIGNED-PAYLOAD). None hashes the body.
    sign_date_header : bool
        Whether the x-amz-date header is part of the signature. Presigned requests carry the date in the query instead.

    Returns
    -------
    CanonicalRequest, str
        The canonical request and the payload hash.
    """
    if not isinstance(request, RequestDescriptor):
        raise InvalidRequest(f'Expected a RequestDescriptor, not {type(request).__name__}.')

    headers = request.headers.copy()
    if 'host' not in headers:
        headers['host'] = request.host

    required = ['host', token_header]
    if sign_date_header:
        required.append(date_header)
        if date_header not in headers:
            headers[date_header] = utils.amz_date(utils.normalize_timestamp(timestamp))

    signed = select_signed_headers(headers, signed_header_names, required)

    content_hash = payload_hash_for(request, payload_hash)

    canonical = CanonicalRequest(
        request.method.value,
        canonical_uri(request.path),
        canonical_query(request.query_pairs()),
        canonical_headers(headers, signed),
        ';'.join(signed),
        content_hash,
        )

    return canonical, content_hash

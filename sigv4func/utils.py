#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Oct 12 10:34:52 2026

@author: mike
"""
import re
import hmac
import hashlib
import datetime
import urllib.parse
from typing import Union

from .errors import InvalidRequest, UnsupportedEncoding, ClockError

#######################################################
### Parameters

algorithm = 'AWS4-HMAC-SHA256'
key_prefix = 'AWS4'
terminator = 'aws4_request'

amz_date_format = '%Y%m%dT%H%M%SZ'
date_stamp_format = '%Y%m%d'

empty_sha256 = hashlib.sha256(b'').hexdigest()
unsigned_payload = 'UNSIGNED-PAYLOAD'

# RFC 3986 unreserved characters; everything else gets %XX
unreserved = '-_.~'

default_ports = {
    'http': 80,
    'https': 443,
    'ws': 80,
    'wss': 443,
    }

header_name_pattern = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
control_chars = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')

#######################################################
### Hashing


def sha256_hex(data: bytes) -> str:
    """
    Lower-case hex SHA-256 digest.
    """
    return hashlib.sha256(data).hexdigest()


def hmac_sha256(key, msg: Union[str, bytes]) -> bytes:
    if isinstance(msg, str):
        msg = msg.encode('utf-8')
    return hmac.new(key, msg, hashlib.sha256).digest()


def hash_body(body) -> str:
    """
    Computes the payload hash of a request body. File-like objects are read and put back where they were.

    Parameters
    ----------
    body : bytes, str, file-like, or None
        The request body.

    Returns
    -------
    str
    """
    if body is None:
        return empty_sha256
    if isinstance(body, (bytes, bytearray, memoryview)):
        return hashlib.sha256(body).hexdigest()
    if isinstance(body, str):
        return hashlib.sha256(to_bytes(body, 'body')).hexdigest()
    if hasattr(body, 'read') and hasattr(body, 'seek'):
        try:
            pos = body.tell()
        except (OSError, ValueError) as err:
            raise InvalidRequest('A file-like body must be seekable so it can be hashed and sent.') from err
        h = hashlib.sha256()
        while True:
            chunk = body.read(1048576)
            if not chunk:
                break
            if isinstance(chunk, str):
                chunk = to_bytes(chunk, 'body')
            h.update(chunk)
        body.seek(pos)
        return h.hexdigest()

    raise InvalidRequest(f'Cannot hash a body of type {type(body).__name__}.')


#######################################################
### Text handling


def to_bytes(value: str, what: str) -> bytes:
    try:
        return value.encode('utf-8')
    except UnicodeEncodeError as err:
        raise UnsupportedEncoding(f'The {what} is not valid UTF-8.') from err


def to_text(value, what: str) -> str:
    """
    Header values may come in as bytes or numbers; the canonical form is UTF-8 text.
    """
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode('utf-8')
        except UnicodeDecodeError as err:
            raise UnsupportedEncoding(f'The {what} is not valid UTF-8.') from err
    if isinstance(value, str):
        to_bytes(value, what)
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)

    raise InvalidRequest(f'The {what} must be text, not {type(value).__name__}.')


def uri_encode(value: Union[str, bytes], safe: str='') -> str:
    """
    Percent-encodes everything outside the unreserved set (plus any extra safe chars) with upper-case hex escapes.
    """
    if isinstance(value, str):
        value = to_bytes(value, 'url component')
    return urllib.parse.quote_from_bytes(value, safe=unreserved + safe)


def uri_decode(value: str) -> bytes:
    """
    Decodes percent escapes exactly once. A '+' is a literal plus, not a space.
    """
    try:
        return urllib.parse.unquote_to_bytes(value)
    except UnicodeEncodeError as err:
        raise UnsupportedEncoding('The url is not valid UTF-8.') from err


def normalize_header_value(value: str) -> str:
    """
    Trims the value and collapses runs of whitespace (including folded lines) to one space.

    This applies to every header, quoted values included, since that is how the AWS verifier rebuilds the canonical headers.
    """
    if control_chars.search(value):
        raise InvalidRequest('Header values cannot contain control characters.')
    return ' '.join(value.split())


def check_header_name(name) -> str:
    name = to_text(name, 'header name')
    if not header_name_pattern.match(name):
        raise InvalidRequest(f'{name!r} is not a valid header name.')
    return name


#######################################################
### Time


def normalize_timestamp(timestamp) -> datetime.datetime:
    """
    Turns a caller-supplied timestamp into a whole-second UTC datetime.

    Parameters
    ----------
    timestamp : datetime.datetime or str
        A timezone-aware datetime (any zone) or a string in the YYYYMMDDTHHMMSSZ format.

    Returns
    -------
    datetime.datetime
    """
    if timestamp is None:
        raise ClockError('A signing timestamp is required.')

    if isinstance(timestamp, str):
        try:
            t = datetime.datetime.strptime(timestamp, amz_date_format)
        except ValueError as err:
            raise ClockError(f'{timestamp!r} is not in the {amz_date_format} format.') from err
        t = t.replace(tzinfo=datetime.timezone.utc)
    elif isinstance(timestamp, datetime.datetime):
        if timestamp.tzinfo is None or timestamp.utcoffset() is None:
            raise ClockError('The signing timestamp must be timezone-aware.')
        t = timestamp.astimezone(datetime.timezone.utc)
    else:
        raise ClockError(f'The signing timestamp must be a datetime, not {type(timestamp).__name__}.')

    return t.replace(microsecond=0)


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def amz_date(t: datetime.datetime) -> str:
    return t.strftime(amz_date_format)


def date_stamp(t: datetime.datetime) -> str:
    return t.strftime(date_stamp_format)


#######################################################
### Urls


def split_url(url: str) -> urllib.parse.SplitResult:
    """
    Splits an absolute url, making sure it has a scheme we can sign for and a host.
    """
    if not isinstance(url, str):
        raise InvalidRequest(f'The url must be a str, not {type(url).__name__}.')
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError as err:
        raise InvalidRequest(f'{url!r} is not a valid url.') from err

    if parts.scheme.lower() not in default_ports:
        raise InvalidRequest(f'{url!r} must be an absolute http(s) or ws(s) url.')
    if not parts.hostname:
        raise InvalidRequest(f'{url!r} does not have a host.')

    return parts


def host_from_url(parts: urllib.parse.SplitResult) -> str:
    """
    The value of the host header for a split url. Default ports are dropped.
    """
    try:
        port = parts.port
    except ValueError as err:
        raise InvalidRequest(f'{parts.netloc!r} has an invalid port.') from err

    host = parts.hostname
    if not host:
        raise InvalidRequest(f'{parts.geturl()!r} does not have a host.')
    if ':' in host:
        host = f'[{host}]'

    if port is not None and default_ports.get(parts.scheme.lower()) != port:
        host = f'{host}:{port}'

    return host


def append_query(url: str, params) -> str:
    """
    Appends query parameters to a url. Spaces become %20, not '+'.
    """
    if not params:
        return url

    if isinstance(params, dict):
        params = list(params.items())

    scheme, netloc, path, query, fragment = urllib.parse.urlsplit(url)
    query_str = '&'.join(f'{uri_encode(str(k))}={uri_encode(str(v))}' for k, v in params)
    if query:
        query = f'{query}&{query_str}'
    else:
        query = query_str

    return urllib.parse.urlunsplit((scheme, netloc, path, query, fragment))

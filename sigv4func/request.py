#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Oct 12 11:02:15 2026

@author: mike
"""
import enum
import copy
from typing import Union, Optional

from urllib3 import HTTPHeaderDict

from . import utils
from .errors import InvalidRequest

#######################################################
### Request classes


class Method(str, enum.Enum):
    GET = 'GET'
    HEAD = 'HEAD'
    POST = 'POST'
    PUT = 'PUT'
    PATCH = 'PATCH'
    DELETE = 'DELETE'
    OPTIONS = 'OPTIONS'

    @classmethod
    def parse(cls, method):
        """
        Accepts a Method or a method name in any case.
        """
        if isinstance(method, cls):
            return method
        if not isinstance(method, str):
            raise InvalidRequest(f'The http method must be a str, not {type(method).__name__}.')
        try:
            return cls(method.strip().upper())
        except ValueError as err:
            raise InvalidRequest(f'{method!r} is not a supported http method.') from err

    def __str__(self):
        return self.value


def build_headers(headers) -> HTTPHeaderDict:
    """
    Copies a mapping (or list of pairs) of headers into a case-insensitive HTTPHeaderDict. Repeated names are kept.
    """
    new_headers = HTTPHeaderDict()
    if headers is None:
        return new_headers

    if hasattr(headers, 'items'):
        items = headers.items()
    else:
        items = headers

    for name, value in items:
        name = utils.check_header_name(name)
        new_headers.add(name, utils.to_text(value, f'value of the {name} header'))

    return new_headers


class RequestDescriptor:
    """
    An outbound request as the signer sees it.
    """
    def __init__(self, method: Union[str, Method], url: str, headers=None, body=None, params=None):
        """
        Parameters
        ----------
        method : str or Method
            The http method.
        url : str
            The absolute url including any query string.
        headers : dict, HTTPHeaderDict, list of tuples, or None
            The request headers. Names are case-insensitive.
        body : bytes, str, file-like, or None
            The request body.
        params : dict, list of tuples, or None
            Extra query parameters appended to the url query.
        """
        self.method = Method.parse(method)
        utils.split_url(url)
        self.url = utils.append_query(url, params)
        self._parts = utils.split_url(self.url)
        self.headers = build_headers(headers)
        self.body = body

    @property
    def host(self):
        return utils.host_from_url(self._parts)

    @property
    def path(self):
        return self._parts.path

    @property
    def query(self):
        return self._parts.query

    def query_pairs(self):
        """
        The query parameters as (name, value) byte pairs, percent-decoded once, in the order they appear in the url.
        """
        pairs = []
        if not self.query:
            return pairs

        for part in self.query.split('&'):
            if not part:
                continue
            name, _, value = part.partition('=')
            pairs.append((utils.uri_decode(name), utils.uri_decode(value)))

        return pairs

    def copy(self, url: Optional[str]=None):
        """
        A copy with its own headers; the body is shared.
        """
        new = copy.copy(self)
        new.headers = self.headers.copy()
        if url is not None:
            new.url = url
            new._parts = utils.split_url(url)
        return new

    def __repr__(self):
        return f'{self.method} {self.url}'


class SignedRequest:
    """
    A request ready to be sent unmodified, plus the intermediate strings that produced its signature.
    """
    def __init__(self, method: Method, url: str, headers: dict, body, canonical_request, string_to_sign: str, signature: str):
        self.method = method
        self.url = url
        self.headers = headers
        self.body = body
        self.canonical_request = canonical_request
        self.string_to_sign = string_to_sign
        self.signature = signature

    def __repr__(self):
        return f'{self.method} {self.url}'

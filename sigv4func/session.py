#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Oct 14 11:20:03 2026

@author: mike
"""
import logging
from typing import Union

import orjson
import urllib3
from urllib3.util import Retry, Timeout

from . import utils
from .credentials import Credentials, CredentialsProvider, resolve_credentials
from .request import Method, RequestDescriptor
from .signer import SigV4Auth

logger = logging.getLogger(__name__)

#######################################################
### Functions


def url_session(max_pool_connections: int = 10, max_attempts: int=3, read_timeout: int=120):
    """
    Function to setup a urllib3 pool manager.

    Parameters
    ----------
    max_pool_connections : int
        The number of simultaneous connections.
    max_attempts: int
        The number of retries if the connection fails. Handled entirely by urllib3.
    read_timeout: int
        The read timeout in seconds.

    Returns
    -------
    Pool Manager object
    """
    timeout = Timeout(read_timeout)
    retries = Retry(
        total=max_attempts,
        backoff_factor=1,
        )
    http = urllib3.PoolManager(num_pools=max_pool_connections, maxsize=max_pool_connections, timeout=timeout, retries=retries)

    return http


#######################################################
### Session


class SignedSession:
    """

    """
    def __init__(self, credentials: Credentials, max_pool_connections: int = 10, max_attempts: int = 3, read_timeout: int=120, content_sha256: bool=None):
        """
        Signs every request with SigV4 and sends it through a urllib3 pool manager. Responses are urllib3 responses, untouched.

        Parameters
        ----------
        credentials : Credentials
            The identity, region, and service to sign for.
        max_pool_connections : int
            The number of simultaneous connections.
        max_attempts: int
            The number of retries passed to urllib3.
        read_timeout: int
            The read timeout in seconds.
        content_sha256 : bool or None
            Send a signed x-amz-content-sha256 header. None turns it on for s3 only.
        """
        if content_sha256 is None:
            content_sha256 = credentials.service == 's3'

        self._signer = SigV4Auth(credentials, content_sha256=content_sha256)
        self._session = url_session(max_pool_connections, max_attempts, read_timeout)
        self.credentials = credentials

    @classmethod
    def from_provider(cls, service: str, provider: CredentialsProvider=None, **kwargs):
        """
        Builds a session from whatever credentials the provider (or the default environment/profile chain) finds.
        """
        return cls(resolve_credentials(service, provider), **kwargs)

    def request(self, method: Union[str, Method], url: str, headers=None, fields=None, body=None, json=None, timestamp=None, preload_content: bool=True):
        """
        Wrapper to perform signed request via urllib3.

        Parameters
        ----------
        method : str or Method
            The http method.
        url : str
            The absolute url.
        headers : dict or None
            Extra headers.
        fields : dict or None
            Query parameters added to the url before signing.
        body : bytes, str, file-like, or None
            The request body.
        json : object
            Encoded with orjson as the body (with a json content-type) when given.
        timestamp : datetime.datetime, str, or None
            The signing time. None uses the current time.
        preload_content : bool
            Passed to urllib3.

        Returns
        -------
        urllib3.BaseHTTPResponse
        """
        if json is not None:
            if body is not None:
                raise ValueError('Pass either body or json, not both.')
            body = orjson.dumps(json)
            headers = dict(headers or {})
            if not any(k.lower() == 'content-type' for k in headers):
                headers['content-type'] = 'application/json'

        if timestamp is None:
            timestamp = utils.utc_now()

        url = utils.append_query(url, fields)
        signed = self._signer.sign_request(RequestDescriptor(method, url, headers, body), timestamp)

        logger.debug('Sending signed %s request to %s.', signed.method, signed.headers['host'])

        return self._session.request(signed.method.value, signed.url, headers=signed.headers, body=signed.body, preload_content=preload_content)

    def presigned_url(self, method: Union[str, Method], url: str, expires: int=3600, timestamp=None) -> str:
        """
        A url that can be used without any headers until it expires.
        """
        if timestamp is None:
            timestamp = utils.utc_now()

        return self._signer.presign(RequestDescriptor(method, url), timestamp, expires=expires).url

    def close(self):
        self._session.clear()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def __repr__(self):
        return f'SignedSession({self.credentials.service}, {self.credentials.region})'

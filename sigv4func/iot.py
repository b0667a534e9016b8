#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Oct 14 08:47:31 2026

@author: mike
"""
from . import utils
from .credentials import Credentials
from .request import RequestDescriptor, SignedRequest
from .signer import SigV4Auth
from .errors import InvalidRequest

#######################################################
### Parameters

iot_service = 'iotdevicegateway'
mqtt_path = '/mqtt'

#######################################################
### Functions


def mqtt_over_websockets_request(credentials: Credentials, endpoint: str, timestamp, expires: int=None) -> SignedRequest:
    """
    Presigns the websocket handshake for MQTT on an AWS IoT data endpoint.

    The handshake is a GET to wss://<endpoint>/mqtt signed with the hash of an empty body and only the host header. The session token (if any) is appended after the signature, since the IoT gateway leaves it out of the canonical query.

    Parameters
    ----------
    credentials : Credentials
        The identity and region. The service is switched to iotdevicegateway.
    endpoint : str
        The account's IoT data endpoint host, e.g. abc123-ats.iot.us-east-1.amazonaws.com.
    timestamp : datetime.datetime or str
        The signing time.
    expires : int or None
        Seconds the url stays valid.

    Returns
    -------
    SignedRequest
    """
    if not isinstance(endpoint, str) or not endpoint or '/' in endpoint or any(c.isspace() for c in endpoint):
        raise InvalidRequest(f'{endpoint!r} is not an IoT endpoint host.')

    if credentials.service != iot_service:
        credentials = credentials.for_service(iot_service)

    request = RequestDescriptor('GET', f'wss://{endpoint}{mqtt_path}')

    return SigV4Auth(credentials).presign(request, timestamp, expires=expires, payload_hash=utils.empty_sha256, sign_session_token=False)


def mqtt_over_websockets_url(credentials: Credentials, endpoint: str, timestamp=None, expires: int=None) -> str:
    """
    The presigned wss:// url to hand to an MQTT client. None for timestamp uses the current time.
    """
    if timestamp is None:
        timestamp = utils.utc_now()

    return mqtt_over_websockets_request(credentials, endpoint, timestamp, expires).url


def mqtt_over_websockets_headers(endpoint: str) -> dict:
    """
    The headers to send with the websocket upgrade request.
    """
    return {'host': RequestDescriptor('GET', f'wss://{endpoint}{mqtt_path}').host}

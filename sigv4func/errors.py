#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Oct 12 10:21:07 2026

@author: mike
"""

#######################################################
### Exceptions


class SigningError(Exception):
    """
    Base class for everything raised while signing a request.
    """


class InvalidRequest(SigningError, ValueError):
    """
    The request descriptor could not be canonicalized (bad url, host, header, or method).
    """


class UnsupportedEncoding(InvalidRequest):
    """
    Text that must be canonicalized is not valid UTF-8.
    """


class InvalidCredentials(SigningError, ValueError):
    """
    The credentials are missing, empty, or malformed.
    """


class ClockError(SigningError, ValueError):
    """
    The signing timestamp is missing or not a usable UTC time.
    """

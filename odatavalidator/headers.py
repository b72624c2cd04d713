#! /usr/bin/env python
"""Utilities for reading raw HTTP header blocks

Responses are carried around the validator as a raw header block (a
string of CRLF separated "Name: value" lines) exactly as they were
received or as they were supplied by the user for offline validation.
The functions in this module extract the few values that the
classifier needs, including the protocol version."""

import logging
import re

from . import core
from .core import ODataVersion, PayloadFormat


VERSION_PATTERNS = (
    (re.compile(r"^1\.0\s*;?\s*$"), ODataVersion.V1),
    (re.compile(r"^2\.0\s*;?\s*$"), ODataVersion.V2),
    (re.compile(r"^3\.0\s*;?\s*$"), ODataVersion.V3),
    (re.compile(r"^4\.0\s*;?\s*$"), ODataVersion.V4),
    )

CHARSET_RE = re.compile(r"charset\s*=\s*\"?([^;\"\s]+)", re.IGNORECASE)


def parse_headers(block):
    """Splits a raw header block into a list of (name, value) tuples

    block
        A string containing header lines, may be None.

    Lines are split on CRLF (or bare LF), empty lines are skipped and
    lines without a colon are ignored.  Values are returned exactly as
    they appear after the first colon, they are not trimmed."""
    result = []
    if not block:
        return result
    for line in block.replace("\r\n", "\n").split("\n"):
        if not line:
            continue
        name, sep, value = line.partition(":")
        if not sep:
            logging.debug("Ignoring malformed header line: %s", repr(line))
            continue
        result.append((name, value))
    return result


def get_header(block, name, ignore_case=False):
    """Returns the raw value of the first header called *name*

    Names are compared exactly unless *ignore_case* is True, in which
    case they are compared without regard to case (as HTTP requires).
    Returns None if there is no such header."""
    if ignore_case:
        name = name.lower()
    for hname, hvalue in parse_headers(block):
        hname = hname.strip()
        if ignore_case:
            hname = hname.lower()
        if hname == name:
            return hvalue
    return None


def to_odata_version(value):
    """Converts a version header value into an :class:`ODataVersion`

    Unrecognised values, including None, return UNKNOWN."""
    if not value:
        return ODataVersion.UNKNOWN
    value = value.lstrip()
    for pattern, version in VERSION_PATTERNS:
        if pattern.match(value):
            return version
    if value.startswith("1-2"):
        return ODataVersion.V1_V2
    elif value.startswith("*"):
        return ODataVersion.V_All
    return ODataVersion.UNKNOWN


def get_odata_version(block):
    """Resolves the protocol version from a response header block

    The legacy DataServiceVersion header is preferred, only the part
    before any ';' is used so that values like "2.0;NetFx" are
    understood.  If it is missing or empty the OData-Version header is
    used."""
    value = get_header(block, core.DATA_SERVICE_VERSION)
    if value and ";" in value:
        parts = [p for p in value.split(";") if p.strip()]
        value = parts[0] if parts else ""
    if value and value.strip():
        return to_odata_version(value)
    return to_odata_version(get_header(block, core.ODATA_VERSION))


def get_content_type(block):
    """Returns the media type from the Content-Type header

    Parameters are removed and the result is trimmed; None if there is
    no Content-Type header."""
    value = get_header(block, core.CONTENT_TYPE)
    if value is None:
        return None
    return value.split(";")[0].strip()


def get_charset(block):
    """Returns the charset parameter of the Content-Type header or None"""
    value = get_header(block, core.CONTENT_TYPE)
    if value:
        match = CHARSET_RE.search(value)
        if match:
            return match.group(1)
    return None


def content_type_to_format(content_type, version):
    """Maps a Content-Type value onto a :class:`PayloadFormat`

    content_type
        A Content-Type header value, parameters are allowed (may be
        None).  An odata=verbose parameter always gives Json.

    version
        The resolved :class:`ODataVersion`, used to distinguish JSON
        verbose from JSON Light.

    Returns None for an empty media type, Other for an unrecognised
    one.  JSON with an UNKNOWN version is returned as Json, callers
    that can inspect the payload should refine it."""
    if not content_type or not content_type.strip():
        return None
    params = [p.strip().lower().replace(" ", "")
              for p in content_type.split(";")]
    ct = params.pop(0)
    if ct == core.CT_JSON:
        if "odata=verbose" in params:
            return PayloadFormat.Json
        elif version in (ODataVersion.V3, ODataVersion.V4,
                         ODataVersion.V3_V4):
            return PayloadFormat.JsonLight
        return PayloadFormat.Json
    elif ct == core.CT_ATOM:
        return PayloadFormat.Atom
    elif ct in (core.CT_XML, core.CT_TEXT_XML):
        return PayloadFormat.Xml
    elif ct.startswith("image/"):
        return PayloadFormat.Image
    return PayloadFormat.Other


def get_format_from_headers(block):
    """Returns the :class:`PayloadFormat` implied by a header block

    None is returned when there is no Content-Type header."""
    return content_type_to_format(get_header(block, core.CONTENT_TYPE),
                                  get_odata_version(block))


def version_from_request_headers(request_headers, default):
    """Returns the version implied by the request headers

    request_headers
        An iterable of (name, value) pairs

    default
        The value to return if no header overrides the version

    A request header whose name contains 'version' overrides the
    version: '3.0' gives V3, '4.0' gives V4 and any other value
    gives the V1_V2 range."""
    for name, value in request_headers or ():
        if "version" in name.lower():
            value = value.strip()
            if value == "3.0":
                return ODataVersion.V3
            elif value == "4.0":
                return ODataVersion.V4
            else:
                return ODataVersion.V1_V2
    return default


def format_headers(pairs):
    """Joins (name, value) pairs into a raw header block"""
    return "".join("%s: %s\r\n" % (name, value) for name, value in pairs)

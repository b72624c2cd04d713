#! /usr/bin/env python
"""Determines the serialization family of a response

The format is taken from the Content-Type header where one is present
and recognised, otherwise the payload itself is parsed to see what it
looks like.  None of the functions in this module raise exceptions for
malformed input, a payload that does not parse as XML or JSON is
simply not XML or JSON."""

import json
import logging
import xml.etree.ElementTree as ET

from . import core
from . import headers as hdr
from .core import ODataVersion, PayloadFormat


def local_name(tag):
    """Returns the local part of an ElementTree tag"""
    if not isinstance(tag, str):
        # comments and processing instructions
        return None
    if tag[0:1] == "{":
        return tag[tag.index("}") + 1:]
    return tag


def namespace(tag):
    """Returns the namespace part of an ElementTree tag or None"""
    if isinstance(tag, str) and tag[0:1] == "{":
        return tag[1:tag.index("}")]
    return None


def parse_xml(payload):
    """Parses payload as XML returning the root element or None"""
    if not payload:
        return None
    try:
        return ET.fromstring(payload.strip())
    except (ET.ParseError, ValueError, TypeError) as err:
        logging.debug("Payload is not XML: %s", str(err))
        return None


def parse_json_object(payload):
    """Parses payload as JSON returning a dictionary or None

    Only JSON objects are returned, a payload that is valid JSON but
    not an object (an array or a bare string) returns None.  Property
    order is preserved."""
    if not payload:
        return None
    try:
        result = json.loads(payload)
    except (ValueError, TypeError, RecursionError) as err:
        logging.debug("Payload is not JSON: %s", str(err))
        return None
    if isinstance(result, dict):
        return result
    return None


def first_property(obj):
    """Returns the (name, value) of the first property of obj or None"""
    for name, value in obj.items():
        return name, value
    return None


def has_ref_element(root):
    """True if any element (including root) has the local name 'ref'"""
    for e in root.iter():
        if local_name(e.tag) == "ref":
            return True
    return False


def is_verbose_error(obj):
    """True if obj is a JSON verbose error object

    A verbose error has a single property 'error' whose value is an
    object with a 'message' property that is itself an object."""
    if obj is None or len(obj) != 1:
        return False
    name, value = first_property(obj)
    if name != core.VERBOSE_ERROR or not isinstance(value, dict):
        return False
    return isinstance(value.get(core.ERROR_MESSAGE), dict)


def is_verbose(obj):
    """True if obj is a JSON verbose payload

    Verbose payloads are wrapped in a single 'd' property, verbose
    error payloads are recognised too."""
    if obj is None:
        return False
    if len(obj) == 1 and first_property(obj)[0] == core.VERBOSE_ROOT:
        return True
    return is_verbose_error(obj)


def sniff_format(payload):
    """Determines the :class:`PayloadFormat` from the payload alone

    XML is tried first, a document containing a ref element is Xml, a
    feed or entry root is Atom and any other XML document is Xml.  A
    JSON object is Json if verbose shaped and JsonLight otherwise.
    Anything else is Other, an empty payload is None."""
    if payload is None or not payload.strip():
        return PayloadFormat.none
    root = parse_xml(payload)
    if root is not None:
        if has_ref_element(root):
            return PayloadFormat.Xml
        if local_name(root.tag) in ("feed", "entry"):
            return PayloadFormat.Atom
        return PayloadFormat.Xml
    obj = parse_json_object(payload)
    if obj is not None:
        if is_verbose(obj):
            return PayloadFormat.Json
        return PayloadFormat.JsonLight
    return PayloadFormat.Other


def classify_format(headers, payload):
    """Determines the :class:`PayloadFormat` of a response

    headers
        The raw response header block, may be None

    payload
        The response body as a string, may be None

    A recognised Content-Type takes precedence.  JSON is reported as
    JsonLight for V3 and V4 responses and Json for V1 and V2 ones;
    when the version is unknown the payload decides between the two
    JSON families.  Unrecognised or missing Content-Type values fall
    back to :func:`sniff_format`."""
    version = hdr.get_odata_version(headers)
    fmt = hdr.get_format_from_headers(headers)
    ctype = (hdr.get_header(headers, core.CONTENT_TYPE) or "").lower()
    if fmt is None or fmt == PayloadFormat.Other:
        result = sniff_format(payload)
    elif fmt == PayloadFormat.Json and version == ODataVersion.UNKNOWN and \
            "verbose" not in ctype:
        obj = parse_json_object(payload)
        if obj is not None and not is_verbose(obj):
            result = PayloadFormat.JsonLight
        else:
            result = PayloadFormat.Json
    else:
        result = fmt
    logging.debug("Payload format: %s", PayloadFormat.to_str(result))
    return result

#! /usr/bin/env python
"""A minimal HTTP client for retrieving resources from a service

The validator only ever needs to GET a resource and examine the raw
response, so this module wraps urllib rather than providing a general
purpose client.  The important property of :func:`get` is that it
enforces a ceiling on the size of the payload: a payload that exceeds
the ceiling raises :class:`OversizedPayload`, it is never truncated."""

import base64
import logging
import urllib.error
import urllib.parse
import urllib.request

from . import core
from . import headers as hdr
from .errors import FetchError, OversizedPayload


#: the size of the chunks read from the network
CHUNK_SIZE = 0x4000


class Response(object):

    """The result of a GET request

    status_code
        The integer HTTP status code

    headers
        The response headers as a raw header block (a string of CRLF
        terminated lines)

    payload
        The decoded response body as a string"""

    def __init__(self, status_code, headers, payload):
        self.status_code = status_code
        self.headers = headers
        self.payload = payload

    def __repr__(self):
        return "Response(%s, ...)" % repr(self.status_code)

    def is_ok(self):
        return self.status_code is not None and \
            200 <= self.status_code < 300


def _split_credentials(uri):
    parts = urllib.parse.urlsplit(uri)
    if parts.username is None:
        return uri, None
    netloc = parts.hostname or ""
    if parts.port:
        netloc = "%s:%i" % (netloc, parts.port)
    user = urllib.parse.unquote(parts.username)
    password = urllib.parse.unquote(parts.password or "")
    token = base64.b64encode(
        ("%s:%s" % (user, password)).encode("utf-8")).decode("ascii")
    return (urllib.parse.urlunsplit((parts.scheme, netloc, parts.path,
                                     parts.query, parts.fragment)),
            "Basic " + token)


def read_payload(stream, max_payload_size, declared_length=None):
    """Reads a response body enforcing the size ceiling

    stream
        A file-like object with a read method

    max_payload_size
        The maximum number of bytes that may be read

    declared_length
        The value of the Content-Length header (an integer) if known

    Returns the body as bytes.  OversizedPayload is raised as soon as
    the declared length, or the number of bytes actually read, exceeds
    the ceiling."""
    if max_payload_size <= 0:
        raise ValueError("max_payload_size must be positive: %s" %
                         repr(max_payload_size))
    if declared_length is not None and declared_length > max_payload_size:
        raise OversizedPayload(
            "Payload size %i exceeds the limit of %i bytes" %
            (declared_length, max_payload_size),
            max_payload_size, declared_length)
    data = []
    total = 0
    while True:
        chunk = stream.read(CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > max_payload_size:
            raise OversizedPayload(
                "Payload exceeds the limit of %i bytes" % max_payload_size,
                max_payload_size, total)
        data.append(chunk)
    return b"".join(data)


def _parse_response(resp, status, max_payload_size):
    header_block = hdr.format_headers(resp.headers.items())
    length = hdr.get_header(header_block, core.CONTENT_LENGTH,
                            ignore_case=True)
    try:
        length = int(length) if length is not None else None
    except ValueError:
        logging.warning("Ignoring bad Content-Length: %s", length)
        length = None
    body = read_payload(resp, max_payload_size, length)
    charset = hdr.get_charset(header_block) or "utf-8"
    try:
        payload = body.decode(charset)
    except (LookupError, UnicodeDecodeError) as err:
        logging.warning("Failed to decode payload as %s: %s", charset,
                        str(err))
        payload = body.decode("utf-8", "replace")
    return Response(status, header_block, payload)


def get(uri, accept=None, max_payload_size=None, request_headers=(),
        timeout=None):
    """Retrieves a resource

    uri
        The URI of the resource, user information in the URI is sent
        using HTTP basic authentication

    accept
        An optional value for the Accept header

    max_payload_size
        The maximum size of the payload in bytes, must be positive

    request_headers
        An iterable of (name, value) pairs sent as additional request
        headers, pairs with an empty name are ignored

    timeout
        Optional socket timeout in seconds

    HTTP error responses are returned like any other response.
    Transport failures raise :class:`FetchError` and oversized payloads
    raise :class:`OversizedPayload`."""
    if max_payload_size is None or max_payload_size <= 0:
        raise ValueError("max_payload_size must be positive: %s" %
                         repr(max_payload_size))
    url, authorization = _split_credentials(str(uri))
    request = urllib.request.Request(url, method="GET")
    if accept:
        request.add_header("Accept", accept)
    if authorization:
        request.add_header("Authorization", authorization)
    for name, value in request_headers or ():
        if name:
            request.add_header(name, value)
    logging.info("GET %s (Accept: %s)", url, accept)
    try:
        with urllib.request.urlopen(request, timeout=timeout) as resp:
            return _parse_response(resp, resp.status, max_payload_size)
    except urllib.error.HTTPError as err:
        try:
            return _parse_response(err, err.code, max_payload_size)
        finally:
            err.close()
    except (urllib.error.URLError, OSError) as err:
        raise FetchError("Failed to retrieve %s: %s" % (url, str(err)), err)

#! /usr/bin/env python
"""The validation context

A :class:`ServiceContext` gathers together everything known about a
single HTTP exchange: the response, the service's metadata and service
documents, the request that was made and the classification of the
payload.  Contexts are built once, classification happens during
construction, and are then consumed read-only by the rules.

Contexts are normally created with a :class:`ContextFactory` which
knows how to retrieve the supporting documents from a live service or
how to make sense of documents supplied for offline validation."""

import logging
import urllib.parse
import uuid

from . import classifier
from . import core
from . import headers as hdr
from . import webhelper
from .core import MetadataAmount, PayloadFormat, PayloadType
from .errors import ContextError, FetchError, OversizedPayload
from .metadata import MetadataDocument, short_name
from .sniffer import classify_format, parse_xml


#: the destination used for offline contexts that do not supply one
OFFLINE_TARGET = "http://offline"

#: payload types that identify a resource worth validating
VALID_PAYLOADS = frozenset((
    PayloadType.Entry,
    PayloadType.Feed,
    PayloadType.ServiceDoc,
    PayloadType.Metadata,
    PayloadType.Error,
    PayloadType.Property,
    PayloadType.IndividualProperty,
    PayloadType.Link,
    PayloadType.EntityRef,
    PayloadType.Delta,
    PayloadType.RawValue))


class ServiceContext(object):

    """A single unit of validation

    destination
        The URI the payload was retrieved from (a string)

    response_payload
        The response body as a string

    response_headers
        The response headers as a raw header block

    metadata_document
        The service's metadata document as a string (optional)

    request_headers
        An iterable of (name, value) pairs sent with the request.  A
        header whose name contains 'version' overrides the version
        found in the response headers.

    offline
        True if the payload was supplied rather than retrieved

    media_link_entry
        Overrides the media link entry flag, by default it is derived
        from the payload

    projection
        Overrides the projection flag, by default it is True if the
        destination has a $select query option

    The remaining keyword arguments set :attr:`status_code`,
    :attr:`service_document`, :attr:`service_root`,
    :attr:`metadata_type`, :attr:`category`, :attr:`version`,
    :attr:`entity_type_full_name` and
    :attr:`json_full_metadata_payload`.  An explicit version takes
    precedence over both request and response headers.

    All attributes are read-only, the only way to change a context
    after construction is :meth:`revise_metadata`."""

    def __init__(self, destination, response_payload, response_headers=None,
                 metadata_document=None, request_headers=(), offline=False,
                 media_link_entry=None, projection=None, status_code=None,
                 service_document=None, service_root=None,
                 metadata_type=None, category="core", version=None,
                 entity_type_full_name=None, json_full_metadata_payload=None,
                 job_id=None):
        if destination is None:
            raise TypeError("ServiceContext requires a destination")
        self._destination = str(destination)
        self._payload = response_payload or ""
        self._headers = response_headers or ""
        self._request_headers = tuple(
            (k, v) for k, v in (request_headers or ()))
        self._offline = bool(offline)
        self._status_code = status_code
        self._service_document = service_document
        self._service_root = service_root
        self._category = category
        self._job_id = job_id or uuid.uuid4()
        self._json_full_metadata_payload = json_full_metadata_payload
        if metadata_type is None:
            metadata_type = MetadataAmount.DEFAULT
        self._metadata_type = metadata_type
        parts = urllib.parse.urlsplit(self._destination)
        self._base_path = urllib.parse.urlunsplit(
            (parts.scheme, parts.netloc, parts.path, '', '')).rstrip('/')
        path = parts.path.rstrip('/')
        self._last_segment = path[path.rfind('/') + 1:] if path else ""
        if projection is None:
            projection = core.QUERY_SELECT in \
                urllib.parse.unquote(parts.query).lower()
        self._projection = bool(projection)
        self._explicit_mle = media_link_entry
        self._explicit_entity_type = entity_type_full_name
        if version is None:
            version = hdr.version_from_request_headers(
                self._request_headers, hdr.get_odata_version(self._headers))
        self._version = version
        self._set_metadata(metadata_document)

    def _set_metadata(self, metadata_document):
        self._metadata_document = metadata_document or None
        self._metadata = MetadataDocument.from_str(metadata_document)
        self._format = classify_format(self._headers, self._payload)
        self._type = classifier.classify_type(
            self._payload, self._format, self._metadata, self._headers)
        if self._explicit_mle is None:
            self._mle = classifier.is_media_link_entry(
                self._payload, self._type, self._format)
        else:
            self._mle = bool(self._explicit_mle)
        entity_type = self._explicit_entity_type
        if not entity_type and self._json_full_metadata_payload:
            entity_type = classifier.get_entity_type(
                self._json_full_metadata_payload, self._type, self._format)
        if not entity_type:
            entity_type = classifier.get_entity_type(
                self._payload, self._type, self._format)
        if not entity_type and self._metadata is not None and \
                self._type in (PayloadType.Feed, PayloadType.Entry):
            entity_type = self._metadata.get_entity_type_name(
                classifier.get_entity_set(self._payload, self._format))
        self._entity_type = entity_type or None
        logging.debug("Context for %s: %s/%s/%s", self._destination,
                      PayloadFormat.to_str(self._format),
                      PayloadType.to_str(self._type),
                      core.ODataVersion.to_str(self._version))

    def revise_metadata(self, metadata_document):
        """Replaces the metadata document

        The payload type and entity type are recalculated as they may
        depend on the metadata.  This is the only supported way of
        changing a context and must not be used while rules are being
        dispatched."""
        logging.info("Revising metadata for %s", self._destination)
        self._set_metadata(metadata_document)

    @property
    def destination(self):
        return self._destination

    @property
    def destination_base_path(self):
        """The destination without query or trailing slash"""
        return self._base_path

    @property
    def destination_last_segment(self):
        return self._last_segment

    @property
    def response_payload(self):
        return self._payload

    @property
    def response_headers(self):
        return self._headers

    @property
    def status_code(self):
        return self._status_code

    @property
    def request_headers(self):
        """A tuple of (name, value) pairs"""
        return self._request_headers

    @property
    def metadata_document(self):
        return self._metadata_document

    @property
    def metadata(self):
        """The parsed :class:`MetadataDocument` or None"""
        return self._metadata

    @property
    def has_metadata(self):
        """True if the metadata document is a well-formed Edmx
        document"""
        return self._metadata is not None

    @property
    def service_document(self):
        return self._service_document

    @property
    def has_service_document(self):
        return bool(self._service_document)

    @property
    def service_root(self):
        return self._service_root

    @property
    def json_full_metadata_payload(self):
        return self._json_full_metadata_payload

    @property
    def version(self):
        return self._version

    @property
    def metadata_type(self):
        return self._metadata_type

    @property
    def offline(self):
        return self._offline

    @property
    def projection(self):
        return self._projection

    @property
    def is_media_link_entry(self):
        return self._mle

    @property
    def payload_format(self):
        return self._format

    @property
    def payload_type(self):
        return self._type

    @property
    def entity_type_full_name(self):
        return self._entity_type

    @property
    def entity_type_short_name(self):
        return short_name(self._entity_type)

    @property
    def category(self):
        return self._category

    @property
    def job_id(self):
        return self._job_id

    def get_payload_lines(self):
        """Returns the payload split in to lines"""
        return self._payload.splitlines()


def build_context(response, metadata=None, destination=None,
                  request_headers=(), offline=False, media_link_entry=None,
                  projection=None, **kwargs):
    """Builds a context from a response

    response
        A :class:`webhelper.Response` or any object with status_code,
        headers and payload attributes

    The other arguments are passed to :class:`ServiceContext`, the
    destination defaults to a dummy offline URI."""
    if response is None:
        raise TypeError("build_context requires a response")
    return ServiceContext(
        destination or OFFLINE_TARGET, response.payload,
        response.headers, metadata_document=metadata,
        request_headers=request_headers, offline=offline,
        media_link_entry=media_link_entry, projection=projection,
        status_code=response.status_code, **kwargs)


#: maps lower-case user format strings to Accept header values
ACCEPT_HEADERS = {
    "json": "application/json",
    "json;odata=verbose": "application/json;odata=verbose",
    "json;odata=fullmetadata": "application/json;odata=fullmetadata",
    "json;odata=minimalmetadata": "application/json;odata=minimalmetadata",
    "json;odata=nometadata": "application/json;odata=nometadata",
    "json;odata.metadata=full": "application/json;odata.metadata=full",
    "json;odata.metadata=minimal": "application/json;odata.metadata=minimal",
    "json;odata.metadata=none": "application/json;odata.metadata=none",
    }

ACCEPT_ATOM = "*/*; q=0.2, application/atom+xml, application/xml; q=0.5"
V3_ACCEPT_FULL = ACCEPT_HEADERS["json;odata=fullmetadata"]
V4_ACCEPT_FULL = ACCEPT_HEADERS["json;odata.metadata=full"]
V3_ACCEPT_LIGHT = frozenset((
    V3_ACCEPT_FULL,
    ACCEPT_HEADERS["json;odata=minimalmetadata"],
    ACCEPT_HEADERS["json;odata=nometadata"]))


def accept_header(fmt):
    """Maps a user format string on to an Accept header value

    Unrecognised formats, including 'atompub', request Atom/XML."""
    return ACCEPT_HEADERS.get(fmt.strip().lower().replace(" ", ""),
                              ACCEPT_ATOM)


def metadata_type_from_format(fmt):
    """Maps a user format string on to a :class:`MetadataAmount`"""
    fmt = fmt.strip().lower().replace(" ", "")
    if fmt.endswith("=fullmetadata") or fmt.endswith("=full"):
        return MetadataAmount.full
    elif fmt.endswith("=nometadata") or fmt.endswith("=none"):
        return MetadataAmount.none
    return MetadataAmount.minimal


def metadata_type_from_headers(block):
    """Reads a :class:`MetadataAmount` from an offline header block

    Defaults to minimal, the amount is taken from an odata.metadata (or
    V3 odata) parameter found anywhere in the headers."""
    if not block:
        return MetadataAmount.minimal
    text = block.lower().replace(" ", "")
    if "odata.metadata=full" in text or "odata=fullmetadata" in text:
        return MetadataAmount.full
    elif "odata.metadata=none" in text or "odata=nometadata" in text:
        return MetadataAmount.none
    return MetadataAmount.minimal


class ContextFactory(object):

    """Creates contexts for live services and offline payloads

    settings
        An :class:`EngineSettings` instance

    fetch
        The function used to retrieve resources, defaults to
        :func:`webhelper.get`.  It is called with the same arguments."""

    def __init__(self, settings, fetch=None):
        self.settings = settings
        self.fetch = fetch or webhelper.get

    def _get(self, uri, accept, request_headers):
        return self.fetch(uri, accept, self.settings.max_payload_size,
                          request_headers,
                          timeout=self.settings.request_timeout)

    def _get_auxiliary(self, uri, accept, request_headers):
        # supporting documents are optional, failures are logged
        try:
            return self._get(uri, accept, request_headers)
        except OversizedPayload as err:
            logging.warning("Skipping %s: %s", uri, str(err))
        except FetchError as err:
            logging.warning("Failed to retrieve %s: %s", uri, str(err))
        return None

    @staticmethod
    def normalize_uri(destination):
        """Returns destination as an absolute http or https URI"""
        destination = destination.strip().rstrip('/')
        if "://" not in destination:
            destination = "http://" + destination
        scheme = urllib.parse.urlsplit(destination).scheme.lower()
        if scheme not in ("http", "https"):
            raise ValueError("Unsupported scheme: %s" % scheme)
        return destination

    def is_service_document(self, response):
        if response is None or not response.payload:
            return False
        return classifier.classify_payload(
            response.payload, response.headers)[1] == PayloadType.ServiceDoc

    def find_service_document(self, uri, accept, request_headers=(),
                              skip_self=False):
        """Searches for the service document

        The URI itself and then each of its parents in turn are
        retrieved until one returns a service document.  Returns a
        tuple of (service root URI, service document) or (None, None)."""
        parts = urllib.parse.urlsplit(uri)
        path = parts.path.rstrip('/')
        while True:
            candidate = urllib.parse.urlunsplit(
                (parts.scheme, parts.netloc, path, '', ''))
            if not skip_self:
                response = self._get_auxiliary(candidate, accept,
                                               request_headers)
                if self.is_service_document(response):
                    logging.info("Found service document at %s", candidate)
                    return candidate, response.payload
            skip_self = False
            if not path:
                break
            path = path[:path.rfind('/')]
        return None, None

    def create_live(self, destination, fmt, request_headers=(),
                    category=None):
        """Creates a context by retrieving a resource

        destination
            The URI of the resource

        fmt
            A user format string such as 'json' or 'atompub' used to
            choose the Accept header

        The service document and metadata document are located and
        retrieved too.  If neither the request headers nor the response
        headers carry a protocol version the configured default version
        is used.  Raises :class:`ContextError` if the resource
        does not exist, :class:`OversizedPayload` if it is too large
        and :class:`FetchError` if it cannot be retrieved."""
        if not fmt:
            raise ValueError("A format is required")
        uri = self.normalize_uri(destination)
        accept = accept_header(fmt)
        metadata_type = metadata_type_from_format(fmt)
        response = self._get(uri, accept, request_headers)
        if response.status_code == 404:
            raise ContextError("Resource not found: %s" % uri)
        payload_format = classify_format(response.headers, response.payload)
        payload_type = classifier.classify_type(
            response.payload, payload_format, headers=response.headers)
        service_root = service_document = metadata_document = None
        if payload_type == PayloadType.ServiceDoc:
            service_root = uri
            service_document = response.payload
        elif payload_type == PayloadType.Metadata:
            metadata_document = response.payload
            if uri.endswith("/" + core.METADATA_SEGMENT):
                service_root = uri[:-len(core.METADATA_SEGMENT) - 1]
                svc = self._get_auxiliary(service_root, accept,
                                          request_headers)
                if self.is_service_document(svc):
                    service_document = svc.payload
        elif payload_type in VALID_PAYLOADS:
            parts = urllib.parse.urlsplit(uri)
            service_root, service_document = self.find_service_document(
                uri, accept, request_headers, skip_self=not parts.query)
        if metadata_document is None and service_root is not None:
            md = self._get_auxiliary(
                service_root + "/" + core.METADATA_SEGMENT, None,
                request_headers)
            if md is not None and md.is_ok():
                metadata_document = md.payload
        full_payload = None
        if payload_format == PayloadFormat.JsonLight:
            if accept in V3_ACCEPT_LIGHT:
                full_accept = V3_ACCEPT_FULL
            else:
                full_accept = V4_ACCEPT_FULL
            full = self._get_auxiliary(uri, full_accept, request_headers)
            if full is not None:
                full_payload = full.payload
        version = hdr.version_from_request_headers(
            request_headers, hdr.get_odata_version(response.headers))
        if version == core.ODataVersion.UNKNOWN:
            version = self.settings.version
        return ServiceContext(
            uri, response.payload, response.headers,
            metadata_document=metadata_document,
            request_headers=request_headers, offline=False,
            status_code=response.status_code,
            service_document=service_document, service_root=service_root,
            metadata_type=metadata_type,
            category=category or self.settings.category, version=version,
            json_full_metadata_payload=full_payload)

    def create_offline(self, payload, metadata=None, headers=None,
                       request_headers=(), category=None):
        """Creates a context from supplied documents

        payload
            The payload to validate.  If empty, the metadata document is
            validated instead.

        metadata
            An optional metadata document

        headers
            An optional raw response header block

        A metadata document that clearly describes a different service
        (the payload's entity type is not declared in any of its
        schemas) raises :class:`ContextError`."""
        if not payload and not metadata:
            raise ValueError("A payload or metadata document is required")
        if not payload:
            payload, metadata = metadata, None
        payload_format = classify_format(headers, payload)
        payload_type = classifier.classify_type(payload, payload_format,
                                                metadata, headers)
        destination = OFFLINE_TARGET
        service_document = metadata_document = None
        if payload_type == PayloadType.Metadata:
            metadata_document = payload
        elif metadata:
            md = MetadataDocument.from_str(metadata)
            if md is not None:
                if not classifier.entity_type_matches(
                        payload, payload_type, payload_format, md):
                    raise ContextError(
                        "Metadata document does not describe entity type %s"
                        % classifier.get_entity_type(
                            payload, payload_type, payload_format))
                metadata_document = metadata
        if payload_type == PayloadType.ServiceDoc:
            service_document = payload
            root = parse_xml(payload)
            if root is not None:
                base = root.get("{http://www.w3.org/XML/1998/namespace}base")
                if base:
                    destination = base
        elif payload_type in (PayloadType.Feed, PayloadType.Entry):
            target = classifier.get_id(payload, payload_format)
            if target:
                etype = classifier.get_entity_type(
                    payload, payload_type, payload_format)
                if not etype and metadata_document:
                    etype = MetadataDocument.from_str(
                        metadata_document).get_entity_type_name(
                            classifier.get_entity_set(
                                payload, payload_format))
                projected = classifier.get_projected_properties(
                    payload, payload_format, metadata_document,
                    short_name(etype))
                if projected:
                    destination = "%s?%s%s" % (
                        target, core.QUERY_SELECT, ",".join(projected))
                else:
                    destination = target
        return ServiceContext(
            destination, payload, headers,
            metadata_document=metadata_document,
            request_headers=request_headers, offline=True,
            service_document=service_document,
            metadata_type=metadata_type_from_headers(headers),
            category=category or self.settings.category)

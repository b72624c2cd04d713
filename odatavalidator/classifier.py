#! /usr/bin/env python
"""Determines the semantic type of a response payload

Classification is performed by one of three ladders, selected by the
payload format.  Each ladder is an ordered tuple of (predicate, type)
pairs and the first predicate that returns True decides the type.
The order of the ladders is significant and must not be changed
casually, a single misclassification enables or disables whole groups
of rules.

XML_LADDER
    Used for Xml payloads.  Predicates take the parsed root element.

VERBOSE_LADDER
    Used for JSON verbose payloads.  Predicates take the parsed JSON
    object.

LIGHT_LADDER
    Used for JSON Light payloads.  Predicates take a
    :class:`LightPayload`, a view of the object and its context URL.

Atom payloads are either a feed or an entry and need no ladder."""

import logging
import re

from . import core
from . import headers as hdr
from .core import PayloadFormat, PayloadType
from .metadata import MetadataDocument, short_name
from .sniffer import (
    classify_format,
    first_property,
    has_ref_element,
    is_verbose,
    is_verbose_error,
    local_name,
    namespace,
    parse_json_object,
    parse_xml)


RAW_VERSION_RE = re.compile(r"^\s*(DataServiceVersion|OData-Version)\s*:",
                            re.MULTILINE)
RAW_TEXT_RE = re.compile(r"^\s*Content-Type\s*:\s*text/plain\s*;",
                         re.MULTILINE)


def as_metadata(metadata):
    """Returns a :class:`MetadataDocument` or None

    metadata
        None, a metadata document string or an existing
        MetadataDocument instance."""
    if metadata is None or isinstance(metadata, MetadataDocument):
        return metadata
    return MetadataDocument.from_str(metadata)


def strip_quotes(value):
    if len(value) > 1 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


# XML ladder

def is_xml_service_doc(root):
    return local_name(root.tag) == "service"


def is_xml_metadata(root):
    return local_name(root.tag) == "Edmx"


def is_xml_individual_property(root):
    return local_name(root.tag) == "value"


def is_xml_error(root):
    return local_name(root.tag) == "error"


def is_xml_link(root):
    return local_name(root.tag) in ("uri", "links")


def is_xml_entity_ref(root):
    return has_ref_element(root)


def is_xml_property(root):
    # any XML document can represent a property or collection of them
    return root is not None


XML_LADDER = (
    (is_xml_service_doc, PayloadType.ServiceDoc),
    (is_xml_metadata, PayloadType.Metadata),
    (is_xml_individual_property, PayloadType.IndividualProperty),
    (is_xml_error, PayloadType.Error),
    (is_xml_link, PayloadType.Link),
    (is_xml_entity_ref, PayloadType.EntityRef),
    (is_xml_property, PayloadType.Property),
    )


# JSON verbose ladder

def reach_inner(obj):
    """Returns the content of a verbose payload's 'd' wrapper

    The V2 'results' wrapper is removed too, even when it is
    accompanied by other properties such as '__next' or '__count'.
    Returns None if obj is not wrapped."""
    if obj is None or len(obj) != 1:
        return None
    name, inner = first_property(obj)
    if name != core.VERBOSE_ROOT:
        return None
    if isinstance(inner, dict):
        if len(inner) == 1:
            rname, rvalue = first_property(inner)
            if rname == core.VERBOSE_RESULTS:
                inner = rvalue
        elif core.VERBOSE_RESULTS in inner:
            inner = inner[core.VERBOSE_RESULTS]
    return inner


def _is_link_object(obj):
    return isinstance(obj, dict) and len(obj) == 1 and \
        first_property(obj)[0] == core.VERBOSE_URI


def is_verbose_feed(obj):
    return isinstance(reach_inner(obj), list)


def is_verbose_entry(obj):
    inner = reach_inner(obj)
    return isinstance(inner, dict) and len(inner) > 1


def is_verbose_service_doc(obj):
    inner = reach_inner(obj)
    return isinstance(inner, dict) and len(inner) == 1 and \
        first_property(inner)[0] == core.VERBOSE_ENTITY_SETS


def is_verbose_link(obj):
    inner = reach_inner(obj)
    if isinstance(inner, list):
        return len(inner) > 0 and _is_link_object(inner[0])
    return _is_link_object(inner)


def is_verbose_property(obj):
    inner = reach_inner(obj)
    if isinstance(inner, dict):
        return True
    elif isinstance(inner, list):
        return all(isinstance(i, dict) for i in inner)
    return False


VERBOSE_LADDER = (
    (is_verbose_feed, PayloadType.Feed),
    (is_verbose_entry, PayloadType.Entry),
    (is_verbose_service_doc, PayloadType.ServiceDoc),
    (is_verbose_error, PayloadType.Error),
    (is_verbose_link, PayloadType.Link),
    (is_verbose_property, PayloadType.Property),
    )


# JSON Light ladder

class LightPayload(object):

    """A view of a JSON Light payload used by the light predicates

    obj
        The parsed JSON object

    metadata
        An optional :class:`MetadataDocument`

    The context annotation must be the first property of the object,
    it is odata.metadata in V3 and @odata.context in V4.  If it is
    missing, :attr:`url` is None and every predicate other than the
    error predicate returns False."""

    def __init__(self, obj, metadata=None):
        self.obj = obj
        self.metadata = metadata
        self.v3 = self.v4 = False
        self.url = None
        self.segments = []
        self.last = ""
        #: the remainder of the context URL following "$metadata#"
        self.fragment = None
        if obj is None or is_verbose(obj):
            return
        first = first_property(obj)
        if first is None:
            return
        name, value = first
        if name == core.V3_CONTEXT:
            self.v3 = True
        elif name == core.V4_CONTEXT:
            self.v4 = True
        else:
            return
        if not isinstance(value, str):
            value = "" if value is None else str(value)
        self.url = strip_quotes(value)
        self.segments = self.url.split("/")
        self.last = self.segments[-1]
        pos = self.url.find(core.METADATA_FRAGMENT)
        if pos >= 0:
            self.fragment = self.url[pos + len(core.METADATA_FRAGMENT):]

    def has_context(self):
        return self.url is not None

    def value_is_entity_array(self):
        """True if 'value' is an array that is empty or starts with an
        object"""
        value = self.obj.get(core.VALUE)
        if isinstance(value, list):
            return len(value) == 0 or isinstance(value[0], dict)
        return False

    def has_value_array(self):
        return isinstance(self.obj.get(core.VALUE), list)


def is_light_error(lp):
    """V3 errors carry an object message, V4 errors a string one"""
    obj = lp.obj
    if obj is None or len(obj) != 1:
        return False
    name, value = first_property(obj)
    if not isinstance(value, dict):
        return False
    message = value.get(core.ERROR_MESSAGE)
    if name == core.V3_LIGHT_ERROR:
        return isinstance(message, dict)
    elif name == core.V4_LIGHT_ERROR:
        return isinstance(message, str)
    return False


def is_light_service_doc(lp):
    return lp.has_context() and lp.url.endswith(core.METADATA_SEGMENT)


def is_light_delta(lp):
    if lp.v3:
        return lp.url.endswith(core.V3_DELTA_MARKER)
    elif lp.v4:
        return lp.url.endswith(core.V4_DELTA_MARKER)
    return False


def is_light_entity_ref(lp):
    if lp.v4:
        return lp.url.endswith(core.V4_COLLECTION_REF_MARKER) or \
            lp.url.endswith(core.V4_REF_MARKER)
    elif lp.v3:
        return len(lp.segments) >= 3 and \
            lp.segments[-2] == core.V3_LINKS_SEGMENT and \
            lp.segments[-3].startswith(core.METADATA_FRAGMENT)
    return False


def is_light_primitive_or_complex(lp):
    return lp.has_context() and \
        lp.last.startswith(core.METADATA_FRAGMENT) and "." in lp.last


def _entity_set_of(name):
    # strip any key predicate or select list
    return name.split("(")[0]


def is_light_feed(lp):
    """Feeds are recognised from the context URL and the shape of the
    'value' property, which must be an array of objects"""
    if not lp.has_context() or not lp.value_is_entity_array():
        return False
    if lp.v3:
        return lp.last.startswith(core.METADATA_FRAGMENT) and \
            "." not in lp.last
    if lp.metadata is None:
        if is_light_entity_ref(lp) or is_light_primitive_or_complex(lp) or \
                is_light_delta(lp):
            return False
        if lp.last.startswith(core.METADATA_FRAGMENT):
            return True
        # e.g., $metadata#Orders(4711)/Items
        return lp.fragment is not None and len(lp.fragment.split("/")) > 1
    if lp.fragment is None:
        return False
    md = lp.metadata
    if lp.fragment in md.entity_set_names() or (
            "/" not in lp.fragment and
            _entity_set_of(lp.fragment) in md.entity_set_names()):
        return True
    if "/" in lp.fragment:
        parts = lp.fragment.split("/")
        entity_set = _entity_set_of(parts[0])
        if entity_set in md.entity_set_names():
            return parts[1] in md.get_navigation_properties(entity_set)
    return False


def is_light_entry(lp):
    if lp.v3:
        return lp.url.endswith(core.V3_ENTITY_MARKER) or \
            lp.last.startswith(core.V3_ENTITY_MARKER)
    elif not lp.v4:
        return False
    if lp.url.endswith(core.V4_ENTITY_MARKER):
        # {context-url}#{entity-set}/$entity
        return True
    if not lp.last.startswith(core.METADATA_FRAGMENT):
        return False
    if lp.metadata is None:
        # singleton or keyed entity, no way to be sure
        return not lp.last.endswith(core.V4_COLLECTION_REF_MARKER) and \
            not lp.last.endswith(core.V4_REF_MARKER) and \
            "." not in lp.last and \
            core.VALUE not in lp.obj
    name = lp.last[len(core.METADATA_FRAGMENT):]
    md = lp.metadata
    if name in md.singleton_names():
        return True
    if _entity_set_of(name) in md.entity_set_names():
        return not lp.has_value_array() and \
            not is_light_entity_ref(lp) and \
            not is_light_delta(lp) and \
            not is_light_primitive_or_complex(lp)
    return False


def is_light_individual_property(lp):
    if lp.fragment is None or is_light_delta(lp) or \
            is_light_entity_ref(lp):
        return False
    parts = lp.fragment.split("/")
    if len(parts) < 2:
        return False
    if lp.metadata is None:
        return "(" in parts[0] and ")" in parts[0]
    entity_set = _entity_set_of(parts[0])
    if entity_set not in lp.metadata.entity_set_names():
        return False
    return parts[1] in lp.metadata.get_normal_properties(entity_set)


LIGHT_LADDER = (
    (is_light_error, PayloadType.Error),
    (is_light_service_doc, PayloadType.ServiceDoc),
    (is_light_delta, PayloadType.Delta),
    (is_light_entity_ref, PayloadType.EntityRef),
    (is_light_primitive_or_complex, PayloadType.Property),
    (is_light_feed, PayloadType.Feed),
    (is_light_entry, PayloadType.Entry),
    (is_light_individual_property, PayloadType.IndividualProperty),
    )


def run_ladder(ladder, arg):
    """Returns the type of the first matching predicate or Other"""
    for predicate, ptype in ladder:
        if predicate(arg):
            logging.debug("Payload type %s matched by %s",
                          PayloadType.to_str(ptype), predicate.__name__)
            return ptype
    return PayloadType.Other


def classify_type(payload, fmt, metadata=None, headers=None):
    """Determines the :class:`PayloadType` of a payload

    payload
        The response body as a string

    fmt
        The :class:`PayloadFormat` of the payload

    metadata
        An optional metadata document (string or
        :class:`MetadataDocument`) used to resolve JSON Light context
        URLs.  Without it weaker syntactic tests are used.

    headers
        An optional raw header block, when given payloads that would
        otherwise be Other (or Property or Link payloads sent as
        text/plain) are reported as RawValue.

    Malformed payloads are never an error, they are classified as
    Other."""
    if not payload:
        return PayloadType.none
    if fmt == PayloadFormat.Atom:
        root = parse_xml(payload)
        if root is not None and local_name(root.tag) == "feed":
            result = PayloadType.Feed
        else:
            result = PayloadType.Entry
    elif fmt == PayloadFormat.Xml:
        root = parse_xml(payload)
        if root is None:
            result = PayloadType.Other
        else:
            result = run_ladder(XML_LADDER, root)
    elif fmt == PayloadFormat.Json:
        obj = parse_json_object(payload)
        if obj is None or not is_verbose(obj):
            result = PayloadType.Other
        else:
            result = run_ladder(VERBOSE_LADDER, obj)
    elif fmt == PayloadFormat.JsonLight:
        obj = parse_json_object(payload)
        if obj is None:
            result = PayloadType.Other
        else:
            result = run_ladder(LIGHT_LADDER,
                                LightPayload(obj, as_metadata(metadata)))
    else:
        result = PayloadType.Other
    if headers:
        if result == PayloadType.Other and RAW_VERSION_RE.search(headers):
            result = PayloadType.RawValue
        elif result in (PayloadType.Property, PayloadType.Link) and \
                RAW_TEXT_RE.search(headers):
            result = PayloadType.RawValue
    return result


def classify_payload(payload, headers, metadata=None):
    """Classifies a response

    payload
        The response body as a string (may be None or empty)

    headers
        The raw response header block (may be None)

    metadata
        An optional metadata document, string or
        :class:`MetadataDocument`

    Returns a tuple of (:class:`PayloadFormat`, :class:`PayloadType`,
    :class:`ODataVersion`).  The result depends only on the arguments
    and no exception is raised for malformed input."""
    fmt = classify_format(headers, payload)
    ptype = classify_type(payload, fmt, metadata, headers)
    version = hdr.get_odata_version(headers)
    logging.debug("Classified payload as %s/%s/%s",
                  PayloadFormat.to_str(fmt), PayloadType.to_str(ptype),
                  core.ODataVersion.to_str(version))
    return fmt, ptype, version


# Payload inspection

def get_entity_type(payload, ptype, fmt):
    """Returns the qualified entity type named in a feed or entry

    Atom payloads use the term of the first category element, JSON
    verbose payloads the __metadata type and JSON Light payloads the
    type annotation of the entry (or the first entry in a feed).  A
    leading '#' is removed.  Returns None if no type can be found or
    the payload is not a feed or entry."""
    if not payload or ptype not in (PayloadType.Entry, PayloadType.Feed):
        return None
    result = None
    if fmt in (PayloadFormat.Atom, PayloadFormat.Xml):
        root = parse_xml(payload)
        if root is not None:
            candidates = root.findall("{%s}category" % core.NS_ATOM) + \
                root.findall("{%s}entry/{%s}category" %
                             (core.NS_ATOM, core.NS_ATOM))
            if candidates:
                result = candidates[0].get("term")
    elif fmt == PayloadFormat.Json:
        inner = reach_inner(parse_json_object(payload))
        if isinstance(inner, list):
            inner = inner[0] if inner else None
        if isinstance(inner, dict):
            meta = inner.get(core.VERBOSE_METADATA)
            if isinstance(meta, dict):
                result = meta.get(core.VERBOSE_TYPE)
    elif fmt == PayloadFormat.JsonLight:
        obj = parse_json_object(payload)
        if obj is not None:
            if ptype == PayloadType.Feed:
                value = obj.get(core.VALUE)
                obj = value[0] if isinstance(value, list) and value and \
                    isinstance(value[0], dict) else None
            if obj is not None:
                result = obj.get(core.V3_TYPE, obj.get(core.V4_TYPE))
    if isinstance(result, str) and result:
        return result.lstrip("#")
    return None


def is_media_link_entry(payload, ptype, fmt):
    """True if the payload is a media link entry

    Only Atom and JSON verbose entries are considered, an Atom entry is
    a media link entry if its properties are carried in an
    m:properties element that is a direct child of the entry."""
    if not payload or ptype != PayloadType.Entry:
        return False
    if fmt == PayloadFormat.Atom:
        root = parse_xml(payload)
        if root is None or local_name(root.tag) != "entry":
            return False
        return len([e for e in root
                    if local_name(e.tag) == "properties"]) == 1
    elif fmt == PayloadFormat.Json:
        inner = reach_inner(parse_json_object(payload))
        if isinstance(inner, dict):
            meta = inner.get(core.VERBOSE_METADATA)
            return isinstance(meta, dict) and \
                core.VERBOSE_CONTENT_TYPE in meta
    return False


def get_context_fragment(payload):
    """Returns the part of a JSON Light context URL after $metadata#

    Returns None if there is no context URL or it has no fragment."""
    return LightPayload(parse_json_object(payload)).fragment


def get_entity_set(payload, fmt):
    """Returns the entity set named by a JSON Light context URL

    Any key predicate, select list or trailing path is removed."""
    if fmt != PayloadFormat.JsonLight:
        return None
    fragment = get_context_fragment(payload)
    if not fragment:
        return None
    return _entity_set_of(fragment.split("/")[0])


def get_id(payload, fmt):
    """Returns the id of an Atom feed or entry or a JSON Light entry"""
    if not payload:
        return None
    if fmt in (PayloadFormat.Atom, PayloadFormat.Xml):
        root = parse_xml(payload)
        if root is not None:
            node = root.find("{%s}id" % core.NS_ATOM)
            if node is not None and node.text:
                return node.text.strip()
    elif fmt == PayloadFormat.JsonLight:
        obj = parse_json_object(payload)
        if obj is not None:
            return obj.get(core.V3_ID, obj.get(core.V4_ID))
    return None


def _is_annotation(name):
    return name.startswith("odata.") or name.startswith("@odata.") or \
        "@odata." in name


def get_projected_properties(payload, fmt, metadata, type_name):
    """Returns the property names of a projected feed or entry

    payload
        The response body

    fmt
        The :class:`PayloadFormat` of the payload

    metadata
        The metadata document (string or :class:`MetadataDocument`)

    type_name
        The short name of the entity type of the feed or entry

    The first entry of the payload is compared with the declared
    properties of its type.  JSON payloads are projected when the entry
    has fewer properties than declared, Atom payloads when the counts
    differ.  Returns None if the payload is not projected or cannot be
    examined."""
    md = as_metadata(metadata)
    if md is None or not type_name or not payload:
        return None
    declared = md.get_property_count(type_name)
    if fmt == PayloadFormat.Atom:
        root = parse_xml(payload)
        if root is None:
            return None
        if local_name(root.tag) == "feed":
            root = root.find("{%s}entry" % core.NS_ATOM)
        elif local_name(root.tag) != "entry":
            return None
        if root is None:
            return None
        names = []
        for e in root.iter():
            if local_name(e.tag) == "properties" and \
                    namespace(e.tag) in core.METADATA_NAMESPACES:
                names.extend(local_name(p.tag) for p in e)
        if names and len(names) != declared:
            return names
        return None
    obj = parse_json_object(payload)
    if obj is None:
        return None
    if fmt == PayloadFormat.Json:
        node = reach_inner(obj)
        if isinstance(node, list):
            node = node[0] if node else None
        exclude = (lambda n: n == core.VERBOSE_METADATA)
    elif fmt == PayloadFormat.JsonLight:
        node = obj
        value = obj.get(core.VALUE)
        if isinstance(value, list):
            node = value[0] if value else None
        exclude = _is_annotation
    else:
        return None
    if not isinstance(node, dict):
        return None
    names = [n for n in node if not exclude(n)]
    if names and len(names) < declared:
        return names
    return None


def entity_type_matches(payload, ptype, fmt, metadata):
    """True if the metadata document declares the payload's entity
    type, or the payload names no entity type"""
    md = as_metadata(metadata)
    etype = get_entity_type(payload, ptype, fmt)
    if md is None or not etype:
        return True
    return md.matches_type(etype) or \
        md.get_entity_type(short_name(etype)) is not None

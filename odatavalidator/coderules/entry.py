#! /usr/bin/env python
"""Rules for entries"""

import urllib.parse

from .. import core
from ..core import PayloadFormat, PayloadType, RequirementLevel
from ..rules import Rule
from ..sniffer import local_name, namespace, parse_xml
from . import is_annotation, json_payload


def get_select_list(destination):
    """Returns the lower-cased names in the $select option of a URI

    Returns None if there is no $select option, an empty list if it
    selects everything."""
    query = urllib.parse.urlsplit(destination).query
    for name, value in urllib.parse.parse_qsl(query):
        if name == "$select":
            names = [n.strip().lower() for n in value.split(",")
                     if n.strip()]
            if "*" in names:
                return []
            # navigation paths select their first segment
            return [n.split("/")[0] for n in names]
    return None


def get_entry_properties(context):
    """Returns the property names of the entry in a context

    Annotations and Atom elements outside the properties element are
    ignored.  Returns None if the payload cannot be examined."""
    if context.payload_format == PayloadFormat.JsonLight:
        obj = json_payload(context)
        if obj is None:
            return None
        return [n for n in obj if not is_annotation(n)]
    elif context.payload_format in (PayloadFormat.Atom, PayloadFormat.Xml):
        root = parse_xml(context.response_payload)
        if root is None:
            return None
        names = []
        for e in root.iter():
            if local_name(e.tag) == "properties" and \
                    namespace(e.tag) in core.METADATA_NAMESPACES:
                names.extend(local_name(p.tag) for p in e)
        return names
    return None


class EntryCore2003(Rule):

    """A projected entry only carries the selected properties"""

    name = "Entry.Core.2003"
    description = (
        "An entry requested with $select should only contain the "
        "properties named in the select list.")
    spec_section = "2.2.6.2.2"
    requirement_level = RequirementLevel.Should
    payload_type = PayloadType.Entry
    projection = True

    def verify(self, context):
        selected = get_select_list(context.destination)
        if not selected:
            return self.not_applicable()
        names = get_entry_properties(context)
        if names is None:
            return self.not_applicable()
        for name in names:
            if name.lower() not in selected:
                return self.failed(context, name)
        return self.passed()


def register_rules(registry):
    registry.register(EntryCore2003)

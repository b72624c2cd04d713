#! /usr/bin/env python
"""Read-only access to a service's metadata document

The validator does not need a full model of the Entity Data Model, it
needs to answer a handful of questions about the declared entity sets,
singletons, entity types and complex types.  The document is parsed
once and the answers are computed from the element tree on demand.

Names are matched without regard to case: rules compare names taken
from payloads and URLs with names declared in the document and these
are frequently written with inconsistent case by real services."""

import logging
import xml.etree.ElementTree as ET

from . import core
from .sniffer import local_name, namespace


class PropertyInfo(object):

    """A declared structural property

    name
        The declared name

    type
        The declared type name, e.g., "Edm.String" or
        "Collection(NS.Address)"

    nullable
        True unless the property is declared Nullable="false"."""

    def __init__(self, name, type, nullable=True):
        self.name = name
        self.type = type
        self.nullable = nullable

    def __repr__(self):
        return "PropertyInfo(%s, %s, %s)" % (
            repr(self.name), repr(self.type), repr(self.nullable))

    def item_type(self):
        """Returns the type name with any Collection() wrapper removed"""
        t = self.type or ""
        if t.startswith("Collection(") and t.endswith(")"):
            return t[11:-1]
        return t

    def is_collection(self):
        return (self.type or "").startswith("Collection(")

    def is_primitive(self):
        """True if the (item) type is a primitive Edm type"""
        return self.item_type().startswith("Edm.")


class StructuredTypeInfo(object):

    """Base class for declared entity and complex types"""

    def __init__(self, name, namespace, base_type=None):
        #: the unqualified name of the type
        self.name = name
        #: the namespace (or alias) of the schema declaring the type
        self.namespace = namespace
        #: the qualified name of the base type or None
        self.base_type = base_type
        #: the list of :class:`PropertyInfo` declared by this type
        self.properties = []
        #: the names of declared navigation properties
        self.navigation_properties = []

    @property
    def qualified_name(self):
        if self.namespace:
            return "%s.%s" % (self.namespace, self.name)
        return self.name

    def get_property(self, name):
        if not name:
            return None
        lname = name.lower()
        for p in self.properties:
            if p.name.lower() == lname:
                return p
        return None


class EntityTypeInfo(StructuredTypeInfo):

    def __init__(self, name, namespace, base_type=None):
        super(EntityTypeInfo, self).__init__(name, namespace, base_type)
        #: the names of the key properties
        self.key = []


class ComplexTypeInfo(StructuredTypeInfo):
    pass


def short_name(qname):
    """Returns the last dotted segment of a qualified name"""
    if qname is None:
        return None
    return qname.split(".")[-1]


class MetadataDocument(object):

    """Wraps a parsed metadata document

    src
        The metadata document as a string.  A ValueError is raised if
        it is not well-formed XML or if the root element is not an
        Edmx element, use :meth:`from_str` to obtain None instead."""

    def __init__(self, src):
        try:
            self.root = ET.fromstring(src.strip())
        except ET.ParseError as err:
            raise ValueError("Metadata document is not XML: %s" % str(err))
        if local_name(self.root.tag) != "Edmx":
            raise ValueError("Metadata document root is %s, expected Edmx" %
                             local_name(self.root.tag))
        self.src = src
        self.version = self.root.get("Version")
        self._schemas = []
        self._entity_types = {}
        self._complex_types = {}
        self._entity_sets = []
        self._singletons = []
        self._load()

    @classmethod
    def from_str(cls, src):
        """Returns a new instance or None if src is not a metadata
        document"""
        if not src or not src.strip():
            return None
        try:
            return cls(src)
        except ValueError as err:
            logging.warning("Ignoring metadata document: %s", str(err))
            return None

    def _load(self):
        for schema in self._iter_local(self.root, "Schema"):
            ns = schema.get("Namespace")
            alias = schema.get("Alias")
            self._schemas.append((ns, alias))
            for child in schema:
                lname = local_name(child.tag)
                if lname in ("EntityType", "ComplexType") and \
                        not child.get("Name"):
                    logging.warning("Ignoring unnamed %s in schema %s",
                                    lname, ns)
                    continue
                if lname == "EntityType":
                    t = EntityTypeInfo(child.get("Name"), ns,
                                       child.get("BaseType"))
                    self._load_structure(t, child)
                    self._add_type(self._entity_types, t, alias)
                elif lname == "ComplexType":
                    t = ComplexTypeInfo(child.get("Name"), ns,
                                        child.get("BaseType"))
                    self._load_structure(t, child)
                    self._add_type(self._complex_types, t, alias)
                elif lname == "EntityContainer":
                    self._load_container(child)

    def _add_type(self, type_dict, t, alias):
        # indexed by short and qualified names (and alias qualified)
        type_dict.setdefault(t.name.lower(), t)
        type_dict[t.qualified_name.lower()] = t
        if alias:
            type_dict[("%s.%s" % (alias, t.name)).lower()] = t

    def _load_structure(self, t, element):
        for child in element:
            lname = local_name(child.tag)
            if lname in ("Property", "NavigationProperty") and \
                    not child.get("Name"):
                logging.warning("Ignoring unnamed %s in %s", lname,
                                t.qualified_name)
                continue
            if lname == "Property":
                if child.get(
                        "{%s}FC_KeepInContent" % core.NS_METADATA_V3) == \
                        "false":
                    # mapped out of the content by a feed customization
                    continue
                t.properties.append(PropertyInfo(
                    child.get("Name"), child.get("Type"),
                    child.get("Nullable", "true").lower() != "false"))
            elif lname == "NavigationProperty":
                t.navigation_properties.append(child.get("Name"))
            elif lname == "Key" and isinstance(t, EntityTypeInfo):
                for ref in child:
                    if local_name(ref.tag) == "PropertyRef" and \
                            ref.get("Name"):
                        t.key.append(ref.get("Name"))

    def _load_container(self, container):
        for child in container:
            lname = local_name(child.tag)
            if lname in ("EntitySet", "Singleton") and not child.get("Name"):
                logging.warning("Ignoring unnamed %s in container %s",
                                lname, container.get("Name"))
                continue
            if lname == "EntitySet":
                self._entity_sets.append(
                    (child.get("Name"), child.get("EntityType")))
            elif lname == "Singleton":
                self._singletons.append(
                    (child.get("Name"), child.get("Type")))

    @staticmethod
    def _iter_local(root, name):
        for e in root.iter():
            if local_name(e.tag) == name:
                yield e

    def namespaces(self):
        """Returns the list of declared schema namespaces"""
        return [ns for ns, alias in self._schemas]

    def is_v4(self):
        return namespace(self.root.tag) == core.NS_EDMX_V4

    def entity_set_names(self):
        """Returns the declared entity set names in document order"""
        return [name for name, etype in self._entity_sets]

    def singleton_names(self):
        """Returns the declared singleton names in document order"""
        return [name for name, etype in self._singletons]

    def has_entity_set(self, name):
        return self._lookup(self._entity_sets, name) is not None

    def has_singleton(self, name):
        return self._lookup(self._singletons, name) is not None

    @staticmethod
    def _lookup(pairs, name):
        if name is None:
            return None
        lname = name.lower()
        for n, t in pairs:
            if n is not None and n.lower() == lname:
                return t
        return None

    def get_entity_type_name(self, name):
        """Returns the qualified entity type of an entity set or singleton

        name
            The name of an entity set or, failing that, a singleton

        Returns None if there is no such entity set or singleton."""
        etype = self._lookup(self._entity_sets, name)
        if etype is None:
            etype = self._lookup(self._singletons, name)
        return etype

    def get_entity_type_short_name(self, name):
        """Returns the unqualified entity type of an entity set"""
        return short_name(self.get_entity_type_name(name))

    def get_entity_type(self, type_name):
        """Returns the :class:`EntityTypeInfo` for a type

        type_name
            The short or qualified name of an entity type"""
        if not type_name:
            return None
        return self._entity_types.get(type_name.lower())

    def get_complex_type(self, type_name):
        """Returns the :class:`ComplexTypeInfo` for a type or None"""
        if not type_name:
            return None
        return self._complex_types.get(type_name.lower())

    def get_entity_type_of_set(self, name):
        """Returns the :class:`EntityTypeInfo` of an entity set or
        singleton"""
        return self.get_entity_type(self.get_entity_type_name(name))

    def get_properties(self, type_name, include_base=True):
        """Returns the list of :class:`PropertyInfo` of a type

        type_name
            The short or qualified name of an entity or complex type

        include_base
            If True, properties inherited from base types are included
            (base type properties first).

        An unknown type returns an empty list."""
        t = self.get_entity_type(type_name)
        if t is None:
            t = self.get_complex_type(type_name)
        result = []
        seen = set()
        while t is not None and t.qualified_name not in seen:
            seen.add(t.qualified_name)
            result[0:0] = t.properties
            if not include_base or not t.base_type:
                break
            base = self.get_entity_type(t.base_type)
            if base is None:
                base = self.get_complex_type(t.base_type)
            t = base
        return result

    def get_normal_properties(self, entity_set):
        """Returns the names of the structural properties declared by
        the entity type of an entity set"""
        t = self.get_entity_type_of_set(entity_set)
        if t is None:
            return []
        return [p.name for p in t.properties]

    def get_navigation_properties(self, entity_set):
        """Returns the names of the navigation properties declared by
        the entity type of an entity set"""
        t = self.get_entity_type_of_set(entity_set)
        if t is None:
            return []
        return list(t.navigation_properties)

    def get_property_count(self, type_name):
        """Returns the number of properties declared by a type

        Inherited properties are not counted, zero is returned for an
        unknown type."""
        t = self.get_entity_type(type_name)
        if t is None:
            return 0
        return len(t.properties)

    def matches_type(self, qualified_type):
        """True if *qualified_type* is declared in one of the schemas

        Used to check that an offline metadata document describes the
        payload it is being used with."""
        if not qualified_type:
            return False
        qualified_type = qualified_type.lstrip("#")
        for ns, alias in self._schemas:
            for prefix in (ns, alias):
                if prefix and qualified_type.startswith(prefix + "."):
                    return True
        return False

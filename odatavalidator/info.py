#! /usr/bin/env python
"""The module creates some basic constants to describe the package."""

title_name = u"OData Validator"
name = "odatavalidator"
copyright = u"\xA92017, OData Validator contributors"

major_version = "0.1"
build_date = "20171018"
version = "%s.%s" % (major_version, build_date)

title = (
    "OData Validator: "
    "payload classification and rule dispatch for OData conformance")

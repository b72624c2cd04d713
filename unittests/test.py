#! /usr/bin/env python
"""Runs unit tests on all odatavalidator modules"""

import unittest
import logging

import test_classifier
import test_coderules
import test_context
import test_dispatcher
import test_enumeration
import test_headers
import test_metadata
import test_report
import test_rules
import test_selector
import test_settings
import test_sniffer
import test_validate
import test_webhelper


all_tests = unittest.TestSuite()
all_tests.addTest(test_classifier.suite())
all_tests.addTest(test_coderules.suite())
all_tests.addTest(test_context.suite())
all_tests.addTest(test_dispatcher.suite())
all_tests.addTest(test_enumeration.suite())
all_tests.addTest(test_headers.suite())
all_tests.addTest(test_metadata.suite())
all_tests.addTest(test_report.suite())
all_tests.addTest(test_rules.suite())
all_tests.addTest(test_selector.suite())
all_tests.addTest(test_settings.suite())
all_tests.addTest(test_sniffer.suite())
all_tests.addTest(test_validate.suite())
all_tests.addTest(test_webhelper.suite())


def suite():
    global all_tests
    return all_tests


def load_tests(loader, tests, pattern):
    return suite()


if __name__ == "__main__":
    logging.basicConfig(level=logging.ERROR)
    unittest.main()

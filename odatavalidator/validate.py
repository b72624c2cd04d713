#! /usr/bin/env python
"""Command line validator

Validates a single resource, either retrieved from a live service::

    odatavalidator -v --format json http://host/svc/Products

or supplied as a file::

    odatavalidator --offline entry.json --metadata metadata.xml

One line is written for each rule followed by a summary.  The exit
status is 0 if no MUST rule failed and no rule aborted, 1 if the
service failed validation and 2 if validation could not be carried
out."""

import json
import logging
import optparse
import sys

from . import info
from .coderules import default_registry
from .context import ContextFactory
from .dispatcher import Dispatcher
from .errors import SettingsError, ValidatorError
from .report import ResultCollector, format_outcome
from .settings import EngineSettings


class ValidatorApp(object):

    """Runs a validation from the command line

    Like other command line tools the app is configured by class
    methods before an instance is created: :meth:`add_options` defines
    the options, :meth:`setup` reads them along with the settings file
    and :meth:`run` does the work."""

    #: the path to the settings file
    settings_file = None

    #: the settings dictionary, keyed on class name
    settings = None

    #: the :class:`EngineSettings` used for the run
    engine_settings = None

    options = None

    args = None

    @classmethod
    def main(cls, argv=None):
        """Runs the application, returning the exit status"""
        parser = optparse.OptionParser(
            usage="%prog [options] [URL]",
            description="%s %s" % (info.title, info.version))
        cls.add_options(parser)
        (options, args) = parser.parse_args(argv)
        if options.offline is None and len(args) != 1:
            parser.error("expected a URL or the --offline option")
        try:
            cls.setup(options=options, args=args)
        except ValidatorError as err:
            logging.error(str(err))
            return 2
        app = cls()
        return app.run()

    @classmethod
    def add_options(cls, parser):
        """Defines command line options

        parser
            An OptionParser instance

        The following options are added:

        -v          Sets the logging level to WARNING, INFO or DEBUG
                    depending on the number of times it is specified.

        --settings  Sets the path to the settings file.

        --offline   Path to a payload file to validate offline.

        --metadata  Path to a metadata document used offline.

        --headers   Path to a file of response headers used offline.

        --format    The format to request from a live service, e.g.,
                    json, json;odata.metadata=full or atompub.

        --version   Sends an OData-Version request header, overriding
                    the version of the response.

        --category  The category of the context and the only category
                    of rules that are run."""
        parser.add_option(
            "-v", action="count", dest="logging",
            default=None, help="increase verbosity of output up to 3x")
        parser.add_option(
            "--settings", dest="settings", action="store", default=None,
            help="Path to the settings file")
        parser.add_option(
            "--offline", dest="offline", action="store", default=None,
            help="Path to a payload to validate offline")
        parser.add_option(
            "--metadata", dest="metadata", action="store", default=None,
            help="Path to a metadata document (offline only)")
        parser.add_option(
            "--headers", dest="headers", action="store", default=None,
            help="Path to a file of response headers (offline only)")
        parser.add_option(
            "--format", dest="format", action="store", default="json",
            help="Format to request from a live service")
        parser.add_option(
            "--version", dest="odata_version", action="store",
            default=None, help="Protocol version, e.g., 4.0")
        parser.add_option(
            "--category", dest="category", action="store", default=None,
            help="Category of rules to run")

    @classmethod
    def setup(cls, options=None, args=None, **kwargs):
        """Perform one-time class setup

        options
            An optparse.Values instance

        args
            The positional arguments, the URL of the resource

        The settings file is loaded, the root logger initialised and
        the :attr:`engine_settings` created."""
        cls.options = options
        cls.args = args or []
        if options and options.settings:
            cls.settings_file = options.settings
        cls.settings = {}
        if cls.settings_file:
            logging.info("Loading settings from %s", cls.settings_file)
            try:
                cls.settings = json.loads(cls.read_file(cls.settings_file))
            except ValueError as err:
                raise SettingsError("Bad settings file %s: %s" %
                                    (cls.settings_file, str(err)))
        settings = cls.settings.setdefault('ValidatorApp', {})
        if options and options.logging is not None:
            settings['level'] = (
                logging.ERROR, logging.WARNING, logging.INFO,
                logging.DEBUG)[min(options.logging, 3)]
        level = settings.setdefault('level', None)
        if level is not None:
            logging.basicConfig(level=settings['level'])
        engine_settings = EngineSettings.from_dict(cls.settings)
        if options and options.category:
            engine_settings = engine_settings.replace(
                category=options.category, categories=[options.category])
        cls.engine_settings = engine_settings

    @staticmethod
    def read_file(path):
        try:
            with open(path, 'rb') as f:
                return f.read().decode('utf-8')
        except IOError as err:
            raise ValidatorError("Can't read %s: %s" % (path, str(err)))

    def __init__(self, out=None):
        self.out = sys.stdout if out is None else out

    def request_headers(self):
        if self.options is not None and self.options.odata_version:
            return [("OData-Version", self.options.odata_version)]
        return []

    def build_context(self):
        """Builds the context described by the options"""
        factory = ContextFactory(self.engine_settings)
        options = self.options
        if options.offline:
            payload = self.read_file(options.offline)
            metadata = headers = None
            if options.metadata:
                metadata = self.read_file(options.metadata)
            if options.headers:
                headers = self.read_file(options.headers)
            return factory.create_offline(
                payload, metadata, headers,
                request_headers=self.request_headers())
        return factory.create_live(self.args[0], options.format,
                                   request_headers=self.request_headers())

    def run(self):
        try:
            context = self.build_context()
        except (ValidatorError, ValueError) as err:
            logging.error(str(err))
            return 2
        collector = ResultCollector()
        dispatcher = Dispatcher(self.engine_settings, default_registry(),
                                collector)
        outcomes = dispatcher.dispatch(context)
        for outcome in outcomes:
            self.out.write(format_outcome(outcome) + "\n")
        self.out.write(collector.summary() + "\n")
        return 1 if collector.failed() else 0


def main():
    sys.exit(ValidatorApp.main())


if __name__ == "__main__":
    main()

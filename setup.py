#!/usr/bin/env python

import logging
import sys
import odatavalidator.info

if sys.hexversion < 0x03050000:
    logging.error("odatavalidator requires Python Version 3.5 (or greater)")
else:
    from setuptools import setup

    with open('README.rst') as f:
        long_description = f.read()

    setup(name=odatavalidator.info.name,
          version=odatavalidator.info.version,
          description=odatavalidator.info.title,
          long_description=long_description,
          packages=['odatavalidator',
                    'odatavalidator.coderules'],
          entry_points={
              'console_scripts': [
                  'odatavalidator = odatavalidator.validate:main']},
          classifiers=['Development Status :: 3 - Alpha',
                       'Intended Audience :: Developers',
                       'Natural Language :: English',
                       'Operating System :: OS Independent',
                       'Programming Language :: Python',
                       'Programming Language :: Python :: 3',
                       'Topic :: Internet :: WWW/HTTP',
                       'Topic :: Software Development :: Quality Assurance',
                       'Topic :: Software Development :: Testing',
                       'Topic :: Software Development :: '
                       'Libraries :: Python Modules']
          )

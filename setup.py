#!/usr/bin/env python

import os
import re
from setuptools import setup

version_file = os.path.join('lambda_multipart', '__init__.py')
with open(version_file, 'rb') as f:
    version_data = f.read().strip().decode('ascii')

version_re = re.compile(r'((?:\d+)\.(?:\d+)\.(?:\d+))')
version = version_re.search(version_data).group(0)

tests_require = [
    'pytest',
    'pytest-cov',
    'pytest-timeout',
    'PyYAML',
]

setup(name='lambda-multipart',
      version=version,
      description='multipart/form-data decoding for API Gateway proxy events',
      license='Apache',
      platforms='any',
      zip_safe=False,
      packages=[
          'lambda_multipart',
      ],
      python_requires='>=3.8',
      extras_require={
          'test': tests_require,
          'dev': tests_require + ['invoke', 'nox'],
          'fuzz': ['atheris'],
      },
      classifiers=[
        'Development Status :: 5 - Production/Stable',
        'Environment :: Web Environment',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Internet :: WWW/HTTP',
        'Topic :: Software Development :: Libraries :: Python Modules'
      ],
     )

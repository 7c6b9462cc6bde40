#!/usr/bin/env python
from setuptools import setup

setup(name='linkrs',
      version='0.1',
      description='Parser for a structured linker layout language',
      packages=['linkrs'],
      python_requires='>=3.7',
      install_requires=['lark>=1.1', 'dataslots>=1.1'],
)

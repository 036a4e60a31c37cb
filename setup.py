# Copyright (c) 2018, The SenseAct Authors.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.
from setuptools import setup, find_packages
import sys


if sys.version_info.major != 3:
    print('This Python is only compatible with Python 3, but you are running '
          'Python {}. The installation will likely fail.'.format(sys.version_info.major))


setup(name='bearbus',
      packages=[package for package in find_packages()
                if package.startswith('bearbus')],
      install_requires=[
          'numpy',
          'pyserial',
      ],
      extras_require={
          'test': ['pytest'],
      },
      python_requires='>=3.8',
      description='Master-side driver for BEAR actuators over a half-duplex serial bus',
      author='The SenseAct Team',
      author_email='',
      version='0.1.0')

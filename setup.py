import sys
import logging
from setuptools import setup, find_packages

logging.basicConfig(stream=sys.stderr, level=logging.INFO)
log = logging.getLogger()

# package description and keywords
description = ('Python tools for selecting virtual height bins '
    'from radar backscatter')
keywords = 'radar backscatter, virtual height, field-of-view, histogram fits'
# get long_description from README.rst
with open('README.rst', 'r', encoding='utf8') as fh:
    long_description = fh.read()
long_description_content_type = "text/x-rst"

# get install requirements
with open('requirements.txt', 'r', encoding='utf8') as fh:
    install_requires = [line.split().pop(0) for line in fh.read().splitlines()
        if line.strip()]

# get version
with open('version.txt', 'r', encoding='utf8') as fh:
    version = fh.read().strip()
log.info(f'vheight-toolkit version: {version}')

setup(
    name='vheight-toolkit',
    version=version,
    description=description,
    long_description=long_description,
    long_description_content_type=long_description_content_type,
    license='MIT',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Physics',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
    ],
    keywords=keywords,
    packages=find_packages(include=['vheight_toolkit', 'vheight_toolkit.*']),
    install_requires=install_requires,
    extras_require={'test': ['pytest']},
)

# -*- coding: utf-8 -*-
"""
Installs:

    - page-layout-evaluate
"""
import codecs

import json
from setuptools import setup, find_packages

with open('./ocrd_layout_eval/ocrd-tool.json', 'r') as f:
    version = json.load(f)['version']

def requirements(filename):
    with open(filename, 'r') as f:
        return [line.strip() for line in f.read().split('\n') if line.strip()]

setup(
    name='ocrd_layout_eval',
    version=version,
    description='Pixel-accurate evaluation of page layout segmentation via bipartite region graphs',
    long_description=codecs.open('README.md', encoding='utf-8').read(),
    long_description_content_type='text/markdown',
    author='Robert Sachunsky, Kay-Michael Würzner',
    author_email='sachunsky@informatik.uni-leipzig.de, wuerzner@gmail.com',
    license='Apache License 2.0',
    packages=find_packages(exclude=('tests', 'docs')),
    python_requires='>=3.9',
    install_requires=requirements('requirements.txt'),
    extras_require={
        'test': requirements('requirements-test.txt'),
    },
    package_data={
        '': ['*.json', '*.yml', '*.yaml'],
    },
    entry_points={
        'console_scripts': [
            'page-layout-evaluate=ocrd_layout_eval.cli:standalone_cli',
        ]
    },
)

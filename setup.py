#!/usr/bin/env python3

from setuptools import setup, find_packages

setup(
    name='reviewer-metadata',
    version='1.0.0',
    description='Title review and track stream-count scraper - standalone library and HTTP endpoints',
    author='Reviewer Metadata',
    packages=find_packages(exclude=['tests', 'tests.*']),
    entry_points={
        'console_scripts': [
            'reviewer=reviewer.cli:main',
        ],
    },
    install_requires=[
        # Core dependencies
        'aiohttp>=3.9.0',
        'beautifulsoup4>=4.11.0',

        # Pattern evaluation with timeouts
        'regex>=2023.6.3',
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
            'pytest-asyncio>=0.21.0',
        ],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Environment :: Web Environment',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Internet :: WWW/HTTP :: Indexing/Search',
    ],
    python_requires='>=3.9',
)

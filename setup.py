#!/usr/bin/env python

from setuptools import setup

setup(
    name="restfs",
    version="0.1.0",
    description="Filesystem-backed HTTP object store with soft deletes",
    packages=["restfs", "restfs.api"],
    include_package_data=True,
    zip_safe=False,
    keywords=["API", "storage", "filesystem"],
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Topic :: System :: Filesystems",
    ],
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "pydantic>=2",
        "pydantic-settings",
        "python-dotenv",
        "uvicorn",
        "prometheus-client",
    ],
    extras_require={
        'dev': [
            'pytest',
            'anyio',
            'httpx',
            'mypy',
            'flake8',
        ]
    },
    entry_points={
        'console_scripts': [
            'restfs = restfs.__main__:main'
        ]
    },
)

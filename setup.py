# -*- coding: utf-8 -*-

# system imports
from setuptools import setup, find_packages  # type: ignore


# proceed with actual install
install_requires = [
    "click>=8.0.0",
    "packaging",
]

dev_requires = [
    "black",
    "flake8",
    "mypy",
    "pre-commit",
    "pytest",
    "pytest-cov",
]

setup(
    name="sqlitewrap",
    version="1.0.0",
    description="Typed, exception safe access to SQLite connections, statements and "
    "savepoints.",
    license="MIT",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages("src"),
    package_dir={"": "src"},
    install_requires=install_requires,
    extras_require={
        "dev": dev_requires,
        "test": ["pytest", "pytest-cov"],
    },
    zip_safe=False,
    entry_points={
        "console_scripts": ["sqlitewrap=sqlitewrap.cli:main"],
    },
    python_requires=">=3.8",
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Database",
    ],
)

import os
import re
from setuptools import setup, find_packages

install_requires = [
    "numpy",
    "psutil",
    "click",
]

tests_require = [
    "pytest",
    "flake8",
]

extras = {
    "test": tests_require,
}


def find_version(*file_paths):
    basedir = os.path.abspath(os.path.dirname(__file__))
    with open(os.path.join(basedir, *file_paths)) as fp:
        content = fp.read()
        version_match = re.search(
            r"^__version__ = ['\"]([^'\"]*)['\"]", content, re.M
        )
        if version_match:
            return version_match.group(1)

        raise RuntimeError("Version string not found.")


def read_long_description(filename="README.md"):
    basedir = os.path.abspath(os.path.dirname(__file__))
    with open(os.path.join(basedir, filename)) as f:
        return f.read().strip()


setup(
    description="Resumable parallel Monte Carlo estimation of pi",
    include_package_data=True,
    install_requires=install_requires,
    extras_require=extras,
    license="Apache 2.0",
    long_description=read_long_description(),
    long_description_content_type="text/markdown",
    name="montepi",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    entry_points={
        "console_scripts": ["montepi=montepi.cli:main"],
    },
    version=find_version("montepi", "__init__.py"),
    python_requires=">=3.7",
    zip_safe=False,
    classifiers=[
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
)

""" sigforensics build script for setuptools.

"""

from setuptools import find_packages, setup  # type: ignore

import sigforensics

with open("README.md", "r", encoding="ascii") as file_:
    longdescription = file_.read()

setup(
    name=sigforensics.name,
    version=sigforensics.__version__,
    license=sigforensics.__license__,
    author=sigforensics.__author__,
    author_email=sigforensics.__author_email__,
    description="Forensic analysis of ECDSA signatures in bitcoin transactions",
    long_description=longdescription,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=["dataclasses-json"],
    extras_require={"test": ["pytest", "coincurve"]},
    keywords=(
        "bitcoin cryptography elliptic-curves ecdsa secp256k1 "
        "nonce-reuse DER BIP66 malleability forensics"
    ),
    python_requires=">=3.8",
    classifiers=[
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Information Technology",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Topic :: Security :: Cryptography",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
)

#!/usr/bin/env python
"""Certifiable rotation averaging with the Shonan algorithm

Riemannian staircase over SO(p) with a spectral certificate of global
optimality, using casadi for automatic differentiation and scipy for
nonlinear least squares and sparse eigenvalue computations.
"""

from setuptools import setup, find_packages
import sys

if sys.version_info < (3, 8):
    raise SystemExit("requires  Python >= 3.8")

DOCLINES = __doc__.split("\n")

CLASSIFIERS = """\
Development Status :: 3 - Alpha
Intended Audience :: Science/Research
Intended Audience :: Developers
License :: OSI Approved :: BSD License
Programming Language :: Python
Programming Language :: Python :: 3
Topic :: Software Development
Topic :: Scientific/Engineering :: Mathematics
Operating System :: Microsoft :: Windows
Operating System :: POSIX
Operating System :: Unix
Operating System :: MacOS
"""

# pylint: disable=invalid-name

package_name = "pyshonan"

setup(
    name=package_name,
    description=DOCLINES[0],
    long_description="\n".join(DOCLINES[2:]),
    license="BSD 3-Clause",
    classifiers=[_f for _f in CLASSIFIERS.split("\n") if _f],
    platforms=["Windows", "Linux", "Solaris", "Mac OS-X", "Unix"],
    python_requires=">=3.8",
    install_requires=[
        "scipy",
        "numpy",
        "casadi",
        "matplotlib",
    ],
    extras_require={"test": ["pytest"]},
    packages=find_packages(exclude=["test", "test.*"]),
    version="0.1.0",
    zip_safe=True,
)

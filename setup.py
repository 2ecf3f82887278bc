#!/usr/bin/env python
import os

from setuptools import find_packages, setup

here = os.path.abspath(os.path.dirname(__file__))

about = {}
with open(os.path.join(here, "src", "pixstack", "version.py")) as f:
    exec(f.read(), about)

setup(
    name="pixstack",
    version=about["__version__"],
    description="Layered raster editing core: compositing, undo history and filters",
    license="MIT",
    python_requires=">=3.9",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "numpy",
        "Pillow>=10.0.0",
        "attrs>=23.1.0",
    ],
    extras_require={
        "composite": [
            "aggdraw",
            "scipy",
        ],
        "test": [
            "pytest",
            "pytest-cov",
            "aggdraw",
            "scipy",
        ],
    },
    entry_points={
        "console_scripts": [
            "pixstack=pixstack.__main__:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Topic :: Multimedia :: Graphics",
    ],
)

# coding: utf-8


import os
from setuptools import setup

import errval as ev


this_dir = os.path.dirname(os.path.abspath(__file__))


keywords = [
    "measurement", "uncertainty", "error", "propagation", "interval", "physics", "numpy",
]


classifiers = [
    "Programming Language :: Python",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Development Status :: 4 - Beta",
    "Operating System :: OS Independent",
    "License :: OSI Approved :: BSD License",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Topic :: Scientific/Engineering :: Physics",
]


# read the readme file
with open(os.path.join(this_dir, "README.md"), "r", encoding="utf-8") as f:
    long_description = f.read()


# load installation requirements
with open(os.path.join(this_dir, "requirements.txt"), "r") as f:
    install_requires = [line.strip() for line in f.readlines() if line.strip()]


setup(
    name=ev.__name__,
    version=ev.__version__,
    author=ev.__author__,
    description=ev.__doc__.strip().split("\n")[0].strip(),
    license=ev.__license__,
    keywords=keywords,
    classifiers=classifiers,
    long_description=long_description,
    long_description_content_type="text/markdown",
    install_requires=install_requires,
    extras_require={
        "uncertainties": ["uncertainties"],
        "test": ["uncertainties"],
    },
    python_requires=">=3.8",
    zip_safe=False,
    packages=[ev.__name__],
)

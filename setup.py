#!/usr/bin/env python
from setuptools import setup, find_packages


setup(name="profileHmm",
      version="0.1.0",
      description="A profile HMM for scoring and aligning nanopore events against candidate sequences",
      author="Art Rand / Andrew Bailey / Trevor Pesout",
      author_email="andbaile@ucsc.edu",
      package_dir={"": "src"},
      packages=find_packages("src"),
      scripts=["src/profilehmm/scripts/runProfileHmm.py"],
      install_requires=["numpy>=1.9.2",
                        "pandas>=0.23.1",
                        "py3helpers>=0.5.0"],
      extras_require={"test": ["pytest", "scipy>=1.5.0"]}
      )

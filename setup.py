# -*- coding: utf-8 -*-
"""
Created on Tue Oct  5 14:25:28 2021

@author: lukepinkel
"""

import setuptools

setuptools.setup(
    name="mixedfit",
    version="0.1.0",
    description="Linear mixed models fit by ML or REML with a sparse Cholesky factor",
    packages=setuptools.find_packages(include=["mixedfit", "mixedfit.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.8',
    install_requires=[
        'numpy>=1.17.2',
        'numba>=0.45.1',
        'scipy>=1.7.0',
        'tqdm>=4.36.1',
        'scikit-sparse>=0.4.4',
        'nlopt>=2.7.0',
        'patsy>=0.5.1',
        'pandas>=1.2.1'
        ],
    extras_require={
        'test': ['pytest>=6.0'],
        },
)

#!/usr/bin/env python
# -*- coding: utf-8 -*-
import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

requirements = [
        'numpy', 'pandas', 'h5py', 'anndata', 'scikit-learn', 'scipy', 'POT'
]

setuptools.setup(
    name='genetraj',
    version='0.1.0',
    description="Gene trajectories from Wasserstein distances over the cell graph",
    author="genetraj developers",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(include=['genetraj', 'genetraj.*']),
    include_package_data=True,
    install_requires=requirements,
    extras_require={'test': ['pytest']},
    license="BSD license",
    zip_safe=False,
    keywords='genetraj',
    classifiers=[
            'License :: OSI Approved :: BSD License',
            'Intended Audience :: Developers',
            'Intended Audience :: Science/Research',
            'Natural Language :: English',
            'Operating System :: MacOS :: MacOS X',
            'Operating System :: POSIX :: Linux',
            'Programming Language :: Python :: 3',
            'Topic :: Scientific/Engineering :: Bio-Informatics',
    ],
    test_suite='tests',
    python_requires='>= 3.7',
    entry_points={
            'console_scripts': [
                    'genetraj=genetraj.__main__:main'
            ]
    },
)

from setuptools import setup

setup(
    name='atmfjstc-wz-archive',
    version='1.0.0',

    author_email='atmfjstc@protonmail.com',

    package_dir={'': 'src'},
    packages=['atmfjstc.lib.wz_archive'],

    install_requires=[
        'atmfjstc-file-utils>=1.1, <2',
    ],

    extras_require={
        'test': [
            'pytest>=6',
        ],
    },

    zip_safe=True,

    description="Low-level decoding utilities for WZ archives",

    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Typing :: Typed",
    ],
    python_requires='>=3.7',
)

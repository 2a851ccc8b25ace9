# setup.py
from setuptools import setup, find_packages

setup(
    name="lin_cochlea",
    version="1.0.0",
    description="A Python-based linear transmission-line model of the cochlear basilar membrane",
    packages=find_packages(exclude=["tests"]),
    install_requires=[
        "numpy>=1.21.0",
        "scipy>=1.7.0",
        "matplotlib",
        "tqdm",
        "h5py"
    ],
    extras_require={
        "test": ["pytest"]
    },
    python_requires=">=3.8",
)
